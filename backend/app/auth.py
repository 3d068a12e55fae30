"""
Notespace Backend — Caller Identity
=====================================

What:  Resolves the caller id (identity provider subject) from a bearer token.
Why:   Every operation is evaluated against "who is calling"; the identity
       provider issues the tokens, this service only verifies them.
How:   HS256 JWT verification with PyJWT. A missing or invalid token means
       "no caller", never an exception; handlers decide what an absent
       caller means (empty list for reads, 401 for writes).
Who:   get_caller_id() is a FastAPI dependency; the rate limiter calls
       caller_id_from_authorization() directly to key its buckets.

Verification:
    - Signature with JWT_SECRET, algorithm JWT_ALGORITHM
    - exp (60 s clock skew), aud/iss when configured
    - sub must be a non-empty string
    - Tokens carrying a `purpose` claim (upload tokens) are rejected
"""

import logging
from typing import Any, Dict, Optional

import jwt
from fastapi import Request
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from app.config import settings

logger = logging.getLogger(__name__)

CLOCK_SKEW_SECONDS = 60
BEARER_PREFIX = "bearer "


class TokenVerifier:
    """Verifies identity tokens signed with a shared secret."""

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
    ):
        self.secret = secret or settings.jwt_secret
        self.algorithm = algorithm or settings.jwt_algorithm
        self.audience = audience if audience is not None else settings.jwt_audience
        self.issuer = issuer if issuer is not None else settings.jwt_issuer

    def verify(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Decode and verify `token`.

        Returns:
            The claims, or None when the token is not acceptable
        """
        options = {"require": ["exp", "sub"], "verify_aud": self.audience is not None}
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                leeway=CLOCK_SKEW_SECONDS,
                options=options,
            )
        except ExpiredSignatureError:
            logger.warning("Rejected identity token: expired")
            return None
        except InvalidTokenError as e:
            logger.warning("Rejected identity token: %s", type(e).__name__)
            return None

        if "purpose" in claims:
            logger.warning("Rejected identity token: scoped %s token", claims["purpose"])
            return None
        if not isinstance(claims.get("sub"), str) or not claims["sub"].strip():
            logger.warning("Rejected identity token: empty subject")
            return None
        return claims


verifier = TokenVerifier()


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


def caller_id_from_authorization(
    authorization: Optional[str], token_verifier: Optional[TokenVerifier] = None
) -> Optional[str]:
    """Caller id for an Authorization header value, or None."""
    token = extract_bearer_token(authorization)
    if token is None:
        return None
    claims = (token_verifier or verifier).verify(token)
    return claims["sub"] if claims else None


async def get_caller_id(request: Request) -> Optional[str]:
    """
    FastAPI dependency: the verified caller id, or None when signed out.

    Also stored on request.state so the request logger can include it.
    """
    caller_id = caller_id_from_authorization(request.headers.get("Authorization"))
    request.state.caller_id = caller_id
    return caller_id
