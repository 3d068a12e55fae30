"""
Notespace Backend — Caller Identity Tests
===========================================
"""

import pytest

from app.auth import TokenVerifier, caller_id_from_authorization, extract_bearer_token
from conftest import ALICE, TEST_JWT_SECRET, make_token


@pytest.fixture
def verifier():
    return TokenVerifier(secret=TEST_JWT_SECRET, algorithm="HS256", audience=None, issuer=None)


class TestExtractBearerToken:

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer ", "Token abc"])
    def test_no_token(self, header):
        assert extract_bearer_token(header) is None

    def test_case_insensitive_scheme(self):
        assert extract_bearer_token("bearer abc.def") == "abc.def"


class TestTokenVerifier:

    def test_valid_token(self, verifier):
        claims = verifier.verify(make_token(ALICE))
        assert claims["sub"] == ALICE

    def test_expired_token(self, verifier):
        # Past the 60 s clock skew allowance
        assert verifier.verify(make_token(ALICE, expires_in=-300)) is None

    def test_wrong_secret(self, verifier):
        token = make_token(ALICE, secret="a-completely-different-secret-of-32-chars")
        assert verifier.verify(token) is None

    def test_garbage(self, verifier):
        assert verifier.verify("not-a-jwt") is None

    def test_upload_token_is_not_identity(self, verifier):
        assert verifier.verify(make_token(ALICE, purpose="upload")) is None

    def test_blank_subject(self, verifier):
        assert verifier.verify(make_token("  ")) is None

    def test_audience_enforced_when_configured(self):
        strict = TokenVerifier(secret=TEST_JWT_SECRET, audience="notespace", issuer=None)
        assert strict.verify(make_token(ALICE)) is None
        assert strict.verify(make_token(ALICE, aud="notespace"))["sub"] == ALICE


class TestCallerIdFromAuthorization:

    def test_resolves_subject(self, verifier):
        header = f"Bearer {make_token(ALICE)}"
        assert caller_id_from_authorization(header, verifier) == ALICE

    def test_invalid_token_means_no_caller(self, verifier):
        assert caller_id_from_authorization("Bearer nope", verifier) is None

    def test_missing_header_means_no_caller(self, verifier):
        assert caller_id_from_authorization(None, verifier) is None
