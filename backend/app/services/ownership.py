"""
Notespace Backend — Ownership Checks
======================================

What:  The single authorization predicate applied before every mutation.
Why:   Workspaces and notes share one rule (caller must be the owner) and
       one set of outcomes; keeping it here means every handler reports
       them the same way.
How:   check_owner() returns a tagged result; assert_owner() maps that
       result onto NotFoundError / ForbiddenError.

Handlers that treat "not found" specially (workspace delete is a silent
no-op for unknown ids) branch on check_owner() directly.
"""

import enum
import logging
from typing import Optional, Protocol, TypeVar

from app.exceptions import ForbiddenError, NotFoundError, UnauthenticatedError

logger = logging.getLogger(__name__)


class Owned(Protocol):
    owner_user_id: str


OwnedT = TypeVar("OwnedT", bound=Owned)


class OwnershipCheck(enum.Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"


def require_caller(caller_id: Optional[str], action: str) -> str:
    """Return the caller id or raise UnauthenticatedError."""
    if not caller_id:
        raise UnauthenticatedError(
            message=f"You must be signed in to {action}.",
            context={"action": action},
        )
    return caller_id


def check_owner(resource: Optional[Owned], caller_id: str) -> OwnershipCheck:
    if resource is None:
        return OwnershipCheck.NOT_FOUND
    if resource.owner_user_id != caller_id:
        return OwnershipCheck.FORBIDDEN
    return OwnershipCheck.OK


def assert_owner(
    resource: Optional[OwnedT],
    caller_id: str,
    *,
    resource_name: str,
    resource_id: str,
) -> OwnedT:
    """
    Return `resource` if `caller_id` owns it.

    Raises:
        NotFoundError:  resource is None
        ForbiddenError: resource belongs to someone else
    """
    outcome = check_owner(resource, caller_id)
    if outcome is OwnershipCheck.NOT_FOUND:
        raise NotFoundError(resource=resource_name, resource_id=resource_id)
    if outcome is OwnershipCheck.FORBIDDEN:
        logger.warning(
            "Ownership check failed: caller=%s %s=%s", caller_id, resource_name, resource_id
        )
        raise ForbiddenError(resource=resource_name, resource_id=resource_id)
    return resource
