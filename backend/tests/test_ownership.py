"""
Notespace Backend — Ownership Check Unit Tests
================================================
"""

from types import SimpleNamespace

import pytest

from app.exceptions import ForbiddenError, NotFoundError, UnauthenticatedError
from app.services.ownership import OwnershipCheck, assert_owner, check_owner, require_caller


def owned_by(owner: str):
    return SimpleNamespace(owner_user_id=owner)


class TestRequireCaller:

    def test_returns_caller(self):
        assert require_caller("user_a", "do things") == "user_a"

    @pytest.mark.parametrize("caller", [None, ""])
    def test_missing_caller_raises(self, caller):
        with pytest.raises(UnauthenticatedError, match="signed in to add a workspace"):
            require_caller(caller, "add a workspace")


class TestCheckOwner:

    def test_outcomes(self):
        assert check_owner(None, "a") is OwnershipCheck.NOT_FOUND
        assert check_owner(owned_by("b"), "a") is OwnershipCheck.FORBIDDEN
        assert check_owner(owned_by("a"), "a") is OwnershipCheck.OK


class TestAssertOwner:

    def test_owner_gets_resource_back(self):
        resource = owned_by("a")
        assert assert_owner(resource, "a", resource_name="note", resource_id="1") is resource

    def test_missing_raises_not_found(self):
        with pytest.raises(NotFoundError) as exc_info:
            assert_owner(None, "a", resource_name="note", resource_id="1")
        assert exc_info.value.context == {"resource": "note", "resource_id": "1"}

    def test_other_owner_raises_forbidden(self):
        with pytest.raises(ForbiddenError, match="modify this workspace"):
            assert_owner(owned_by("b"), "a", resource_name="workspace", resource_id="1")
