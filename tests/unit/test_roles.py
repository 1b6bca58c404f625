"""Unit tests for role change requests."""

import pytest

from symposium.kernel.errors import InvalidInput
from symposium.kernel.identity.roles import (
    AdjustRole,
    ReplaceRoles,
    RoleAction,
    apply_role_change,
)


class TestReplaceRoles:
    def test_replaces_whole_set(self):
        assert apply_role_change(["user"], ReplaceRoles(["user", "reviewer"])) == ["user", "reviewer"]

    def test_duplicates_collapse(self):
        assert apply_role_change(["user"], ReplaceRoles(["admin", "admin"])) == ["admin"]

    def test_unknown_role(self):
        with pytest.raises(InvalidInput, match="superuser"):
            apply_role_change(["user"], ReplaceRoles(["user", "superuser"]))

    def test_empty_set_refused(self):
        with pytest.raises(InvalidInput):
            apply_role_change(["user"], ReplaceRoles([]))


class TestAdjustRole:
    def test_add(self):
        assert apply_role_change(["user"], AdjustRole(RoleAction.ADD, "reviewer")) == ["user", "reviewer"]

    def test_add_existing_is_noop(self):
        assert apply_role_change(["user"], AdjustRole(RoleAction.ADD, "user")) == ["user"]

    def test_remove(self):
        assert apply_role_change(["user", "admin"], AdjustRole(RoleAction.REMOVE, "admin")) == ["user"]

    def test_remove_last_role_refused(self):
        with pytest.raises(InvalidInput, match="at least one role"):
            apply_role_change(["reviewer"], AdjustRole(RoleAction.REMOVE, "reviewer"))

    def test_unknown_role(self):
        with pytest.raises(InvalidInput):
            apply_role_change(["user"], AdjustRole(RoleAction.ADD, "chair"))
