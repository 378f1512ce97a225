"""
Tests for member roles.
"""
import pytest
from planner.core.permissions import (
    Adventurer, PartyMember, Permission, Permissions, MemberRole, build_role, is_adventurer
)


def test_adventurer_can_do_everything():
    role = build_role("adventurer", {"read": False, "create": False, "modify": False})
    assert isinstance(role, Adventurer)
    assert is_adventurer(role)
    assert all(role.can(p) for p in Permission)


def test_party_member_uses_flags():
    role = build_role(MemberRole.PARTY_MEMBER, {"read": True, "create": True})
    assert isinstance(role, PartyMember)
    assert role.can(Permission.READ)
    assert role.can("create")
    assert not role.can(Permission.MODIFY)
    assert not is_adventurer(role)


def test_missing_permissions_default_to_read_only():
    role = build_role("party member", None)
    assert role.permissions == Permissions(read=True, create=False, modify=False)
    assert role.permissions.display() == "View"


def test_unknown_role_or_permission_is_rejected():
    with pytest.raises(ValueError):
        build_role("wizard")
    with pytest.raises(ValueError):
        PartyMember().can("delete")
