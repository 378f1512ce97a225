"""
Member roles and permission checks.

A role is either ``Adventurer`` (group leader, every permission granted) or
``PartyMember`` carrying explicit read/create/modify flags. Call sites only
ask ``role.can(permission)``.
"""
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Union
import enum


class MemberRole(str, enum.Enum):
    """Stored role names."""
    ADVENTURER = "adventurer"
    PARTY_MEMBER = "party member"


class Permission(str, enum.Enum):
    """Permission flags a party member may hold."""
    READ = "read"
    CREATE = "create"
    MODIFY = "modify"


@dataclass(frozen=True)
class Permissions:
    read: bool = True
    create: bool = False
    modify: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Permissions":
        if not data:
            return cls()
        return cls(
            read=bool(data.get("read", True)),
            create=bool(data.get("create", False)),
            modify=bool(data.get("modify", False)),
        )

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)

    def display(self) -> str:
        """Human readable list, e.g. 'View, Create'."""
        labels = []
        if self.read:
            labels.append("View")
        if self.create:
            labels.append("Create")
        if self.modify:
            labels.append("Edit/Delete")
        return ", ".join(labels)


ALL_PERMISSIONS = Permissions(read=True, create=True, modify=True)


@dataclass(frozen=True)
class Adventurer:
    name = MemberRole.ADVENTURER

    @property
    def permissions(self) -> Permissions:
        return ALL_PERMISSIONS

    def can(self, permission: Union[Permission, str]) -> bool:
        return True

    def display(self) -> str:
        return "Adventurer"


@dataclass(frozen=True)
class PartyMember:
    permissions: Permissions = Permissions()
    name = MemberRole.PARTY_MEMBER

    def can(self, permission: Union[Permission, str]) -> bool:
        return bool(getattr(self.permissions, Permission(permission).value))

    def display(self) -> str:
        return "Party Member"


Role = Union[Adventurer, PartyMember]


def build_role(role: Union[MemberRole, str], permissions: Optional[Dict[str, Any]] = None) -> Role:
    """Build a Role from the stored role name and permission flags."""
    if MemberRole(role) == MemberRole.ADVENTURER:
        return Adventurer()
    return PartyMember(permissions=Permissions.from_dict(permissions))


def role_for_member(member) -> Role:
    """Build the Role of a GroupMember row."""
    return build_role(member.role, member.permissions)


def is_adventurer(role: Optional[Role]) -> bool:
    return isinstance(role, Adventurer)
