"""Effective-permission lookups for the current caller."""

from __future__ import annotations

from dataclasses import dataclass

from ghostpost.db.models import AccountMember
from ghostpost.domain.permissions import effective_permissions, is_owner
from ghostpost.services.membership_service import MembershipService
from ghostpost.services.session_service import Identity


@dataclass
class PermissionSummary:
    role: dict | None
    is_owner: bool
    permissions: list[str]

    def as_dict(self) -> dict:
        return {"role": self.role, "isOwner": self.is_owner, "permissions": self.permissions}


class PermissionService:
    def __init__(self, memberships: MembershipService | None = None) -> None:
        self.memberships = memberships or MembershipService()

    def summarize(self, member: AccountMember) -> PermissionSummary:
        role = member.role
        role_view = None
        if role is not None:
            role_view = {"id": role.id, "name": role.name, "permissions": list(role.permissions or [])}
        return PermissionSummary(
            role=role_view,
            is_owner=is_owner(member),
            permissions=sorted(effective_permissions(member)),
        )

    def describe(self, identity: Identity) -> PermissionSummary:
        # a suspended member may still read its own role
        return self.summarize(self.memberships.current_member(identity, require_active=False))
