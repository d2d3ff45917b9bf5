"""
Permission rules for account members.

Permissions are ``MODULE_CAPABILITY`` strings (``SITES_VIEW``,
``MEMBERS_EDIT``...) stored on a role. Owners bypass the list entirely: their
effective set is the wildcard ``*``.

A member counts as owner when the membership carries the explicit owner flag
or its role is literally named "owner" (any case). ``is_owner`` is the only
place that rule lives.
"""

from __future__ import annotations

from typing import Iterable, Protocol

WILDCARD = "*"
OWNER_ROLE_NAME = "owner"


class RoleLike(Protocol):
    name: str | None
    permissions: list[str] | None


class MemberLike(Protocol):
    is_owner: bool
    role: RoleLike | None


class Capability:
    VIEW = "VIEW"
    CREATE = "CREATE"
    EDIT = "EDIT"
    DELETE = "DELETE"


MODULE_CAPABILITIES: dict[str, tuple[str, ...]] = {
    "ACCOUNT": ("VIEW", "EDIT", "DELETE", "BILLING_VIEW", "BILLING_MANAGE"),
    "MEMBERS": ("VIEW", "INVITE", "EDIT", "DELETE"),
    "ROLES": ("VIEW", "CREATE", "EDIT", "DELETE"),
    "SITES": ("VIEW", "CREATE", "EDIT", "DELETE"),
    "CONTENT": ("VIEW", "CREATE", "EDIT", "DELETE", "PUBLISH"),
    "KEYWORDS": ("VIEW", "CREATE", "EDIT", "DELETE"),
    "REDIRECTIONS": ("VIEW", "CREATE", "EDIT", "DELETE"),
    "INTERVIEW": ("VIEW", "EDIT"),
    "AUDIT": ("VIEW", "RUN"),
    "SETTINGS_GENERAL": ("VIEW", "EDIT"),
    "SETTINGS_AI": ("VIEW", "EDIT"),
    "SETTINGS_SCHEDULING": ("VIEW", "EDIT"),
    "SETTINGS_NOTIFICATIONS": ("VIEW", "EDIT"),
    "SETTINGS_SEO": ("VIEW", "EDIT"),
    "SETTINGS_INTEGRATIONS": ("VIEW", "EDIT"),
    "SETTINGS_TEAM": ("VIEW", "EDIT"),
    "SETTINGS_ROLES": ("VIEW", "EDIT"),
    "SETTINGS_SUBSCRIPTION": ("VIEW", "EDIT"),
}

# Module/capability that gates member suspension and activation.
MEMBER_MANAGEMENT = ("MEMBERS", Capability.EDIT)


def permission_key(resource: str, action: str) -> str:
    return f"{resource.upper()}_{action.upper()}"


def all_permissions() -> list[str]:
    return [permission_key(module, cap) for module, caps in MODULE_CAPABILITIES.items() for cap in caps]


OWNER_PERMISSIONS: tuple[str, ...] = tuple(all_permissions())


def is_owner(member: MemberLike | None) -> bool:
    if member is None:
        return False
    if member.is_owner:
        return True
    role = member.role
    name = (role.name or "") if role is not None else ""
    return name.strip().lower() == OWNER_ROLE_NAME


def role_permissions(member: MemberLike | None) -> frozenset[str]:
    role = member.role if member is not None else None
    if role is None:
        return frozenset()
    perms: Iterable[str] = role.permissions or ()
    return frozenset(perms)


def effective_permissions(member: MemberLike | None) -> frozenset[str]:
    if is_owner(member):
        return frozenset({WILDCARD})
    return role_permissions(member)


def member_has_permission(member: MemberLike | None, resource: str, action: str) -> bool:
    if is_owner(member):
        return True
    return permission_key(resource, action) in role_permissions(member)


def can_access(member: MemberLike | None, resource: str, action: str) -> bool:
    """Like member_has_permission, but EDIT/DELETE also need VIEW on the module."""
    if is_owner(member):
        return True
    if action.upper() in (Capability.EDIT, Capability.DELETE):
        if not member_has_permission(member, resource, Capability.VIEW):
            return False
    return member_has_permission(member, resource, action)
