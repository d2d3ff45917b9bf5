"""
Account membership use cases: resolve the caller's member row and drive the
ACTIVE <-> SUSPENDED status machine.
"""

from __future__ import annotations

import logging

from ghostpost.core.errors import Forbidden, InvalidState, NotFound, Unauthenticated
from ghostpost.db.models import AccountMember
from ghostpost.domain.permissions import MEMBER_MANAGEMENT, Capability, can_access, is_owner
from ghostpost.domain.states import MemberStatus, required_source
from ghostpost.repositories.sql_repository import SQLRepository
from ghostpost.services.session_service import Identity

logger = logging.getLogger(__name__)

CANNOT_SUSPEND_OWNER = "Cannot suspend owner"
CANNOT_SUSPEND_SELF = "Cannot suspend yourself"
ONLY_ACTIVE_CAN_SUSPEND = "Can only suspend active members"
ONLY_SUSPENDED_CAN_ACTIVATE = "Can only activate suspended members"
MEMBER_NOT_FOUND = "Member not found"


class MembershipService:
    """Member lookups and atomic status transitions inside one account."""

    def __init__(self, repository: SQLRepository | None = None) -> None:
        self.repository = repository or SQLRepository()

    def current_member(self, identity: Identity, *, require_active: bool = True) -> AccountMember:
        """The caller's membership in the account they last selected.

        Suspended members are refused unless ``require_active`` is False, which
        read-only lookups of the caller's own role use.
        """
        account_id = identity.last_selected_account_id
        if not account_id:
            raise Unauthenticated("No account selected")
        member = self.repository.get_membership(identity.user_id, account_id)
        if member is None:
            raise Unauthenticated("Not a member of this account")
        if require_active and member.status != MemberStatus.ACTIVE:
            raise Forbidden("Membership suspended")
        return member

    def _authorize_management(self, identity: Identity) -> AccountMember:
        caller = self.current_member(identity)
        resource, action = MEMBER_MANAGEMENT
        if not can_access(caller, resource, action):
            raise Forbidden("Forbidden")
        return caller

    def _target(self, caller: AccountMember, member_id: str) -> AccountMember:
        target = self.repository.get_member_in_account(member_id, caller.account_id)
        if target is None:
            raise NotFound(MEMBER_NOT_FOUND)
        return target

    def list_members(self, identity: Identity) -> list[AccountMember]:
        caller = self.current_member(identity)
        if not can_access(caller, "MEMBERS", Capability.VIEW):
            raise Forbidden("Forbidden")
        return self.repository.list_members(caller.account_id)

    def suspend(self, identity: Identity, member_id: str) -> AccountMember:
        caller = self._authorize_management(identity)
        target = self._target(caller, member_id)
        if is_owner(target):
            raise InvalidState(CANNOT_SUSPEND_OWNER)
        if target.user_id == caller.user_id:
            raise InvalidState(CANNOT_SUSPEND_SELF)
        if target.status != MemberStatus.ACTIVE:
            raise InvalidState(ONLY_ACTIVE_CAN_SUSPEND)
        applied = self.repository.transition_member_status(
            target.id,
            caller.account_id,
            source=required_source(MemberStatus.SUSPENDED),
            target=MemberStatus.SUSPENDED,
            protect_owner=True,
            exclude_user_id=caller.user_id,
        )
        if not applied:
            # another request changed the row between our read and the update
            raise InvalidState(ONLY_ACTIVE_CAN_SUSPEND)
        logger.info("member %s suspended in account %s by user %s", target.id, caller.account_id, caller.user_id)
        target.status = MemberStatus.SUSPENDED
        return target

    def activate(self, identity: Identity, member_id: str) -> AccountMember:
        caller = self._authorize_management(identity)
        target = self._target(caller, member_id)
        if target.status != MemberStatus.SUSPENDED:
            raise InvalidState(ONLY_SUSPENDED_CAN_ACTIVATE)
        applied = self.repository.transition_member_status(
            target.id,
            caller.account_id,
            source=required_source(MemberStatus.ACTIVE),
            target=MemberStatus.ACTIVE,
        )
        if not applied:
            raise InvalidState(ONLY_SUSPENDED_CAN_ACTIVATE)
        logger.info("member %s activated in account %s by user %s", target.id, caller.account_id, caller.user_id)
        target.status = MemberStatus.ACTIVE
        return target
