from __future__ import annotations

import threading

import pytest

from ghostpost.core.errors import Forbidden, InvalidState, NotFound, Unauthenticated
from ghostpost.domain.states import MemberStatus
from ghostpost.services.membership_service import (
    CANNOT_SUSPEND_OWNER,
    CANNOT_SUSPEND_SELF,
    ONLY_ACTIVE_CAN_SUSPEND,
    ONLY_SUSPENDED_CAN_ACTIVATE,
    MembershipService,
)
from ghostpost.services.session_service import Identity


@pytest.fixture()
def svc(repo) -> MembershipService:
    return MembershipService(repo)


def _status(repo, tenant, member_id):
    return repo.get_member_in_account(member_id, tenant.account_id).status


def test_suspend_then_activate_restores_active(svc, repo, tenant):
    svc.suspend(tenant.owner, tenant.viewer_member_id)
    assert _status(repo, tenant, tenant.viewer_member_id) == MemberStatus.SUSPENDED

    svc.activate(tenant.owner, tenant.viewer_member_id)
    member = repo.get_member_in_account(tenant.viewer_member_id, tenant.account_id)
    assert member.status == MemberStatus.ACTIVE
    assert member.is_owner is False
    assert member.role.name == "Viewer"


def test_manager_with_edit_permission_can_suspend(svc, repo, tenant):
    svc.suspend(tenant.manager, tenant.viewer_member_id)
    assert _status(repo, tenant, tenant.viewer_member_id) == MemberStatus.SUSPENDED


def test_owner_can_never_be_suspended(svc, tenant):
    with pytest.raises(InvalidState) as exc:
        svc.suspend(tenant.manager, tenant.owner_member_id)
    assert exc.value.reason == CANNOT_SUSPEND_OWNER


def test_owner_by_role_name_is_protected_too(svc, repo, tenant):
    role = repo.create_role(tenant.account_id, "OWNER", [])
    co_owner = repo.create_user("coowner@acme.test")
    member = repo.add_member(tenant.account_id, co_owner.id, role_id=role.id, is_owner=False)

    with pytest.raises(InvalidState) as exc:
        svc.suspend(tenant.owner, member.id)
    assert exc.value.reason == CANNOT_SUSPEND_OWNER


def test_owner_check_runs_before_self_check(svc, tenant):
    with pytest.raises(InvalidState) as exc:
        svc.suspend(tenant.owner, tenant.owner_member_id)
    assert exc.value.reason == CANNOT_SUSPEND_OWNER


def test_cannot_suspend_self_even_with_edit_permission(svc, tenant):
    with pytest.raises(InvalidState) as exc:
        svc.suspend(tenant.manager, tenant.manager_member_id)
    assert exc.value.reason == CANNOT_SUSPEND_SELF


def test_suspend_twice_is_invalid_state(svc, tenant):
    svc.suspend(tenant.owner, tenant.viewer_member_id)
    with pytest.raises(InvalidState) as exc:
        svc.suspend(tenant.owner, tenant.viewer_member_id)
    assert exc.value.reason == ONLY_ACTIVE_CAN_SUSPEND


def test_activate_active_member_is_invalid_state(svc, tenant):
    with pytest.raises(InvalidState) as exc:
        svc.activate(tenant.owner, tenant.viewer_member_id)
    assert exc.value.reason == ONLY_SUSPENDED_CAN_ACTIVATE


def test_caller_without_permission_is_forbidden(svc, repo, tenant):
    with pytest.raises(Forbidden):
        svc.suspend(tenant.viewer, tenant.manager_member_id)
    assert _status(repo, tenant, tenant.manager_member_id) == MemberStatus.ACTIVE


def test_cross_account_target_is_not_found(svc, repo, tenant):
    with pytest.raises(NotFound):
        svc.suspend(tenant.owner, tenant.outsider_member_id)
    with pytest.raises(NotFound):
        svc.activate(tenant.owner, tenant.outsider_member_id)
    with pytest.raises(NotFound):
        svc.suspend(tenant.outsider, tenant.viewer_member_id)
    assert repo.get_member_in_account(tenant.outsider_member_id, tenant.other_account_id).status == MemberStatus.ACTIVE


def test_unknown_member_is_not_found(svc, tenant):
    with pytest.raises(NotFound):
        svc.suspend(tenant.owner, "does-not-exist")


def test_suspended_caller_loses_management_rights(svc, tenant):
    svc.suspend(tenant.owner, tenant.manager_member_id)
    with pytest.raises(Forbidden):
        svc.suspend(tenant.manager, tenant.viewer_member_id)


def test_current_member_requires_selected_account(svc, repo, tenant):
    loner = repo.create_user("loner@example.com")

    identity = Identity(user_id=loner.id, email=loner.email, is_super_admin=False, last_selected_account_id=None)
    with pytest.raises(Unauthenticated):
        svc.current_member(identity)

    stranger = Identity(user_id=loner.id, email=loner.email, is_super_admin=False, last_selected_account_id=tenant.account_id)
    with pytest.raises(Unauthenticated):
        svc.current_member(stranger)


def test_list_members_scoped_to_account(svc, tenant):
    members = svc.list_members(tenant.manager)
    ids = {m.id for m in members}
    assert ids == {tenant.owner_member_id, tenant.manager_member_id, tenant.viewer_member_id}
    with pytest.raises(Forbidden):
        svc.list_members(tenant.viewer)


def test_stale_read_cannot_double_apply(repo, tenant):
    # both callers saw ACTIVE; only the first compare-and-swap may win
    kwargs = dict(source=MemberStatus.ACTIVE, target=MemberStatus.SUSPENDED, protect_owner=True)
    assert repo.transition_member_status(tenant.viewer_member_id, tenant.account_id, **kwargs) is True
    assert repo.transition_member_status(tenant.viewer_member_id, tenant.account_id, **kwargs) is False


def test_cas_refuses_owner_and_foreign_account(repo, tenant):
    kwargs = dict(source=MemberStatus.ACTIVE, target=MemberStatus.SUSPENDED, protect_owner=True)
    assert repo.transition_member_status(tenant.owner_member_id, tenant.account_id, **kwargs) is False
    assert repo.transition_member_status(tenant.outsider_member_id, tenant.account_id, **kwargs) is False


def test_concurrent_suspends_have_exactly_one_winner(svc, repo, tenant):
    barrier = threading.Barrier(2)
    outcomes: list[str] = []
    lock = threading.Lock()

    def worker(identity):
        barrier.wait()
        try:
            svc.suspend(identity, tenant.viewer_member_id)
            result = "ok"
        except InvalidState:
            result = "invalid"
        with lock:
            outcomes.append(result)

    threads = [
        threading.Thread(target=worker, args=(tenant.owner,)),
        threading.Thread(target=worker, args=(tenant.manager,)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(outcomes) == ["invalid", "ok"]
    assert _status(repo, tenant, tenant.viewer_member_id) == MemberStatus.SUSPENDED


def test_edit_without_view_cannot_manage(svc, repo, tenant):
    role = repo.create_role(tenant.account_id, "Blind editor", ["MEMBERS_EDIT"])
    user = repo.create_user("blind@acme.test")
    repo.add_member(tenant.account_id, user.id, role_id=role.id)
    repo.set_last_selected_account(user.id, tenant.account_id)
    identity = Identity(user_id=user.id, email=user.email, is_super_admin=False, last_selected_account_id=tenant.account_id)

    with pytest.raises(Forbidden):
        svc.suspend(identity, tenant.viewer_member_id)
    assert _status(repo, tenant, tenant.viewer_member_id) == MemberStatus.ACTIVE


def test_suspended_member_is_still_resolved_for_read_only_lookups(svc, tenant):
    svc.suspend(tenant.owner, tenant.viewer_member_id)
    with pytest.raises(Forbidden):
        svc.current_member(tenant.viewer)
    member = svc.current_member(tenant.viewer, require_active=False)
    assert member.status == MemberStatus.SUSPENDED
