from __future__ import annotations

import pytest

from ghostpost.core.errors import NotFound, ValidationError
from ghostpost.services.session_service import Identity
from ghostpost.services.site_service import NO_ACCOUNT_SELECTED, SITE_NOT_IN_ACCOUNT, SiteService


@pytest.fixture()
def svc(repo) -> SiteService:
    return SiteService(repo)


def _selected_site(repo, tenant, identity):
    return repo.get_membership(identity.user_id, tenant.account_id).last_selected_site_id


def test_list_sites_only_returns_active_account(svc, tenant):
    ids = {site.id for site in svc.list_sites(tenant.viewer)}
    assert ids == {tenant.site_id, tenant.second_site_id}
    assert tenant.foreign_site_id not in ids


def test_select_site_records_choice_on_membership(svc, repo, tenant):
    site = svc.select_site(tenant.viewer, tenant.site_id)
    assert site.id == tenant.site_id
    assert _selected_site(repo, tenant, tenant.viewer) == tenant.site_id

    svc.select_site(tenant.viewer, tenant.second_site_id)
    assert _selected_site(repo, tenant, tenant.viewer) == tenant.second_site_id


def test_select_site_is_idempotent(svc, repo, tenant):
    svc.select_site(tenant.manager, tenant.site_id)
    svc.select_site(tenant.manager, tenant.site_id)
    assert _selected_site(repo, tenant, tenant.manager) == tenant.site_id


def test_foreign_site_is_not_found_and_leaves_choice_alone(svc, repo, tenant):
    svc.select_site(tenant.viewer, tenant.site_id)
    with pytest.raises(NotFound) as exc:
        svc.select_site(tenant.viewer, tenant.foreign_site_id)
    assert exc.value.reason == SITE_NOT_IN_ACCOUNT
    assert _selected_site(repo, tenant, tenant.viewer) == tenant.site_id


def test_unknown_site_gets_the_same_answer_as_foreign(svc, tenant):
    with pytest.raises(NotFound) as exc:
        svc.select_site(tenant.viewer, "no-such-site")
    assert exc.value.reason == SITE_NOT_IN_ACCOUNT


def test_select_site_requires_an_id(svc, tenant):
    with pytest.raises(ValidationError):
        svc.select_site(tenant.viewer, "  ")


def test_select_site_without_account_is_not_found(svc, repo):
    user = repo.create_user("drifter@example.com")
    identity = Identity(user_id=user.id, email=user.email, is_super_admin=False, last_selected_account_id=None)
    with pytest.raises(NotFound) as exc:
        svc.select_site(identity, "anything")
    assert exc.value.reason == NO_ACCOUNT_SELECTED


def test_active_account_is_read_fresh(svc, repo, tenant):
    # the identity still names acme, but the user switched to globex
    repo.set_last_selected_account(tenant.viewer.user_id, tenant.other_account_id)
    with pytest.raises(NotFound):
        svc.select_site(tenant.viewer, tenant.site_id)


def test_preferences_are_null_until_set(svc, tenant):
    assert svc.get_preference(tenant.viewer, tenant.site_id) == {"language": None, "timezone": None}


def test_set_preference_upserts(svc, tenant):
    first = svc.set_preference(tenant.viewer, tenant.site_id, language="en", timezone="UTC")
    assert first == {"language": "en", "timezone": "UTC"}

    second = svc.set_preference(tenant.viewer, tenant.site_id, language="pt-BR", timezone="America/Sao_Paulo")
    assert second == {"language": "pt-BR", "timezone": "America/Sao_Paulo"}
    assert svc.get_preference(tenant.viewer, tenant.site_id) == second

    # other users and other sites are untouched
    assert svc.get_preference(tenant.manager, tenant.site_id) == {"language": None, "timezone": None}
    assert svc.get_preference(tenant.viewer, tenant.second_site_id) == {"language": None, "timezone": None}


def test_blank_preference_values_are_stored_as_null(svc, tenant):
    svc.set_preference(tenant.viewer, tenant.site_id, language="en", timezone="UTC")
    cleared = svc.set_preference(tenant.viewer, tenant.site_id, language="", timezone=None)
    assert cleared == {"language": None, "timezone": None}


def test_set_preference_on_foreign_site_is_not_found(svc, tenant):
    with pytest.raises(NotFound):
        svc.set_preference(tenant.viewer, tenant.foreign_site_id, language="en", timezone="UTC")
    assert svc.get_preference(tenant.viewer, tenant.foreign_site_id) == {"language": None, "timezone": None}
