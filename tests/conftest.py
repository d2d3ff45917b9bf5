from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path

import pytest

# Make the ghostpost package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ghostpost.core import config as core_config  # noqa: E402
from ghostpost.core.rate_limiter import reset_limits  # noqa: E402
from ghostpost.db import create_all, models  # noqa: E402
from ghostpost.db import session as db_session  # noqa: E402
from ghostpost.repositories.sql_repository import SQLRepository  # noqa: E402
from ghostpost.services.session_service import Identity, SessionResolver, issue_session  # noqa: E402


def _clear_caches() -> None:
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def db_env(tmp_path, monkeypatch):
    """Temporary SQLite database with fresh settings/engine caches."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.setenv("APP_ENV", "test")
    _clear_caches()
    reset_limits()

    engine = db_session.get_engine()
    create_all(reset=True)

    yield db_file

    try:
        models.Base.metadata.drop_all(bind=engine)
    except Exception:
        pass
    try:
        engine.dispose()
    except Exception:
        pass
    _clear_caches()


@pytest.fixture()
def repo(db_env) -> SQLRepository:
    return SQLRepository()


@dataclass
class Tenant:
    account_id: str
    other_account_id: str
    owner: Identity
    manager: Identity
    viewer: Identity
    outsider: Identity
    owner_member_id: str
    manager_member_id: str
    viewer_member_id: str
    outsider_member_id: str
    site_id: str
    second_site_id: str
    foreign_site_id: str


def _identity(user, account_id: str | None) -> Identity:
    return Identity(
        user_id=user.id,
        email=user.email,
        is_super_admin=bool(user.is_super_admin),
        last_selected_account_id=account_id,
    )


@pytest.fixture()
def tenant(repo) -> Tenant:
    """Two accounts: "acme" with an owner, a member manager and a viewer; "globex" next door."""
    acme = repo.create_account("Acme", "acme")
    globex = repo.create_account("Globex", "globex")

    owner_role = repo.create_role(acme.id, "Owner", [], is_system_role=True)
    manager_role = repo.create_role(acme.id, "Manager", ["MEMBERS_VIEW", "MEMBERS_EDIT", "SITES_VIEW"])
    viewer_role = repo.create_role(acme.id, "Viewer", ["SITES_VIEW"])
    globex_role = repo.create_role(globex.id, "Manager", ["MEMBERS_VIEW", "MEMBERS_EDIT"])

    owner = repo.create_user("owner@acme.test")
    manager = repo.create_user("manager@acme.test")
    viewer = repo.create_user("viewer@acme.test")
    outsider = repo.create_user("boss@globex.test")

    owner_member = repo.add_member(acme.id, owner.id, role_id=owner_role.id, is_owner=True)
    manager_member = repo.add_member(acme.id, manager.id, role_id=manager_role.id)
    viewer_member = repo.add_member(acme.id, viewer.id, role_id=viewer_role.id)
    outsider_member = repo.add_member(globex.id, outsider.id, role_id=globex_role.id)

    for user, account in ((owner, acme), (manager, acme), (viewer, acme), (outsider, globex)):
        repo.set_last_selected_account(user.id, account.id)

    site = repo.create_site(acme.id, "Acme Blog", "https://blog.acme.test")
    second = repo.create_site(acme.id, "Acme Shop", "https://shop.acme.test")
    foreign = repo.create_site(globex.id, "Globex", "https://globex.test")

    return Tenant(
        account_id=acme.id,
        other_account_id=globex.id,
        owner=_identity(owner, acme.id),
        manager=_identity(manager, acme.id),
        viewer=_identity(viewer, acme.id),
        outsider=_identity(outsider, globex.id),
        owner_member_id=owner_member.id,
        manager_member_id=manager_member.id,
        viewer_member_id=viewer_member.id,
        outsider_member_id=outsider_member.id,
        site_id=site.id,
        second_site_id=second.id,
        foreign_site_id=foreign.id,
    )


@pytest.fixture()
def app(db_env):
    from ghostpost.app import create_app

    return create_app()


@pytest.fixture()
def client(app):
    from fastapi.testclient import TestClient

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def login(client):
    """Put a fresh session cookie for ``identity`` on the test client."""

    def _login(identity: Identity) -> str:
        token = issue_session(identity.user_id)
        client.cookies.set("user_session", token)
        return token

    return _login


@pytest.fixture()
def resolver() -> SessionResolver:
    return SessionResolver()
