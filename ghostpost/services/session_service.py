"""Session helpers (identity resolution, token issuance, cookies)."""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi import Response
from sqlalchemy import delete

from ghostpost.core.config import get_settings
from ghostpost.db.models import User, UserSession
from ghostpost.db.session import get_session
from ghostpost.repositories.sql_repository import as_aware

SESSION_COOKIE_NAME = "user_session"
REGISTRATION_COOKIE_NAME = "temp_reg_id"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, resolved once per request and passed explicitly."""

    user_id: str
    email: str
    is_super_admin: bool
    last_selected_account_id: str | None


class SessionResolver:
    """Maps opaque tokens to identities; never issues or extends them."""

    def resolve(self, token: str | None) -> Identity | None:
        token = (token or "").strip()
        if not token:
            return None
        now = datetime.now(timezone.utc)
        with get_session() as session:
            db_session = session.get(UserSession, token)
            if not db_session:
                return None
            expires_at = as_aware(db_session.expires_at)
            if expires_at and expires_at < now:
                # read-only: stale rows are left for purge_expired_sessions
                return None
            user = session.get(User, db_session.user_id)
            if not user or not user.is_active:
                return None
            return Identity(
                user_id=user.id,
                email=user.email,
                is_super_admin=bool(user.is_super_admin),
                last_selected_account_id=user.last_selected_account_id,
            )

    def resolve_registration(self, token: str | None) -> str | None:
        """The registration cookie carries the TempRegistration id itself."""
        value = (token or "").strip()
        return value or None


def issue_session(user_id: str) -> str:
    """Create a new session token and persist it."""
    token = secrets.token_urlsafe(32)
    settings = get_settings()
    ttl = max(60, settings.session_ttl_seconds)
    expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)

    with get_session() as session:
        session.add(UserSession(token=token, user_id=user_id, expires_at=expires_at))
        session.commit()
    logger.info("session issued for user %s", user_id)
    return token


def purge_expired_sessions(now: datetime | None = None) -> int:
    """Delete every session whose expiry is before ``now``; returns the count."""
    cutoff = now or datetime.now(timezone.utc)
    with get_session() as session:
        result = session.execute(delete(UserSession).where(UserSession.expires_at < cutoff))
        session.commit()
        removed = result.rowcount
    if removed:
        logger.info("purged %d expired sessions", removed)
    return removed


def delete_session(token: str) -> None:
    """Remove a session token from the store."""
    if not token:
        return
    with get_session() as session:
        entity = session.get(UserSession, token)
        if entity:
            session.delete(entity)
            session.commit()


def set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        httponly=True,
        secure=settings.app_env == "prod",
        samesite="lax",
        max_age=settings.session_ttl_seconds,
        path="/",
    )


def set_registration_cookie(response: Response, reg_id: str) -> None:
    settings = get_settings()
    response.set_cookie(
        REGISTRATION_COOKIE_NAME,
        reg_id,
        httponly=True,
        secure=settings.app_env == "prod",
        samesite="lax",
        max_age=settings.registration_ttl_seconds,
        path="/",
    )


def clear_registration_cookie(response: Response) -> None:
    response.delete_cookie(REGISTRATION_COOKIE_NAME, path="/")


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
