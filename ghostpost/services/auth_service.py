"""
Password login.

An e-mail may belong to a sign-up still in progress, to a finished user, or
both while a returning user re-registers. The pending registration is tried
first; a password that does not match it falls through to the real user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from ghostpost.core.errors import Forbidden, Unauthenticated, ValidationError
from ghostpost.core.security import verify_password
from ghostpost.db.models import TempRegistration, User
from ghostpost.repositories.sql_repository import SQLRepository, as_aware
from ghostpost.services.session_service import issue_session

logger = logging.getLogger(__name__)

REGISTRATION_COMPLETED = "COMPLETED"

CREDENTIALS_REQUIRED = "Email and password are required"
INVALID_CREDENTIALS = "Invalid email or password"
ACCOUNT_DEACTIVATED = "Your account has been deactivated. Please contact support."
NO_PASSWORD = "Please login using your original sign-in method"


@dataclass
class LoginSuccess:
    user: User
    session_token: str | None

    @property
    def is_registration_complete(self) -> bool:
        return self.session_token is not None


@dataclass
class RegistrationResume:
    registration: TempRegistration


class AuthService:
    def __init__(self, repository: SQLRepository | None = None) -> None:
        self.repository = repository or SQLRepository()

    def _resume_registration(self, email: str, password: str) -> TempRegistration | None:
        reg = self.repository.get_temp_registration_by_email(email)
        if reg is None:
            return None
        expires_at = as_aware(reg.expires_at)
        if expires_at is not None and expires_at < datetime.now(timezone.utc):
            self.repository.delete_temp_registration(reg.id)
            return None
        if not verify_password(password, reg.password_hash):
            return None
        return reg

    def login(self, email: str, password: str) -> LoginSuccess | RegistrationResume:
        normalized = (email or "").strip().lower()
        if not normalized or not password:
            raise ValidationError(CREDENTIALS_REQUIRED)

        reg = self._resume_registration(normalized, password)
        if reg is not None:
            logger.info("login resumed registration %s at step %s", reg.id, reg.current_step.name)
            return RegistrationResume(registration=reg)

        user = self.repository.get_user_by_email(normalized)
        if user is None:
            raise Unauthenticated(INVALID_CREDENTIALS)
        if not user.is_active:
            raise Forbidden(ACCOUNT_DEACTIVATED)
        if not user.password_hash:
            raise ValidationError(NO_PASSWORD)
        if not verify_password(password, user.password_hash):
            raise Unauthenticated(INVALID_CREDENTIALS)

        self.repository.touch_last_login(user.id)
        token = None
        # super admins manage the platform and never need to finish onboarding
        if user.is_super_admin or user.registration_step == REGISTRATION_COMPLETED:
            token = issue_session(user.id)
        logger.info("user %s logged in", user.id)
        return LoginSuccess(user=user, session_token=token)
