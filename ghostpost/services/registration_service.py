"""
Pre-account onboarding.

A prospective user fills the signup form, proves ownership of the e-mail
with a one-time code, picks an account name and slug, answers the onboarding
interview and finally gets a real user, account and owner membership. Until
then everything lives on a TempRegistration whose id is carried in the
registration cookie.

Steps only move forward (see ``domain.states.advance``).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping

from sqlalchemy.exc import IntegrityError

from ghostpost.core.config import get_settings
from ghostpost.core.errors import (
    Conflict,
    Gone,
    InvalidState,
    NotFound,
    RateLimited,
    ValidationError,
)
from ghostpost.core.security import code_matches, hash_code, hash_password, new_code
from ghostpost.db.models import Account, TempRegistration, User
from ghostpost.domain.permissions import OWNER_PERMISSIONS
from ghostpost.domain.slugs import SLUG_TAKEN, slug_format_error
from ghostpost.domain.states import RegistrationStep, advance
from ghostpost.repositories.sql_repository import SQLRepository, as_aware
from ghostpost.services.session_service import issue_session
from ghostpost.services.slug_service import SlugService

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
MIN_PASSWORD_LENGTH = 8

NO_REGISTRATION = "No registration in progress"
REGISTRATION_NOT_FOUND = "Registration not found. Please start over."
REGISTRATION_EXPIRED = "Registration expired. Please start over."
EMAIL_EXISTS = "A user with this email already exists"


class RegistrationNotFound(NotFound):
    """The registration token points at a record that no longer exists."""

    def __init__(self, reason: str = REGISTRATION_NOT_FOUND):
        super().__init__(reason)


class RegistrationExpired(Gone):
    def __init__(self, reason: str = REGISTRATION_EXPIRED):
        super().__init__(reason)


CodeSink = Callable[[str, str], None]


def _log_code(email: str, code: str) -> None:
    logger.debug("verification code for %s: %s", email, code)


@dataclass
class FinalizeResult:
    user: User
    account: Account
    session_token: str


class RegistrationService:
    """Drives a TempRegistration through the onboarding steps."""

    def __init__(
        self,
        repository: SQLRepository | None = None,
        slug_service: SlugService | None = None,
        code_sink: CodeSink | None = None,
    ) -> None:
        self.settings = get_settings()
        self.repository = repository or SQLRepository()
        self.slugs = slug_service or SlugService(self.repository)
        self.code_sink = code_sink or _log_code

    # -------------------------------------- helpers --------------------------------------
    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def _expired(self, reg: TempRegistration, now: datetime) -> bool:
        expires_at = as_aware(reg.expires_at)
        return expires_at is not None and expires_at < now

    def _load(self, reg_id: str | None, *, expired_error: type[Exception] = RegistrationNotFound) -> TempRegistration:
        if not reg_id:
            raise ValidationError(NO_REGISTRATION)
        reg = self.repository.get_temp_registration(reg_id)
        if reg is None:
            raise RegistrationNotFound()
        if self._expired(reg, self._now()):
            self.repository.delete_temp_registration(reg.id)
            logger.info("registration %s expired and was discarded", reg.id)
            raise expired_error()
        return reg

    # -------------------------------------- form --------------------------------------
    def start(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        consent: bool,
        phone_number: str | None = None,
    ) -> TempRegistration:
        first = (first_name or "").strip()
        last = (last_name or "").strip()
        raw_email = (email or "").strip()
        if not (first and last and raw_email and password):
            raise ValidationError("Missing required fields")
        if not consent:
            raise ValidationError("You must agree to the terms and conditions")
        if not EMAIL_PATTERN.fullmatch(raw_email):
            raise ValidationError("Invalid email format")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        normalized = raw_email.lower()
        if self.repository.get_user_by_email(normalized):
            raise Conflict(EMAIL_EXISTS)

        now = self._now()
        reg = self.repository.replace_temp_registration(
            normalized,
            first_name=first,
            last_name=last,
            phone_number=(phone_number or "").strip() or None,
            password_hash=hash_password(password),
            consent_at=now,
            current_step=RegistrationStep.VERIFY,
            expires_at=now + timedelta(seconds=self.settings.registration_ttl_seconds),
        )
        logger.info("registration %s started", reg.id)
        return reg

    # -------------------------------------- verification --------------------------------------
    def issue_code(self, reg_id: str | None) -> datetime:
        reg = self._load(reg_id)
        if reg.email_verified_at:
            raise InvalidState("Email already verified")
        code = new_code()
        expires_at = self._now() + timedelta(seconds=self.settings.otp_ttl_seconds)
        self.repository.update_temp_registration(
            reg.id,
            otp_hash=hash_code(code),
            otp_expires_at=expires_at,
            otp_attempts=0,
        )
        self.code_sink(reg.email, code)
        return expires_at

    def verify_code(self, reg_id: str | None, code: str | None) -> RegistrationStep:
        if not (code or "").strip():
            raise ValidationError("Verification code is required")
        reg = self._load(reg_id)
        if reg.email_verified_at:
            raise InvalidState("Email already verified")
        if not reg.otp_hash:
            raise NotFound("No verification code found. Please request a new one.")
        now = self._now()
        otp_expires = as_aware(reg.otp_expires_at)
        if otp_expires is None or otp_expires < now:
            raise ValidationError("Verification code has expired. Please request a new one.")
        attempts = int(reg.otp_attempts or 0)
        if attempts >= self.settings.otp_max_attempts:
            raise RateLimited("Too many failed attempts. Please request a new code.")
        if not code_matches(code, reg.otp_hash):
            self.repository.update_temp_registration(reg.id, otp_attempts=TempRegistration.otp_attempts + 1)
            raise ValidationError("Invalid code")
        step = advance(reg.current_step, RegistrationStep.ACCOUNT_SETUP)
        self.repository.update_temp_registration(
            reg.id,
            email_verified_at=now,
            otp_hash=None,
            otp_expires_at=None,
            current_step=step,
        )
        logger.info("registration %s verified e-mail", reg.id)
        return step

    # -------------------------------------- account setup --------------------------------------
    def setup_account(self, reg_id: str | None, name: str | None, slug: str | None) -> TempRegistration:
        if not reg_id:
            raise ValidationError(NO_REGISTRATION)
        account_name = (name or "").strip()
        candidate = self.slugs.normalize(slug)
        if not account_name or not candidate:
            raise ValidationError("Missing required fields: name and slug are required")
        format_error = slug_format_error(candidate)
        if format_error:
            raise ValidationError(format_error)
        reg = self._load(reg_id)
        if not reg.email_verified_at:
            raise InvalidState("Email verification required")
        check = self.slugs.check(candidate)
        if not check.available:
            raise Conflict(check.error or SLUG_TAKEN)
        if self.repository.slug_reserved_by_registration(candidate, exclude_id=reg.id):
            raise Conflict(SLUG_TAKEN)
        step = advance(reg.current_step, RegistrationStep.INTERVIEW)
        self.repository.update_temp_registration(
            reg.id,
            account_name=account_name,
            account_slug=candidate,
            current_step=step,
        )
        return self.repository.get_temp_registration(reg.id)

    # -------------------------------------- interview --------------------------------------
    def save_interview(
        self,
        reg_id: str | None,
        interview_data: Mapping[str, Any] | None,
        is_complete: bool = False,
    ) -> TempRegistration:
        """Merge answers into the registration; move to PLAN only when told it is complete."""
        if interview_data is not None and not isinstance(interview_data, Mapping):
            raise ValidationError("interviewData must be an object")
        reg = self._load(reg_id)
        step = advance(reg.current_step, RegistrationStep.PLAN) if is_complete is True else None
        updated = self.repository.merge_interview_data(reg.id, dict(interview_data or {}), step=step)
        if updated is None:
            raise RegistrationNotFound()
        if step is not None and step != reg.current_step:
            logger.info("registration %s completed the interview", reg.id)
        return updated

    # -------------------------------------- status --------------------------------------
    def status(self, reg_id: str | None) -> dict:
        empty = {"hasTempRegistration": False, "currentStep": RegistrationStep.FORM.slug}
        if not reg_id:
            return empty
        reg = self.repository.get_temp_registration(reg_id)
        if reg is None:
            return empty
        if self._expired(reg, self._now()):
            self.repository.delete_temp_registration(reg.id)
            return {**empty, "expired": True}
        return {
            "hasTempRegistration": True,
            "currentStep": reg.current_step.slug,
            "tempReg": {
                "id": reg.id,
                "email": reg.email,
                "firstName": reg.first_name,
                "lastName": reg.last_name,
                "phoneNumber": reg.phone_number,
                "currentStep": reg.current_step.name,
                "isEmailVerified": bool(reg.email_verified_at),
                "accountName": reg.account_name,
                "accountSlug": reg.account_slug,
                "interviewData": reg.interview_data or {},
            },
        }

    # -------------------------------------- finalize --------------------------------------
    def finalize(self, reg_id: str | None) -> FinalizeResult:
        reg = self._load(reg_id, expired_error=RegistrationExpired)
        if not reg.email_verified_at:
            raise ValidationError("Email verification required")
        if not reg.account_name or not reg.account_slug:
            raise ValidationError("Account setup required")
        if reg.current_step < RegistrationStep.PLAN:
            raise InvalidState("Interview must be completed first")
        if self.repository.get_user_by_email(reg.email):
            raise Conflict(EMAIL_EXISTS)
        if self.repository.slug_exists(reg.account_slug):
            raise Conflict(SLUG_TAKEN)
        try:
            user, account = self.repository.complete_registration(reg, OWNER_PERMISSIONS)
        except IntegrityError:
            # lost a race at commit time; report which constraint we tripped
            if self.repository.slug_exists(reg.account_slug):
                raise Conflict(SLUG_TAKEN)
            if self.repository.get_user_by_email(reg.email):
                raise Conflict(EMAIL_EXISTS)
            raise
        token = issue_session(user.id)
        logger.info("registration %s finalized: account %s (%s)", reg.id, account.id, account.slug)
        return FinalizeResult(user=user, account=account, session_token=token)

    # -------------------------------------- cleanup --------------------------------------
    def purge_expired(self, now: datetime | None = None) -> int:
        removed = self.repository.purge_expired_registrations(now or self._now())
        if removed:
            logger.info("purged %d abandoned registrations", removed)
        return removed
