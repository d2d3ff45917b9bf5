"""Site selection and per-site user preferences, scoped to the active account."""

from __future__ import annotations

import logging

from ghostpost.core.errors import NotFound, ValidationError
from ghostpost.db.models import Site
from ghostpost.repositories.sql_repository import SQLRepository
from ghostpost.services.session_service import Identity

logger = logging.getLogger(__name__)

NO_ACCOUNT_SELECTED = "No account selected"
SITE_NOT_IN_ACCOUNT = "Site not found in this account"


class SiteService:
    def __init__(self, repository: SQLRepository | None = None) -> None:
        self.repository = repository or SQLRepository()

    def _active_account(self, identity: Identity) -> str:
        # Re-read the user: the identity may predate an account switch.
        user = self.repository.get_user(identity.user_id)
        account_id = user.last_selected_account_id if user else None
        if not account_id:
            raise NotFound(NO_ACCOUNT_SELECTED)
        return account_id

    def _site_in_account(self, site_id: str, account_id: str) -> Site:
        site = self.repository.get_site_in_account(site_id, account_id)
        if site is None:
            # same answer whether the site is missing or owned by another tenant
            raise NotFound(SITE_NOT_IN_ACCOUNT)
        return site

    def list_sites(self, identity: Identity) -> list[Site]:
        return self.repository.list_sites(self._active_account(identity))

    def select_site(self, identity: Identity, site_id: str | None) -> Site:
        site_id = (site_id or "").strip()
        if not site_id:
            raise ValidationError("siteId is required")
        account_id = self._active_account(identity)
        site = self._site_in_account(site_id, account_id)
        updated = self.repository.set_last_selected_site(identity.user_id, account_id, site.id)
        logger.info("user %s selected site %s in account %s (%d rows)", identity.user_id, site.id, account_id, updated)
        return site

    def get_preference(self, identity: Identity, site_id: str | None) -> dict:
        site_id = (site_id or "").strip()
        if not site_id:
            raise ValidationError("siteId is required")
        pref = self.repository.get_preference(identity.user_id, site_id)
        return {
            "language": (pref.language or None) if pref else None,
            "timezone": (pref.timezone or None) if pref else None,
        }

    def set_preference(self, identity: Identity, site_id: str | None, *, language: str | None, timezone: str | None) -> dict:
        site_id = (site_id or "").strip()
        if not site_id:
            raise ValidationError("siteId is required")
        account_id = self._active_account(identity)
        self._site_in_account(site_id, account_id)
        pref = self.repository.upsert_preference(
            identity.user_id,
            site_id,
            language=(language or "").strip() or None,
            timezone_name=(timezone or "").strip() or None,
        )
        return {"language": pref.language, "timezone": pref.timezone}
