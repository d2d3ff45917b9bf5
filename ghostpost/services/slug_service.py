"""Slug availability checks for new accounts."""

from __future__ import annotations

from dataclasses import dataclass

from ghostpost.domain.slugs import SLUG_TAKEN, slug_format_error
from ghostpost.repositories.sql_repository import SQLRepository


@dataclass(frozen=True)
class SlugCheck:
    available: bool
    error: str | None = None

    def as_dict(self) -> dict:
        if self.available:
            return {"available": True}
        return {"available": False, "error": self.error}


class SlugService:
    """Validates slugs and checks them against existing accounts.

    The lookup is only a pre-check: the unique index on ``accounts.slug`` is
    what finally decides, at account creation.
    """

    def __init__(self, repository: SQLRepository | None = None) -> None:
        self.repository = repository or SQLRepository()

    def normalize(self, value: str | None) -> str:
        return value or ""

    def check(self, value: str | None) -> SlugCheck:
        candidate = self.normalize(value)
        reason = slug_format_error(candidate)
        if reason:
            return SlugCheck(False, reason)
        if self.repository.slug_exists(candidate):
            return SlugCheck(False, SLUG_TAKEN)
        return SlugCheck(True)

    def is_available(self, value: str | None) -> bool:
        return self.check(value).available
