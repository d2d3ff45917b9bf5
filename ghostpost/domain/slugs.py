"""Domain helpers for account slug validation."""
from __future__ import annotations

import re

SLUG_PATTERN = re.compile(r"[a-z0-9]+(?:-[a-z0-9]+)*")
SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 50

SLUG_REQUIRED = "Slug is required"
SLUG_BAD_FORMAT = "Slug must contain only lowercase letters, numbers, and hyphens"
SLUG_TOO_SHORT = f"Slug must be at least {SLUG_MIN_LENGTH} characters long"
SLUG_TOO_LONG = f"Slug must be at most {SLUG_MAX_LENGTH} characters long"
SLUG_TAKEN = "This slug is already taken"


def slug_format_error(value: str | None) -> str | None:
    """Return the reason ``value`` is not a well-formed slug, or None.

    Checks run in a fixed order (presence, pattern, length) and only the
    first failure is reported.
    """
    if not value:
        return SLUG_REQUIRED
    if not SLUG_PATTERN.fullmatch(value):
        return SLUG_BAD_FORMAT
    if len(value) < SLUG_MIN_LENGTH:
        return SLUG_TOO_SHORT
    if len(value) > SLUG_MAX_LENGTH:
        return SLUG_TOO_LONG
    return None
