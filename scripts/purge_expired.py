#!/usr/bin/env python3
"""
Remove stale rows: abandoned sign-ups and expired login sessions.

Usage:
  python scripts/purge_expired.py [--older-than-hours 0] [--skip-sessions]
"""
from __future__ import annotations

import argparse
import sys
from datetime import datetime, timedelta, timezone

from ghostpost.core.logging_config import configure_logging
from ghostpost.services.registration_service import RegistrationService
from ghostpost.services.session_service import purge_expired_sessions


def main() -> None:
    ap = argparse.ArgumentParser(description="Purge expired temporary registrations and sessions")
    ap.add_argument(
        "--older-than-hours",
        type=int,
        default=0,
        help="Only purge rows that expired at least this many hours ago",
    )
    ap.add_argument("--skip-sessions", action="store_true", help="Leave expired sessions in place")
    args = ap.parse_args()
    if args.older_than_hours < 0:
        raise SystemExit("--older-than-hours must be >= 0")

    configure_logging()
    cutoff = datetime.now(timezone.utc) - timedelta(hours=args.older_than_hours)
    removed = RegistrationService().purge_expired(cutoff)
    print(f"OK: {removed} registration(s) removed")
    if not args.skip_sessions:
        print(f"OK: {purge_expired_sessions(cutoff)} session(s) removed")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
