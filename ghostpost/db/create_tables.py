"""Create (or, with --reset, recreate) the Ghost Post schema.

Usage:
  python -m ghostpost.db.create_tables [--reset]
"""
from __future__ import annotations

import argparse
import logging

from sqlalchemy.exc import SQLAlchemyError

from ghostpost.core.logging_config import configure_logging

from .session import Base, get_engine
from . import models  # noqa: F401  # registers tables on Base.metadata

logger = logging.getLogger(__name__)


def create_all(*, reset: bool = False) -> list[str]:
    engine = get_engine()
    if reset:
        Base.metadata.drop_all(bind=engine)
        logger.warning("dropped all tables on %s", engine.url.render_as_string(hide_password=True))
    Base.metadata.create_all(bind=engine)
    return sorted(Base.metadata.tables)


def main() -> None:
    ap = argparse.ArgumentParser(description="Create the database schema")
    ap.add_argument("--reset", action="store_true", help="Drop every table first (destroys data)")
    args = ap.parse_args()
    configure_logging()
    try:
        tables = create_all(reset=args.reset)
    except SQLAlchemyError as exc:
        raise SystemExit(f"Failed to create tables: {exc}") from exc
    logger.info("schema ready: %s", ", ".join(tables))


if __name__ == "__main__":
    main()
