"""
Schema bootstrap for the account and vendor application stores.

Besides creating missing tables, rows anonymized before the ``deleted``
status existed are tagged so the live-only unique indexes stop binding
their email and username.

Usage:
  python -m marketplace.db.create_tables [--skip-tagging]
"""
from __future__ import annotations

import argparse
import logging

from sqlalchemy.exc import SQLAlchemyError

from . import models  # noqa: F401  # registers the tables on Base.metadata
from .session import Base, get_engine

logger = logging.getLogger(__name__)


def create_all(tag_legacy: bool = True) -> int:
    """Create missing tables; returns how many legacy anonymized rows were tagged."""
    Base.metadata.create_all(bind=get_engine())
    if not tag_legacy:
        return 0
    from marketplace.repositories.account_repository import SQLAccountRepository

    tagged = SQLAccountRepository().tag_legacy_anonymized()
    if tagged:
        logger.info("tagged %s legacy anonymized account(s) as deleted", tagged)
    return tagged


def main() -> None:
    ap = argparse.ArgumentParser(description="Create the marketplace tables")
    ap.add_argument("--skip-tagging", action="store_true", help="Leave legacy anonymized rows untouched")
    args = ap.parse_args()
    tagged = create_all(tag_legacy=not args.skip_tagging)
    print(f"Tables ready; legacy anonymized accounts tagged: {tagged}")


if __name__ == "__main__":
    try:
        main()
    except SQLAlchemyError as exc:
        raise SystemExit(f"Failed to create tables: {exc}") from exc
