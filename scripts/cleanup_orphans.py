#!/usr/bin/env python3
"""
Remove vendor applications left behind by anonymized accounts.

Rows anonymized before the ``deleted`` status existed are tagged first, so the
sweep and the uniqueness indexes treat them the same way.

Usage:
  python scripts/cleanup_orphans.py [--account-id 42] [--email someone@example.com] [--skip-tagging]
"""
from __future__ import annotations

import argparse
import sys

from marketplace.core.config import get_settings
from marketplace.core.logging import configure_logging
from marketplace.repositories.account_repository import SQLAccountRepository
from marketplace.repositories.vendor_repository import SQLVendorApplicationRepository
from marketplace.services.orphan_cleaner import OrphanCleaner


def main() -> None:
    ap = argparse.ArgumentParser(description="Sweep orphaned vendor applications")
    ap.add_argument("--account-id", type=int, help="Only this account's application")
    ap.add_argument("--email", help="Anonymized accounts with this email plus every anonymized-pattern owner")
    ap.add_argument("--skip-tagging", action="store_true", help="Do not tag legacy anonymized rows as deleted")
    args = ap.parse_args()

    configure_logging(get_settings().log_level)
    if not args.skip_tagging:
        tagged = SQLAccountRepository().tag_legacy_anonymized()
        print(f"Legacy anonymized accounts tagged: {tagged}")

    cleaner = OrphanCleaner(SQLVendorApplicationRepository())
    removed = cleaner.cleanup(account_id=args.account_id, email=(args.email or "").strip() or None)
    print(f"OK: {len(removed)} orphaned application(s) removed")
    for application_id in removed:
        print(f"  - {application_id}")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
