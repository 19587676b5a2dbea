#!/usr/bin/env python3
"""
Anonymize an account in place (support-driven deletion).

Usage:
  python scripts/anonymize_account.py --account-id 42 [--cleanup]
"""
from __future__ import annotations

import argparse
import sys

from marketplace.core.config import get_settings
from marketplace.core.logging import configure_logging
from marketplace.repositories.account_repository import SQLAccountRepository
from marketplace.repositories.vendor_repository import SQLVendorApplicationRepository
from marketplace.services.auth_service import AuthService
from marketplace.services.orphan_cleaner import OrphanCleaner


def main() -> None:
    ap = argparse.ArgumentParser(description="Anonymize an account")
    ap.add_argument("--account-id", type=int, required=True, help="Account to anonymize")
    ap.add_argument("--cleanup", action="store_true", help="Also remove its vendor application now")
    args = ap.parse_args()

    configure_logging(get_settings().log_level)
    applications = SQLVendorApplicationRepository()
    service = AuthService(SQLAccountRepository(), applications)
    account = service.delete_account(args.account_id)
    print("OK: account anonymized")
    print(f"  ID: {account.account_id}")
    print(f"  Email: {account.email}")
    if args.cleanup:
        removed = OrphanCleaner(applications).cleanup(account_id=account.account_id)
        print(f"  Vendor applications removed: {removed or 'none'}")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
