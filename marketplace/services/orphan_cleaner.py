"""Removes vendor applications left behind by anonymized accounts."""
from __future__ import annotations

import logging
from typing import Optional

from marketplace.repositories.base import VendorApplicationStore

logger = logging.getLogger(__name__)


class OrphanCleaner:
    def __init__(self, applications: VendorApplicationStore) -> None:
        self.applications = applications

    def cleanup(self, account_id: Optional[int] = None, email: Optional[str] = None) -> list[int]:
        """
        Delete applications owned by anonymized accounts and return their IDs.

        ``account_id`` restricts the sweep to that account; ``email`` covers
        anonymized accounts carrying the address plus every owner on the
        anonymized email pattern. Without either, all orphans go. Running it
        again right away removes nothing.
        """
        removed: list[int] = []
        for application in self.applications.list_orphaned(account_id=account_id, email=email):
            if self.applications.delete(application.application_id):
                removed.append(application.application_id)
        if removed:
            logger.info(
                "removed %d orphaned vendor application(s) %s (account_id=%s email=%s)",
                len(removed),
                removed,
                account_id,
                email,
            )
        return removed
