"""Derives unique handles from email local parts."""
from __future__ import annotations

import logging

from marketplace.core.config import get_settings
from marketplace.domain import usernames
from marketplace.domain.errors import UsernameUnavailable
from marketplace.repositories.base import AccountStore

logger = logging.getLogger(__name__)

FALLBACK_BASE = "user"


class UsernameAllocator:
    def __init__(self, accounts: AccountStore, max_attempts: int | None = None) -> None:
        self.accounts = accounts
        self.max_attempts = max_attempts or get_settings().username_max_attempts

    def allocate(self, local_part: str, exclude_anonymized: bool = True) -> str:
        """
        Return the first free handle among ``base``, ``base1``, ``base2``...

        The probe is advisory: two callers may pick the same handle, so the
        insert that follows must still go through the store's unique index.
        """
        base = usernames.canonicalize(local_part) or FALLBACK_BASE
        for candidate in usernames.candidates(base, self.max_attempts):
            if not self.accounts.username_exists(candidate, exclude_anonymized=exclude_anonymized):
                return candidate
        logger.error("username space exhausted for base %r after %d attempts", base, self.max_attempts)
        raise UsernameUnavailable(f"no free username derived from {base!r}")

    def allocate_for_email(self, email: str) -> str:
        return self.allocate(usernames.email_local_part(email), exclude_anonymized=True)
