"""Candidate lookup for an incoming identity assertion."""
from __future__ import annotations

from marketplace.domain.accounts import IdentityAssertion, MatchResult
from marketplace.repositories.base import AccountStore


class IdentityMatcher:
    """Finds accounts by provider subject ID and by email. Precedence is the caller's job."""

    def __init__(self, accounts: AccountStore) -> None:
        self.accounts = accounts

    def match(self, assertion: IdentityAssertion) -> MatchResult:
        return MatchResult(
            by_subject_id=self.accounts.find_by_subject_id(assertion.subject_id),
            by_email=self.accounts.find_by_email(assertion.email),
        )
