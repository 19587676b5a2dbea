"""
Resolves an identity assertion to exactly one canonical account.

Precedence: an account already linked to the asserted provider subject wins;
otherwise the account holding the asserted email is linked or restored;
otherwise a new customer account is created. Uniqueness is left to the
store's indexes: a conflict re-runs the whole decision once, because the
second pass will see the row a concurrent request just wrote.
"""
from __future__ import annotations

import logging
from typing import Optional

from marketplace.domain.accounts import (
    Account,
    AccountStatus,
    IdentityAssertion,
    Outcome,
    ReconciliationResult,
    Role,
    is_reserved_name,
)
from marketplace.domain.errors import ReservedName, UniqueConstraintViolation
from marketplace.repositories.base import AccountStore, VendorApplicationStore

from .identity_matcher import IdentityMatcher
from .orphan_cleaner import OrphanCleaner
from .username_allocator import UsernameAllocator

logger = logging.getLogger(__name__)


def _check_name(first_name: str, last_name: str) -> None:
    if is_reserved_name(first_name, last_name):
        raise ReservedName(f"the name {first_name!r} {last_name!r} is reserved")


class AccountReconciler:
    def __init__(
        self,
        accounts: AccountStore,
        applications: VendorApplicationStore,
        *,
        matcher: Optional[IdentityMatcher] = None,
        allocator: Optional[UsernameAllocator] = None,
        cleaner: Optional[OrphanCleaner] = None,
    ) -> None:
        self.accounts = accounts
        self.matcher = matcher or IdentityMatcher(accounts)
        self.allocator = allocator or UsernameAllocator(accounts)
        self.cleaner = cleaner or OrphanCleaner(applications)

    def reconcile(self, assertion: IdentityAssertion, role_intent: Role = Role.CUSTOMER) -> ReconciliationResult:
        """
        Link, restore or create the account behind ``assertion``.

        ``role_intent`` never promotes the account: vendors are only made by an
        approved application.
        """
        try:
            result = self._reconcile_once(assertion)
        except UniqueConstraintViolation as exc:
            logger.info("uniqueness conflict reconciling subject %s (%s); retrying once", assertion.subject_id, exc.message)
            result = self._reconcile_once(assertion)
        logger.info(
            "reconciled %s subject %s to account %s: %s (intent=%s)",
            assertion.provider,
            assertion.subject_id,
            result.account.account_id,
            result.outcome.value,
            Role(role_intent).value,
        )
        return result

    def _reconcile_once(self, assertion: IdentityAssertion) -> ReconciliationResult:
        match = self.matcher.match(assertion)

        if match.by_subject_id is not None:
            account = match.by_subject_id
            if account.is_anonymized:
                # Legacy rows may keep the provider link after anonymization.
                return ReconciliationResult(self._restore_from_assertion(account, assertion), Outcome.RESTORED)
            if account.email != assertion.email:
                logger.warning(
                    "account %s linked to subject %s holds email %r but provider asserted %r; keeping stored email",
                    account.account_id,
                    assertion.subject_id,
                    account.email,
                    assertion.email,
                )
            return ReconciliationResult(account, Outcome.LINKED)

        if match.by_email is not None:
            account = match.by_email
            if account.is_anonymized:
                return ReconciliationResult(self._restore_from_assertion(account, assertion), Outcome.RESTORED)
            if account.provider_subject_id is None:
                linked = self.accounts.update(
                    account.account_id,
                    provider=assertion.provider,
                    provider_subject_id=assertion.subject_id,
                )
                return ReconciliationResult(linked, Outcome.LINKED)
            # Fail open: the stored link stays, the caller gets the existing account.
            logger.warning(
                "email %r belongs to account %s linked to subject %s; asserted subject %s not relinked",
                assertion.email,
                account.account_id,
                account.provider_subject_id,
                assertion.subject_id,
            )
            return ReconciliationResult(account, Outcome.LINKED)

        return ReconciliationResult(self._create_from_assertion(assertion), Outcome.CREATED)

    def _restore_from_assertion(self, account: Account, assertion: IdentityAssertion) -> Account:
        first_name, last_name = assertion.names()
        return self.restore_account(
            account,
            email=assertion.email,
            first_name=first_name,
            last_name=last_name,
            provider=assertion.provider,
            subject_id=assertion.subject_id,
        )

    def _create_from_assertion(self, assertion: IdentityAssertion) -> Account:
        first_name, last_name = assertion.names()
        return self.create_account(
            email=assertion.email,
            first_name=first_name,
            last_name=last_name,
            provider=assertion.provider,
            subject_id=assertion.subject_id,
        )

    def restore_account(
        self,
        account: Account,
        *,
        email: str,
        first_name: str,
        last_name: str,
        provider: Optional[str] = None,
        subject_id: Optional[str] = None,
        password_hash: Optional[str] = None,
    ) -> Account:
        """
        Bring an anonymized account back for a new registrant.

        Its old vendor application is removed first and the role drops to
        customer; vendor status has to be earned again.
        """
        _check_name(first_name, last_name)
        self.cleaner.cleanup(account_id=account.account_id)
        username = account.username
        if self.accounts.username_exists(username, exclude_anonymized=True, exclude_account_id=account.account_id):
            username = self.allocator.allocate_for_email(email)
        fields = dict(
            email=email,
            first_name=first_name,
            last_name=last_name,
            username=username,
            provider=provider,
            provider_subject_id=subject_id,
            status=AccountStatus.ACTIVE,
            role=Role.CUSTOMER,
        )
        if password_hash is not None:
            fields["password_hash"] = password_hash
        restored = self.accounts.update(account.account_id, **fields)
        logger.info("restored anonymized account %s (previous role %s)", account.account_id, account.role.value)
        return restored

    def create_account(
        self,
        *,
        email: str,
        first_name: str,
        last_name: str,
        username: Optional[str] = None,
        provider: Optional[str] = None,
        subject_id: Optional[str] = None,
        password_hash: Optional[str] = None,
    ) -> Account:
        _check_name(first_name, last_name)
        handle = username or self.allocator.allocate_for_email(email)
        return self.accounts.insert(
            email=email,
            first_name=first_name,
            last_name=last_name,
            username=handle,
            provider=provider,
            provider_subject_id=subject_id,
            password_hash=password_hash,
            role=Role.CUSTOMER,
            status=AccountStatus.ACTIVE,
        )
