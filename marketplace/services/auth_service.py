"""
Local credential use cases: registration, login and account deletion.

Local registration shares the reconciler's rules: a live account on the email
blocks it, an anonymized one is restored instead of duplicated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from marketplace.core.security import hash_password, needs_rehash, verify_password
from marketplace.domain.accounts import (
    ANONYMIZED_FIRST_NAME,
    ANONYMIZED_LAST_NAME,
    Account,
    AccountStatus,
    Outcome,
    ReconciliationResult,
    anonymized_email,
    is_reserved_name,
)
from marketplace.domain.errors import UniqueConstraintViolation
from marketplace.domain.usernames import is_valid_username
from marketplace.repositories.account_repository import SQLAccountRepository
from marketplace.repositories.base import AccountStore, VendorApplicationStore
from marketplace.repositories.vendor_repository import SQLVendorApplicationRepository

from .account_reconciler import AccountReconciler

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class AuthError(Exception):
    """Base class for authentication-related exceptions."""


class RegistrationError(AuthError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AccountExistsError(AuthError):
    pass


class InvalidCredentialsError(AuthError):
    pass


class AccountDisabledError(AuthError):
    def __init__(self, status: AccountStatus):
        super().__init__(f"Account has been {status.value}. Please contact support.")
        self.status = status


@dataclass
class AuthService:
    """Handles local registration, login and anonymization."""

    accounts: AccountStore = field(default_factory=SQLAccountRepository)
    applications: VendorApplicationStore = field(default_factory=SQLVendorApplicationRepository)

    def __post_init__(self):
        self.reconciler = AccountReconciler(self.accounts, self.applications)

    # -------------------------------------- registration --------------------------------------
    def register(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        username: str = "",
    ) -> ReconciliationResult:
        raw_email = (email or "").strip()
        if not raw_email or "@" not in raw_email:
            raise RegistrationError("A valid email is required")
        if not (first_name or "").strip():
            raise RegistrationError("First name is required")
        if is_reserved_name(first_name, last_name):
            raise RegistrationError("This name cannot be used for an account")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise RegistrationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        handle = (username or "").strip()
        if handle and not is_valid_username(handle):
            raise RegistrationError("Username must be 3-20 characters long and contain only letters, numbers, and underscores.")

        password_hash = hash_password(password)
        try:
            return self._register_once(first_name.strip(), (last_name or "").strip(), raw_email, handle, password_hash)
        except UniqueConstraintViolation as exc:
            logger.info("uniqueness conflict registering %s (%s); retrying once", raw_email, exc.message)
            try:
                return self._register_once(first_name.strip(), (last_name or "").strip(), raw_email, handle, password_hash)
            except UniqueConstraintViolation as again:
                raise AccountExistsError("Email or username already exists") from again

    def _register_once(self, first_name: str, last_name: str, email: str, handle: str, password_hash: str) -> ReconciliationResult:
        existing = self.accounts.find_by_email(email)
        if existing is not None and not existing.is_anonymized:
            raise AccountExistsError("Email already exists")
        if handle and self.accounts.username_exists(
            handle,
            exclude_anonymized=True,
            exclude_account_id=existing.account_id if existing else None,
        ):
            raise AccountExistsError("Username already exists. Please choose a different username.")

        if existing is not None:
            account = self.reconciler.restore_account(
                existing,
                email=email,
                first_name=first_name,
                last_name=last_name,
                password_hash=password_hash,
            )
            if handle and account.username != handle:
                account = self.accounts.update(account.account_id, username=handle)
            return ReconciliationResult(account, Outcome.RESTORED)

        account = self.reconciler.create_account(
            email=email,
            first_name=first_name,
            last_name=last_name,
            username=handle or None,
            password_hash=password_hash,
        )
        logger.info("registered local account %s (%s)", account.account_id, account.username)
        return ReconciliationResult(account, Outcome.CREATED)

    # -------------------------------------- login --------------------------------------
    def login(self, identifier: str, password: str) -> Account:
        """Resolve a username or email plus password to one live account."""
        raw = (identifier or "").strip()
        if not raw or not password:
            raise InvalidCredentialsError("Invalid credentials")
        account = self.accounts.find_by_username(raw)
        if account is None or account.is_anonymized:
            account = self.accounts.find_by_email(raw)
        if account is None or account.is_anonymized or not verify_password(password, account.password_hash):
            raise InvalidCredentialsError("Invalid credentials")
        if account.status is not AccountStatus.ACTIVE:
            raise AccountDisabledError(account.status)
        if needs_rehash(account.password_hash):
            account = self.accounts.update(account.account_id, password_hash=hash_password(password))
        return account

    # -------------------------------------- deletion --------------------------------------
    def delete_account(self, account_id: int) -> Account:
        """
        Anonymize the account in place. Its email and username become free for
        new registrants; the vendor application is left for the orphan cleaner.
        """
        account = self.accounts.find_by_id(account_id)
        if account is None:
            raise AuthError(f"account {account_id} not found")
        if account.is_anonymized:
            return account
        anonymized = self.accounts.update(
            account_id,
            email=anonymized_email(account_id),
            first_name=ANONYMIZED_FIRST_NAME,
            last_name=ANONYMIZED_LAST_NAME,
            provider=None,
            provider_subject_id=None,
            password_hash=None,
            status=AccountStatus.DELETED,
        )
        logger.info("anonymized account %s", account_id)
        return anonymized
