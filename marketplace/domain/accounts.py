"""Account value objects and the anonymization rules."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

ANONYMIZED_EMAIL_DOMAIN = "deleted.local"
ANONYMIZED_FIRST_NAME = "Deleted"
ANONYMIZED_LAST_NAME = "User"


class Role(str, Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    ADMIN = "admin"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    DELETED = "deleted"


class Outcome(str, Enum):
    LINKED = "linked"
    RESTORED = "restored"
    CREATED = "created"


def anonymized_email(account_id: int) -> str:
    return f"deleted_{account_id}@{ANONYMIZED_EMAIL_DOMAIN}"


def is_anonymized(status: str | None, email: str | None, first_name: str | None, last_name: str | None) -> bool:
    """
    Single normalization point for soft-deleted rows.

    Rows written by this engine carry ``status == "deleted"``; older rows were
    only rewritten with the sentinel email/name, so those patterns still count.
    """
    if (status or "") == AccountStatus.DELETED.value:
        return True
    if (email or "").lower().endswith("@" + ANONYMIZED_EMAIL_DOMAIN):
        return True
    return first_name == ANONYMIZED_FIRST_NAME and last_name == ANONYMIZED_LAST_NAME


def is_reserved_name(first_name: str | None, last_name: str | None) -> bool:
    """The anonymized name pair is reserved; no live account may carry it."""
    return (first_name or "").strip() == ANONYMIZED_FIRST_NAME and (last_name or "").strip() == ANONYMIZED_LAST_NAME


def split_display_name(display_name: str | None) -> tuple[str, str]:
    parts = (display_name or "").strip().split(None, 1)
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1]


@dataclass
class Account:
    """Canonical account as seen by the engine; mapped from the accounts table."""

    account_id: int
    email: str
    username: str
    first_name: str = ""
    last_name: str = ""
    role: Role = Role.CUSTOMER
    status: AccountStatus = AccountStatus.ACTIVE
    provider: Optional[str] = None
    provider_subject_id: Optional[str] = None
    created_at: Optional[datetime] = None
    password_hash: Optional[str] = field(default=None, repr=False)

    @property
    def is_anonymized(self) -> bool:
        return self.status is AccountStatus.DELETED

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class IdentityAssertion:
    """Profile handed over by an external identity provider after login. Never persisted."""

    provider: str
    subject_id: str
    email: str
    display_name: str = ""
    given_name: Optional[str] = None
    family_name: Optional[str] = None

    def names(self) -> tuple[str, str]:
        if self.given_name is not None or self.family_name is not None:
            return (self.given_name or "").strip(), (self.family_name or "").strip()
        return split_display_name(self.display_name)


@dataclass(frozen=True)
class MatchResult:
    by_subject_id: Optional[Account] = None
    by_email: Optional[Account] = None


@dataclass(frozen=True)
class ReconciliationResult:
    account: Account
    outcome: Outcome
