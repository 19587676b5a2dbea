"""Account store backed by SQLAlchemy."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import and_, case, or_, select, update

from marketplace.db.models import AccountRow
from marketplace.db.session import get_session
from marketplace.domain.accounts import (
    ANONYMIZED_EMAIL_DOMAIN,
    ANONYMIZED_FIRST_NAME,
    ANONYMIZED_LAST_NAME,
    Account,
    AccountStatus,
    Role,
    is_anonymized,
)
from marketplace.domain.errors import AccountNotFound

from .base import translate_store_errors

_WRITABLE = {
    "first_name",
    "last_name",
    "email",
    "username",
    "password_hash",
    "provider",
    "provider_subject_id",
    "role",
    "status",
}


def anonymized_clause():
    """SQL mirror of ``marketplace.domain.accounts.is_anonymized``."""
    return or_(
        AccountRow.status == AccountStatus.DELETED.value,
        AccountRow.email.like(f"%@{ANONYMIZED_EMAIL_DOMAIN}"),
        and_(AccountRow.first_name == ANONYMIZED_FIRST_NAME, AccountRow.last_name == ANONYMIZED_LAST_NAME),
    )


def _to_account(row: AccountRow) -> Account:
    status = AccountStatus.DELETED if is_anonymized(row.status, row.email, row.first_name, row.last_name) else AccountStatus(row.status)
    return Account(
        account_id=row.account_id,
        email=row.email,
        username=row.username,
        first_name=row.first_name or "",
        last_name=row.last_name or "",
        role=Role(row.role or Role.CUSTOMER.value),
        status=status,
        provider=row.provider,
        provider_subject_id=row.provider_subject_id,
        created_at=row.created_at,
        password_hash=row.password_hash,
    )


def _column_values(fields: dict) -> dict:
    unknown = set(fields) - _WRITABLE
    if unknown:
        raise ValueError(f"unknown account fields: {sorted(unknown)}")
    values = {}
    for key, value in fields.items():
        values[key] = value.value if isinstance(value, (Role, AccountStatus)) else value
    return values


class SQLAccountRepository:
    """CRUD helpers for the accounts table."""

    def find_by_id(self, account_id: int) -> Optional[Account]:
        with translate_store_errors(), get_session() as session:
            row = session.get(AccountRow, account_id)
            return _to_account(row) if row else None

    def find_by_subject_id(self, subject_id: str) -> Optional[Account]:
        if not subject_id:
            return None
        with translate_store_errors(), get_session() as session:
            stmt = select(AccountRow).where(AccountRow.provider_subject_id == subject_id)
            row = session.execute(stmt).scalars().first()
            return _to_account(row) if row else None

    def find_by_email(self, email: str) -> Optional[Account]:
        """Exact match on the stored email; live rows win over anonymized ones."""
        if not email:
            return None
        with translate_store_errors(), get_session() as session:
            stmt = (
                select(AccountRow)
                .where(AccountRow.email == email)
                .order_by(case((anonymized_clause(), 1), else_=0), AccountRow.account_id)
            )
            row = session.execute(stmt).scalars().first()
            return _to_account(row) if row else None

    def find_by_username(self, username: str) -> Optional[Account]:
        if not username:
            return None
        with translate_store_errors(), get_session() as session:
            stmt = (
                select(AccountRow)
                .where(AccountRow.username == username)
                .order_by(case((anonymized_clause(), 1), else_=0), AccountRow.account_id)
            )
            row = session.execute(stmt).scalars().first()
            return _to_account(row) if row else None

    def username_exists(self, username: str, *, exclude_anonymized: bool = True, exclude_account_id: int | None = None) -> bool:
        """
        With ``exclude_anonymized``, legacy sentinel rows holding the handle are
        tagged ``deleted`` first so the live-only unique index releases it too.
        """
        if exclude_anonymized:
            self.tag_legacy_anonymized(username=username)
        with translate_store_errors(), get_session() as session:
            stmt = select(AccountRow.account_id).where(AccountRow.username == username)
            if exclude_anonymized:
                stmt = stmt.where(~anonymized_clause())
            if exclude_account_id is not None:
                stmt = stmt.where(AccountRow.account_id != exclude_account_id)
            return session.execute(stmt.limit(1)).first() is not None

    def insert(self, **fields) -> Account:
        values = _column_values(fields)
        now = datetime.now(timezone.utc)
        values.setdefault("role", Role.CUSTOMER.value)
        values.setdefault("status", AccountStatus.ACTIVE.value)
        row = AccountRow(created_at=now, updated_at=now, **values)
        with translate_store_errors(), get_session() as session:
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_account(row)

    def update(self, account_id: int, **fields) -> Account:
        values = _column_values(fields)
        values["updated_at"] = datetime.now(timezone.utc)
        with translate_store_errors(), get_session() as session:
            result = session.execute(update(AccountRow).where(AccountRow.account_id == account_id).values(**values))
            if result.rowcount == 0:
                session.rollback()
                raise AccountNotFound(f"account {account_id} not found")
            session.commit()
            row = session.get(AccountRow, account_id)
            return _to_account(row)

    def tag_legacy_anonymized(self, username: str | None = None) -> int:
        """Set ``status = deleted`` on rows only carrying the old sentinel values."""
        stmt = (
            update(AccountRow)
            .where(anonymized_clause(), AccountRow.status != AccountStatus.DELETED.value)
            .values(status=AccountStatus.DELETED.value, updated_at=datetime.now(timezone.utc))
        )
        if username is not None:
            stmt = stmt.where(AccountRow.username == username)
        with translate_store_errors(), get_session() as session:
            result = session.execute(stmt)
            session.commit()
            return int(result.rowcount or 0)
