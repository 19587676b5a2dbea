"""Vendor application store backed by SQLAlchemy."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, or_, select, update

from marketplace.db.models import AccountRow, VendorApplicationRow
from marketplace.db.session import get_session
from marketplace.domain.accounts import ANONYMIZED_EMAIL_DOMAIN
from marketplace.domain.vendors import ApplicationStatus, OrderSummary, ResourceLimits, VendorApplication

from .account_repository import anonymized_clause
from .base import OrderStatusSource, translate_store_errors
from .order_repository import SQLOrderRepository

_WRITABLE = {"store_name", "status", "documents", "decided_at", "suspended_at"}


def _to_application(row: VendorApplicationRow) -> VendorApplication:
    return VendorApplication(
        application_id=row.application_id,
        account_id=row.account_id,
        status=ApplicationStatus(row.status),
        store_name=row.store_name,
        documents=dict(row.documents or {}),
        limits=ResourceLimits(
            plan=row.subscription_plan,
            flavors=row.flavor_limit,
            drums=row.drum_limit,
            orders=row.order_limit,
        ),
        created_at=row.created_at,
        decided_at=row.decided_at,
        suspended_at=row.suspended_at,
    )


def _column_values(fields: dict) -> dict:
    values = {}
    for key, value in fields.items():
        if key == "limits":
            if value is not None:
                values.update(
                    subscription_plan=value.plan,
                    flavor_limit=value.flavors,
                    drum_limit=value.drums,
                    order_limit=value.orders,
                )
            continue
        if key not in _WRITABLE:
            raise ValueError(f"unknown vendor application field: {key}")
        values[key] = value.value if isinstance(value, ApplicationStatus) else value
    return values


class SQLVendorApplicationRepository:
    """CRUD helpers for vendor_applications; in-flight orders come from the order source."""

    def __init__(self, orders: OrderStatusSource | None = None) -> None:
        self.orders = orders or SQLOrderRepository()

    def find_by_id(self, application_id: int) -> Optional[VendorApplication]:
        with translate_store_errors(), get_session() as session:
            row = session.get(VendorApplicationRow, application_id)
            return _to_application(row) if row else None

    def find_by_account_id(self, account_id: int) -> Optional[VendorApplication]:
        """The account's application; if a create race left duplicates, the oldest one."""
        applications = self.list_for_account(account_id)
        return applications[0] if applications else None

    def list_for_account(self, account_id: int) -> list[VendorApplication]:
        with translate_store_errors(), get_session() as session:
            stmt = (
                select(VendorApplicationRow)
                .where(VendorApplicationRow.account_id == account_id)
                .order_by(VendorApplicationRow.application_id)
            )
            return [_to_application(row) for row in session.execute(stmt).scalars().all()]

    def insert(self, **fields) -> VendorApplication:
        account_id = fields.pop("account_id")
        values = _column_values(fields)
        values.setdefault("status", ApplicationStatus.PENDING.value)
        values.setdefault("documents", {})
        now = datetime.now(timezone.utc)
        row = VendorApplicationRow(account_id=account_id, created_at=now, updated_at=now, **values)
        with translate_store_errors(), get_session() as session:
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_application(row)

    def update(self, application_id: int, *, expected_status: ApplicationStatus | None = None, **fields) -> Optional[VendorApplication]:
        """
        Conditional write. Returns ``None`` when the row is missing or its status
        no longer equals ``expected_status``; nothing is written in that case.
        """
        values = _column_values(fields)
        values["updated_at"] = datetime.now(timezone.utc)
        stmt = update(VendorApplicationRow).where(VendorApplicationRow.application_id == application_id)
        if expected_status is not None:
            stmt = stmt.where(VendorApplicationRow.status == ApplicationStatus(expected_status).value)
        with translate_store_errors(), get_session() as session:
            result = session.execute(stmt.values(**values).execution_options(synchronize_session=False))
            if result.rowcount == 0:
                session.rollback()
                return None
            session.commit()
            row = session.get(VendorApplicationRow, application_id)
            return _to_application(row)

    def delete(self, application_id: int) -> bool:
        with translate_store_errors(), get_session() as session:
            result = session.execute(delete(VendorApplicationRow).where(VendorApplicationRow.application_id == application_id))
            session.commit()
            return bool(result.rowcount)

    def list_orphaned(self, *, account_id: int | None = None, email: str | None = None) -> list[VendorApplication]:
        """Applications whose owning account is anonymized, optionally scoped."""
        stmt = (
            select(VendorApplicationRow)
            .join(AccountRow, AccountRow.account_id == VendorApplicationRow.account_id)
            .where(anonymized_clause())
            .order_by(VendorApplicationRow.application_id)
        )
        if account_id is not None:
            stmt = stmt.where(VendorApplicationRow.account_id == account_id)
        if email:
            stmt = stmt.where(
                or_(
                    AccountRow.email == email,
                    AccountRow.email.like(f"%@{ANONYMIZED_EMAIL_DOMAIN}"),
                )
            )
        with translate_store_errors(), get_session() as session:
            return [_to_application(row) for row in session.execute(stmt).scalars().all()]

    def list_in_flight_orders_for_account(self, account_id: int) -> list[OrderSummary]:
        return list(self.orders.list_in_flight_for_vendor(account_id))
