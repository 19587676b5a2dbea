"""Read side of the orders table used to find in-flight work at suspension time."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select

from marketplace.db.models import OrderRow
from marketplace.db.session import get_session
from marketplace.domain.vendors import TERMINAL_ORDER_STATUSES, OrderSummary

from .base import translate_store_errors


def _to_summary(row: OrderRow) -> OrderSummary:
    return OrderSummary(
        order_id=row.order_id,
        status=row.status,
        customer_name=row.customer_name or "",
        total_amount=Decimal(row.total_amount or 0),
        created_at=row.created_at,
    )


class SQLOrderRepository:
    def list_in_flight_for_vendor(self, account_id: int) -> list[OrderSummary]:
        with translate_store_errors(), get_session() as session:
            stmt = (
                select(OrderRow)
                .where(
                    OrderRow.vendor_account_id == account_id,
                    OrderRow.status.not_in(sorted(TERMINAL_ORDER_STATUSES)),
                )
                .order_by(OrderRow.created_at.desc(), OrderRow.order_id.desc())
            )
            return [_to_summary(row) for row in session.execute(stmt).scalars().all()]

    def insert(self, vendor_account_id: int, *, status: str = "pending", customer_name: str = "", total_amount: Decimal | int = 0) -> OrderSummary:
        row = OrderRow(
            vendor_account_id=vendor_account_id,
            status=status,
            customer_name=customer_name,
            total_amount=total_amount,
            created_at=datetime.now(timezone.utc),
        )
        with translate_store_errors(), get_session() as session:
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_summary(row)
