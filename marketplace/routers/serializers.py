"""JSON views of the domain objects returned by the routers."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from marketplace.domain.accounts import Account
from marketplace.domain.vendors import LifecycleResult, OrderSummary, VendorApplication


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def account_json(account: Account) -> dict:
    return {
        "account_id": account.account_id,
        "email": account.email,
        "username": account.username,
        "first_name": account.first_name,
        "last_name": account.last_name,
        "role": account.role.value,
        "status": account.status.value,
        "provider": account.provider,
    }


def order_json(order: OrderSummary) -> dict:
    return {
        "order_id": order.order_id,
        "status": order.status,
        "customer_name": order.customer_name,
        "total_amount": str(order.total_amount),
        "created_at": _iso(order.created_at),
    }


def application_json(application: Optional[VendorApplication]) -> Optional[dict]:
    if application is None:
        return None
    limits = application.limits
    return {
        "application_id": application.application_id,
        "account_id": application.account_id,
        "status": application.status.value,
        "store_name": application.store_name,
        "documents": dict(application.documents),
        "limits": (
            {"plan": limits.plan, "flavors": limits.flavors, "drums": limits.drums, "orders": limits.orders}
            if limits
            else None
        ),
        "created_at": _iso(application.created_at),
        "decided_at": _iso(application.decided_at),
        "suspended_at": _iso(application.suspended_at),
    }


def lifecycle_json(result: LifecycleResult) -> dict:
    return {
        "application": application_json(result.application),
        "account_role": result.account_role_to_apply.value,
        "in_flight_orders": [order_json(order) for order in result.in_flight_orders],
    }
