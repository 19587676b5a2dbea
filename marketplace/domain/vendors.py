"""Vendor application value objects."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from .accounts import Role

DOCUMENT_KINDS = ("valid_id", "business_permit", "proof_image")
TERMINAL_ORDER_STATUSES = frozenset({"delivered", "cancelled"})


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


@dataclass(frozen=True)
class ResourceLimits:
    plan: str
    flavors: int
    drums: int
    orders: int


@dataclass
class VendorApplication:
    application_id: int
    account_id: int
    status: ApplicationStatus
    store_name: Optional[str] = None
    documents: Dict[str, str] = field(default_factory=dict)
    limits: Optional[ResourceLimits] = None
    created_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None
    suspended_at: Optional[datetime] = None


@dataclass(frozen=True)
class OrderSummary:
    """Opaque order view shown to an admin before suspension; never interpreted by the engine."""

    order_id: int
    status: str
    customer_name: str = ""
    total_amount: Decimal = Decimal("0")
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class LifecycleResult:
    application: Optional[VendorApplication]
    account_role_to_apply: Role
    in_flight_orders: List[OrderSummary] = field(default_factory=list)


def clean_documents(documents: Optional[Dict[str, Optional[str]]]) -> Dict[str, str]:
    """Keep the known document kinds that carry a reference."""
    cleaned: Dict[str, str] = {}
    for kind in DOCUMENT_KINDS:
        ref = (documents or {}).get(kind)
        if ref:
            cleaned[kind] = ref
    return cleaned
