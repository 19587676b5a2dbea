"""SQLAlchemy models for accounts, vendor applications and the orders they gate."""
from __future__ import annotations

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    JSON,
    func,
    text,
)

from .session import Base

# Uniqueness only binds live rows; anonymized accounts release their email/username.
_LIVE_ONLY = text("status != 'deleted'")


class AccountRow(Base):
    __tablename__ = "accounts"

    account_id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(120), nullable=False, default="")
    last_name = Column(String(120), nullable=False, default="")
    email = Column(String(255), nullable=False)
    username = Column(String(64), nullable=False)
    password_hash = Column(Text, nullable=True)
    provider = Column(String(32), nullable=True)
    provider_subject_id = Column(String(255), nullable=True, unique=True)
    role = Column(String(16), nullable=False, default="customer")
    status = Column(String(16), nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("uq_accounts_email_live", "email", unique=True, sqlite_where=_LIVE_ONLY, postgresql_where=_LIVE_ONLY),
        Index("uq_accounts_username_live", "username", unique=True, sqlite_where=_LIVE_ONLY, postgresql_where=_LIVE_ONLY),
        Index("ix_accounts_email", "email"),
        Index("ix_accounts_username", "username"),
    )


class VendorApplicationRow(Base):
    __tablename__ = "vendor_applications"

    # Deleted IDs are never handed out again.
    __table_args__ = {"sqlite_autoincrement": True}

    application_id = Column(Integer, primary_key=True, autoincrement=True)
    # One application per account is settled by the lifecycle controller, not here.
    account_id = Column(Integer, ForeignKey("accounts.account_id"), nullable=False, index=True)
    store_name = Column(String(255), nullable=True)
    status = Column(String(16), nullable=False, default="pending")
    documents = Column(JSON, nullable=False, default=dict)
    subscription_plan = Column(String(32), nullable=False, default="free")
    flavor_limit = Column(Integer, nullable=False, default=5)
    drum_limit = Column(Integer, nullable=False, default=5)
    order_limit = Column(Integer, nullable=False, default=30)
    decided_at = Column(DateTime(timezone=True), nullable=True)
    suspended_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class OrderRow(Base):
    __tablename__ = "orders"

    order_id = Column(Integer, primary_key=True, autoincrement=True)
    vendor_account_id = Column(Integer, ForeignKey("accounts.account_id"), nullable=False, index=True)
    customer_name = Column(String(255), nullable=False, default="")
    status = Column(String(32), nullable=False, default="pending")
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
