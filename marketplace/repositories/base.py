"""Store contracts consumed by the services and the SQLAlchemy error translation."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional, Protocol, Sequence

from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError

from marketplace.domain.accounts import Account
from marketplace.domain.errors import StoreUnavailable, UniqueConstraintViolation
from marketplace.domain.vendors import OrderSummary, VendorApplication


@contextmanager
def translate_store_errors() -> Iterator[None]:
    """Map driver exceptions onto the engine's error taxonomy."""
    try:
        yield
    except IntegrityError as exc:
        detail = str(exc.orig or exc)
        lowered = detail.lower()
        if "unique" in lowered or "duplicate" in lowered:
            raise UniqueConstraintViolation(detail) from exc
        raise
    except (OperationalError, InterfaceError) as exc:
        raise StoreUnavailable(str(exc.orig or exc)) from exc
    except DBAPIError as exc:
        if exc.connection_invalidated:
            raise StoreUnavailable(str(exc.orig or exc)) from exc
        raise


class AccountStore(Protocol):
    def find_by_subject_id(self, subject_id: str) -> Optional[Account]: ...

    def find_by_email(self, email: str) -> Optional[Account]: ...

    def find_by_id(self, account_id: int) -> Optional[Account]: ...

    def find_by_username(self, username: str) -> Optional[Account]: ...

    def username_exists(self, username: str, *, exclude_anonymized: bool = True, exclude_account_id: int | None = None) -> bool: ...

    def insert(self, **fields) -> Account: ...

    def update(self, account_id: int, **fields) -> Account: ...


class OrderStatusSource(Protocol):
    def list_in_flight_for_vendor(self, account_id: int) -> Sequence[OrderSummary]: ...


class VendorApplicationStore(Protocol):
    def find_by_account_id(self, account_id: int) -> Optional[VendorApplication]: ...

    def list_for_account(self, account_id: int) -> list[VendorApplication]: ...

    def find_by_id(self, application_id: int) -> Optional[VendorApplication]: ...

    def insert(self, **fields) -> VendorApplication: ...

    def update(self, application_id: int, *, expected_status=None, **fields) -> Optional[VendorApplication]: ...

    def delete(self, application_id: int) -> bool: ...

    def list_orphaned(self, *, account_id: int | None = None, email: str | None = None) -> list[VendorApplication]: ...

    def list_in_flight_orders_for_account(self, account_id: int) -> list[OrderSummary]: ...


class DocumentStore(Protocol):
    def save(self, kind: str, filename: str, data: bytes) -> str: ...
