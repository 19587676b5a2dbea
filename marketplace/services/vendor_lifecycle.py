"""
Vendor application lifecycle.

Every operation reads the stored application, asks the transition table in
``marketplace.domain.vendor_states`` for the next state, then writes it with a
conditional update on the status it read. A rejected transition or a stale
read leaves every record untouched.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from marketplace.core.config import get_settings
from marketplace.domain.accounts import Account, Role
from marketplace.domain.errors import (
    AccountNotFound,
    AlreadyVendor,
    ApplicationAlreadyExists,
    ApplicationNotFound,
    IllegalTransition,
    UnacknowledgedOrders,
)
from marketplace.domain.vendor_states import ApplicationState, Transition, TransitionOutcome, apply_transition
from marketplace.domain.vendors import (
    ApplicationStatus,
    LifecycleResult,
    ResourceLimits,
    VendorApplication,
    clean_documents,
)
from marketplace.repositories.base import AccountStore, VendorApplicationStore

from .orphan_cleaner import OrphanCleaner

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def free_plan_limits() -> ResourceLimits:
    settings = get_settings()
    return ResourceLimits(
        plan="free",
        flavors=settings.free_flavor_limit,
        drums=settings.free_drum_limit,
        orders=settings.free_order_limit,
    )


class VendorLifecycleController:
    def __init__(
        self,
        accounts: AccountStore,
        applications: VendorApplicationStore,
        *,
        cleaner: Optional[OrphanCleaner] = None,
    ) -> None:
        self.accounts = accounts
        self.applications = applications
        self.cleaner = cleaner or OrphanCleaner(applications)

    # -------------------------------------- helpers --------------------------------------
    def _live_account(self, account_id: int) -> Account:
        account = self.accounts.find_by_id(account_id)
        if account is None or account.is_anonymized:
            raise AccountNotFound(f"account {account_id} not found")
        return account

    def _application(self, application_id: int) -> VendorApplication:
        application = self.applications.find_by_id(application_id)
        if application is None:
            raise ApplicationNotFound(f"vendor application {application_id} not found")
        return application

    def _apply_role(self, account_id: int, role: Role) -> None:
        account = self.accounts.find_by_id(account_id)
        if account is None or account.role is role or account.role is Role.ADMIN:
            return
        self.accounts.update(account_id, role=role)
        logger.info("account %s role %s -> %s", account_id, account.role.value, role.value)

    def _write(self, application: VendorApplication, outcome: TransitionOutcome, transition: Transition, **fields) -> VendorApplication:
        updated = self.applications.update(
            application.application_id,
            expected_status=application.status,
            status=outcome.state.as_status(),
            **fields,
        )
        if updated is None:
            fresh = self.applications.find_by_id(application.application_id)
            current = fresh.status.value if fresh else "missing"
            raise IllegalTransition(
                current,
                transition.value,
                f"application {application.application_id} changed from {application.status.value} to {current} before {transition.value}",
            )
        logger.info(
            "vendor application %s: %s --%s--> %s",
            application.application_id,
            outcome.previous.value,
            transition.value,
            outcome.state.value,
        )
        return updated

    def _keep_oldest(self, account_id: int, inserted: VendorApplication, docs: Dict[str, str]) -> VendorApplication:
        """
        Settle a create race: the oldest application for the account wins and
        any later inserts, this one included, are removed.
        """
        applications = self.applications.list_for_account(account_id)
        winner = applications[0] if applications else inserted
        for duplicate in applications[1:]:
            self.applications.delete(duplicate.application_id)
        if winner.application_id == inserted.application_id:
            logger.info("vendor application %s submitted for account %s", inserted.application_id, account_id)
            return inserted

        logger.warning(
            "account %s submitted concurrently; kept application %s, removed %s",
            account_id,
            winner.application_id,
            [duplicate.application_id for duplicate in applications[1:]],
        )
        if winner.status is not ApplicationStatus.PENDING:
            raise IllegalTransition(
                winner.status.value,
                Transition.SUBMIT.value,
                f"account {account_id} already has a {winner.status.value} application {winner.application_id}",
            )
        if not docs:
            return winner
        merged = self.applications.update(
            winner.application_id,
            expected_status=ApplicationStatus.PENDING,
            documents={**winner.documents, **docs},
        )
        return merged or winner

    # -------------------------------------- reads --------------------------------------
    def current_status(self, account_id: int) -> ApplicationState:
        application = self.applications.find_by_account_id(account_id)
        return ApplicationState.of(application.status if application else None)

    def can_accept_orders(self, account_id: int) -> bool:
        """Order creation is only open to approved vendors; suspended ones just finish what they have."""
        return self.current_status(account_id) is ApplicationState.APPROVED

    def check_vendor_eligibility(self, account: Account) -> None:
        """Policy gate used before a vendor-flavoured registration proceeds."""
        if account.role is Role.VENDOR and self.current_status(account.account_id) is not ApplicationState.NO_APPLICATION:
            raise AlreadyVendor(f"account {account.account_id} is already registered as a vendor")
        application = self.applications.find_by_account_id(account.account_id)
        if application is not None and application.status is not ApplicationStatus.PENDING:
            raise ApplicationAlreadyExists(
                f"account {account.account_id} already has a {application.status.value} vendor application"
            )

    # -------------------------------------- applicant transitions --------------------------------------
    def submit(self, account_id: int, documents: Optional[Dict[str, str]] = None) -> LifecycleResult:
        """
        Open a vendor application, or return the pending one.

        A pending application (including one put back to pending by the
        auto-return job) is reused with its ID and limits; new documents are
        merged in.
        """
        account = self._live_account(account_id)
        self.cleaner.cleanup(email=account.email)
        existing = self.applications.find_by_account_id(account_id)
        state = ApplicationState.of(existing.status if existing else None)
        if state is ApplicationState.APPROVED:
            raise AlreadyVendor(f"account {account_id} is already an approved vendor")
        if state in (ApplicationState.REJECTED, ApplicationState.SUSPENDED):
            raise ApplicationAlreadyExists(
                f"account {account_id} has a {state.value} application; use resubmit or reapply"
            )
        outcome = apply_transition(state, Transition.SUBMIT)
        docs = clean_documents(documents)

        if outcome.creates_record:
            if account.role is Role.VENDOR:
                logger.warning("account %s held vendor role without an application; resetting", account_id)
            inserted = self.applications.insert(
                account_id=account_id,
                status=ApplicationStatus.PENDING,
                documents=docs,
                limits=free_plan_limits() if outcome.reset_limits else None,
            )
            application = self._keep_oldest(account_id, inserted, docs)
        elif docs:
            application = self._write(existing, outcome, Transition.SUBMIT, documents={**existing.documents, **docs})
        else:
            application = existing

        self._apply_role(account_id, outcome.role)
        return LifecycleResult(application=application, account_role_to_apply=outcome.role)

    def reapply(self, account_id: int, documents: Optional[Dict[str, str]] = None) -> LifecycleResult:
        """Suspended -> pending on the same record; ID and resource limits are kept."""
        return self._back_to_pending(account_id, Transition.REAPPLY, documents)

    def resubmit(self, account_id: int, documents: Optional[Dict[str, str]] = None) -> LifecycleResult:
        """Rejected -> pending, only when the applicant asks for it."""
        return self._back_to_pending(account_id, Transition.RESUBMIT, documents)

    def _back_to_pending(self, account_id: int, transition: Transition, documents: Optional[Dict[str, str]]) -> LifecycleResult:
        self._live_account(account_id)
        existing = self.applications.find_by_account_id(account_id)
        state = ApplicationState.of(existing.status if existing else None)
        outcome = apply_transition(state, transition)
        docs = clean_documents(documents)
        application = self._write(
            existing,
            outcome,
            transition,
            documents=docs or existing.documents,
            decided_at=None,
            suspended_at=None,
        )
        self._apply_role(account_id, outcome.role)
        return LifecycleResult(application=application, account_role_to_apply=outcome.role)

    # -------------------------------------- admin transitions --------------------------------------
    def approve(self, application_id: int) -> LifecycleResult:
        application = self._application(application_id)
        outcome = apply_transition(ApplicationState.of(application.status), Transition.APPROVE)
        updated = self._write(application, outcome, Transition.APPROVE, decided_at=_now())
        self._apply_role(application.account_id, outcome.role)
        return LifecycleResult(application=updated, account_role_to_apply=outcome.role)

    def reject(self, application_id: int) -> LifecycleResult:
        application = self._application(application_id)
        outcome = apply_transition(ApplicationState.of(application.status), Transition.REJECT)
        updated = self._write(application, outcome, Transition.REJECT, decided_at=_now())
        self._apply_role(application.account_id, outcome.role)
        return LifecycleResult(application=updated, account_role_to_apply=outcome.role)

    def preview_suspension(self, application_id: int) -> LifecycleResult:
        """In-flight orders an admin has to acknowledge; nothing is written."""
        application = self._application(application_id)
        outcome = apply_transition(ApplicationState.of(application.status), Transition.SUSPEND)
        orders = self.applications.list_in_flight_orders_for_account(application.account_id)
        return LifecycleResult(application=application, account_role_to_apply=outcome.role, in_flight_orders=orders)

    def suspend(self, application_id: int, acknowledged_order_ids: Iterable[int] = ()) -> LifecycleResult:
        """
        Approved -> suspended. The in-flight order list is recomputed here and
        every order in it must appear in ``acknowledged_order_ids``.
        """
        application = self._application(application_id)
        outcome = apply_transition(ApplicationState.of(application.status), Transition.SUSPEND)
        orders = self.applications.list_in_flight_orders_for_account(application.account_id)
        acknowledged = {int(order_id) for order_id in acknowledged_order_ids}
        undisclosed = [order for order in orders if order.order_id not in acknowledged]
        if undisclosed:
            raise UnacknowledgedOrders(undisclosed)
        updated = self._write(application, outcome, Transition.SUSPEND, suspended_at=_now())
        self._apply_role(application.account_id, outcome.role)
        return LifecycleResult(application=updated, account_role_to_apply=outcome.role, in_flight_orders=orders)
