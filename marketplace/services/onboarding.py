"""Federated sign-in flow: reconcile the identity, then open the vendor application if asked."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from marketplace.domain.accounts import IdentityAssertion, ReconciliationResult, Role
from marketplace.domain.vendors import LifecycleResult, clean_documents
from marketplace.repositories.base import AccountStore, VendorApplicationStore

from .account_reconciler import AccountReconciler
from .orphan_cleaner import OrphanCleaner
from .vendor_lifecycle import VendorLifecycleController

logger = logging.getLogger(__name__)


@dataclass
class OnboardingResult:
    reconciliation: ReconciliationResult
    lifecycle: Optional[LifecycleResult] = None


class OnboardingService:
    def __init__(self, accounts: AccountStore, applications: VendorApplicationStore) -> None:
        self.cleaner = OrphanCleaner(applications)
        self.reconciler = AccountReconciler(accounts, applications, cleaner=self.cleaner)
        self.lifecycle = VendorLifecycleController(accounts, applications, cleaner=self.cleaner)

    def federated_login(
        self,
        assertion: IdentityAssertion,
        role_intent: Role = Role.CUSTOMER,
        documents: Optional[Dict[str, str]] = None,
    ) -> OnboardingResult:
        """
        Reconcile the assertion. With a vendor intent the account is checked for
        eligibility and, when documents came along, the application is submitted.
        Without documents the account stays a customer until it applies.
        """
        reconciliation = self.reconciler.reconcile(assertion, role_intent)
        if Role(role_intent) is not Role.VENDOR:
            return OnboardingResult(reconciliation)

        account = reconciliation.account
        self.cleaner.cleanup(email=account.email)
        self.lifecycle.check_vendor_eligibility(account)
        docs = clean_documents(documents)
        if not docs:
            logger.info("vendor intent for account %s without documents; application deferred", account.account_id)
            return OnboardingResult(reconciliation)
        return OnboardingResult(reconciliation, self.lifecycle.submit(account.account_id, docs))
