from __future__ import annotations

import pytest

from marketplace.domain.accounts import IdentityAssertion, Outcome, Role
from marketplace.domain.errors import AlreadyVendor
from marketplace.domain.vendors import ApplicationStatus
from marketplace.services.onboarding import OnboardingService

DOCS = {"valid_id": "/static/uploads/valid_id/id.png"}


@pytest.fixture()
def onboarding(accounts, applications):
    return OnboardingService(accounts, applications)


def _assertion(email="shop@x.com"):
    return IdentityAssertion(provider="google", subject_id="sub-shop", email=email, display_name="Shop Owner")


def test_customer_login_skips_vendor_flow(onboarding, applications):
    result = onboarding.federated_login(_assertion())
    assert result.reconciliation.outcome is Outcome.CREATED
    assert result.lifecycle is None
    assert applications.find_by_account_id(result.reconciliation.account.account_id) is None


def test_vendor_login_with_documents_submits(onboarding):
    result = onboarding.federated_login(_assertion(), Role.VENDOR, DOCS)
    assert result.lifecycle is not None
    assert result.lifecycle.application.status is ApplicationStatus.PENDING
    assert result.reconciliation.account.role is Role.CUSTOMER


def test_vendor_login_without_documents_defers(onboarding, applications):
    result = onboarding.federated_login(_assertion(), Role.VENDOR)
    assert result.lifecycle is None
    assert applications.find_by_account_id(result.reconciliation.account.account_id) is None


def test_approved_vendor_is_turned_away(onboarding):
    first = onboarding.federated_login(_assertion(), Role.VENDOR, DOCS)
    onboarding.lifecycle.approve(first.lifecycle.application.application_id)
    with pytest.raises(AlreadyVendor):
        onboarding.federated_login(_assertion(), Role.VENDOR, DOCS)
    # plain sign-in still works
    assert onboarding.federated_login(_assertion()).reconciliation.outcome is Outcome.LINKED
