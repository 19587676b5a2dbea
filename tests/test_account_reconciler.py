from __future__ import annotations

import logging

import pytest
from sqlalchemy.exc import OperationalError

from marketplace.domain.accounts import AccountStatus, IdentityAssertion, Outcome, Role
from marketplace.domain.errors import ReservedName, StoreUnavailable, UniqueConstraintViolation
from marketplace.domain.vendors import ApplicationStatus
from marketplace.repositories import account_repository
from marketplace.services.account_reconciler import AccountReconciler


@pytest.fixture()
def reconciler(accounts, applications):
    return AccountReconciler(accounts, applications)


def _google(subject="sub-1", email="jane.doe@x.com", name="Jane Doe"):
    return IdentityAssertion(provider="google", subject_id=subject, email=email, display_name=name)


def test_creates_customer_with_derived_username(reconciler):
    result = reconciler.reconcile(_google())
    assert result.outcome is Outcome.CREATED
    acc = result.account
    assert acc.username == "jane_doe"
    assert acc.role is Role.CUSTOMER
    assert acc.status is AccountStatus.ACTIVE
    assert (acc.first_name, acc.last_name) == ("Jane", "Doe")
    assert acc.provider_subject_id == "sub-1"


def test_vendor_intent_does_not_promote(reconciler):
    result = reconciler.reconcile(_google(), Role.VENDOR)
    assert result.account.role is Role.CUSTOMER


def test_repeat_login_is_idempotent(reconciler, accounts):
    first = reconciler.reconcile(_google())
    second = reconciler.reconcile(_google())
    assert second.outcome is Outcome.LINKED
    assert second.account.account_id == first.account.account_id
    assert accounts.username_exists("jane_doe1") is False


def test_links_local_account_by_email(reconciler, make_account):
    local = make_account("jane.doe@x.com", "janed", password_hash="argon2$hash")
    result = reconciler.reconcile(_google())
    assert result.outcome is Outcome.LINKED
    assert result.account.account_id == local.account_id
    assert result.account.provider == "google"
    assert result.account.provider_subject_id == "sub-1"
    assert result.account.username == "janed"


def test_subject_match_wins_over_email_match(reconciler, make_account):
    a = make_account("a@x.com", "account_a", provider="google", provider_subject_id="sub-1")
    make_account("b@x.com", "account_b")
    result = reconciler.reconcile(_google(subject="sub-1", email="b@x.com"))
    assert result.outcome is Outcome.LINKED
    assert result.account.account_id == a.account_id
    assert result.account.email == "a@x.com"


def test_restore_anonymized_account_resets_vendor_state(reconciler, make_account, applications):
    old = make_account("jane.doe@x.com", "jane_doe", role=Role.VENDOR, status=AccountStatus.DELETED)
    app = applications.insert(account_id=old.account_id, status=ApplicationStatus.APPROVED)

    result = reconciler.reconcile(_google())

    assert result.outcome is Outcome.RESTORED
    acc = result.account
    assert acc.account_id == old.account_id
    assert acc.status is AccountStatus.ACTIVE
    assert acc.role is Role.CUSTOMER
    assert acc.provider_subject_id == "sub-1"
    assert applications.find_by_id(app.application_id) is None


def test_restore_reallocates_username_taken_meanwhile(reconciler, make_account):
    make_account("jane.doe@x.com", "jane_doe", status=AccountStatus.DELETED)
    make_account("someone@x.com", "jane_doe")
    result = reconciler.reconcile(_google())
    assert result.outcome is Outcome.RESTORED
    assert result.account.username == "jane_doe1"


def test_email_owned_by_other_subject_is_not_relinked(reconciler, make_account, caplog):
    existing = make_account("jane.doe@x.com", "jane_doe", provider="google", provider_subject_id="sub-old")
    with caplog.at_level(logging.WARNING, logger="marketplace.services.account_reconciler"):
        result = reconciler.reconcile(_google(subject="sub-new"))
    assert result.outcome is Outcome.LINKED
    assert result.account.account_id == existing.account_id
    assert result.account.provider_subject_id == "sub-old"
    assert "not relinked" in caplog.text


def test_concurrent_create_is_retried_as_link(reconciler, accounts, monkeypatch):
    real_insert = accounts.insert
    calls = []

    def racing_insert(**fields):
        calls.append(fields)
        if len(calls) == 1:
            # another request wins the race with the same identity
            real_insert(**fields)
            raise UniqueConstraintViolation("UNIQUE constraint failed: accounts.provider_subject_id")
        return real_insert(**fields)

    monkeypatch.setattr(accounts, "insert", racing_insert)
    result = reconciler.reconcile(_google())
    assert result.outcome is Outcome.LINKED
    assert result.account.provider_subject_id == "sub-1"
    assert len(calls) == 1


def test_second_conflict_propagates(reconciler, accounts, monkeypatch):
    def always_conflicts(**fields):
        raise UniqueConstraintViolation("UNIQUE constraint failed: accounts.email")

    monkeypatch.setattr(accounts, "insert", always_conflicts)
    with pytest.raises(UniqueConstraintViolation):
        reconciler.reconcile(_google())


def test_legacy_anonymized_holder_does_not_block_first_login(reconciler, make_account):
    make_account("deleted_7@deleted.local", "jane", first_name="Deleted", last_name="User")
    result = reconciler.reconcile(_google(subject="g-9", email="jane@x.com", name="Jane Roe"))
    assert result.outcome is Outcome.CREATED
    assert result.account.username == "jane"


def test_reserved_name_is_refused_on_create_and_restore(reconciler, make_account, accounts):
    with pytest.raises(ReservedName):
        reconciler.reconcile(_google(name="Deleted User"))
    assert accounts.find_by_email("jane.doe@x.com") is None

    old = make_account("jane.doe@x.com", "jane_doe", status=AccountStatus.DELETED)
    with pytest.raises(ReservedName):
        reconciler.reconcile(_google(name="Deleted User"))
    assert accounts.find_by_id(old.account_id).status is AccountStatus.DELETED


def test_store_outage_surfaces_as_unavailable(reconciler, monkeypatch):
    def unreachable():
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(account_repository, "get_session", unreachable)
    with pytest.raises(StoreUnavailable):
        reconciler.reconcile(_google())
