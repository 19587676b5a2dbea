from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from marketplace.app import create_app
from marketplace.repositories import account_repository

ADMIN = {"X-Admin-Token": "admin-secret"}


@pytest.fixture()
def client(temp_db):
    with TestClient(create_app()) as c:
        yield c


def _register(client, email="jane@x.com", username=""):
    resp = client.post(
        "/auth/register",
        json={"first_name": "Jane", "last_name": "Doe", "email": email, "password": "password123", "username": username},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["account"]


def test_register_login_and_duplicate(client):
    account = _register(client)
    assert account["username"] == "jane"
    assert account["role"] == "customer"

    assert client.post("/auth/login", json={"identifier": "jane", "password": "password123"}).status_code == 200
    assert client.post("/auth/login", json={"identifier": "jane", "password": "wrongpass"}).status_code == 401
    dup = client.post(
        "/auth/register",
        json={"first_name": "J", "email": "jane@x.com", "password": "password123"},
    )
    assert dup.status_code == 409
    short = client.post("/auth/register", json={"first_name": "J", "email": "j2@x.com", "password": "short"})
    assert short.status_code == 400


def test_federated_login_links_on_repeat(client):
    body = {"provider": "google", "subject_id": "sub-9", "email": "kim.lee@x.com", "display_name": "Kim Lee"}
    first = client.post("/auth/federated", json=body)
    assert first.status_code == 200, first.text
    assert first.json()["outcome"] == "created"
    assert first.json()["account"]["username"] == "kim_lee"
    second = client.post("/auth/federated", json=body)
    assert second.json()["outcome"] == "linked"
    assert second.json()["account"]["account_id"] == first.json()["account"]["account_id"]


def test_vendor_lifecycle_over_http(client, temp_db, orders):
    account = _register(client)
    account_id = account["account_id"]

    applied = client.post(
        f"/vendors/{account_id}/apply",
        data={"store_name": "Scoops"},
        files={"valid_id": ("id.png", b"fake-image", "image/png")},
    )
    assert applied.status_code == 201, applied.text
    application = applied.json()["application"]
    assert application["status"] == "pending"
    assert application["store_name"] == "Scoops"
    assert application["documents"]["valid_id"].startswith("/static/uploads/valid_id/")
    assert application["limits"] == {"plan": "free", "flavors": 5, "drums": 5, "orders": 30}
    stored = list((temp_db.parent / "uploads" / "valid_id").iterdir())
    assert len(stored) == 1

    app_id = application["application_id"]
    approved = client.post(f"/admin/vendors/{app_id}/approve", headers=ADMIN)
    assert approved.status_code == 200
    assert approved.json()["account_role"] == "vendor"

    again = client.post(f"/vendors/{account_id}/apply")
    assert again.status_code == 409
    assert again.json()["error"] == "AlreadyVendor"

    order = orders.insert(account_id, status="pending", customer_name="Ann", total_amount=120)
    preview = client.get(f"/admin/vendors/{app_id}/suspension", headers=ADMIN)
    assert [o["order_id"] for o in preview.json()["in_flight_orders"]] == [order.order_id]

    refused = client.post(f"/admin/vendors/{app_id}/suspend", json={}, headers=ADMIN)
    assert refused.status_code == 409
    assert refused.json()["error"] == "UnacknowledgedOrders"
    assert [o["order_id"] for o in refused.json()["orders"]] == [order.order_id]

    suspended = client.post(
        f"/admin/vendors/{app_id}/suspend",
        json={"acknowledged_order_ids": [order.order_id]},
        headers=ADMIN,
    )
    assert suspended.status_code == 200
    assert suspended.json()["application"]["status"] == "suspended"

    status = client.get(f"/vendors/{account_id}/status").json()
    assert status["state"] == "suspended"
    assert status["can_accept_orders"] is False

    illegal = client.post(f"/vendors/{account_id}/resubmit")
    assert illegal.status_code == 409
    assert illegal.json()["error"] == "IllegalTransition"

    reapplied = client.post(f"/vendors/{account_id}/reapply")
    assert reapplied.status_code == 200
    assert reapplied.json()["application"]["application_id"] == app_id
    assert reapplied.json()["application"]["status"] == "pending"


def test_admin_routes_require_token(client):
    assert client.post("/admin/vendors/1/approve").status_code == 401
    assert client.post("/admin/vendors/1/approve", headers={"X-Admin-Token": "nope"}).status_code == 401
    missing = client.post("/admin/vendors/1/approve", headers=ADMIN)
    assert missing.status_code == 404
    assert missing.json()["error"] == "ApplicationNotFound"


def test_admin_disabled_without_configured_token(client, monkeypatch):
    from marketplace.core import config as core_config

    monkeypatch.setenv("ADMIN_TOKEN", "")
    core_config.get_settings.cache_clear()
    assert client.post("/admin/vendors/1/approve", headers=ADMIN).status_code == 403


def test_unknown_account_and_deletion(client):
    assert client.post("/vendors/9999/apply").status_code == 404
    account = _register(client)
    assert client.delete(f"/auth/accounts/{account['account_id']}").status_code == 401
    deleted = client.delete(f"/auth/accounts/{account['account_id']}", headers=ADMIN)
    assert deleted.status_code == 200
    assert deleted.json()["account"]["status"] == "deleted"
    assert client.delete("/auth/accounts/9999", headers=ADMIN).status_code == 404


def test_security_headers(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_account_deletion_requires_admin_token(client):
    account = _register(client)
    url = f"/auth/accounts/{account['account_id']}"
    assert client.delete(url).status_code == 401
    assert client.delete(url, headers={"X-Admin-Token": "nope"}).status_code == 401
    login = client.post("/auth/login", json={"identifier": "jane", "password": "password123"})
    assert login.status_code == 200


def test_reserved_name_is_refused(client):
    resp = client.post(
        "/auth/federated",
        json={"provider": "google", "subject_id": "sub-x", "email": "someone@x.com", "display_name": "Deleted User"},
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "ReservedName"


def test_store_outage_maps_to_503(client, monkeypatch):
    def unreachable():
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(account_repository, "get_session", unreachable)
    resp = client.post(
        "/auth/federated",
        json={"provider": "google", "subject_id": "sub-1", "email": "kim@x.com", "display_name": "Kim"},
    )
    assert resp.status_code == 503
    assert resp.json()["error"] == "StoreUnavailable"
