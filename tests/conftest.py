from __future__ import annotations

import pytest

from marketplace.core import config as core_config
from marketplace.core.rate_limiter import reset_rate_limits
from marketplace.db import models
from marketplace.db import session as db_session
from marketplace.db.create_tables import create_all
from marketplace.repositories.account_repository import SQLAccountRepository
from marketplace.repositories.order_repository import SQLOrderRepository
from marketplace.repositories.vendor_repository import SQLVendorApplicationRepository


@pytest.fixture()
def temp_db(tmp_path, monkeypatch):
    """Temporary SQLite database; caches are cleared so every test reads its own env."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.setenv("UPLOADS_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("ADMIN_TOKEN", "admin-secret")
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]
    reset_rate_limits()

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    create_all()

    yield db_file

    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def accounts(temp_db):
    return SQLAccountRepository()


@pytest.fixture()
def orders(temp_db):
    return SQLOrderRepository()


@pytest.fixture()
def applications(temp_db, orders):
    return SQLVendorApplicationRepository(orders)


@pytest.fixture()
def make_account(accounts):
    def _make(email, username, **fields):
        fields.setdefault("first_name", "Test")
        fields.setdefault("last_name", "Person")
        return accounts.insert(email=email, username=username, **fields)

    return _make
