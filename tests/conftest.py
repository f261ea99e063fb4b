"""Shared test fixtures."""

import os

import pytest

from meridian import create_service
from meridian.cache import InMemoryRateCache
from meridian.config import get_settings
from meridian.currencies import DatabaseCurrencyDirectory
from meridian.fx.store import RateStore


@pytest.fixture
def db_service(tmp_path):
    """Provide a fresh SQLite DatabaseService for each test."""
    db_path = tmp_path / "test.db"
    service = create_service(f"sqlite:///{db_path}")
    service.connect()
    yield service
    service.close()


@pytest.fixture
def directory(db_service):
    """Currency directory seeded with the default currencies."""
    currencies = DatabaseCurrencyDirectory(db_service)
    currencies.ensure_schema()
    currencies.seed()
    return currencies


@pytest.fixture
def store(db_service):
    rate_store = RateStore(db_service)
    rate_store.ensure_schema()
    return rate_store


@pytest.fixture
def cache():
    return InMemoryRateCache()


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Keep MERIDIAN_* variables from the host out of the cached settings."""
    for name in list(os.environ):
        if name.startswith("MERIDIAN_"):
            monkeypatch.delenv(name)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
