"""
Shared fixtures for SmartSpend tests.

Every test runs against an in-memory store and a frozen clock
(2025-06-15 12:00 local time) unless it builds its own.
"""

import os
from datetime import datetime

import pytest

from smartspend.config import AppSettings, get_settings
from smartspend.models.ledger import Transaction, TransactionType
from smartspend.orchestrator import LedgerService
from smartspend.services.storage import InMemoryStore


FROZEN_NOW = datetime(2025, 6, 15, 12, 0, 0)


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Make sure no settings variables from the shell leak into tests."""
    app_fields = {name.upper() for name in AppSettings.model_fields}
    for name in list(os.environ):
        if name.startswith("SMARTSPEND_") or name.upper() in app_fields:
            monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def now():
    return FROZEN_NOW


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def service(store, now):
    """A ledger service over an empty in-memory store."""
    return LedgerService(store=store, clock=lambda: now)


_next_id = iter(range(1, 1_000_000))


def make_tx(
    amount,
    day="2025-06-10",
    category="Food",
    account="Cash",
    tx_type=TransactionType.EXPENSE,
    desc="",
    icon="🍔",
):
    """Build a stored transaction dated at local midnight of `day`."""
    date_value = f"{day}T00:00:00" if len(day) == 10 and day.count("-") == 2 else day
    return Transaction(
        id=next(_next_id),
        type=tx_type,
        amount=amount,
        category=category,
        icon=icon,
        account=account,
        date=date_value,
        desc=desc,
    )


@pytest.fixture
def tx():
    """Factory fixture for stored transactions."""
    return make_tx
