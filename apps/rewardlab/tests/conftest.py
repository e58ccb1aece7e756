"""Pytest configuration and shared fixtures."""

import pytest

from rewardlab import queries
from rewardlab.config import Config
from rewardlab.db import open_store


@pytest.fixture(autouse=True)
def non_atomic_default(monkeypatch):
    monkeypatch.setattr(Config, "ATOMIC_WORKFLOWS", False)


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "data" / "rewards.db")


@pytest.fixture
def store(db_path):
    with open_store(db_path) as s:
        yield s


@pytest.fixture
def gems(store) -> int:
    return queries.create_currency(store, "Gems", "G")


@pytest.fixture
def sprint(store, gems) -> int:
    """Event "Sprint" with one 10-point task and one item costing 5 with stock 2."""
    event_id = queries.create_event(store, "Sprint", gems, is_time_limited=False)
    queries.create_task(store, event_id, "Write tests", 10)
    queries.create_store_item(store, event_id, "Extra break", cost=5, stock=2, category="Boost")
    return event_id
