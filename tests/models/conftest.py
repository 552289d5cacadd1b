"""
SQL fixtures: an in-memory SQLite database with the kardex schema.
"""

import pytest

from kardex_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from kardex_services.ledger_service import KardexLedger
from kardex_services.sql_store import SqlInventoryStore
from tests.conftest import seed_catalog, sequential_ids


@pytest.fixture
def sql_session_factory():
    init_engine_from_url("sqlite://")
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()


@pytest.fixture
def sql_store(sql_session_factory) -> SqlInventoryStore:
    store = SqlInventoryStore(sql_session_factory)
    seed_catalog(store)
    return store


@pytest.fixture
def sql_ledger(sql_store, deterministic_clock) -> KardexLedger:
    return KardexLedger(sql_store, deterministic_clock, id_factory=sequential_ids())
