"""
Pytest fixtures for the kardex test suite.

Provides:
- Structured logging for every test, plus a ``captured_logs`` helper
- A deterministic clock placed on 2026-01-01 (before every mock lot expires,
  except LOT-SOL-2301)
- In-memory stores, empty or seeded with the reference warehouse of
  company COMP-BOG-001
- Ledger, selector and work-order registry wired to the same store and clock

SQL-backed fixtures live in tests/models/conftest.py.
"""

import itertools
import json
import logging
from dataclasses import replace
from datetime import UTC, date, datetime
from decimal import Decimal
from io import StringIO

import pytest

from kardex_kernel.domain.clock import DeterministicClock
from kardex_kernel.domain.drafts import InitialStockDraft
from kardex_kernel.domain.inventory import (
    Item,
    Lot,
    MovementType,
    Requester,
    Role,
    WorkOrder,
    WorkOrderStatus,
)
from kardex_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from kardex_services.ledger_service import KardexLedger
from kardex_services.memory_store import InMemoryInventoryStore
from kardex_services.stock_selector import StockSelector
from kardex_services.work_orders import WorkOrderRegistry

COMPANY_ID = "COMP-BOG-001"
OTHER_COMPANY_ID = "COMP-MED-002"

LOC_A1 = "LOC-R1-A1"
LOC_B2 = "LOC-R1-B2"
LOC_SCRAP = "LOC-MERMA"

RESIN = "ITEM-RES-001"
GLOVES = "ITEM-GUA-001"
SOLVENT = "ITEM-SOL-002"

RESIN_LOT_2401 = "LOT-RES-2401"
RESIN_LOT_2402 = "LOT-RES-2402"
SOLVENT_LOT_2407 = "LOT-SOL-2407"
SOLVENT_LOT_2301 = "LOT-SOL-2301"  # expired on the fixture clock

WORK_ORDER_ID = "OT-20260219-001"

CATALOG_ITEMS = (
    Item(RESIN, COMPANY_ID, "RES-25KG", "Epoxy resin 25kg", "kg", has_expiry=True, by_lot=True),
    Item(GLOVES, COMPANY_ID, "GUA-NIT-M", "Nitrile glove M", "pair"),
    Item(SOLVENT, COMPANY_ID, "SOL-500ML", "Solvent 500ml", "unit", has_expiry=True, by_lot=True),
)

CATALOG_LOTS = (
    Lot(RESIN_LOT_2401, COMPANY_ID, RESIN, "RES-2401", date(2026, 5, 12)),
    Lot(RESIN_LOT_2402, COMPANY_ID, RESIN, "RES-2402", date(2026, 10, 30)),
    Lot(SOLVENT_LOT_2407, COMPANY_ID, SOLVENT, "SOL-2407", date(2026, 3, 10)),
    Lot(SOLVENT_LOT_2301, COMPANY_ID, SOLVENT, "SOL-2301", date(2025, 12, 1)),
)

# (scan code, location, quantity)
OPENING_STOCK = (
    (f"LOT:{COMPANY_ID}:{RESIN_LOT_2401}", LOC_A1, Decimal("120")),
    (f"LOT:{COMPANY_ID}:{RESIN_LOT_2402}", LOC_A1, Decimal("90")),
    (f"ITEM:{COMPANY_ID}:{GLOVES}", LOC_B2, Decimal("300")),
    (f"LOT:{COMPANY_ID}:{SOLVENT_LOT_2407}", LOC_A1, Decimal("45")),
    (f"LOT:{COMPANY_ID}:{SOLVENT_LOT_2301}", LOC_A1, Decimal("12")),
)


def item_code(item_id: str, company_id: str = COMPANY_ID) -> str:
    return f"ITEM:{company_id}:{item_id}"


def lot_code(lot_id: str, company_id: str = COMPANY_ID) -> str:
    return f"LOT:{company_id}:{lot_id}"


def sequential_ids():
    """Movement ids that sort in creation order."""
    counter = itertools.count(1)

    def _next(movement_type: MovementType) -> str:
        return f"MOV-{next(counter):06d}-{movement_type.value}"

    return _next


def seed_catalog(store, company_id: str = COMPANY_ID) -> None:
    with store.transaction(company_id) as tx:
        for item in CATALOG_ITEMS:
            tx.save_item(replace(item, company_id=company_id))
        for lot in CATALOG_LOTS:
            tx.save_lot(replace(lot, company_id=company_id))
        tx.save_work_order(
            WorkOrder(
                work_order_id=WORK_ORDER_ID,
                company_id=company_id,
                code=WORK_ORDER_ID,
                responsible="Paula Rojas",
                cost_center="CC-PAINT",
                status=WorkOrderStatus.IN_PROGRESS,
                notes="Pilot batch P-778",
            )
        )


def seed_opening_stock(ledger: KardexLedger, requester: Requester) -> None:
    for scan_code, location_id, quantity in OPENING_STOCK:
        ledger.submit_movement(
            InitialStockDraft(scan_code=scan_code, quantity=quantity, location_id=location_id),
            requester,
        )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture kardex_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.submit_movement(...)
            logs = captured_logs()
            assert any(r["message"] == "movement_submitted" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("kardex_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# ---------------------------------------------------------------------------
# Actors and time
# ---------------------------------------------------------------------------


@pytest.fixture
def deterministic_clock():
    """Clock fixed on 2026-01-01 12:00 UTC."""
    return DeterministicClock(datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def warehouse_keeper() -> Requester:
    return Requester(COMPANY_ID, "Ana Torres", Role.BODEGUERO)


@pytest.fixture
def supervisor() -> Requester:
    return Requester(COMPANY_ID, "Luis Gomez", Role.SUPERVISOR)


@pytest.fixture
def admin() -> Requester:
    return Requester(COMPANY_ID, "Marta Diaz", Role.ADMIN)


# ---------------------------------------------------------------------------
# Stores and services
# ---------------------------------------------------------------------------


@pytest.fixture
def memory_store() -> InMemoryInventoryStore:
    return InMemoryInventoryStore()


@pytest.fixture
def catalog_store(memory_store) -> InMemoryInventoryStore:
    """Store with the reference catalog and no stock."""
    seed_catalog(memory_store)
    return memory_store


@pytest.fixture
def ledger(catalog_store, deterministic_clock) -> KardexLedger:
    return KardexLedger(catalog_store, deterministic_clock, id_factory=sequential_ids())


@pytest.fixture
def stocked_ledger(ledger, warehouse_keeper) -> KardexLedger:
    """Ledger whose store holds the reference opening stock."""
    seed_opening_stock(ledger, warehouse_keeper)
    return ledger


@pytest.fixture
def selector(catalog_store, deterministic_clock) -> StockSelector:
    return StockSelector(catalog_store, deterministic_clock)


@pytest.fixture
def work_order_registry(catalog_store, deterministic_clock) -> WorkOrderRegistry:
    return WorkOrderRegistry(catalog_store, deterministic_clock)
