"""
kardex_services -- Package init and public API.

Responsibility:
    Stateful orchestration that composes the pure engines (kardex_engines/)
    with an inventory store and a clock.  This is the only layer that holds
    store transactions or reads the clock.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction (enforced by tests/architecture/test_layer_boundary.py):
        kardex_services/ -> kardex_engines/  (allowed)
        kardex_services/ -> kardex_kernel/   (allowed)
        kardex_engines/  -> kardex_services/ (FORBIDDEN)
        kardex_kernel/   -> kardex_services/ (FORBIDDEN)

Audit relevance:
    This package is the import surface for embedding callers.
"""

from kardex_services.integration import (
    KardexServices,
    build_services,
    build_sql_ledger,
    build_sql_services,
)
from kardex_services.ledger_service import KardexLedger
from kardex_services.memory_store import InMemoryInventoryStore
from kardex_services.reconciliation_service import StockReconciliationService
from kardex_services.sql_store import SqlInventoryStore
from kardex_services.stock_selector import LocationStock, StockSelector
from kardex_services.store import InventorySnapshot, InventoryStore, StoreTransaction
from kardex_services.work_orders import WorkOrderRegistry

__all__ = [
    # Ledger
    "KardexLedger",
    "StockReconciliationService",
    # Read side
    "LocationStock",
    "StockSelector",
    # Work orders
    "WorkOrderRegistry",
    # Stores
    "InMemoryInventoryStore",
    "InventorySnapshot",
    "InventoryStore",
    "SqlInventoryStore",
    "StoreTransaction",
    # Wiring
    "KardexServices",
    "build_services",
    "build_sql_ledger",
    "build_sql_services",
]
