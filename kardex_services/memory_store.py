"""
kardex_services.memory_store -- In-process inventory store.

Responsibility:
    Keep catalog, ledger and projection of every company in memory behind
    the ``InventoryStore`` contract.  Used by tests and embedded callers.

Architecture position:
    Services -- store implementation.  No SQLAlchemy.

Invariants enforced:
    - One ``threading.Lock`` per company serializes its transactions.
    - Writes are staged on a private copy of the company state and swapped
      in only when the ``with`` block exits normally.
    - Stored domain objects are frozen dataclasses, so shallow copies of the
      containers are enough to isolate a transaction.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from kardex_kernel.domain.inventory import Item, KardexMovement, Lot, WorkOrder
from kardex_kernel.domain.values import ZERO, StockKey, round_quantity
from kardex_kernel.exceptions import MovementNotFoundError, NotPendingError
from kardex_kernel.logging_config import get_logger
from kardex_services.store import InventorySnapshot, InventoryStore, StoreTransaction

logger = get_logger("services.memory_store")


@dataclass
class _CompanyState:
    items: dict[str, Item] = field(default_factory=dict)
    lots: dict[str, Lot] = field(default_factory=dict)
    work_orders: dict[str, WorkOrder] = field(default_factory=dict)
    movements: dict[str, KardexMovement] = field(default_factory=dict)
    balances: dict[StockKey, Decimal] = field(default_factory=dict)

    def copy(self) -> _CompanyState:
        return _CompanyState(
            items=dict(self.items),
            lots=dict(self.lots),
            work_orders=dict(self.work_orders),
            movements=dict(self.movements),
            balances=dict(self.balances),
        )


class _MemoryTransaction(StoreTransaction):
    """Staged view of one company's state."""

    def __init__(self, company_id: str, state: _CompanyState):
        super().__init__(company_id)
        self._state = state

    def get_item(self, item_id: str) -> Item | None:
        return self._state.items.get(item_id)

    def get_lot(self, lot_id: str) -> Lot | None:
        return self._state.lots.get(lot_id)

    def get_work_order(self, work_order_id: str) -> WorkOrder | None:
        return self._state.work_orders.get(work_order_id)

    def list_work_orders(self) -> list[WorkOrder]:
        return list(self._state.work_orders.values())

    def save_item(self, item: Item) -> None:
        self._state.items[item.item_id] = item

    def save_lot(self, lot: Lot) -> None:
        self._state.lots[lot.lot_id] = lot

    def save_work_order(self, work_order: WorkOrder) -> None:
        self._state.work_orders[work_order.work_order_id] = work_order

    def load_balances(self) -> dict[StockKey, Decimal]:
        return dict(self._state.balances)

    def save_balances(
        self,
        balances: Mapping[StockKey, Decimal],
        updated_at: datetime,
    ) -> None:
        self._state.balances = {
            key: round_quantity(qty) for key, qty in balances.items() if qty > ZERO
        }

    def get_movement(self, movement_id: str) -> KardexMovement | None:
        return self._state.movements.get(movement_id)

    def list_movements(self) -> list[KardexMovement]:
        return list(self._state.movements.values())

    def add_movement(self, movement: KardexMovement) -> None:
        if movement.id in self._state.movements:
            raise ValueError(f"Movement {movement.id} already exists")
        self._state.movements[movement.id] = movement

    def record_decision(self, movement: KardexMovement) -> None:
        stored = self._state.movements.get(movement.id)
        if stored is None:
            raise MovementNotFoundError(movement.id)
        if not stored.is_pending:
            raise NotPendingError(movement.id, stored.status.value)
        self._state.movements[movement.id] = movement


class InMemoryInventoryStore(InventoryStore):
    """
    Thread-safe in-memory store.

    Contract:
        Transactions of the same company are serialized by a per-company
        lock; transactions of different companies run concurrently.

    Non-goals:
        No durability; state lives as long as the instance.
    """

    def __init__(self) -> None:
        self._states: dict[str, _CompanyState] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _company_lock(self, company_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(company_id)
            if lock is None:
                lock = self._locks[company_id] = threading.Lock()
                self._states[company_id] = _CompanyState()
            return lock

    @contextmanager
    def transaction(self, company_id: str) -> Iterator[StoreTransaction]:
        lock = self._company_lock(company_id)
        with lock:
            staged = self._states[company_id].copy()
            yield _MemoryTransaction(company_id, staged)
            # Only reached when the block raised nothing.
            self._states[company_id] = staged
            logger.debug(
                "memory_transaction_committed",
                extra={"company_id": company_id},
            )

    def snapshot(self, company_id: str) -> InventorySnapshot:
        lock = self._company_lock(company_id)
        with lock:
            state = self._states[company_id]
            return InventorySnapshot(
                company_id=company_id,
                balances=dict(state.balances),
                movements=tuple(state.movements.values()),
                items=tuple(state.items.values()),
                lots=tuple(state.lots.values()),
                work_orders=tuple(state.work_orders.values()),
            )

    def tamper_balance(self, key: StockKey, quantity: Decimal) -> None:
        """Overwrite one projection row behind the ledger's back. FOR TESTING ONLY."""
        lock = self._company_lock(key.company_id)
        with lock:
            balances = self._states[key.company_id].balances
            if quantity > ZERO:
                balances[key] = quantity
            else:
                balances.pop(key, None)
