"""
kardex_services.store -- Persistence interface of the inventory ledger.

Responsibility:
    Define the contract every store implementation honours: a per-company
    unit of work (``transaction``) that stages reads and writes and commits
    them atomically, plus a read-only ``snapshot`` for reporting and
    reconciliation.

Architecture position:
    Services -- the seam between orchestration and persistence.  The ledger,
    reconciliation service, stock selector and work-order registry are
    written against these abstract classes only.  Implementations:
    ``memory_store.InMemoryInventoryStore`` and ``sql_store.SqlInventoryStore``.

Invariants enforced:
    - ``transaction(company_id)`` is the mutual exclusion boundary for one
      company: two transactions of the same company never overlap.
    - Leaving the ``with`` block normally commits every staged write; an
      exception discards all of them.
    - ``record_decision`` refuses to overwrite a movement that is no longer
      PENDING in the store, so a lost approval race surfaces NotPendingError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from kardex_kernel.domain.inventory import Item, KardexMovement, Lot, WorkOrder
from kardex_kernel.domain.values import StockKey


class StoreTransaction(ABC):
    """
    Reads and staged writes of one company inside one unit of work.

    Contract:
        Every read is scoped to ``company_id``.  Writes become visible to
        other transactions only when the owning ``transaction`` commits.
        Also satisfies ``kardex_engines.identity.ReferenceCatalog``.
    """

    def __init__(self, company_id: str):
        self.company_id = company_id

    # -- catalog ------------------------------------------------------------

    @abstractmethod
    def get_item(self, item_id: str) -> Item | None: ...

    @abstractmethod
    def get_lot(self, lot_id: str) -> Lot | None: ...

    @abstractmethod
    def get_work_order(self, work_order_id: str) -> WorkOrder | None: ...

    @abstractmethod
    def list_work_orders(self) -> list[WorkOrder]: ...

    @abstractmethod
    def save_item(self, item: Item) -> None: ...

    @abstractmethod
    def save_lot(self, lot: Lot) -> None: ...

    @abstractmethod
    def save_work_order(self, work_order: WorkOrder) -> None: ...

    # -- projection ---------------------------------------------------------

    @abstractmethod
    def load_balances(self) -> dict[StockKey, Decimal]:
        """Current projection of the company; absent keys hold zero."""

    @abstractmethod
    def save_balances(
        self,
        balances: Mapping[StockKey, Decimal],
        updated_at: datetime,
    ) -> None:
        """Replace the company projection with ``balances``."""

    # -- ledger -------------------------------------------------------------

    @abstractmethod
    def get_movement(self, movement_id: str) -> KardexMovement | None: ...

    @abstractmethod
    def list_movements(self) -> list[KardexMovement]:
        """Every ledger entry of the company, in creation order."""

    @abstractmethod
    def add_movement(self, movement: KardexMovement) -> None:
        """Append a new ledger entry."""

    @abstractmethod
    def record_decision(self, movement: KardexMovement) -> None:
        """
        Persist the decided copy of a PENDING movement.

        Raises:
            MovementNotFoundError: the movement does not exist.
            NotPendingError: the stored movement is no longer PENDING.
        """


@dataclass(frozen=True)
class InventorySnapshot:
    """Read-only, consistent view of one company's ledger and projection."""

    company_id: str
    balances: Mapping[StockKey, Decimal] = field(default_factory=dict)
    movements: tuple[KardexMovement, ...] = ()
    items: tuple[Item, ...] = ()
    lots: tuple[Lot, ...] = ()
    work_orders: tuple[WorkOrder, ...] = ()

    def lot(self, lot_id: str) -> Lot | None:
        for lot in self.lots:
            if lot.lot_id == lot_id:
                return lot
        return None


class InventoryStore(ABC):
    """Factory of per-company units of work and snapshots."""

    @abstractmethod
    def transaction(self, company_id: str) -> AbstractContextManager[StoreTransaction]:
        """
        Open the exclusive unit of work of ``company_id``.

        Usage:
            with store.transaction("COMP-1") as tx:
                tx.add_movement(movement)
        """

    @abstractmethod
    def snapshot(self, company_id: str) -> InventorySnapshot:
        """Read-only view of committed state; never writes."""
