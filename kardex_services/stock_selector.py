"""
Module: kardex_services.stock_selector
Responsibility: Read-only stock queries over a committed snapshot: totals per
    item, per-location breakdown, lots approaching or past expiry, the approval
    queue, and movement history.
Architecture position: Services > read side.  Reads through
    ``InventoryStore.snapshot`` only; never opens a write transaction.

Invariants enforced:
    - Read-only: the selector never writes to the store.
    - Quantities come from the stock projection; absent keys hold zero.
    - Expiry is judged against ``Clock.today()`` of the injected clock.

Failure modes:
    - Returns empty results or zero quantities for unknown items/locations.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from kardex_kernel.domain.clock import Clock, SystemClock
from kardex_kernel.domain.inventory import (
    ACTIVE_WORK_ORDER_STATUSES,
    APPROVAL_REQUIRED_TYPES,
    KardexMovement,
    Lot,
    MovementStatus,
    is_expired,
    is_near_expiry,
)
from kardex_kernel.domain.values import ZERO, StockKey, round_quantity
from kardex_services.store import InventoryStore


@dataclass(frozen=True)
class LocationStock:
    """One projection row, with lot details when the row is lot-tracked."""

    location_id: str
    item_id: str
    lot_id: str | None
    quantity: Decimal
    lot_code: str | None = None
    expires_at: date | None = None


class StockSelector:
    """
    Read-side queries of one store.

    Contract:
        Every method takes the company explicitly and reads one fresh
        snapshot of it.
    Non-goals:
        - No pagination or report formatting.
    """

    def __init__(self, store: InventoryStore, clock: Clock | None = None):
        self._store = store
        self._clock = clock or SystemClock()

    def item_total_stock(self, company_id: str, item_id: str) -> Decimal:
        """Sum of the item's quantity across every location and lot."""
        balances = self._store.snapshot(company_id).balances
        total = sum(
            (qty for key, qty in balances.items() if key.item_id == item_id),
            ZERO,
        )
        return round_quantity(total)

    def location_stock(
        self,
        company_id: str,
        location_id: str | None = None,
        item_id: str | None = None,
    ) -> list[LocationStock]:
        """Projection rows, optionally narrowed to a location and/or item, in key order."""
        snapshot = self._store.snapshot(company_id)
        rows: list[LocationStock] = []
        for key in sorted(snapshot.balances):
            if location_id is not None and key.location_id != location_id:
                continue
            if item_id is not None and key.item_id != item_id:
                continue
            lot = snapshot.lot(key.lot_id) if key.lot_id is not None else None
            rows.append(
                LocationStock(
                    location_id=key.location_id,
                    item_id=key.item_id,
                    lot_id=key.lot_id,
                    quantity=snapshot.balances[key],
                    lot_code=lot.lot_code if lot else None,
                    expires_at=lot.expires_at if lot else None,
                )
            )
        return rows

    def quantity(self, key: StockKey) -> Decimal:
        return self._store.snapshot(key.company_id).balances.get(key, ZERO)

    def expiring_lots(self, company_id: str, within_days: int = 30) -> list[Lot]:
        """Lots whose expiry falls within ``within_days`` of today, expired ones included."""
        today = self._clock.today()
        lots = self._store.snapshot(company_id).lots
        return sorted(
            (lot for lot in lots if is_near_expiry(lot, today, within_days)),
            key=lambda lot: (lot.expires_at, lot.lot_code),
        )

    def expired_lots(self, company_id: str) -> list[Lot]:
        today = self._clock.today()
        lots = self._store.snapshot(company_id).lots
        return sorted(
            (lot for lot in lots if is_expired(lot, today)),
            key=lambda lot: (lot.expires_at, lot.lot_code),
        )

    def pending_approvals(self, company_id: str) -> list[KardexMovement]:
        """PENDING adjustments and scrap awaiting a decision, oldest first."""
        movements = self._store.snapshot(company_id).movements
        return sorted(
            (
                m for m in movements
                if m.status == MovementStatus.PENDING
                and m.movement_type in APPROVAL_REQUIRED_TYPES
            ),
            key=lambda m: (m.created_at, m.id),
        )

    def movement_history(
        self,
        company_id: str,
        item_id: str | None = None,
        location_id: str | None = None,
    ) -> list[KardexMovement]:
        """
        Ledger entries touching the item and/or location, newest first.

        A transfer matches a location filter through either of its ends.
        """
        movements = self._store.snapshot(company_id).movements

        def touches(movement: KardexMovement) -> bool:
            return any(
                (item_id is None or line.item_id == item_id)
                and (location_id is None or line.location_id == location_id)
                for line in movement.lines
            )

        return sorted(
            (m for m in movements if touches(m)),
            key=lambda m: (m.created_at, m.id),
            reverse=True,
        )

    def count_open_work_orders(self, company_id: str) -> int:
        """Work orders still OPEN or IN_PROGRESS."""
        work_orders = self._store.snapshot(company_id).work_orders
        return sum(1 for wo in work_orders if wo.status in ACTIVE_WORK_ORDER_STATUSES)
