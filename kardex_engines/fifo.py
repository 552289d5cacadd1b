"""
kardex_engines.fifo -- First-expiry-first-out lot allocation.

Responsibility:
    Decide which lots at a location satisfy an outbound quantity of one item,
    consuming the soonest-expiring non-expired lots first and reaching into
    expired lots only when explicitly allowed and justified.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  ``today`` is an argument;
    this module never reads a clock.

Invariants enforced:
    - Lots are ordered by (expires_at, lot_code); ties never depend on input
      order, so identical inputs give identical allocations.
    - No allocation exceeds a lot's available quantity.
    - Expired lots are used only when allow_expired is set and a non-blank
      reason is given; only then is ``used_expired`` True.

Failure modes:
    - InvalidQuantityError: requested_qty <= 0 (raised before lots are read).
    - InsufficientNonExpiredStockError: non-expired stock is short and there
      are no expired lots to fall back on.
    - ExpiredLotConfirmationRequiredError: expired lots are needed but not
      allowed.
    - ReasonRequiredForExpiredUseError: expired lots allowed without reason.

A result with ``missing_qty > 0`` is not an error here; callers that must
not commit a partial allocation check it themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable

from kardex_engines.tracer import traced_engine
from kardex_kernel.domain.values import ZERO, round_quantity
from kardex_kernel.exceptions import (
    ExpiredLotConfirmationRequiredError,
    InsufficientNonExpiredStockError,
    InvalidQuantityError,
    ReasonRequiredForExpiredUseError,
)

EXPIRED_LOTS_USED_WARNING = "expired lots were used to complete the allocation"


@dataclass(frozen=True, slots=True)
class LotAvailability:
    """Stock of one lot at one location, as seen by the allocator."""

    lot_id: str
    lot_code: str
    item_id: str
    location_id: str
    expires_at: date
    available_qty: Decimal


@dataclass(frozen=True, slots=True)
class FifoAllocation:
    """Quantity taken from one lot."""

    lot_id: str
    lot_code: str
    quantity: Decimal
    expires_at: date
    is_expired: bool


@dataclass(frozen=True, slots=True)
class FifoResult:
    """Outcome of a FIFO allocation."""

    allocations: tuple[FifoAllocation, ...]
    fulfilled_qty: Decimal
    missing_qty: Decimal
    used_expired: bool
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_complete(self) -> bool:
        return self.missing_qty == ZERO


def _fifo_order(lot: LotAvailability) -> tuple[date, str]:
    return (lot.expires_at, lot.lot_code)


@traced_engine(
    "fifo",
    "1.0",
    fingerprint_fields=("item_id", "location_id", "requested_qty", "allow_expired", "today"),
)
def allocate_fifo(
    *,
    item_id: str,
    location_id: str,
    requested_qty: Decimal,
    available_lots: Iterable[LotAvailability],
    allow_expired: bool = False,
    reason: str | None = None,
    today: date,
) -> FifoResult:
    """Allocate ``requested_qty`` across lots, soonest expiry first."""
    requested = round_quantity(requested_qty)
    if requested <= ZERO:
        raise InvalidQuantityError(requested_qty, "requested quantity must be greater than zero")

    candidates = [
        lot
        for lot in available_lots
        if lot.item_id == item_id
        and lot.location_id == location_id
        and lot.available_qty > ZERO
    ]
    non_expired = sorted(
        (lot for lot in candidates if lot.expires_at >= today), key=_fifo_order
    )
    expired = sorted(
        (lot for lot in candidates if lot.expires_at < today), key=_fifo_order
    )

    non_expired_total = sum((lot.available_qty for lot in non_expired), ZERO)
    selected = list(non_expired)
    warnings: list[str] = []

    if non_expired_total < requested:
        if not expired:
            raise InsufficientNonExpiredStockError(
                item_id, location_id, requested, round_quantity(non_expired_total)
            )
        if not allow_expired:
            raise ExpiredLotConfirmationRequiredError(
                item_id, location_id, requested, round_quantity(non_expired_total)
            )
        if not (reason or "").strip():
            raise ReasonRequiredForExpiredUseError(item_id, location_id)
        selected.extend(expired)
        warnings.append(EXPIRED_LOTS_USED_WARNING)

    pending = requested
    allocations: list[FifoAllocation] = []
    for lot in selected:
        if pending <= ZERO:
            break
        take = round_quantity(min(lot.available_qty, pending))
        if take <= ZERO:
            continue
        allocations.append(
            FifoAllocation(
                lot_id=lot.lot_id,
                lot_code=lot.lot_code,
                quantity=take,
                expires_at=lot.expires_at,
                is_expired=lot.expires_at < today,
            )
        )
        pending -= take

    missing = max(pending, ZERO)
    return FifoResult(
        allocations=tuple(allocations),
        fulfilled_qty=round_quantity(requested - missing),
        missing_qty=round_quantity(missing),
        used_expired=any(a.is_expired for a in allocations),
        warnings=tuple(warnings),
    )
