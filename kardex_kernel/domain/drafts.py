"""
Movement drafts (``kardex_kernel.domain.drafts``).

Responsibility
--------------
Typed, immutable requests for new ledger entries.  One draft class per
movement type; each carries exactly the fields its type needs and validates
its shape once, at construction.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects, zero I/O.  Drafts are the
input of ``KardexLedger.submit_movement``; they never reach the store.

Invariants enforced
-------------------
* Quantity is a finite Decimal greater than zero after rounding to
  ``QUANTITY_PLACES`` (cycle counts accept zero).
* A transfer names a destination different from its source.

Failure modes
-------------
* ``InvalidQuantityError`` -- zero, negative or non-numeric quantity.
* ``MissingDestinationError`` -- transfer without destination.
* ``InvalidDestinationError`` -- transfer destination equals source.

Business rules that depend on the catalog or on the workflow (reasons,
work orders, lots, approvals) are checked by the validator and the ledger,
not here.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar, Union

from kardex_kernel.domain.inventory import AdjustDirection, MovementType
from kardex_kernel.domain.values import ZERO, round_quantity
from kardex_kernel.exceptions import (
    InvalidDestinationError,
    InvalidQuantityError,
    MissingDestinationError,
)


def _positive_quantity(value: object) -> Decimal:
    quantity = round_quantity(value)
    if quantity <= ZERO:
        raise InvalidQuantityError(value)
    return quantity


@dataclass(frozen=True, slots=True, kw_only=True)
class _MovementDraft:
    """Fields shared by every movement draft."""

    movement_type: ClassVar[MovementType]

    scan_code: str
    quantity: Decimal
    location_id: str
    lot_id: str | None = None
    reason: str | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", _positive_quantity(self.quantity))


@dataclass(frozen=True, slots=True, kw_only=True)
class InitialStockDraft(_MovementDraft):
    """Opening balance for an item at a location."""

    movement_type: ClassVar[MovementType] = MovementType.INITIAL


@dataclass(frozen=True, slots=True, kw_only=True)
class ReceiptDraft(_MovementDraft):
    """Goods received into a location."""

    movement_type: ClassVar[MovementType] = MovementType.IN


@dataclass(frozen=True, slots=True, kw_only=True)
class WorkOrderIssueDraft(_MovementDraft):
    """Goods issued against a work order."""

    movement_type: ClassVar[MovementType] = MovementType.OUT_OT

    work_order_id: str | None = None
    auto_fifo: bool = True
    allow_expired: bool = False


@dataclass(frozen=True, slots=True, kw_only=True)
class TransferDraft(_MovementDraft):
    """Goods moved between two locations of the same company."""

    movement_type: ClassVar[MovementType] = MovementType.TRANSFER

    destination_location_id: str | None = None
    auto_fifo: bool = True
    allow_expired: bool = False

    def __post_init__(self) -> None:
        _MovementDraft.__post_init__(self)
        destination = (self.destination_location_id or "").strip()
        if not destination:
            raise MissingDestinationError(self.location_id)
        if destination == self.location_id:
            raise InvalidDestinationError(self.location_id)
        object.__setattr__(self, "destination_location_id", destination)


@dataclass(frozen=True, slots=True, kw_only=True)
class AdjustmentDraft(_MovementDraft):
    """Manual correction in either direction; requires approval."""

    movement_type: ClassVar[MovementType] = MovementType.ADJUST

    direction: AdjustDirection = AdjustDirection.INCREMENT

    def __post_init__(self) -> None:
        _MovementDraft.__post_init__(self)
        object.__setattr__(self, "direction", AdjustDirection(self.direction))


@dataclass(frozen=True, slots=True, kw_only=True)
class ScrapDraft(_MovementDraft):
    """Write-off of damaged or expired goods; requires approval."""

    movement_type: ClassVar[MovementType] = MovementType.SCRAP

    auto_fifo: bool = True
    allow_expired: bool = False


MovementDraft = Union[
    InitialStockDraft,
    ReceiptDraft,
    WorkOrderIssueDraft,
    TransferDraft,
    AdjustmentDraft,
    ScrapDraft,
]


@dataclass(frozen=True, slots=True, kw_only=True)
class CycleCountDraft:
    """Physically counted quantity at one location/item/lot."""

    item_id: str
    location_id: str
    counted_qty: Decimal
    lot_id: str | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        counted = round_quantity(self.counted_qty)
        if counted < ZERO:
            raise InvalidQuantityError(self.counted_qty, "counted quantity cannot be negative")
        object.__setattr__(self, "counted_qty", counted)
