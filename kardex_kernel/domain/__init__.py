"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (except the injectable Clock itself)
- I/O

All domain objects are immutable and deterministic.
"""

from kardex_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from kardex_kernel.domain.drafts import (
    AdjustmentDraft,
    CycleCountDraft,
    InitialStockDraft,
    MovementDraft,
    ReceiptDraft,
    ScrapDraft,
    TransferDraft,
    WorkOrderIssueDraft,
)
from kardex_kernel.domain.inventory import (
    DEFAULT_APPROVER_ROLES,
    MOVEMENT_TRANSITIONS,
    AdjustDirection,
    Item,
    KardexMovement,
    Lot,
    MovementLine,
    MovementStatus,
    MovementType,
    Requester,
    Role,
    ScanKind,
    ScanReference,
    StockBalance,
    WorkOrder,
    WorkOrderStatus,
    is_expired,
    is_near_expiry,
    movement_label,
)
from kardex_kernel.domain.values import QUANTITY_PLACES, StockKey, round_quantity

__all__ = [
    # Time
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # Values
    "QUANTITY_PLACES",
    "StockKey",
    "round_quantity",
    # Catalog
    "Item",
    "Lot",
    "WorkOrder",
    "WorkOrderStatus",
    "is_expired",
    "is_near_expiry",
    # Ledger
    "AdjustDirection",
    "DEFAULT_APPROVER_ROLES",
    "KardexMovement",
    "MOVEMENT_TRANSITIONS",
    "MovementLine",
    "MovementStatus",
    "MovementType",
    "StockBalance",
    "movement_label",
    # Identity
    "Requester",
    "Role",
    "ScanKind",
    "ScanReference",
    # Drafts
    "AdjustmentDraft",
    "CycleCountDraft",
    "InitialStockDraft",
    "MovementDraft",
    "ReceiptDraft",
    "ScrapDraft",
    "TransferDraft",
    "WorkOrderIssueDraft",
]
