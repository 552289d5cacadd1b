"""
Inventory domain types (``kardex_kernel.domain.inventory``).

Responsibility
--------------
Pure value objects for the inventory ledger: catalog entities (items, lots,
work orders), the movement lifecycle state machine, ledger entries and their
lines, stock balances and resolved scan references.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports from
``db/``, ``models/``, services or engines.  May import only from
``domain/values`` and the exception hierarchy.

Invariants enforced
-------------------
* Lifecycle state machine -- ``MOVEMENT_TRANSITIONS`` defines the only
  valid status transitions.  APPROVED and REJECTED have no outgoing edges.
* Single decision -- ``KardexMovement.with_decision`` refuses to act on a
  movement that is not PENDING, so the mutable decision fields change at
  most once.
* Lines never change -- ``KardexMovement.lines`` is a tuple of frozen
  ``MovementLine`` values.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum

from kardex_kernel.domain.values import StockKey
from kardex_kernel.exceptions import InvalidTargetStatusError, NotPendingError


# =========================================================================
# Enumerations
# =========================================================================


class Role(str, Enum):
    """Per-company roles supplied by the identity provider."""

    BODEGUERO = "BODEGUERO"
    SUPERVISOR = "SUPERVISOR"
    ADMIN = "ADMIN"
    SUPERADMIN = "SUPERADMIN"


DEFAULT_APPROVER_ROLES: frozenset[Role] = frozenset({
    Role.SUPERVISOR,
    Role.ADMIN,
    Role.SUPERADMIN,
})


class MovementType(str, Enum):
    """Kinds of ledger entry."""

    INITIAL = "INITIAL"
    IN = "IN"
    OUT_OT = "OUT_OT"
    TRANSFER = "TRANSFER"
    ADJUST = "ADJUST"
    SCRAP = "SCRAP"


# Types that are created PENDING and wait for a decision.
APPROVAL_REQUIRED_TYPES: frozenset[MovementType] = frozenset({
    MovementType.ADJUST,
    MovementType.SCRAP,
})

# Types that may split an outbound quantity across lots by FIFO.
FIFO_SPLIT_TYPES: frozenset[MovementType] = frozenset({
    MovementType.OUT_OT,
    MovementType.TRANSFER,
    MovementType.SCRAP,
})

_MOVEMENT_LABELS: dict[MovementType, str] = {
    MovementType.INITIAL: "Initial stock",
    MovementType.IN: "Receipt",
    MovementType.OUT_OT: "Work order issue",
    MovementType.TRANSFER: "Transfer",
    MovementType.ADJUST: "Adjustment",
    MovementType.SCRAP: "Scrap",
}


def movement_label(movement_type: MovementType | str) -> str:
    """Human-readable label for a movement type."""
    return _MOVEMENT_LABELS[MovementType(movement_type)]


class MovementStatus(str, Enum):
    """Movement lifecycle states."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


MOVEMENT_TRANSITIONS: dict[MovementStatus, frozenset[MovementStatus]] = {
    MovementStatus.PENDING: frozenset({
        MovementStatus.APPROVED,
        MovementStatus.REJECTED,
    }),
    MovementStatus.APPROVED: frozenset(),
    MovementStatus.REJECTED: frozenset(),
}

TERMINAL_MOVEMENT_STATUSES: frozenset[MovementStatus] = frozenset({
    MovementStatus.APPROVED,
    MovementStatus.REJECTED,
})


class AdjustDirection(str, Enum):
    """Sign of an adjustment."""

    INCREMENT = "INCREMENT"
    DECREMENT = "DECREMENT"


class WorkOrderStatus(str, Enum):
    """Work order lifecycle states."""

    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    CANCELLED = "CANCELLED"


ACTIVE_WORK_ORDER_STATUSES: frozenset[WorkOrderStatus] = frozenset({
    WorkOrderStatus.OPEN,
    WorkOrderStatus.IN_PROGRESS,
})


class ScanKind(str, Enum):
    """Entity kind encoded in the prefix of a scanned code."""

    ITEM = "ITEM"
    LOT = "LOT"


# =========================================================================
# Catalog entities
# =========================================================================


@dataclass(frozen=True, slots=True)
class Item:
    """A stocked item of one company."""

    item_id: str
    company_id: str
    sku: str
    name: str
    base_unit: str = "UND"
    has_expiry: bool = False
    by_lot: bool = False

    @property
    def is_lot_managed(self) -> bool:
        return self.has_expiry or self.by_lot


@dataclass(frozen=True, slots=True)
class Lot:
    """A production/receiving batch of one item."""

    lot_id: str
    company_id: str
    item_id: str
    lot_code: str
    expires_at: date


def is_expired(lot: Lot, today: date) -> bool:
    """A lot is expired once its expiry date is strictly before today."""
    return lot.expires_at < today


def is_near_expiry(lot: Lot, today: date, days: int = 30) -> bool:
    """True when the lot expires within ``days`` of today (expired lots included)."""
    return lot.expires_at <= today + timedelta(days=days)


@dataclass(frozen=True, slots=True)
class WorkOrder:
    """Production/maintenance order that justifies OUT_OT issues."""

    work_order_id: str
    company_id: str
    code: str
    responsible: str
    cost_center: str
    status: WorkOrderStatus = WorkOrderStatus.OPEN
    notes: str | None = None
    created_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_WORK_ORDER_STATUSES


# =========================================================================
# Stock projection
# =========================================================================


@dataclass(frozen=True, slots=True)
class StockBalance:
    """Quantity on hand for a single stock key; always > 0 when stored."""

    key: StockKey
    quantity: Decimal
    updated_at: datetime | None = None


# =========================================================================
# Ledger entries
# =========================================================================


@dataclass(frozen=True, slots=True)
class MovementLine:
    """Signed quantity change at one location/item/lot."""

    location_id: str
    item_id: str
    lot_id: str | None
    delta_qty: Decimal

    def key(self, company_id: str) -> StockKey:
        return StockKey(company_id, self.location_id, self.item_id, self.lot_id)


@dataclass(frozen=True, slots=True)
class KardexMovement:
    """
    One ledger entry.

    Contract:
        The header and lines are immutable.  ``status``, ``approved_by``,
        ``approved_by_role`` and ``decided_at`` change exactly once, from
        PENDING to a terminal status, through ``with_decision``.

    Guarantees:
        - ``with_decision`` returns a new instance and never mutates self.
        - ``with_decision`` raises NotPendingError when already decided.
    """

    id: str
    company_id: str
    movement_type: MovementType
    status: MovementStatus
    created_by_name: str
    created_by_role: Role
    created_at: datetime
    lines: tuple[MovementLine, ...]
    reason: str | None = None
    notes: str | None = None
    work_order_id: str | None = None
    approved_by: str | None = None
    approved_by_role: Role | None = None
    decided_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == MovementStatus.PENDING

    @property
    def is_approved(self) -> bool:
        return self.status == MovementStatus.APPROVED

    def keys(self) -> tuple[StockKey, ...]:
        return tuple(line.key(self.company_id) for line in self.lines)

    def with_decision(
        self,
        new_status: MovementStatus,
        approver_name: str,
        approver_role: Role,
        decided_at: datetime,
        comment: str | None = None,
    ) -> KardexMovement:
        """Return the decided copy of this movement."""
        if new_status not in MOVEMENT_TRANSITIONS[self.status]:
            if self.status != MovementStatus.PENDING:
                raise NotPendingError(self.id, self.status.value)
            raise InvalidTargetStatusError(getattr(new_status, "value", str(new_status)))

        notes = self.notes
        if comment and comment.strip():
            notes = " | ".join(part for part in (self.notes, comment.strip()) if part)

        return replace(
            self,
            status=new_status,
            approved_by=approver_name,
            approved_by_role=approver_role,
            decided_at=decided_at,
            notes=notes,
        )


# =========================================================================
# Identity
# =========================================================================


@dataclass(frozen=True, slots=True)
class ScanReference:
    """Outcome of resolving a scanned code."""

    kind: ScanKind
    company_id: str
    item_id: str
    lot_id: str | None = None


@dataclass(frozen=True, slots=True)
class Requester:
    """Acting user as asserted by the external identity provider."""

    company_id: str
    name: str
    role: Role
