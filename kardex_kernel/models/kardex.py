"""
Module: kardex_kernel.models.kardex
Responsibility: ORM persistence for ledger entries (kardex movements) and
    their lines, plus the ORM-level immutability listeners that protect them.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.
Invariants enforced:
    - Ledger entries are append-only: a movement row is never deleted.
    - The only UPDATE allowed on a movement row is the single decision,
      PENDING -> APPROVED | REJECTED, which may touch status, approved_by,
      approved_by_role, decided_at and notes.  Every other column is frozen
      from INSERT onwards.
    - Lines are never updated or deleted.
Failure modes:
    - ImmutabilityViolationError from the before_update / before_delete
      listeners on any forbidden change.
    - IntegrityError on a duplicate (company_id, movement_id).
Audit relevance:
    The kardex is the source of truth for stock.  Rebuilding the projection
    from these rows must always reproduce the live balances.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.orm.attributes import get_history

from kardex_kernel.db.base import Base
from kardex_kernel.domain.inventory import (
    KardexMovement,
    MovementLine,
    MovementStatus,
    MovementType,
    Role,
    TERMINAL_MOVEMENT_STATUSES,
)
from kardex_kernel.domain.values import QUANTITY_PLACES
from kardex_kernel.exceptions import ImmutabilityViolationError

# Columns that the single decision UPDATE may touch.
DECISION_FIELDS: frozenset[str] = frozenset({
    "status",
    "approved_by",
    "approved_by_role",
    "decided_at",
    "notes",
})


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class KardexMovementModel(Base):
    """
    Persistent ledger entry header.

    Contract:
        Header columns are write-once.  Decision columns change exactly once,
        when status leaves PENDING.
    """

    __tablename__ = "kardex_movements"
    __table_args__ = (
        UniqueConstraint(
            "company_id", "movement_id", name="uq_kardex_movements_company_movement",
        ),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="ck_kardex_movements_valid_status",
        ),
        CheckConstraint(
            "movement_type IN ('INITIAL', 'IN', 'OUT_OT', 'TRANSFER', 'ADJUST', 'SCRAP')",
            name="ck_kardex_movements_valid_type",
        ),
        Index("ix_kardex_movements_company_created", "company_id", "created_at"),
        Index("ix_kardex_movements_company_status", "company_id", "status"),
    )

    movement_id: Mapped[str] = mapped_column(String(64), nullable=False)
    company_id: Mapped[str] = mapped_column(String(64), nullable=False)
    movement_type: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    work_order_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_by_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_by_role: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    approved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approved_by_role: Mapped[str | None] = mapped_column(String(16), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    lines: Mapped[list["MovementLineModel"]] = relationship(
        "MovementLineModel",
        back_populates="movement",
        order_by="MovementLineModel.line_no",
        lazy="selectin",
        cascade="save-update, merge",
    )

    def __repr__(self) -> str:
        return (
            f"<KardexMovement {self.company_id}/{self.movement_id} "
            f"{self.movement_type} status={self.status}>"
        )

    def to_dto(self) -> KardexMovement:
        return KardexMovement(
            id=self.movement_id,
            company_id=self.company_id,
            movement_type=MovementType(self.movement_type),
            status=MovementStatus(self.status),
            created_by_name=self.created_by_name,
            created_by_role=Role(self.created_by_role),
            created_at=_aware(self.created_at),
            lines=tuple(line.to_dto() for line in self.lines),
            reason=self.reason,
            notes=self.notes,
            work_order_id=self.work_order_id,
            approved_by=self.approved_by,
            approved_by_role=Role(self.approved_by_role) if self.approved_by_role else None,
            decided_at=_aware(self.decided_at),
        )

    @classmethod
    def from_dto(cls, dto: KardexMovement) -> KardexMovementModel:
        return cls(
            movement_id=dto.id,
            company_id=dto.company_id,
            movement_type=dto.movement_type.value,
            status=dto.status.value,
            reason=dto.reason,
            notes=dto.notes,
            work_order_id=dto.work_order_id,
            created_by_name=dto.created_by_name,
            created_by_role=dto.created_by_role.value,
            created_at=dto.created_at,
            approved_by=dto.approved_by,
            approved_by_role=dto.approved_by_role.value if dto.approved_by_role else None,
            decided_at=dto.decided_at,
            lines=[
                MovementLineModel.from_dto(line, line_no)
                for line_no, line in enumerate(dto.lines, start=1)
            ],
        )


class MovementLineModel(Base):
    """Persistent ledger line. Append-only."""

    __tablename__ = "kardex_movement_lines"
    __table_args__ = (
        UniqueConstraint("movement_pk", "line_no", name="uq_kardex_lines_movement_line"),
        Index("ix_kardex_lines_item_location", "item_id", "location_id"),
    )

    movement_pk: Mapped[str] = mapped_column(
        String(36), ForeignKey("kardex_movements.id"), nullable=False,
    )
    line_no: Mapped[int] = mapped_column(Integer, nullable=False)
    location_id: Mapped[str] = mapped_column(String(64), nullable=False)
    item_id: Mapped[str] = mapped_column(String(64), nullable=False)
    lot_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    delta_qty: Mapped[Decimal] = mapped_column(
        Numeric(18, QUANTITY_PLACES), nullable=False,
    )

    movement: Mapped[KardexMovementModel] = relationship(
        "KardexMovementModel", back_populates="lines",
    )

    def __repr__(self) -> str:
        return (
            f"<MovementLine #{self.line_no} {self.location_id}/{self.item_id}/"
            f"{self.lot_id} {self.delta_qty}>"
        )

    def to_dto(self) -> MovementLine:
        return MovementLine(
            location_id=self.location_id,
            item_id=self.item_id,
            lot_id=self.lot_id,
            delta_qty=Decimal(self.delta_qty),
        )

    @classmethod
    def from_dto(cls, dto: MovementLine, line_no: int) -> MovementLineModel:
        return cls(
            line_no=line_no,
            location_id=dto.location_id,
            item_id=dto.item_id,
            lot_id=dto.lot_id,
            delta_qty=dto.delta_qty,
        )


# =============================================================================
# ORM-Level Immutability (append-only ledger)
# =============================================================================


@event.listens_for(KardexMovementModel, "before_update")
def _check_movement_immutability(mapper, connection, target):
    """Allow only the single PENDING -> terminal decision."""
    changed = {
        attr.key
        for attr in mapper.column_attrs
        if get_history(target, attr.key).has_changes()
    }
    if not changed:
        return

    frozen = changed - DECISION_FIELDS
    if frozen:
        raise ImmutabilityViolationError(
            entity_type="KardexMovement",
            entity_id=target.movement_id,
            reason=f"header fields are immutable: {', '.join(sorted(frozen))}",
        )

    status_history = get_history(target, "status")
    if not status_history.deleted:
        raise ImmutabilityViolationError(
            entity_type="KardexMovement",
            entity_id=target.movement_id,
            reason=(
                f"decision fields can only change with the decision "
                f"(status {target.status})"
            ),
        )

    old_status = status_history.deleted[0]
    new_status = target.status
    if old_status != MovementStatus.PENDING.value:
        raise ImmutabilityViolationError(
            entity_type="KardexMovement",
            entity_id=target.movement_id,
            reason=f"movement already decided as {old_status}",
        )
    if new_status not in {s.value for s in TERMINAL_MOVEMENT_STATUSES}:
        raise ImmutabilityViolationError(
            entity_type="KardexMovement",
            entity_id=target.movement_id,
            reason=f"invalid decision target {new_status}",
        )


@event.listens_for(KardexMovementModel, "before_delete")
def _check_movement_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="KardexMovement",
        entity_id=target.movement_id,
        reason="ledger entries cannot be deleted",
    )


@event.listens_for(MovementLineModel, "before_update")
def _check_line_immutability(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="MovementLine",
        entity_id=f"{target.movement_pk}#{target.line_no}",
        reason="ledger lines cannot be modified",
    )


@event.listens_for(MovementLineModel, "before_delete")
def _check_line_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="MovementLine",
        entity_id=f"{target.movement_pk}#{target.line_no}",
        reason="ledger lines cannot be deleted",
    )
