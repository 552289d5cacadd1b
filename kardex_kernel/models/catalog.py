"""
Module: kardex_kernel.models.catalog
Responsibility: ORM persistence for the reference catalog -- items, lots and
    work orders.  These rows are read by the ledger but never written by it.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.
Invariants enforced:
    - (company_id, item_id), (company_id, lot_id) and (company_id,
      work_order_id) are unique; every lookup is company-scoped.
    - A lot row always names its owning item.
"""

from __future__ import annotations

from datetime import UTC, date, datetime

from sqlalchemy import Boolean, Date, DateTime, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from kardex_kernel.db.base import Base
from kardex_kernel.domain.inventory import Item, Lot, WorkOrder, WorkOrderStatus


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class ItemModel(Base):
    """Persistent stocked item."""

    __tablename__ = "items"
    __table_args__ = (
        UniqueConstraint("company_id", "item_id", name="uq_items_company_item"),
    )

    item_id: Mapped[str] = mapped_column(String(64), nullable=False)
    company_id: Mapped[str] = mapped_column(String(64), nullable=False)
    sku: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    base_unit: Mapped[str] = mapped_column(String(16), nullable=False, default="UND")
    has_expiry: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    by_lot: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Item {self.company_id}/{self.item_id} sku={self.sku}>"

    def to_dto(self) -> Item:
        return Item(
            item_id=self.item_id,
            company_id=self.company_id,
            sku=self.sku,
            name=self.name,
            base_unit=self.base_unit,
            has_expiry=self.has_expiry,
            by_lot=self.by_lot,
        )

    @classmethod
    def from_dto(cls, dto: Item) -> ItemModel:
        return cls(
            item_id=dto.item_id,
            company_id=dto.company_id,
            sku=dto.sku,
            name=dto.name,
            base_unit=dto.base_unit,
            has_expiry=dto.has_expiry,
            by_lot=dto.by_lot,
        )


class LotModel(Base):
    """Persistent lot of an item."""

    __tablename__ = "lots"
    __table_args__ = (
        UniqueConstraint("company_id", "lot_id", name="uq_lots_company_lot"),
        Index("ix_lots_company_item", "company_id", "item_id"),
    )

    lot_id: Mapped[str] = mapped_column(String(64), nullable=False)
    company_id: Mapped[str] = mapped_column(String(64), nullable=False)
    item_id: Mapped[str] = mapped_column(String(64), nullable=False)
    lot_code: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[date] = mapped_column(Date, nullable=False)

    def __repr__(self) -> str:
        return f"<Lot {self.company_id}/{self.lot_id} code={self.lot_code}>"

    def to_dto(self) -> Lot:
        return Lot(
            lot_id=self.lot_id,
            company_id=self.company_id,
            item_id=self.item_id,
            lot_code=self.lot_code,
            expires_at=self.expires_at,
        )

    @classmethod
    def from_dto(cls, dto: Lot) -> LotModel:
        return cls(
            lot_id=dto.lot_id,
            company_id=dto.company_id,
            item_id=dto.item_id,
            lot_code=dto.lot_code,
            expires_at=dto.expires_at,
        )


class WorkOrderModel(Base):
    """Persistent work order (OT)."""

    __tablename__ = "work_orders"
    __table_args__ = (
        UniqueConstraint(
            "company_id", "work_order_id", name="uq_work_orders_company_wo",
        ),
        UniqueConstraint("company_id", "code", name="uq_work_orders_company_code"),
    )

    work_order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    company_id: Mapped[str] = mapped_column(String(64), nullable=False)
    code: Mapped[str] = mapped_column(String(32), nullable=False)
    responsible: Mapped[str] = mapped_column(String(255), nullable=False)
    cost_center: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="OPEN")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    def __repr__(self) -> str:
        return f"<WorkOrder {self.company_id}/{self.code} status={self.status}>"

    def to_dto(self) -> WorkOrder:
        return WorkOrder(
            work_order_id=self.work_order_id,
            company_id=self.company_id,
            code=self.code,
            responsible=self.responsible,
            cost_center=self.cost_center,
            status=WorkOrderStatus(self.status),
            notes=self.notes,
            created_at=_aware(self.created_at),
        )

    @classmethod
    def from_dto(cls, dto: WorkOrder) -> WorkOrderModel:
        return cls(
            work_order_id=dto.work_order_id,
            company_id=dto.company_id,
            code=dto.code,
            responsible=dto.responsible,
            cost_center=dto.cost_center,
            status=dto.status.value,
            notes=dto.notes,
            created_at=dto.created_at,
        )
