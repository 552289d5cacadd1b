"""
Module: kardex_kernel.models.stock
Responsibility: ORM persistence for the derived stock projection and for the
    per-company lock row that serializes ledger writes.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.
Invariants enforced:
    - A stored balance is always > 0; a key that reaches zero is deleted.
    - The projection is written only by the SQL store inside a ledger unit
      of work; it is never hand-edited.
    - One company_locks row per company.  Ledger writers lock it with
      SELECT ... FOR UPDATE before reading balances.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from kardex_kernel.db.base import Base
from kardex_kernel.domain.inventory import StockBalance
from kardex_kernel.domain.values import QUANTITY_PLACES, StockKey


class StockBalanceModel(Base):
    """Persistent balance for one (company, location, item, lot) key."""

    __tablename__ = "stock_balances"
    __table_args__ = (
        UniqueConstraint(
            "company_id", "location_id", "item_id", "lot_id",
            name="uq_stock_balances_key",
        ),
        CheckConstraint("quantity > 0", name="ck_stock_balances_positive"),
    )

    company_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    location_id: Mapped[str] = mapped_column(String(64), nullable=False)
    item_id: Mapped[str] = mapped_column(String(64), nullable=False)
    lot_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(18, QUANTITY_PLACES), nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    def __repr__(self) -> str:
        return f"<StockBalance {self.key} qty={self.quantity}>"

    @property
    def key(self) -> StockKey:
        return StockKey(self.company_id, self.location_id, self.item_id, self.lot_id)

    def to_dto(self) -> StockBalance:
        updated_at = self.updated_at
        if updated_at is not None and updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=UTC)
        return StockBalance(
            key=self.key,
            quantity=Decimal(self.quantity),
            updated_at=updated_at,
        )

    @classmethod
    def from_dto(cls, dto: StockBalance) -> StockBalanceModel:
        return cls(
            company_id=dto.key.company_id,
            location_id=dto.key.location_id,
            item_id=dto.key.item_id,
            lot_id=dto.key.lot_id,
            quantity=dto.quantity,
            updated_at=dto.updated_at,
        )


class CompanyLockModel(Base):
    """Row locked FOR UPDATE to serialize ledger writes of one company."""

    __tablename__ = "company_locks"
    __table_args__ = (
        UniqueConstraint("company_id", name="uq_company_locks_company"),
    )

    company_id: Mapped[str] = mapped_column(String(64), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<CompanyLock {self.company_id} v{self.version}>"
