"""
kardex_services.sql_store -- SQLAlchemy-backed inventory store.

Responsibility:
    Implement ``InventoryStore`` over the kardex ORM models.  Each company
    transaction is one database transaction opened with ``session_scope``.

Architecture position:
    Services -- store implementation.  Imports kernel models and db helpers.

Invariants enforced:
    - Mutual exclusion per company: a process-local lock plus
      ``SELECT ... FOR UPDATE`` on the company's ``company_locks`` row.  The
      row lock is what serializes writers across processes on PostgreSQL.
      The row is created with ON CONFLICT DO NOTHING before it is locked,
      so concurrent first transactions for a new company both succeed.
    - The decision UPDATE is guarded by ``WHERE status = 'PENDING'``; zero
      affected rows means another writer decided first -> NotPendingError.
    - Ledger rows are only ever INSERTed (plus the guarded decision).  The
      ORM immutability listeners in ``kardex_kernel.models.kardex`` reject
      anything else.

Failure modes:
    - NotPendingError / MovementNotFoundError from ``record_decision``.
    - IntegrityError on a duplicate movement id.
    - Any exception inside the ``with`` block rolls the whole unit back.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, sessionmaker

from kardex_kernel.db.engine import session_scope
from kardex_kernel.domain.inventory import (
    Item,
    KardexMovement,
    Lot,
    MovementStatus,
    WorkOrder,
)
from kardex_kernel.domain.values import ZERO, StockKey, round_quantity
from kardex_kernel.exceptions import MovementNotFoundError, NotPendingError
from kardex_kernel.logging_config import get_logger
from kardex_kernel.models import (
    CompanyLockModel,
    ItemModel,
    KardexMovementModel,
    LotModel,
    StockBalanceModel,
    WorkOrderModel,
)
from kardex_services.store import InventorySnapshot, InventoryStore, StoreTransaction

logger = get_logger("services.sql_store")

# Dialect inserts that support ON CONFLICT DO NOTHING.
_INSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


class _SqlTransaction(StoreTransaction):
    """Company-scoped reads and writes on one open session."""

    def __init__(self, company_id: str, session: Session):
        super().__init__(company_id)
        self.session = session

    # -- catalog ------------------------------------------------------------

    def _item_row(self, item_id: str) -> ItemModel | None:
        return self.session.scalars(
            select(ItemModel).where(
                ItemModel.company_id == self.company_id,
                ItemModel.item_id == item_id,
            )
        ).one_or_none()

    def _lot_row(self, lot_id: str) -> LotModel | None:
        return self.session.scalars(
            select(LotModel).where(
                LotModel.company_id == self.company_id,
                LotModel.lot_id == lot_id,
            )
        ).one_or_none()

    def _work_order_row(self, work_order_id: str) -> WorkOrderModel | None:
        return self.session.scalars(
            select(WorkOrderModel).where(
                WorkOrderModel.company_id == self.company_id,
                WorkOrderModel.work_order_id == work_order_id,
            )
        ).one_or_none()

    def get_item(self, item_id: str) -> Item | None:
        row = self._item_row(item_id)
        return row.to_dto() if row is not None else None

    def get_lot(self, lot_id: str) -> Lot | None:
        row = self._lot_row(lot_id)
        return row.to_dto() if row is not None else None

    def get_work_order(self, work_order_id: str) -> WorkOrder | None:
        row = self._work_order_row(work_order_id)
        return row.to_dto() if row is not None else None

    def list_work_orders(self) -> list[WorkOrder]:
        rows = self.session.scalars(
            select(WorkOrderModel)
            .where(WorkOrderModel.company_id == self.company_id)
            .order_by(WorkOrderModel.code)
        )
        return [row.to_dto() for row in rows]

    def save_item(self, item: Item) -> None:
        row = self._item_row(item.item_id)
        if row is None:
            self.session.add(ItemModel.from_dto(item))
            return
        row.sku = item.sku
        row.name = item.name
        row.base_unit = item.base_unit
        row.has_expiry = item.has_expiry
        row.by_lot = item.by_lot

    def save_lot(self, lot: Lot) -> None:
        row = self._lot_row(lot.lot_id)
        if row is None:
            self.session.add(LotModel.from_dto(lot))
            return
        row.item_id = lot.item_id
        row.lot_code = lot.lot_code
        row.expires_at = lot.expires_at

    def save_work_order(self, work_order: WorkOrder) -> None:
        row = self._work_order_row(work_order.work_order_id)
        if row is None:
            self.session.add(WorkOrderModel.from_dto(work_order))
            return
        row.responsible = work_order.responsible
        row.cost_center = work_order.cost_center
        row.status = work_order.status.value
        row.notes = work_order.notes

    # -- projection ---------------------------------------------------------

    def _balance_rows(self) -> dict[StockKey, StockBalanceModel]:
        rows = self.session.scalars(
            select(StockBalanceModel).where(
                StockBalanceModel.company_id == self.company_id
            )
        )
        return {row.key: row for row in rows}

    def load_balances(self) -> dict[StockKey, Decimal]:
        return {
            key: round_quantity(row.quantity)
            for key, row in self._balance_rows().items()
        }

    def save_balances(
        self,
        balances: Mapping[StockKey, Decimal],
        updated_at: datetime,
    ) -> None:
        existing = self._balance_rows()
        for key, row in existing.items():
            if key not in balances or balances[key] <= ZERO:
                self.session.delete(row)
        self.session.flush()

        for key, quantity in balances.items():
            if quantity <= ZERO:
                continue
            quantity = round_quantity(quantity)
            row = existing.get(key)
            if row is None:
                self.session.add(
                    StockBalanceModel(
                        company_id=key.company_id,
                        location_id=key.location_id,
                        item_id=key.item_id,
                        lot_id=key.lot_id,
                        quantity=quantity,
                        updated_at=updated_at,
                    )
                )
            elif round_quantity(row.quantity) != quantity:
                row.quantity = quantity
                row.updated_at = updated_at
        self.session.flush()

    # -- ledger -------------------------------------------------------------

    def _movement_row(self, movement_id: str) -> KardexMovementModel | None:
        return self.session.scalars(
            select(KardexMovementModel).where(
                KardexMovementModel.company_id == self.company_id,
                KardexMovementModel.movement_id == movement_id,
            )
        ).one_or_none()

    def get_movement(self, movement_id: str) -> KardexMovement | None:
        row = self._movement_row(movement_id)
        return row.to_dto() if row is not None else None

    def list_movements(self) -> list[KardexMovement]:
        rows = self.session.scalars(
            select(KardexMovementModel)
            .where(KardexMovementModel.company_id == self.company_id)
            .order_by(KardexMovementModel.created_at, KardexMovementModel.movement_id)
        )
        return [row.to_dto() for row in rows]

    def add_movement(self, movement: KardexMovement) -> None:
        self.session.add(KardexMovementModel.from_dto(movement))
        self.session.flush()

    def record_decision(self, movement: KardexMovement) -> None:
        result = self.session.execute(
            update(KardexMovementModel)
            .where(
                KardexMovementModel.company_id == self.company_id,
                KardexMovementModel.movement_id == movement.id,
                KardexMovementModel.status == MovementStatus.PENDING.value,
            )
            .values(
                status=movement.status.value,
                approved_by=movement.approved_by,
                approved_by_role=(
                    movement.approved_by_role.value if movement.approved_by_role else None
                ),
                decided_at=movement.decided_at,
                notes=movement.notes,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            # Loaded rows of this session no longer match the database.
            self.session.expire_all()
            return

        current = self.session.scalars(
            select(KardexMovementModel.status).where(
                KardexMovementModel.company_id == self.company_id,
                KardexMovementModel.movement_id == movement.id,
            )
        ).one_or_none()
        if current is None:
            raise MovementNotFoundError(movement.id)
        raise NotPendingError(movement.id, current)


class SqlInventoryStore(InventoryStore):
    """
    Inventory store over a SQLAlchemy session factory.

    Contract:
        Receives the session factory via constructor injection (see
        ``kardex_kernel.db.engine.get_session_factory``).
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _process_lock(self, company_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(company_id)
            if lock is None:
                lock = self._locks[company_id] = threading.Lock()
            return lock

    def _lock_company(self, session: Session, company_id: str) -> CompanyLockModel:
        insert = _INSERTS[session.get_bind().dialect.name]
        session.execute(
            insert(CompanyLockModel)
            .values(company_id=company_id, version=0)
            .on_conflict_do_nothing(index_elements=["company_id"])
        )
        stmt = (
            select(CompanyLockModel)
            .where(CompanyLockModel.company_id == company_id)
            .with_for_update()
        )
        return session.scalars(stmt).one()

    @contextmanager
    def transaction(self, company_id: str) -> Iterator[StoreTransaction]:
        with self._process_lock(company_id):
            with session_scope(self._session_factory) as session:
                lock_row = self._lock_company(session, company_id)
                yield _SqlTransaction(company_id, session)
                lock_row.version += 1
                session.flush()
                logger.debug(
                    "sql_transaction_flushed",
                    extra={"company_id": company_id, "lock_version": lock_row.version},
                )

    def snapshot(self, company_id: str) -> InventorySnapshot:
        with session_scope(self._session_factory) as session:
            tx = _SqlTransaction(company_id, session)
            items = session.scalars(
                select(ItemModel).where(ItemModel.company_id == company_id)
            )
            lots = session.scalars(
                select(LotModel).where(LotModel.company_id == company_id)
            )
            return InventorySnapshot(
                company_id=company_id,
                balances=tx.load_balances(),
                movements=tuple(tx.list_movements()),
                items=tuple(row.to_dto() for row in items),
                lots=tuple(row.to_dto() for row in lots),
                work_orders=tuple(tx.list_work_orders()),
            )
