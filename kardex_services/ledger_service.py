"""
kardex_services.ledger_service -- The kardex ledger engine.

Responsibility:
    Turn typed movement drafts into ledger entries, decide PENDING entries,
    register cycle counts, and keep the stock projection in step with every
    APPROVED entry.

Architecture position:
    Services -- stateful orchestration.  Composes the pure engines
    (identity, FIFO, validation, projection) and talks to persistence only
    through ``InventoryStore``.  Receives its Clock via constructor
    injection and passes ``today`` down to the engines.

Invariants enforced:
    - All-or-nothing: every call runs inside one ``store.transaction``;
      any failure leaves no ledger entry and no projection change.
    - Non-negative stock: generated lines are netted per key and checked
      against the current projection before commit, on submission and
      again on approval.
    - No partial FIFO commit: an allocation with ``missing_qty > 0`` aborts
      the movement with InsufficientStockError.
    - ADJUST/SCRAP are created PENDING; every other type is created
      APPROVED and applied to the projection in the same unit of work.
    - A decision happens once: NotPendingError for anything not PENDING.

Failure modes:
    - Scan errors (MalformedCodeError, CrossTenantCodeError) and not-found
      errors (ItemNotFoundError, LotNotFoundError, WorkOrderNotFoundError,
      MovementNotFoundError).
    - Business-rule errors from the validator, plus LotRequiredError and
      InvalidLotError.
    - Stock errors from the FIFO allocator and InsufficientStockError from
      the sufficiency check.

Audit relevance:
    Every entry records requester name and role; every decision records the
    approver, role and decision time.  Logs: ``movement_submitted``,
    ``movement_decided``, ``fifo_allocation_completed``,
    ``expired_lots_used``, ``cycle_count_registered``.

Usage:
    ledger = KardexLedger(InMemoryInventoryStore(), SystemClock())
    movement = ledger.submit_movement(
        ReceiptDraft(scan_code="ITEM:COMP-1:ITEM-1", quantity=Decimal("10"),
                     location_id="LOC-A"),
        Requester("COMP-1", "Ana", Role.BODEGUERO),
    )
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Mapping
from decimal import Decimal
from uuid import uuid4

from kardex_config.schema import DEFAULT_CYCLE_COUNT_REASON
from kardex_engines.fifo import FifoResult, LotAvailability, allocate_fifo
from kardex_engines.identity import resolve_scan_code
from kardex_engines.projection import apply_movement, ensure_sufficient_stock, quantity_on_hand
from kardex_engines.reconciliation import ReconciliationReport
from kardex_engines.validation import MovementCheck, validate_movement
from kardex_kernel.domain.clock import Clock, SystemClock
from kardex_kernel.domain.drafts import (
    AdjustmentDraft,
    CycleCountDraft,
    MovementDraft,
    TransferDraft,
)
from kardex_kernel.domain.inventory import (
    APPROVAL_REQUIRED_TYPES,
    DEFAULT_APPROVER_ROLES,
    FIFO_SPLIT_TYPES,
    AdjustDirection,
    Item,
    KardexMovement,
    MovementLine,
    MovementStatus,
    MovementType,
    Requester,
    Role,
    ScanReference,
)
from kardex_kernel.domain.values import ZERO, StockKey, round_quantity
from kardex_kernel.exceptions import (
    ApproverNotAuthorizedError,
    InsufficientStockError,
    InvalidLotError,
    ItemNotFoundError,
    LotRequiredError,
    MovementNotFoundError,
    NotPendingError,
    WorkOrderNotFoundError,
)
from kardex_kernel.logging_config import LogContext, get_logger
from kardex_services.reconciliation_service import StockReconciliationService
from kardex_services.store import InventoryStore, StoreTransaction

logger = get_logger("services.ledger")

# Draft lot value meaning "let FIFO choose".
AUTO_LOT = "AUTO"


def default_movement_id(movement_type: MovementType) -> str:
    return f"{movement_type.value}-{uuid4().hex[:12].upper()}"


def _clean(text: str | None) -> str | None:
    if text is None:
        return None
    text = text.strip()
    return text or None


def _format_quantity(quantity: Decimal) -> str:
    normalized = quantity.normalize()
    if normalized == ZERO:
        return "0"
    return format(normalized, "f")


class KardexLedger:
    """
    Ledger engine of one inventory store.

    Contract:
        Receives the store, clock and policy values via constructor
        injection.  Never reads configuration files or the system time
        directly.
    Guarantees:
        - ``submit_movement`` returns the stored entry.
        - ``decide_movement`` returns the decided entry.
        - ``submit_cycle_count`` returns the PENDING adjustment, or None
          when the count matches the system quantity.
        - ``reconcile`` never writes.
    Non-goals:
        - Does not decide who may call it; callers authenticate upstream and
          pass the acting ``Requester``.
        - Does not retry.
    """

    def __init__(
        self,
        store: InventoryStore,
        clock: Clock | None = None,
        *,
        approver_roles: Collection[Role] = DEFAULT_APPROVER_ROLES,
        cycle_count_reason_template: str = DEFAULT_CYCLE_COUNT_REASON,
        id_factory: Callable[[MovementType], str] = default_movement_id,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._approver_roles = frozenset(approver_roles)
        self._cycle_count_reason_template = cycle_count_reason_template
        self._id_factory = id_factory
        self._reconciliation = StockReconciliationService(store)

    # =========================================================================
    # Submission
    # =========================================================================

    def submit_movement(self, draft: MovementDraft, requester: Requester) -> KardexMovement:
        """Create a ledger entry from a draft on behalf of ``requester``."""
        company_id = requester.company_id
        with LogContext.bind(company_id=company_id, actor_id=requester.name):
            with self._store.transaction(company_id) as tx:
                movement = self._create_movement(tx, draft, requester)

            logger.info(
                "movement_submitted",
                extra={
                    "movement_id": movement.id,
                    "movement_type": movement.movement_type.value,
                    "status": movement.status.value,
                    "line_count": len(movement.lines),
                },
            )
            return movement

    def _create_movement(
        self,
        tx: StoreTransaction,
        draft: MovementDraft,
        requester: Requester,
    ) -> KardexMovement:
        company_id = requester.company_id
        movement_type = draft.movement_type

        ref = resolve_scan_code(code=draft.scan_code, company_id=company_id, catalog=tx)
        item = tx.get_item(ref.item_id)
        if item is None:
            raise ItemNotFoundError(ref.item_id)
        lot_id = self._resolve_lot(tx, item, ref, draft.lot_id)

        reason = _clean(draft.reason)
        work_order_id = _clean(getattr(draft, "work_order_id", None))
        status = (
            MovementStatus.PENDING
            if movement_type in APPROVAL_REQUIRED_TYPES
            else MovementStatus.APPROVED
        )

        validation = validate_movement(
            MovementCheck(
                movement_type=movement_type,
                status=status,
                requested_by_role=requester.role,
                reason=reason,
                has_work_order=work_order_id is not None,
            ),
            self._approver_roles,
        )
        if movement_type == MovementType.OUT_OT and tx.get_work_order(work_order_id) is None:
            raise WorkOrderNotFoundError(work_order_id)

        balances = tx.load_balances()
        lines = self._generate_lines(tx, draft, item, lot_id, balances, reason)
        ensure_sufficient_stock(balances, company_id, lines)

        now = self._clock.now()
        movement = KardexMovement(
            id=self._id_factory(movement_type),
            company_id=company_id,
            movement_type=movement_type,
            status=status,
            created_by_name=requester.name,
            created_by_role=requester.role,
            created_at=now,
            lines=tuple(lines),
            reason=reason,
            notes=_clean(draft.notes),
            work_order_id=work_order_id,
        )
        tx.add_movement(movement)
        if movement.is_approved:
            tx.save_balances(apply_movement(balances, movement), now)

        if validation.warnings:
            logger.warning(
                "movement_warnings",
                extra={"movement_id": movement.id, "warnings": list(validation.warnings)},
            )
        return movement

    def _resolve_lot(
        self,
        tx: StoreTransaction,
        item: Item,
        ref: ScanReference,
        draft_lot_id: str | None,
    ) -> str | None:
        """Lot from the scan, else the draft's manual choice; None when FIFO decides."""
        if not item.is_lot_managed:
            return None
        if ref.lot_id is not None:
            return ref.lot_id

        lot_id = _clean(draft_lot_id)
        if lot_id is None or lot_id.upper() == AUTO_LOT:
            return None
        lot = tx.get_lot(lot_id)
        if lot is None or lot.item_id != item.item_id:
            raise InvalidLotError(lot_id, item.item_id)
        return lot.lot_id

    def _generate_lines(
        self,
        tx: StoreTransaction,
        draft: MovementDraft,
        item: Item,
        lot_id: str | None,
        balances: Mapping[StockKey, Decimal],
        reason: str | None,
    ) -> list[MovementLine]:
        movement_type = draft.movement_type
        quantity = draft.quantity
        source = draft.location_id
        destination = draft.destination_location_id if isinstance(draft, TransferDraft) else None

        if item.is_lot_managed and lot_id is None:
            if movement_type not in FIFO_SPLIT_TYPES or not getattr(draft, "auto_fifo", False):
                raise LotRequiredError(item.item_id, movement_type.value)

            fifo = self._allocate(tx, draft, item, balances, reason)
            outbound = [
                MovementLine(source, item.item_id, a.lot_id, -a.quantity)
                for a in fifo.allocations
            ]
            if destination is None:
                return outbound
            inbound = [
                MovementLine(destination, item.item_id, a.lot_id, a.quantity)
                for a in fifo.allocations
            ]
            return outbound + inbound

        if movement_type in (MovementType.IN, MovementType.INITIAL):
            return [MovementLine(source, item.item_id, lot_id, quantity)]
        if movement_type in (MovementType.OUT_OT, MovementType.SCRAP):
            return [MovementLine(source, item.item_id, lot_id, -quantity)]
        if movement_type == MovementType.TRANSFER:
            return [
                MovementLine(source, item.item_id, lot_id, -quantity),
                MovementLine(destination, item.item_id, lot_id, quantity),
            ]
        if isinstance(draft, AdjustmentDraft):
            sign = -1 if draft.direction == AdjustDirection.DECREMENT else 1
            return [MovementLine(source, item.item_id, lot_id, sign * quantity)]
        raise TypeError(f"Unsupported draft type: {type(draft).__name__}")

    def _allocate(
        self,
        tx: StoreTransaction,
        draft: MovementDraft,
        item: Item,
        balances: Mapping[StockKey, Decimal],
        reason: str | None,
    ) -> FifoResult:
        source = draft.location_id
        available: list[LotAvailability] = []
        for key, qty in balances.items():
            if key.location_id != source or key.item_id != item.item_id or key.lot_id is None:
                continue
            lot = tx.get_lot(key.lot_id)
            if lot is None:
                continue
            available.append(
                LotAvailability(
                    lot_id=lot.lot_id,
                    lot_code=lot.lot_code,
                    item_id=item.item_id,
                    location_id=source,
                    expires_at=lot.expires_at,
                    available_qty=qty,
                )
            )

        fifo = allocate_fifo(
            item_id=item.item_id,
            location_id=source,
            requested_qty=draft.quantity,
            available_lots=available,
            allow_expired=getattr(draft, "allow_expired", False),
            reason=reason,
            today=self._clock.today(),
        )
        if fifo.missing_qty > ZERO:
            raise InsufficientStockError(
                str(StockKey(tx.company_id, source, item.item_id, None)),
                fifo.fulfilled_qty,
                draft.quantity,
            )

        logger.info(
            "fifo_allocation_completed",
            extra={
                "item_id": item.item_id,
                "location_id": source,
                "requested_qty": draft.quantity,
                "allocations": [
                    {"lot_id": a.lot_id, "quantity": a.quantity} for a in fifo.allocations
                ],
            },
        )
        if fifo.used_expired:
            logger.warning(
                "expired_lots_used",
                extra={
                    "item_id": item.item_id,
                    "location_id": source,
                    "reason": reason,
                    "warnings": list(fifo.warnings),
                },
            )
        return fifo

    # =========================================================================
    # Decision
    # =========================================================================

    def decide_movement(
        self,
        company_id: str,
        movement_id: str,
        approved: bool,
        approver_role: Role | str,
        approver_name: str,
        comment: str | None = None,
    ) -> KardexMovement:
        """Approve or reject a PENDING movement."""
        with LogContext.bind(
            company_id=company_id, movement_id=movement_id, actor_id=approver_name,
        ):
            role = self._coerce_role(approver_role)
            new_status = MovementStatus.APPROVED if approved else MovementStatus.REJECTED

            with self._store.transaction(company_id) as tx:
                movement = tx.get_movement(movement_id)
                if movement is None:
                    raise MovementNotFoundError(movement_id)
                if not movement.is_pending:
                    raise NotPendingError(movement_id, movement.status.value)

                validation = validate_movement(
                    MovementCheck(
                        movement_type=movement.movement_type,
                        status=movement.status,
                        requested_by_role=movement.created_by_role,
                        reason=movement.reason,
                        has_work_order=movement.work_order_id is not None,
                        movement_id=movement.id,
                        current_status=movement.status,
                        new_status=new_status,
                        approver_role=role,
                    ),
                    self._approver_roles,
                )

                now = self._clock.now()
                decided = movement.with_decision(new_status, approver_name, role, now, comment)

                if approved:
                    balances = tx.load_balances()
                    ensure_sufficient_stock(balances, company_id, decided.lines)
                    tx.record_decision(decided)
                    tx.save_balances(apply_movement(balances, decided), now)
                else:
                    tx.record_decision(decided)

            logger.info(
                "movement_decided",
                extra={
                    "movement_type": decided.movement_type.value,
                    "status": decided.status.value,
                    "approver_role": role.value,
                    "warnings": list(validation.warnings),
                },
            )
            return decided

    def _coerce_role(self, approver_role: Role | str | None) -> Role:
        try:
            return Role(approver_role)
        except ValueError:
            raise ApproverNotAuthorizedError(
                str(approver_role), tuple(sorted(r.value for r in self._approver_roles))
            ) from None

    # =========================================================================
    # Cycle count
    # =========================================================================

    def submit_cycle_count(
        self,
        draft: CycleCountDraft,
        requester: Requester,
    ) -> KardexMovement | None:
        """
        Register a physical count.

        Returns None when the count equals the system quantity; otherwise a
        PENDING ADJUST carrying the difference.
        """
        company_id = requester.company_id
        with LogContext.bind(company_id=company_id, actor_id=requester.name):
            with self._store.transaction(company_id) as tx:
                item = tx.get_item(draft.item_id)
                if item is None:
                    raise ItemNotFoundError(draft.item_id)
                lot_id = self._cycle_count_lot(tx, item, draft.lot_id)

                key = StockKey(company_id, draft.location_id, item.item_id, lot_id)
                before = quantity_on_hand(tx.load_balances(), key)
                delta = round_quantity(draft.counted_qty - before)
                if delta == ZERO:
                    logger.info("cycle_count_matched", extra={"stock_key": str(key)})
                    return None

                reason = self._cycle_count_reason_template.format(
                    before=_format_quantity(before),
                    after=_format_quantity(draft.counted_qty),
                )
                validate_movement(
                    MovementCheck(
                        movement_type=MovementType.ADJUST,
                        status=MovementStatus.PENDING,
                        requested_by_role=requester.role,
                        reason=reason,
                    ),
                    self._approver_roles,
                )
                movement = KardexMovement(
                    id=self._id_factory(MovementType.ADJUST),
                    company_id=company_id,
                    movement_type=MovementType.ADJUST,
                    status=MovementStatus.PENDING,
                    created_by_name=requester.name,
                    created_by_role=requester.role,
                    created_at=self._clock.now(),
                    lines=(MovementLine(draft.location_id, item.item_id, lot_id, delta),),
                    reason=reason,
                    notes=_clean(draft.notes),
                )
                tx.add_movement(movement)

            logger.info(
                "cycle_count_registered",
                extra={
                    "movement_id": movement.id,
                    "stock_key": str(key),
                    "delta_qty": delta,
                },
            )
            return movement

    def _cycle_count_lot(
        self,
        tx: StoreTransaction,
        item: Item,
        lot_id: str | None,
    ) -> str | None:
        if not item.is_lot_managed:
            return None
        lot_id = _clean(lot_id)
        if lot_id is None:
            raise LotRequiredError(item.item_id, MovementType.ADJUST.value)
        lot = tx.get_lot(lot_id)
        if lot is None or lot.item_id != item.item_id:
            raise InvalidLotError(lot_id, item.item_id)
        return lot.lot_id

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def reconcile(self, company_id: str) -> ReconciliationReport:
        """Compare the live projection of ``company_id`` with its ledger."""
        return self._reconciliation.reconcile(company_id)
