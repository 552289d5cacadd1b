"""
kardex_services.work_orders -- Work order (OT) registry.

Responsibility:
    Open work orders with a daily sequential code ``OT-YYYYMMDD-NNN`` and
    move them through their lifecycle.  The ledger only checks that an
    OUT_OT's work order exists; everything else about work orders lives here.

Architecture position:
    Services -- stateful orchestration over ``InventoryStore``.

Invariants enforced:
    - Responsible and cost center are mandatory (InvalidWorkOrderError).
    - Codes are allocated inside the company transaction, so two concurrent
      openings on the same day never receive the same sequence number.
"""

from __future__ import annotations

from dataclasses import replace
from uuid import uuid4

from kardex_kernel.domain.clock import Clock, SystemClock
from kardex_kernel.domain.inventory import WorkOrder, WorkOrderStatus
from kardex_kernel.exceptions import InvalidWorkOrderError, WorkOrderNotFoundError
from kardex_kernel.logging_config import LogContext, get_logger
from kardex_services.store import InventoryStore

logger = get_logger("services.work_orders")

WORK_ORDER_CODE_PREFIX = "OT"


def work_order_code(day_prefix: str, sequence: int) -> str:
    return f"{day_prefix}-{sequence:03d}"


class WorkOrderRegistry:
    """
    Opens and updates work orders of one store.

    Contract:
        Receives the store and clock via constructor injection.  The code's
        date is the clock's date, not the wall clock.
    """

    def __init__(self, store: InventoryStore, clock: Clock | None = None):
        self._store = store
        self._clock = clock or SystemClock()

    def open_work_order(
        self,
        company_id: str,
        responsible: str,
        cost_center: str,
        notes: str | None = None,
    ) -> WorkOrder:
        responsible = (responsible or "").strip()
        cost_center = (cost_center or "").strip()
        if not responsible:
            raise InvalidWorkOrderError("responsible")
        if not cost_center:
            raise InvalidWorkOrderError("cost_center")

        now = self._clock.now()
        day_prefix = f"{WORK_ORDER_CODE_PREFIX}-{now:%Y%m%d}"

        with LogContext.bind(company_id=company_id):
            with self._store.transaction(company_id) as tx:
                same_day = [
                    wo for wo in tx.list_work_orders() if wo.code.startswith(day_prefix)
                ]
                work_order = WorkOrder(
                    work_order_id=f"WO-{uuid4().hex[:12].upper()}",
                    company_id=company_id,
                    code=work_order_code(day_prefix, len(same_day) + 1),
                    responsible=responsible,
                    cost_center=cost_center,
                    status=WorkOrderStatus.OPEN,
                    notes=(notes or "").strip() or None,
                    created_at=now,
                )
                tx.save_work_order(work_order)

            logger.info(
                "work_order_opened",
                extra={
                    "work_order_id": work_order.work_order_id,
                    "work_order_code": work_order.code,
                },
            )
            return work_order

    def set_status(
        self,
        company_id: str,
        work_order_id: str,
        status: WorkOrderStatus | str,
    ) -> WorkOrder:
        """Move a work order to ``status``; OUT_OT issues only check existence."""
        status = WorkOrderStatus(status)
        with LogContext.bind(company_id=company_id):
            with self._store.transaction(company_id) as tx:
                current = tx.get_work_order(work_order_id)
                if current is None:
                    raise WorkOrderNotFoundError(work_order_id)
                updated = replace(current, status=status)
                tx.save_work_order(updated)

            logger.info(
                "work_order_status_changed",
                extra={
                    "work_order_id": work_order_id,
                    "from_status": current.status.value,
                    "to_status": status.value,
                },
            )
            return updated
