"""
kardex_services.reconciliation_service -- Ledger vs. projection drift check.

Responsibility:
    Read a point-in-time snapshot of one company from the store and compare
    its live stock projection with a rebuild from the ledger.

Architecture position:
    Services -- stateful orchestration over the pure
    ``kardex_engines.reconciliation`` functions.

Invariants enforced:
    - Read-only: the service never writes to the store and never repairs
      drift; it only reports it.
    - Idempotent: reconciling twice without intervening writes gives equal
      reports.

Audit relevance:
    Every run logs ``reconciliation_completed``; any drift additionally logs
    ``reconciliation_drift_detected`` at WARNING with the offending keys.
"""

from __future__ import annotations

from kardex_engines.reconciliation import ReconciliationReport, reconcile_projection
from kardex_kernel.logging_config import LogContext, get_logger
from kardex_services.store import InventoryStore

logger = get_logger("services.reconciliation")


class StockReconciliationService:
    """
    Compares the live projection with the ledger.

    Contract:
        Receives the store via constructor injection.
    Non-goals:
        Does not freeze writes; the report reflects the snapshot instant.
    """

    def __init__(self, store: InventoryStore):
        self._store = store

    def reconcile(self, company_id: str) -> ReconciliationReport:
        with LogContext.bind(company_id=company_id):
            snapshot = self._store.snapshot(company_id)
            report = reconcile_projection(snapshot.balances, snapshot.movements)

            if not report.balanced:
                logger.warning(
                    "reconciliation_drift_detected",
                    extra={
                        "mismatch_count": len(report.mismatches),
                        "mismatched_keys": [str(m.key) for m in report.mismatches],
                    },
                )
            logger.info(
                "reconciliation_completed",
                extra={
                    "balanced": report.balanced,
                    "checked_keys": report.checked_keys,
                    "movement_count": len(snapshot.movements),
                },
            )
            return report
