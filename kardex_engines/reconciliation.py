"""
kardex_engines.reconciliation -- Rebuild and compare the stock projection.

Responsibility:
    Rebuild the projection from ledger entries alone and report every key
    whose live balance disagrees with the rebuild.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The stateful service that
    reads a store snapshot lives in kardex_services.reconciliation_service.

Invariants enforced:
    - The rebuild uses APPROVED entries only, replayed in the order the
      ledger applied them: (decided_at or created_at, id).  A movement
      approved on submission is applied at creation; one approved later is
      applied at its decision.
    - The replay follows ``apply_movement`` for every valid history and
      never raises.  A key the ledger overdraws keeps its signed running
      total, so it surfaces as a mismatch instead of an exception.
    - Reconciliation is idempotent and side-effect free.
    - Mismatches are reported in key order, each with delta = live - ledger.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from kardex_engines.tracer import traced_engine
from kardex_kernel.domain.inventory import KardexMovement, MovementStatus
from kardex_kernel.domain.values import ZERO, StockKey, round_quantity


@dataclass(frozen=True, slots=True)
class StockMismatch:
    """One key where the live projection and the ledger disagree."""

    key: StockKey
    live_qty: Decimal
    ledger_qty: Decimal
    delta: Decimal


@dataclass(frozen=True, slots=True)
class ReconciliationReport:
    """Result of comparing the live projection with a ledger rebuild."""

    balanced: bool
    mismatches: tuple[StockMismatch, ...] = field(default_factory=tuple)
    checked_keys: int = 0


def applied_at(movement: KardexMovement) -> datetime:
    """When the movement reached the projection."""
    return movement.decided_at or movement.created_at


def replay_movement(
    totals: Mapping[StockKey, Decimal],
    movement: KardexMovement,
) -> dict[StockKey, Decimal]:
    """
    ``apply_movement`` without the precondition: an overdrawn key carries
    its negative total forward.  Zero totals are dropped.
    """
    result = dict(totals)
    if movement.status != MovementStatus.APPROVED:
        return result

    for line in movement.lines:
        key = line.key(movement.company_id)
        updated = round_quantity(result.get(key, ZERO) + round_quantity(line.delta_qty))
        if updated == ZERO:
            result.pop(key, None)
        else:
            result[key] = updated

    return result


def rebuild_projection(movements: Iterable[KardexMovement]) -> dict[StockKey, Decimal]:
    """Replay every APPROVED movement, in application order, onto an empty projection."""
    approved = sorted(
        (m for m in movements if m.status == MovementStatus.APPROVED),
        key=lambda m: (applied_at(m), m.id),
    )
    totals: dict[StockKey, Decimal] = {}
    for movement in approved:
        totals = replay_movement(totals, movement)
    return totals


@traced_engine("reconciliation", "1.0")
def reconcile_projection(
    live: Mapping[StockKey, Decimal],
    movements: Iterable[KardexMovement],
) -> ReconciliationReport:
    """Compare ``live`` with the rebuild of ``movements``."""
    rebuilt = rebuild_projection(movements)
    keys = sorted(set(live) | set(rebuilt))

    mismatches: list[StockMismatch] = []
    for key in keys:
        live_qty = live.get(key, ZERO)
        ledger_qty = rebuilt.get(key, ZERO)
        delta = live_qty - ledger_qty
        if delta != ZERO:
            mismatches.append(
                StockMismatch(
                    key=key,
                    live_qty=live_qty,
                    ledger_qty=ledger_qty,
                    delta=delta,
                )
            )

    return ReconciliationReport(
        balanced=not mismatches,
        mismatches=tuple(mismatches),
        checked_keys=len(keys),
    )
