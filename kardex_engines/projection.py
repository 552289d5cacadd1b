"""
kardex_engines.projection -- Stock projection update rule.

Responsibility:
    Fold approved ledger entries into the stock projection, and check ahead
    of time that a set of lines would not drive any balance negative.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Balances are plain
    ``Mapping[StockKey, Decimal]`` values; every function returns a new
    mapping and never mutates its input.

Invariants enforced:
    - Only APPROVED movements change the projection.
    - Every stored quantity is > 0; a key reaching zero (or below) is dropped.
    - Every stored quantity is rounded to QUANTITY_PLACES.

Failure modes:
    - ProjectionPreconditionError: a non-positive delta on a key with no
      balance.  The sufficiency pre-check makes this unreachable for
      movements written by the ledger.
    - InsufficientStockError (from ensure_sufficient_stock).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal

from kardex_kernel.domain.inventory import KardexMovement, MovementLine, MovementStatus
from kardex_kernel.domain.values import ZERO, StockKey, round_quantity
from kardex_kernel.exceptions import InsufficientStockError, ProjectionPreconditionError

Balances = Mapping[StockKey, Decimal]


def quantity_on_hand(balances: Balances, key: StockKey) -> Decimal:
    """Absent keys hold zero."""
    return balances.get(key, ZERO)


def aggregate_deltas(
    company_id: str,
    lines: Iterable[MovementLine],
) -> dict[StockKey, Decimal]:
    """Net delta per stock key, in first-seen key order."""
    net: dict[StockKey, Decimal] = {}
    for line in lines:
        key = line.key(company_id)
        net[key] = net.get(key, ZERO) + line.delta_qty
    return net


def apply_movement(balances: Balances, movement: KardexMovement) -> dict[StockKey, Decimal]:
    """Return the projection after ``movement``; unchanged unless APPROVED."""
    result = dict(balances)
    if movement.status != MovementStatus.APPROVED:
        return result

    for line in movement.lines:
        key = line.key(movement.company_id)
        delta = round_quantity(line.delta_qty)
        if key in result:
            updated = round_quantity(result[key] + delta)
            if updated <= ZERO:
                del result[key]
            else:
                result[key] = updated
        elif delta > ZERO:
            result[key] = delta
        else:
            raise ProjectionPreconditionError(str(key), delta, movement.id)

    return result


def ensure_sufficient_stock(
    balances: Balances,
    company_id: str,
    lines: Iterable[MovementLine],
) -> None:
    """
    Raise InsufficientStockError if applying ``lines`` would leave any key
    below zero.  Deltas are netted per key first; only negative nets are
    checked.
    """
    for key, net in aggregate_deltas(company_id, lines).items():
        if net >= ZERO:
            continue
        available = quantity_on_hand(balances, key)
        requested = round_quantity(-net)
        if available < requested:
            raise InsufficientStockError(str(key), available, requested)
