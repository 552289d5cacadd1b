"""
Values -- Quantity arithmetic and stock keys.

Responsibility:
    Fixes the quantity precision used everywhere in the ledger and provides
    the composite key under which stock balances are tracked.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Quantities are Decimal, never float.
    - Every stored quantity is quantized to QUANTITY_PLACES fractional
      digits with ROUND_HALF_UP.

Failure modes:
    - InvalidQuantityError when a value cannot be interpreted as a number.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from kardex_kernel.exceptions import InvalidQuantityError

QUANTITY_PLACES = 4
_QUANTUM = Decimal(1).scaleb(-QUANTITY_PLACES)
ZERO = Decimal("0")

NO_LOT = "NONE"


def to_decimal(value: Any) -> Decimal:
    """Convert ints, strings and Decimals to Decimal; floats go through str()."""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise InvalidQuantityError(value, "not a number")
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidQuantityError(value, "not a number") from None
    if not result.is_finite():
        raise InvalidQuantityError(value, "not a finite number")
    return result


def round_quantity(value: Any) -> Decimal:
    """Quantize to QUANTITY_PLACES fractional digits, half up."""
    return to_decimal(value).quantize(_QUANTUM, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class StockKey:
    """
    Composite identity of a stock balance.

    Guarantees:
        - Hashable and totally ordered, so mismatch reports sort stably.
        - ``lot_id`` is None for items that are not lot-managed.
    """

    company_id: str
    location_id: str
    item_id: str
    lot_id: str | None = None

    def _sort_fields(self) -> tuple[str, str, str, str]:
        return (self.company_id, self.location_id, self.item_id, self.lot_id or "")

    def __lt__(self, other: StockKey) -> bool:
        return self._sort_fields() < other._sort_fields()

    def __le__(self, other: StockKey) -> bool:
        return self._sort_fields() <= other._sort_fields()

    def __gt__(self, other: StockKey) -> bool:
        return self._sort_fields() > other._sort_fields()

    def __ge__(self, other: StockKey) -> bool:
        return self._sort_fields() >= other._sort_fields()

    def __str__(self) -> str:
        return f"{self.location_id}|{self.item_id}|{self.lot_id or NO_LOT}"
