"""
Module: kardex_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the import surface for kardex_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import kardex_kernel domain types and exceptions.
    MUST NOT import kardex_services.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Dates are passed in by the services.
    - Decimal-only arithmetic for quantities.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Public engines are traced via ``@traced_engine`` (see
    ``kardex_engines.tracer``), emitting KARDEX_ENGINE_TRACE records.
"""

from kardex_engines.fifo import (
    EXPIRED_LOTS_USED_WARNING,
    FifoAllocation,
    FifoResult,
    LotAvailability,
    allocate_fifo,
)
from kardex_engines.identity import (
    ParsedCode,
    ReferenceCatalog,
    parse_scan_code,
    resolve_scan_code,
)
from kardex_engines.projection import (
    aggregate_deltas,
    apply_movement,
    ensure_sufficient_stock,
    quantity_on_hand,
)
from kardex_engines.reconciliation import (
    ReconciliationReport,
    StockMismatch,
    applied_at,
    reconcile_projection,
    rebuild_projection,
    replay_movement,
)
from kardex_engines.validation import (
    SUPERVISOR_SCRAP_WARNING,
    MovementCheck,
    ValidationResult,
    validate_movement,
)

__all__ = [
    # Identity
    "ParsedCode",
    "ReferenceCatalog",
    "parse_scan_code",
    "resolve_scan_code",
    # FIFO
    "EXPIRED_LOTS_USED_WARNING",
    "FifoAllocation",
    "FifoResult",
    "LotAvailability",
    "allocate_fifo",
    # Validation
    "SUPERVISOR_SCRAP_WARNING",
    "MovementCheck",
    "ValidationResult",
    "validate_movement",
    # Projection
    "aggregate_deltas",
    "apply_movement",
    "ensure_sufficient_stock",
    "quantity_on_hand",
    # Reconciliation
    "ReconciliationReport",
    "StockMismatch",
    "applied_at",
    "reconcile_projection",
    "rebuild_projection",
    "replay_movement",
]
