"""
kardex_engines.validation -- Movement business rules and status transitions.

Responsibility:
    Check a candidate movement (or a proposed decision on one) against the
    ledger's business rules and the PENDING -> APPROVED | REJECTED state
    machine.  Returns non-blocking warnings; blocking problems raise.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ADJUST and SCRAP carry a non-blank reason and are created PENDING.
    - OUT_OT references a work order.
    - Only PENDING movements change status, only to APPROVED or REJECTED,
      and only when the approver holds an approver role.

Failure modes:
    - ReasonRequiredError, InvalidInitialStatusError, WorkOrderRequiredError
    - NotPendingError, InvalidTargetStatusError, ApproverNotAuthorizedError

Rules are evaluated in the order listed; the first failure wins.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass, field

from kardex_engines.tracer import traced_engine
from kardex_kernel.domain.inventory import (
    APPROVAL_REQUIRED_TYPES,
    DEFAULT_APPROVER_ROLES,
    MOVEMENT_TRANSITIONS,
    MovementStatus,
    MovementType,
    Role,
)
from kardex_kernel.exceptions import (
    ApproverNotAuthorizedError,
    InvalidInitialStatusError,
    InvalidTargetStatusError,
    NotPendingError,
    ReasonRequiredError,
    WorkOrderRequiredError,
)

SUPERVISOR_SCRAP_WARNING = "supervisor deciding scrap: review internal amount policy"


@dataclass(frozen=True, slots=True)
class MovementCheck:
    """
    Facts the validator needs about a movement.

    ``current_status``/``new_status``/``approver_role`` are set only when a
    decision is being checked.
    """

    movement_type: MovementType
    status: MovementStatus
    requested_by_role: Role
    reason: str | None = None
    has_work_order: bool = False
    movement_id: str | None = None
    current_status: MovementStatus | None = None
    new_status: MovementStatus | str | None = None
    approver_role: Role | None = None


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Successful validation; warnings never block."""

    movement_type: MovementType
    status: MovementStatus
    warnings: tuple[str, ...] = field(default_factory=tuple)


@traced_engine("movement_validation", "1.0")
def validate_movement(
    check: MovementCheck,
    approver_roles: Collection[Role] = DEFAULT_APPROVER_ROLES,
) -> ValidationResult:
    """Apply the business rules, then the transition rules when requested."""
    movement_type = MovementType(check.movement_type)
    status = MovementStatus(check.status)

    if movement_type in APPROVAL_REQUIRED_TYPES:
        if not (check.reason or "").strip():
            raise ReasonRequiredError(movement_type.value)
        if status != MovementStatus.PENDING:
            raise InvalidInitialStatusError(movement_type.value, status.value)

    if movement_type == MovementType.OUT_OT and not check.has_work_order:
        raise WorkOrderRequiredError(movement_type.value)

    warnings: list[str] = []

    if check.current_status is not None and check.new_status is not None:
        current = MovementStatus(check.current_status)
        if current != MovementStatus.PENDING:
            raise NotPendingError(check.movement_id, current.value)

        try:
            target = MovementStatus(check.new_status)
        except ValueError:
            raise InvalidTargetStatusError(str(check.new_status)) from None
        if target not in MOVEMENT_TRANSITIONS[current]:
            raise InvalidTargetStatusError(target.value)

        if check.approver_role not in approver_roles:
            role = check.approver_role.value if check.approver_role else None
            raise ApproverNotAuthorizedError(
                role, tuple(sorted(r.value for r in approver_roles))
            )

        if (
            check.approver_role == Role.SUPERVISOR
            and movement_type == MovementType.SCRAP
        ):
            warnings.append(SUPERVISOR_SCRAP_WARNING)

    return ValidationResult(
        movement_type=movement_type,
        status=status,
        warnings=tuple(warnings),
    )
