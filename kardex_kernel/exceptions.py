"""
Typed Exception Hierarchy for the Kardex Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Inventory ledgers must fail precisely. A caller that receives a stock failure
needs to know WHICH key ran short and by HOW MUCH so it can retry with other
parameters; it must never parse a message string to find out.

Every exception in this module:
  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (key, quantities, ids)

Example - WRONG way to handle errors:
    try:
        ledger.submit_movement(draft, requester)
    except Exception as e:
        if "insufficient" in str(e):   # FRAGILE
            ...

Example - RIGHT way:
    try:
        ledger.submit_movement(draft, requester)
    except InsufficientStockError as e:
        api_response(code=e.code, key=str(e.key), missing=str(e.missing))

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from KardexError:

    KardexError (base)
    |
    +-- ScanCodeError
    |   +-- MalformedCodeError
    |   +-- CrossTenantCodeError
    |
    +-- MovementInputError
    |   +-- InvalidQuantityError
    |   +-- MissingDestinationError
    |   +-- InvalidDestinationError
    |
    +-- BusinessRuleError
    |   +-- ReasonRequiredError
    |   +-- InvalidInitialStatusError
    |   +-- WorkOrderRequiredError
    |   +-- LotRequiredError
    |   +-- InvalidLotError
    |   +-- ApproverNotAuthorizedError
    |   +-- NotPendingError
    |   +-- InvalidTargetStatusError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |   +-- InsufficientNonExpiredStockError
    |   +-- ExpiredLotConfirmationRequiredError
    |   +-- ReasonRequiredForExpiredUseError
    |
    +-- NotFoundError
    |   +-- MovementNotFoundError
    |   +-- ItemNotFoundError
    |   +-- LotNotFoundError
    |   +-- WorkOrderNotFoundError
    |
    +-- ProjectionError
    |   +-- ProjectionPreconditionError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- WorkOrderError
        +-- InvalidWorkOrderError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                              | When Raised
----------------|-----------------------------------|-----------------------------------
Scan code       | MALFORMED_CODE                    | Not PREFIX:COMPANY:ENTITY
                | CROSS_TENANT_CODE                 | Code belongs to another company
----------------|-----------------------------------|-----------------------------------
Input           | INVALID_QUANTITY                  | Quantity <= 0 (or count < 0)
                | MISSING_DESTINATION               | Transfer without destination
                | INVALID_DESTINATION               | Transfer onto its own source
----------------|-----------------------------------|-----------------------------------
Business rule   | REASON_REQUIRED                   | ADJUST/SCRAP without reason
                | INVALID_INITIAL_STATUS            | ADJUST/SCRAP not created PENDING
                | WORK_ORDER_REQUIRED               | OUT_OT without work order
                | LOT_REQUIRED                      | Lot-managed item, no lot, no FIFO
                | INVALID_LOT                       | Lot does not belong to the item
                | APPROVER_NOT_AUTHORIZED           | Role may not decide movements
                | NOT_PENDING                       | Decision on a decided movement
                | INVALID_TARGET_STATUS             | Target not APPROVED/REJECTED
----------------|-----------------------------------|-----------------------------------
Stock           | INSUFFICIENT_STOCK                | Balance would go negative
                | INSUFFICIENT_NON_EXPIRED_STOCK    | FIFO short, nothing expired left
                | EXPIRED_LOT_CONFIRMATION_REQUIRED | FIFO needs expired lots
                | REASON_REQUIRED_FOR_EXPIRED_USE   | Expired lots allowed, no reason
----------------|-----------------------------------|-----------------------------------
Not found       | MOVEMENT_NOT_FOUND                | Unknown movement id
                | ITEM_NOT_FOUND                    | Unknown item id
                | LOT_NOT_FOUND                     | Unknown lot id
                | WORK_ORDER_NOT_FOUND              | Unknown work order id
----------------|-----------------------------------|-----------------------------------
Projection      | PROJECTION_PRECONDITION           | Negative delta on an absent key
----------------|-----------------------------------|-----------------------------------
Immutability    | IMMUTABILITY_VIOLATION            | Modifying ledger history
----------------|-----------------------------------|-----------------------------------
Work order      | INVALID_WORK_ORDER                | Missing responsible/cost center

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Malformed input and business-rule errors are surfaced verbatim; the
   core never retries them.

2. Stock errors carry enough data to retry with different parameters:

    except ExpiredLotConfirmationRequiredError as e:
        ask_user_to_confirm(e.item_id, e.location_id)

3. No error is recovered inside the core. Every failure aborts the whole
   call: no partial ledger entry, no projection mutation.
"""

from __future__ import annotations

from decimal import Decimal


class KardexError(Exception):
    """
    Base exception for all kardex kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "KARDEX_ERROR"


# Scan code exceptions


class ScanCodeError(KardexError):
    """Base exception for scanned code errors."""

    code: str = "SCAN_CODE_ERROR"


class MalformedCodeError(ScanCodeError):
    """Scanned code is not PREFIX:COMPANY_ID:ENTITY_ID with a known prefix."""

    code: str = "MALFORMED_CODE"

    def __init__(self, raw_code: str, reason: str):
        self.raw_code = raw_code
        self.reason = reason
        super().__init__(f"Malformed code {raw_code!r}: {reason}")


class CrossTenantCodeError(ScanCodeError):
    """Scanned code belongs to a company other than the active one."""

    code: str = "CROSS_TENANT_CODE"

    def __init__(self, raw_code: str, code_company_id: str, active_company_id: str):
        self.raw_code = raw_code
        self.code_company_id = code_company_id
        self.active_company_id = active_company_id
        super().__init__(
            f"Code {raw_code!r} belongs to company {code_company_id}, "
            f"active company is {active_company_id}"
        )


# Movement input exceptions


class MovementInputError(KardexError):
    """Base exception for malformed movement input."""

    code: str = "MOVEMENT_INPUT_ERROR"


class InvalidQuantityError(MovementInputError):
    """Quantity is zero, negative or not a number."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object, reason: str = "must be greater than zero"):
        self.quantity = str(quantity)
        self.reason = reason
        super().__init__(f"Invalid quantity {quantity}: {reason}")


class MissingDestinationError(MovementInputError):
    """Transfer submitted without a destination location."""

    code: str = "MISSING_DESTINATION"

    def __init__(self, source_location_id: str):
        self.source_location_id = source_location_id
        super().__init__(
            f"Transfer from {source_location_id} requires a destination location"
        )


class InvalidDestinationError(MovementInputError):
    """Transfer destination equals its source."""

    code: str = "INVALID_DESTINATION"

    def __init__(self, location_id: str):
        self.location_id = location_id
        super().__init__(f"Transfer destination cannot equal its source {location_id}")


# Business rule exceptions


class BusinessRuleError(KardexError):
    """Base exception for movement business-rule violations."""

    code: str = "BUSINESS_RULE_ERROR"


class ReasonRequiredError(BusinessRuleError):
    """ADJUST and SCRAP movements must carry a reason."""

    code: str = "REASON_REQUIRED"

    def __init__(self, movement_type: str):
        self.movement_type = movement_type
        super().__init__(f"A reason is required for {movement_type} movements")


class InvalidInitialStatusError(BusinessRuleError):
    """ADJUST and SCRAP movements must start PENDING."""

    code: str = "INVALID_INITIAL_STATUS"

    def __init__(self, movement_type: str, status: str):
        self.movement_type = movement_type
        self.status = status
        super().__init__(f"{movement_type} movements must start as PENDING, got {status}")


class WorkOrderRequiredError(BusinessRuleError):
    """OUT_OT movements must reference a work order."""

    code: str = "WORK_ORDER_REQUIRED"

    def __init__(self, movement_type: str):
        self.movement_type = movement_type
        super().__init__(f"{movement_type} movements require an associated work order")


class LotRequiredError(BusinessRuleError):
    """Lot-managed item used without a lot and without auto-FIFO."""

    code: str = "LOT_REQUIRED"

    def __init__(self, item_id: str, movement_type: str):
        self.item_id = item_id
        self.movement_type = movement_type
        super().__init__(
            f"Item {item_id} is lot-managed: scan a LOT code, choose a lot "
            f"or enable auto-FIFO for {movement_type}"
        )


class InvalidLotError(BusinessRuleError):
    """Lot does not belong to the resolved item."""

    code: str = "INVALID_LOT"

    def __init__(self, lot_id: str, item_id: str):
        self.lot_id = lot_id
        self.item_id = item_id
        super().__init__(f"Lot {lot_id} does not belong to item {item_id}")


class ApproverNotAuthorizedError(BusinessRuleError):
    """Acting role may not approve or reject movements."""

    code: str = "APPROVER_NOT_AUTHORIZED"

    def __init__(self, approver_role: str | None, allowed_roles: tuple[str, ...]):
        self.approver_role = approver_role
        self.allowed_roles = allowed_roles
        super().__init__(
            f"Role {approver_role} cannot decide pending movements "
            f"(allowed: {', '.join(allowed_roles)})"
        )


class NotPendingError(BusinessRuleError):
    """Movement has already left PENDING."""

    code: str = "NOT_PENDING"

    def __init__(self, movement_id: str | None, current_status: str):
        self.movement_id = movement_id
        self.current_status = current_status
        super().__init__(
            f"Movement {movement_id} is {current_status}; only PENDING movements "
            f"can change status"
        )


class InvalidTargetStatusError(BusinessRuleError):
    """Decision target is neither APPROVED nor REJECTED."""

    code: str = "INVALID_TARGET_STATUS"

    def __init__(self, new_status: str):
        self.new_status = new_status
        super().__init__(f"New status must be APPROVED or REJECTED, got {new_status}")


# Stock sufficiency exceptions


class StockError(KardexError):
    """Base exception for stock sufficiency failures."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """Applying the movement would drive a balance negative or leave it short."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        key: str,
        available: Decimal,
        requested: Decimal,
    ):
        self.key = key
        self.available = available
        self.requested = requested
        self.missing = requested - available
        super().__init__(
            f"Insufficient stock at {key}: available {available}, "
            f"requested {requested}, missing {self.missing}"
        )


class InsufficientNonExpiredStockError(StockError):
    """FIFO cannot be satisfied from non-expired lots and no expired lots exist."""

    code: str = "INSUFFICIENT_NON_EXPIRED_STOCK"

    def __init__(self, item_id: str, location_id: str, requested: Decimal, available: Decimal):
        self.item_id = item_id
        self.location_id = location_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient non-expired stock of {item_id} at {location_id}: "
            f"requested {requested}, available {available}"
        )


class ExpiredLotConfirmationRequiredError(StockError):
    """Expired lots are needed but their use was not confirmed."""

    code: str = "EXPIRED_LOT_CONFIRMATION_REQUIRED"

    def __init__(self, item_id: str, location_id: str, requested: Decimal, non_expired: Decimal):
        self.item_id = item_id
        self.location_id = location_id
        self.requested = requested
        self.non_expired = non_expired
        super().__init__(
            f"Expired lots of {item_id} at {location_id} are required to complete "
            f"the allocation; confirmation is required"
        )


class ReasonRequiredForExpiredUseError(StockError):
    """Expired lots were allowed but no reason was given."""

    code: str = "REASON_REQUIRED_FOR_EXPIRED_USE"

    def __init__(self, item_id: str, location_id: str):
        self.item_id = item_id
        self.location_id = location_id
        super().__init__(f"A reason is required to use expired lots of {item_id}")


# Not-found exceptions


class NotFoundError(KardexError):
    """Base exception for unknown references."""

    code: str = "NOT_FOUND"


class MovementNotFoundError(NotFoundError):
    """Movement with given ID was not found."""

    code: str = "MOVEMENT_NOT_FOUND"

    def __init__(self, movement_id: str):
        self.movement_id = movement_id
        super().__init__(f"Movement not found: {movement_id}")


class ItemNotFoundError(NotFoundError):
    """Item with given ID was not found for the company."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item not found: {item_id}")


class LotNotFoundError(NotFoundError):
    """Lot with given ID was not found for the company."""

    code: str = "LOT_NOT_FOUND"

    def __init__(self, lot_id: str):
        self.lot_id = lot_id
        super().__init__(f"Lot not found: {lot_id}")


class WorkOrderNotFoundError(NotFoundError):
    """Work order with given ID was not found for the company."""

    code: str = "WORK_ORDER_NOT_FOUND"

    def __init__(self, work_order_id: str):
        self.work_order_id = work_order_id
        super().__init__(f"Work order not found: {work_order_id}")


# Projection exceptions


class ProjectionError(KardexError):
    """Base exception for stock projection errors."""

    code: str = "PROJECTION_ERROR"


class ProjectionPreconditionError(ProjectionError):
    """
    A non-positive delta reached a key with no balance row.

    The ledger's non-negative pre-check exists to make this unreachable; if
    it is raised the ledger or the projection has been tampered with.
    """

    code: str = "PROJECTION_PRECONDITION"

    def __init__(self, key: str, delta: Decimal, movement_id: str):
        self.key = key
        self.delta = delta
        self.movement_id = movement_id
        super().__init__(
            f"Movement {movement_id} applies {delta} to {key}, which has no balance"
        )


# Immutability exceptions


class ImmutabilityError(KardexError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify ledger history."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Cannot modify {entity_type} {entity_id}: {reason}")


# Work order exceptions


class WorkOrderError(KardexError):
    """Base exception for work order registry errors."""

    code: str = "WORK_ORDER_ERROR"


class InvalidWorkOrderError(WorkOrderError):
    """Work order is missing mandatory fields."""

    code: str = "INVALID_WORK_ORDER"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Work order field '{field}' is required")
