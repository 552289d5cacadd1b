"""
Tests for the stock projection update rule and the non-negative pre-check.
"""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from kardex_engines.projection import (
    aggregate_deltas,
    apply_movement,
    ensure_sufficient_stock,
    quantity_on_hand,
)
from kardex_kernel.domain.inventory import (
    KardexMovement,
    MovementLine,
    MovementStatus,
    MovementType,
    Role,
)
from kardex_kernel.domain.values import StockKey
from kardex_kernel.exceptions import InsufficientStockError, ProjectionPreconditionError

COMPANY = "COMP-BOG-001"
KEY_A = StockKey(COMPANY, "LOC-A", "ITEM-1", None)
KEY_B = StockKey(COMPANY, "LOC-B", "ITEM-1", None)


def movement(*lines, status=MovementStatus.APPROVED, movement_id="MOV-1"):
    return KardexMovement(
        id=movement_id,
        company_id=COMPANY,
        movement_type=MovementType.TRANSFER,
        status=status,
        created_by_name="tester",
        created_by_role=Role.BODEGUERO,
        created_at=datetime(2026, 1, 1, tzinfo=UTC),
        lines=tuple(MovementLine(loc, "ITEM-1", None, Decimal(d)) for loc, d in lines),
    )


class TestApplyMovement:

    def test_insert_absent_key_with_positive_delta(self):
        result = apply_movement({}, movement(("LOC-A", "10")))

        assert result == {KEY_A: Decimal("10")}

    def test_add_to_existing_key(self):
        result = apply_movement({KEY_A: Decimal("10")}, movement(("LOC-A", "-3.5")))

        assert result[KEY_A] == Decimal("6.5")

    def test_key_reaching_zero_is_removed(self):
        result = apply_movement({KEY_A: Decimal("10")}, movement(("LOC-A", "-10")))

        assert KEY_A not in result

    def test_transfer_moves_between_keys(self):
        result = apply_movement(
            {KEY_A: Decimal("10")},
            movement(("LOC-A", "-4"), ("LOC-B", "4")),
        )

        assert result == {KEY_A: Decimal("6"), KEY_B: Decimal("4")}

    @pytest.mark.parametrize("status", [MovementStatus.PENDING, MovementStatus.REJECTED])
    def test_non_approved_is_a_no_op(self, status):
        balances = {KEY_A: Decimal("10")}

        result = apply_movement(balances, movement(("LOC-A", "-10"), status=status))

        assert result == balances

    def test_input_mapping_not_mutated(self):
        balances = {KEY_A: Decimal("10")}

        apply_movement(balances, movement(("LOC-A", "-10")))

        assert balances == {KEY_A: Decimal("10")}

    def test_absent_key_with_negative_delta_raises(self):
        with pytest.raises(ProjectionPreconditionError) as exc_info:
            apply_movement({}, movement(("LOC-A", "-1"), movement_id="MOV-BAD"))

        assert exc_info.value.movement_id == "MOV-BAD"
        assert exc_info.value.key == str(KEY_A)

    def test_deltas_are_rounded_to_four_places(self):
        result = apply_movement({}, movement(("LOC-A", "1.00005")))

        assert result[KEY_A] == Decimal("1.0001")


class TestSufficientStock:

    def test_quantity_on_hand_absent_is_zero(self):
        assert quantity_on_hand({}, KEY_A) == Decimal("0")

    def test_aggregate_nets_per_key(self):
        lines = [
            MovementLine("LOC-A", "ITEM-1", None, Decimal("-4")),
            MovementLine("LOC-A", "ITEM-1", None, Decimal("1")),
            MovementLine("LOC-B", "ITEM-1", None, Decimal("3")),
        ]

        assert aggregate_deltas(COMPANY, lines) == {
            KEY_A: Decimal("-3"),
            KEY_B: Decimal("3"),
        }

    def test_exact_stock_is_sufficient(self):
        lines = [MovementLine("LOC-A", "ITEM-1", None, Decimal("-10"))]

        ensure_sufficient_stock({KEY_A: Decimal("10")}, COMPANY, lines)

    def test_shortfall_reports_key_and_missing(self):
        lines = [MovementLine("LOC-A", "ITEM-1", None, Decimal("-12"))]

        with pytest.raises(InsufficientStockError) as exc_info:
            ensure_sufficient_stock({KEY_A: Decimal("10")}, COMPANY, lines)

        err = exc_info.value
        assert err.key == "LOC-A|ITEM-1|NONE"
        assert err.available == Decimal("10")
        assert err.requested == Decimal("12")
        assert err.missing == Decimal("2")

    def test_positive_lines_never_checked(self):
        lines = [MovementLine("LOC-B", "ITEM-1", None, Decimal("5"))]

        ensure_sufficient_stock({}, COMPANY, lines)
