"""
Tests for inventory domain objects: stock keys, lots, and the single
PENDING -> terminal decision of a ledger entry.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from kardex_kernel.domain.clock import DeterministicClock
from kardex_kernel.domain.inventory import (
    Item,
    KardexMovement,
    Lot,
    MovementLine,
    MovementStatus,
    MovementType,
    Role,
    WorkOrder,
    WorkOrderStatus,
    is_expired,
    is_near_expiry,
    movement_label,
)
from kardex_kernel.domain.values import StockKey, round_quantity
from kardex_kernel.exceptions import InvalidTargetStatusError, NotPendingError

T0 = datetime(2026, 1, 1, 12, tzinfo=UTC)


def pending_adjust(notes=None):
    return KardexMovement(
        id="ADJUST-ABC",
        company_id="COMP-BOG-001",
        movement_type=MovementType.ADJUST,
        status=MovementStatus.PENDING,
        created_by_name="Ana",
        created_by_role=Role.BODEGUERO,
        created_at=T0,
        lines=(MovementLine("LOC-A", "ITEM-1", None, Decimal("-4")),),
        reason="Cycle count (12 -> 8)",
        notes=notes,
    )


class TestStockKey:

    def test_string_form_uses_none_marker(self):
        assert str(StockKey("C", "LOC-A", "ITEM-1")) == "LOC-A|ITEM-1|NONE"
        assert str(StockKey("C", "LOC-A", "ITEM-1", "LOT-1")) == "LOC-A|ITEM-1|LOT-1"

    def test_ordering_puts_no_lot_first(self):
        keys = [StockKey("C", "L", "I", "LOT-2"), StockKey("C", "L", "I", None)]

        assert sorted(keys)[0].lot_id is None

    def test_hashable_and_equal_by_value(self):
        assert {StockKey("C", "L", "I"): 1}[StockKey("C", "L", "I")] == 1


class TestCatalog:

    @pytest.mark.parametrize(
        "has_expiry, by_lot, expected",
        [(False, False, False), (True, False, True), (False, True, True), (True, True, True)],
    )
    def test_lot_managed(self, has_expiry, by_lot, expected):
        item = Item("I", "C", "SKU", "Name", has_expiry=has_expiry, by_lot=by_lot)

        assert item.is_lot_managed is expected

    def test_expiry_helpers(self):
        lot = Lot("L", "C", "I", "CODE", date(2026, 1, 20))

        assert not is_expired(lot, date(2026, 1, 20))
        assert is_expired(lot, date(2026, 1, 21))
        assert is_near_expiry(lot, date(2026, 1, 1), days=30)
        assert not is_near_expiry(lot, date(2026, 1, 1), days=10)

    def test_work_order_active_states(self):
        wo = WorkOrder("WO", "C", "OT-20260101-001", "Paula", "CC-1")

        assert wo.is_active
        assert not WorkOrder("WO", "C", "X", "P", "C", status=WorkOrderStatus.DONE).is_active

    def test_movement_labels(self):
        assert movement_label(MovementType.OUT_OT) == "Work order issue"
        assert movement_label("SCRAP") == "Scrap"


class TestMovementDecision:

    def test_approve_stamps_approver(self):
        decided = pending_adjust().with_decision(
            MovementStatus.APPROVED, "Luis", Role.SUPERVISOR, T0,
        )

        assert decided.status == MovementStatus.APPROVED
        assert decided.approved_by == "Luis"
        assert decided.approved_by_role == Role.SUPERVISOR
        assert decided.decided_at == T0

    def test_original_instance_untouched(self):
        movement = pending_adjust()

        movement.with_decision(MovementStatus.REJECTED, "Luis", Role.SUPERVISOR, T0)

        assert movement.is_pending

    def test_comment_appended_to_notes(self):
        decided = pending_adjust(notes="Shelf B").with_decision(
            MovementStatus.REJECTED, "Luis", Role.SUPERVISOR, T0, comment=" Recount first ",
        )

        assert decided.notes == "Shelf B | Recount first"

    def test_comment_without_notes(self):
        decided = pending_adjust().with_decision(
            MovementStatus.REJECTED, "Luis", Role.SUPERVISOR, T0, comment="No",
        )

        assert decided.notes == "No"

    def test_second_decision_refused(self):
        decided = pending_adjust().with_decision(
            MovementStatus.APPROVED, "Luis", Role.SUPERVISOR, T0,
        )

        with pytest.raises(NotPendingError) as exc_info:
            decided.with_decision(MovementStatus.REJECTED, "Marta", Role.ADMIN, T0)

        assert exc_info.value.current_status == "APPROVED"

    def test_pending_is_not_a_target(self):
        with pytest.raises(InvalidTargetStatusError) as exc_info:
            pending_adjust().with_decision(MovementStatus.PENDING, "Luis", Role.ADMIN, T0)

        assert exc_info.value.new_status == "PENDING"

    def test_keys_follow_lines(self):
        assert pending_adjust().keys() == (StockKey("COMP-BOG-001", "LOC-A", "ITEM-1"),)


class TestValuesAndClock:

    def test_round_half_up(self):
        assert round_quantity("0.00005") == Decimal("0.0001")
        assert round_quantity(3) == Decimal("3.0000")

    def test_deterministic_clock(self):
        clock = DeterministicClock(T0)

        assert clock.today() == date(2026, 1, 1)
        assert clock.tick() == datetime(2026, 1, 1, 12, 0, 1, tzinfo=UTC)
