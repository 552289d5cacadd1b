"""
Tests for cycle-count registration.

Solvent lot LOT-SOL-2301 at LOC-R1-A1 holds 12 units in the seeded store.
"""

from decimal import Decimal

import pytest

from kardex_kernel.domain.drafts import CycleCountDraft
from kardex_kernel.domain.inventory import MovementStatus, MovementType, Requester, Role
from kardex_kernel.domain.values import StockKey
from kardex_kernel.exceptions import InvalidLotError, ItemNotFoundError, LotRequiredError
from kardex_services.ledger_service import KardexLedger
from tests.conftest import (
    COMPANY_ID,
    GLOVES,
    LOC_A1,
    LOC_B2,
    RESIN_LOT_2401,
    SOLVENT,
    SOLVENT_LOT_2301,
    seed_opening_stock,
    sequential_ids,
)


def count(item_id, location_id, qty, lot_id=None, notes=None):
    return CycleCountDraft(
        item_id=item_id,
        location_id=location_id,
        counted_qty=Decimal(qty),
        lot_id=lot_id,
        notes=notes,
    )


class TestCycleCount:

    def test_matching_count_creates_nothing(self, stocked_ledger, catalog_store, warehouse_keeper):
        before = len(catalog_store.snapshot(COMPANY_ID).movements)

        result = stocked_ledger.submit_cycle_count(
            count(SOLVENT, LOC_A1, "12", SOLVENT_LOT_2301), warehouse_keeper,
        )

        assert result is None
        assert len(catalog_store.snapshot(COMPANY_ID).movements) == before

    def test_shortage_creates_pending_adjust(self, stocked_ledger, catalog_store, warehouse_keeper):
        movement = stocked_ledger.submit_cycle_count(
            count(SOLVENT, LOC_A1, "8", SOLVENT_LOT_2301, notes="Shelf 2"), warehouse_keeper,
        )

        assert movement.movement_type == MovementType.ADJUST
        assert movement.status == MovementStatus.PENDING
        assert len(movement.lines) == 1
        assert movement.lines[0].delta_qty == Decimal("-4")
        assert movement.lines[0].lot_id == SOLVENT_LOT_2301
        assert movement.reason == "Cycle count (12 -> 8)"
        assert movement.notes == "Shelf 2"
        key = StockKey(COMPANY_ID, LOC_A1, SOLVENT, SOLVENT_LOT_2301)
        assert catalog_store.snapshot(COMPANY_ID).balances[key] == Decimal("12")

    def test_approved_count_sets_counted_quantity(
        self, stocked_ledger, catalog_store, warehouse_keeper, supervisor,
    ):
        movement = stocked_ledger.submit_cycle_count(
            count(SOLVENT, LOC_A1, "8", SOLVENT_LOT_2301), warehouse_keeper,
        )

        stocked_ledger.decide_movement(
            COMPANY_ID, movement.id, True, supervisor.role, supervisor.name,
        )

        key = StockKey(COMPANY_ID, LOC_A1, SOLVENT, SOLVENT_LOT_2301)
        assert catalog_store.snapshot(COMPANY_ID).balances[key] == Decimal("8")

    def test_surplus_at_empty_location(self, stocked_ledger, warehouse_keeper):
        movement = stocked_ledger.submit_cycle_count(count(GLOVES, LOC_A1, "5"), warehouse_keeper)

        assert movement.lines[0].delta_qty == Decimal("5")
        assert movement.lines[0].lot_id is None
        assert movement.reason == "Cycle count (0 -> 5)"

    def test_count_to_zero(self, stocked_ledger, warehouse_keeper):
        movement = stocked_ledger.submit_cycle_count(count(GLOVES, LOC_B2, "0"), warehouse_keeper)

        assert movement.lines[0].delta_qty == Decimal("-300")
        assert movement.reason == "Cycle count (300 -> 0)"

    def test_fractional_quantities_in_reason(self, stocked_ledger, warehouse_keeper):
        movement = stocked_ledger.submit_cycle_count(
            count(GLOVES, LOC_B2, "299.5"), warehouse_keeper,
        )

        assert movement.lines[0].delta_qty == Decimal("-0.5")
        assert movement.reason == "Cycle count (300 -> 299.5)"

    def test_lot_ignored_for_non_lot_item(self, stocked_ledger, warehouse_keeper):
        result = stocked_ledger.submit_cycle_count(
            count(GLOVES, LOC_B2, "300", lot_id=RESIN_LOT_2401), warehouse_keeper,
        )

        assert result is None

    def test_lot_item_needs_lot(self, stocked_ledger, warehouse_keeper):
        with pytest.raises(LotRequiredError):
            stocked_ledger.submit_cycle_count(count(SOLVENT, LOC_A1, "3"), warehouse_keeper)

    def test_lot_must_belong_to_item(self, stocked_ledger, warehouse_keeper):
        with pytest.raises(InvalidLotError):
            stocked_ledger.submit_cycle_count(
                count(SOLVENT, LOC_A1, "3", RESIN_LOT_2401), warehouse_keeper,
            )

    def test_unknown_item(self, stocked_ledger, warehouse_keeper):
        with pytest.raises(ItemNotFoundError):
            stocked_ledger.submit_cycle_count(count("ITEM-NOPE", LOC_A1, "3"), warehouse_keeper)

    def test_custom_reason_template(self, catalog_store, deterministic_clock, warehouse_keeper):
        ledger = KardexLedger(
            catalog_store,
            deterministic_clock,
            cycle_count_reason_template="Conteo ciclico: {before} -> {after}",
            id_factory=sequential_ids(),
        )
        seed_opening_stock(ledger, warehouse_keeper)

        movement = ledger.submit_cycle_count(count(GLOVES, LOC_B2, "290"), warehouse_keeper)

        assert movement.reason == "Conteo ciclico: 300 -> 290"

    def test_any_role_may_count(self, stocked_ledger):
        movement = stocked_ledger.submit_cycle_count(
            count(GLOVES, LOC_B2, "1"), Requester(COMPANY_ID, "Root", Role.SUPERADMIN),
        )

        assert movement.created_by_role == Role.SUPERADMIN

    def test_registration_logged(self, stocked_ledger, warehouse_keeper, captured_logs):
        stocked_ledger.submit_cycle_count(count(GLOVES, LOC_B2, "1"), warehouse_keeper)

        record = next(r for r in captured_logs() if r["message"] == "cycle_count_registered")
        assert record["stock_key"] == f"{LOC_B2}|{GLOVES}|NONE"
        assert record["delta_qty"] == "-299.0000"
