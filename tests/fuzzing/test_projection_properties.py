"""
Property-based tests for the stock projection and FIFO allocation.

Hypothesis drives random movement sequences through a fresh in-memory
ledger; PENDING movements are queued and decided at later steps.
After every step the projection must hold no negative or zero
rows, and a rebuild from the ledger must equal the live projection.
"""

import random
from datetime import date, timedelta
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from kardex_engines.fifo import LotAvailability, allocate_fifo
from kardex_engines.reconciliation import rebuild_projection, reconcile_projection
from kardex_kernel.domain.clock import DeterministicClock
from kardex_kernel.domain.drafts import (
    AdjustmentDraft,
    ReceiptDraft,
    ScrapDraft,
    TransferDraft,
    WorkOrderIssueDraft,
)
from kardex_kernel.domain.inventory import Requester, Role
from kardex_kernel.exceptions import KardexError
from kardex_services.ledger_service import KardexLedger
from kardex_services.memory_store import InMemoryInventoryStore
from tests.conftest import (
    COMPANY_ID,
    GLOVES,
    LOC_A1,
    LOC_B2,
    RESIN,
    RESIN_LOT_2401,
    RESIN_LOT_2402,
    WORK_ORDER_ID,
    item_code,
    lot_code,
    seed_catalog,
    sequential_ids,
)

ZERO = Decimal("0")
TODAY = date(2026, 1, 1)
KEEPER = Requester(COMPANY_ID, "Ana Torres", Role.BODEGUERO)

quantities = st.decimals(
    min_value=Decimal("0.0001"), max_value=Decimal("500"),
    places=4, allow_nan=False, allow_infinity=False,
)
locations = st.sampled_from([LOC_A1, LOC_B2])

receipts = st.tuples(
    st.just("receipt"),
    st.sampled_from([item_code(GLOVES), lot_code(RESIN_LOT_2401), lot_code(RESIN_LOT_2402)]),
    locations, quantities,
)
transfers = st.tuples(
    st.just("transfer"), st.sampled_from([item_code(GLOVES), item_code(RESIN)]),
    locations, quantities,
)
issues = st.tuples(st.just("issue"), st.just(item_code(RESIN)), locations, quantities)
adjustments = st.tuples(
    st.sampled_from(["adjust_up", "adjust_down", "scrap"]),
    st.just(item_code(GLOVES)), locations, quantities,
)
# Picks one queued PENDING movement, by index modulo the queue, and approves or rejects it.
decisions = st.tuples(st.just("decide"), st.integers(min_value=0, max_value=24), st.booleans())
operations = st.lists(
    st.one_of(receipts, transfers, issues, adjustments, decisions), max_size=30,
)


def other_location(location_id):
    return LOC_B2 if location_id == LOC_A1 else LOC_A1


def build_draft(op):
    kind, code, location_id, qty = op
    if kind == "receipt":
        draft = ReceiptDraft(scan_code=code, quantity=qty, location_id=location_id)
    elif kind == "transfer":
        draft = TransferDraft(
            scan_code=code, quantity=qty, location_id=location_id,
            destination_location_id=other_location(location_id),
        )
    elif kind == "issue":
        draft = WorkOrderIssueDraft(
            scan_code=code, quantity=qty, location_id=location_id,
            work_order_id=WORK_ORDER_ID,
        )
    elif kind == "scrap":
        draft = ScrapDraft(scan_code=code, quantity=qty, location_id=location_id, reason="Torn")
    else:
        draft = AdjustmentDraft(
            scan_code=code, quantity=qty, location_id=location_id,
            direction="INCREMENT" if kind == "adjust_up" else "DECREMENT",
            reason="Recount",
        )

    return draft


def decide(ledger, pending, op):
    """Approve or reject a queued movement; a no-op on an empty queue."""
    if not pending:
        return
    _, index, approve = op
    movement_id = pending.pop(index % len(pending))
    ledger.decide_movement(COMPANY_ID, movement_id, approve, Role.SUPERVISOR, "Luis Gomez")


def apply_operation(ledger, pending, op):
    if op[0] == "decide":
        decide(ledger, pending, op)
        return
    movement = ledger.submit_movement(build_draft(op), KEEPER)
    if movement.is_pending:
        pending.append(movement.id)


def fresh_ledger():
    store = InMemoryInventoryStore()
    seed_catalog(store)
    clock = DeterministicClock()
    return store, clock, KardexLedger(store, clock, id_factory=sequential_ids())


class TestLedgerProperties:

    @given(ops=operations)
    @settings(max_examples=100, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_projection_matches_rebuild_after_every_step(self, ops):
        store, clock, ledger = fresh_ledger()
        pending = []

        for op in ops:
            try:
                apply_operation(ledger, pending, op)
            except KardexError:
                pass
            clock.advance()

            snapshot = store.snapshot(COMPANY_ID)
            assert all(qty > ZERO for qty in snapshot.balances.values())
            assert rebuild_projection(snapshot.movements) == snapshot.balances
            assert reconcile_projection(snapshot.balances, snapshot.movements).balanced

    @given(ops=operations)
    @settings(max_examples=50, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_rejected_operations_leave_no_trace(self, ops):
        store, clock, ledger = fresh_ledger()
        pending = []

        for op in ops:
            clock.advance()
            before = store.snapshot(COMPANY_ID)
            try:
                apply_operation(ledger, pending, op)
            except KardexError:
                assert store.snapshot(COMPANY_ID) == before


lot_rows = st.lists(
    st.tuples(
        st.integers(min_value=-30, max_value=365),
        st.decimals(min_value=Decimal("0"), max_value=Decimal("200"), places=4,
                    allow_nan=False, allow_infinity=False),
    ),
    min_size=1, max_size=8,
)


def availability(rows):
    return [
        LotAvailability(
            lot_id=f"LOT-{i:03d}",
            lot_code=f"C-{i:03d}",
            item_id=RESIN,
            location_id=LOC_A1,
            expires_at=TODAY + timedelta(days=offset),
            available_qty=qty,
        )
        for i, (offset, qty) in enumerate(rows)
    ]


class TestFifoProperties:

    @given(rows=lot_rows, requested=quantities, seed=st.integers(min_value=0, max_value=1000))
    @settings(max_examples=150, deadline=None)
    def test_allocation_is_conserved_and_order_independent(self, rows, requested, seed):
        lots = availability(rows)
        shuffled = list(lots)
        random.Random(seed).shuffle(shuffled)

        try:
            result = allocate_fifo(
                item_id=RESIN, location_id=LOC_A1, requested_qty=requested,
                available_lots=lots, allow_expired=True, reason="Urgent", today=TODAY,
            )
        except KardexError:
            return
        again = allocate_fifo(
            item_id=RESIN, location_id=LOC_A1, requested_qty=requested,
            available_lots=shuffled, allow_expired=True, reason="Urgent", today=TODAY,
        )

        assert again == result
        assert sum((a.quantity for a in result.allocations), ZERO) == result.fulfilled_qty
        assert result.fulfilled_qty + result.missing_qty == requested
        by_id = {lot.lot_id: lot for lot in lots}
        assert all(a.quantity <= by_id[a.lot_id].available_qty for a in result.allocations)

    @given(rows=lot_rows, requested=quantities)
    @settings(max_examples=150, deadline=None)
    def test_non_expired_lots_consumed_first_by_expiry(self, rows, requested):
        try:
            result = allocate_fifo(
                item_id=RESIN, location_id=LOC_A1, requested_qty=requested,
                available_lots=availability(rows), allow_expired=True, reason="Urgent",
                today=TODAY,
            )
        except KardexError:
            return

        fresh = [a for a in result.allocations if not a.is_expired]
        expired = [a for a in result.allocations if a.is_expired]
        assert result.allocations[: len(fresh)] == tuple(fresh)
        assert [a.expires_at for a in fresh] == sorted(a.expires_at for a in fresh)
        assert [a.expires_at for a in expired] == sorted(a.expires_at for a in expired)
        assert result.used_expired == bool(expired)
