"""
Tests for the work order registry.
"""

from datetime import UTC, datetime

import pytest

from kardex_kernel.domain.inventory import WorkOrderStatus
from kardex_kernel.exceptions import InvalidWorkOrderError, WorkOrderNotFoundError
from tests.conftest import COMPANY_ID, OTHER_COMPANY_ID


class TestOpenWorkOrder:

    def test_first_code_of_the_day(self, work_order_registry):
        wo = work_order_registry.open_work_order(COMPANY_ID, " Paula Rojas ", "CC-PAINT", "  ")

        assert wo.code == "OT-20260101-001"
        assert wo.status == WorkOrderStatus.OPEN
        assert wo.responsible == "Paula Rojas"
        assert wo.notes is None
        assert wo.created_at == datetime(2026, 1, 1, 12, tzinfo=UTC)

    def test_daily_sequence(self, work_order_registry):
        codes = [
            work_order_registry.open_work_order(COMPANY_ID, "Paula", "CC-1").code
            for _ in range(3)
        ]

        assert codes == ["OT-20260101-001", "OT-20260101-002", "OT-20260101-003"]

    def test_sequence_restarts_next_day(self, work_order_registry, deterministic_clock):
        work_order_registry.open_work_order(COMPANY_ID, "Paula", "CC-1")
        deterministic_clock.advance(seconds=24 * 3600)

        wo = work_order_registry.open_work_order(COMPANY_ID, "Paula", "CC-1")

        assert wo.code == "OT-20260102-001"

    def test_sequence_is_per_company(self, work_order_registry):
        work_order_registry.open_work_order(COMPANY_ID, "Paula", "CC-1")

        other = work_order_registry.open_work_order(OTHER_COMPANY_ID, "Jorge", "CC-9")

        assert other.code == "OT-20260101-001"
        assert other.company_id == OTHER_COMPANY_ID

    @pytest.mark.parametrize(
        "responsible, cost_center, field",
        [("", "CC-1", "responsible"), ("  ", "CC-1", "responsible"), ("Paula", " ", "cost_center")],
    )
    def test_mandatory_fields(self, work_order_registry, responsible, cost_center, field):
        with pytest.raises(InvalidWorkOrderError) as exc_info:
            work_order_registry.open_work_order(COMPANY_ID, responsible, cost_center)

        assert exc_info.value.field == field

    def test_opened_order_usable_by_issues(self, work_order_registry, catalog_store):
        wo = work_order_registry.open_work_order(COMPANY_ID, "Paula", "CC-1", notes="Batch 9")

        with catalog_store.transaction(COMPANY_ID) as tx:
            assert tx.get_work_order(wo.work_order_id) == wo


class TestWorkOrderStatus:

    def test_status_change(self, work_order_registry):
        wo = work_order_registry.open_work_order(COMPANY_ID, "Paula", "CC-1")

        updated = work_order_registry.set_status(COMPANY_ID, wo.work_order_id, WorkOrderStatus.DONE)

        assert updated.status == WorkOrderStatus.DONE
        assert not updated.is_active

    def test_unknown_work_order(self, work_order_registry):
        with pytest.raises(WorkOrderNotFoundError):
            work_order_registry.set_status(COMPANY_ID, "WO-NOPE", "DONE")
