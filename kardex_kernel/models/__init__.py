"""ORM models for the kardex kernel."""

from kardex_kernel.models.catalog import ItemModel, LotModel, WorkOrderModel
from kardex_kernel.models.kardex import KardexMovementModel, MovementLineModel
from kardex_kernel.models.stock import CompanyLockModel, StockBalanceModel

__all__ = [
    "CompanyLockModel",
    "ItemModel",
    "KardexMovementModel",
    "LotModel",
    "MovementLineModel",
    "StockBalanceModel",
    "WorkOrderModel",
]
