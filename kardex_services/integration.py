"""
Wiring entrypoint for embedding callers.

Turns a ``KardexConfig`` into ready-to-use services over the SQL store, so a
caller never has to know the order in which engine, schema, store and
ledger are assembled.

Usage:

    from kardex_config import get_active_config
    from kardex_services.integration import build_sql_services

    services = build_sql_services(get_active_config())
    movement = services.ledger.submit_movement(draft, requester)
    pending = services.selector.pending_approvals(requester.company_id)
"""

from __future__ import annotations

from dataclasses import dataclass

from kardex_config.schema import KardexConfig
from kardex_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from kardex_kernel.domain.clock import Clock, SystemClock
from kardex_kernel.logging_config import configure_logging, get_logger
from kardex_services.ledger_service import KardexLedger
from kardex_services.sql_store import SqlInventoryStore
from kardex_services.stock_selector import StockSelector
from kardex_services.store import InventoryStore
from kardex_services.work_orders import WorkOrderRegistry

logger = get_logger("services.integration")


@dataclass(frozen=True)
class KardexServices:
    """The services of one store, sharing the same clock."""

    store: InventoryStore
    ledger: KardexLedger
    selector: StockSelector
    work_orders: WorkOrderRegistry
    near_expiry_days: int = 30


def build_services(
    store: InventoryStore,
    config: KardexConfig,
    clock: Clock | None = None,
) -> KardexServices:
    """Assemble the services over an existing store with the config's policies."""
    clock = clock or SystemClock()
    ledger = KardexLedger(
        store,
        clock,
        approver_roles=config.approval.approver_roles,
        cycle_count_reason_template=config.inventory.cycle_count_reason_template,
    )
    return KardexServices(
        store=store,
        ledger=ledger,
        selector=StockSelector(store, clock),
        work_orders=WorkOrderRegistry(store, clock),
        near_expiry_days=config.inventory.near_expiry_days,
    )


def build_sql_services(
    config: KardexConfig,
    clock: Clock | None = None,
) -> KardexServices:
    """Configure logging, open the database, create the schema and wire the services."""
    configure_logging(level=config.logging.level)

    init_engine_from_url(
        config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
    )
    create_tables()

    services = build_services(SqlInventoryStore(get_session_factory()), config, clock)
    logger.info(
        "kardex_services_ready",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
        },
    )
    return services


def build_sql_ledger(config: KardexConfig, clock: Clock | None = None) -> KardexLedger:
    return build_sql_services(config, clock).ledger
