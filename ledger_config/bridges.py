"""
Config -> Kernel Bridges.

Functions that turn ``LedgerSettings`` into ready-to-use kernel objects.
These live in ledger_config (the producer) because the kernel must NEVER
import ledger_config.

Usage:
    from ledger_config import get_active_config
    from ledger_config.bridges import build_orchestrator

    orchestrator = build_orchestrator(get_active_config("default"))
"""

from __future__ import annotations

import logging

from ledger_config.schema import LedgerSettings
from ledger_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from ledger_kernel.domain.clock import Clock
from ledger_kernel.logging_config import configure_logging
from ledger_kernel.services.ledger_orchestrator import LedgerOrchestrator
from ledger_kernel.services.lock_manager import AccountLockManager


def log_level(settings: LedgerSettings) -> int:
    """Numeric logging level for the configured level name."""
    return logging.getLevelName(settings.logging.level.upper())


def build_lock_manager(settings: LedgerSettings) -> AccountLockManager:
    return AccountLockManager(timeout_seconds=settings.locks.timeout_seconds)


def build_orchestrator(
    settings: LedgerSettings,
    clock: Clock | None = None,
    create_schema: bool = True,
) -> LedgerOrchestrator:
    """
    Wire logging, engine, locks and clock from settings.

    Initializes the module-level engine (see ``ledger_kernel.db.engine``);
    a second call re-points it.

    Args:
        settings: Loaded configuration set.
        clock: Clock override (tests); defaults to the system clock.
        create_schema: Create missing tables on the configured store.
    """
    configure_logging(level=log_level(settings))

    db = settings.database
    engine = init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
        busy_timeout=db.busy_timeout,
    )
    if create_schema:
        create_tables(engine)

    return LedgerOrchestrator(
        get_session_factory(),
        lock_manager=build_lock_manager(settings),
        clock=clock,
        max_lock_rounds=settings.locks.max_rounds,
        code_counter_width=settings.codes.counter_width,
    )
