"""
LedgerSettings schema.

Typed, frozen view of one configuration set.  YAML files are parsed into
these types by the loader; the kernel never sees YAML, only the values
handed to it by ``ledger_config.bridges``.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection and pool parameters for the ledger store."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    busy_timeout: float = 30.0  # SQLite only, seconds


@dataclass(frozen=True)
class LockSettings:
    """Per-account lock behaviour."""

    timeout_seconds: float = 10.0
    max_rounds: int = 3


@dataclass(frozen=True)
class CodeSettings:
    """Movement display code format."""

    counter_width: int = 2


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class LedgerSettings:
    """A complete, validated configuration set."""

    environment: str
    version: int
    database: DatabaseSettings
    locks: LockSettings = field(default_factory=LockSettings)
    codes: CodeSettings = field(default_factory=CodeSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    checksum: str = ""
