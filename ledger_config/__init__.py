"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``LedgerSettings``.  YAML
    loading is internal and never exposed to the kernel.

Architecture position:
    Configuration -- sits above ``ledger_kernel``.  The kernel MUST NEVER
    import from ``ledger_config``; ``ledger_config.bridges`` translates
    settings into kernel objects.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set for the environment.
    - ``KeyError`` / ``ValueError`` -- schema validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``LEDGER_CONFIG_TRACE`` log entry with the environment, version and
    checksum of the set that was loaded.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ledger_config.loader import load_settings
from ledger_config.schema import LedgerSettings

_logger = logging.getLogger("ledger_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    environment: str = "default",
    config_dir: Path | None = None,
) -> LedgerSettings:
    """The ONLY public configuration entrypoint.

    Args:
        environment: Name of the configuration set (``<environment>.yaml``).
        config_dir: Override path to configuration sets directory.
            Defaults to ledger_config/sets/.

    Returns:
        LedgerSettings for the environment.

    Raises:
        FileNotFoundError: If no set exists for ``environment``.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    path = sets_dir / f"{environment}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"No configuration set for environment {environment!r}: {path}")

    settings = load_settings(path)
    if settings.environment != environment:
        raise ValueError(
            f"Configuration set {path.name} declares environment "
            f"{settings.environment!r}, expected {environment!r}"
        )

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "environment": settings.environment,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "database_dialect": settings.database.url.split(":", 1)[0],
        },
    )
    return settings


__all__ = ["LedgerSettings", "get_active_config"]
