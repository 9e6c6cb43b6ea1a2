"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the frozen
``ledger_config.schema`` dataclasses.  The single public entry point for
runtime config is ``ledger_config.get_active_config()``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields (``environment``,
  ``version``, ``database.url``).
* Unknown keys in a section are rejected, so a typo cannot silently fall
  back to a default.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    CodeSettings,
    DatabaseSettings,
    LedgerSettings,
    LockSettings,
    LoggingSettings,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _section(data: dict[str, Any], name: str, cls):
    raw = data.get(name) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Section {name!r} must be a mapping, got {type(raw).__name__}")
    allowed = {f.name for f in fields(cls)}
    unknown = set(raw) - allowed
    if unknown:
        raise ValueError(f"Unknown keys in section {name!r}: {sorted(unknown)}")
    return cls(**raw)


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """
    Parse a ``LedgerSettings`` from a dict.

    Raises:
        KeyError: if ``environment``, ``version`` or ``database.url`` is missing.
        ValueError: if a section is malformed or a value is out of range.
    """
    database = data["database"]
    if not isinstance(database, dict) or "url" not in database:
        raise KeyError("database.url")

    settings = LedgerSettings(
        environment=data["environment"],
        version=int(data["version"]),
        database=_section(data, "database", DatabaseSettings),
        locks=_section(data, "locks", LockSettings),
        codes=_section(data, "codes", CodeSettings),
        logging=_section(data, "logging", LoggingSettings),
        checksum=compute_checksum(data),
    )

    if settings.locks.timeout_seconds <= 0:
        raise ValueError("locks.timeout_seconds must be positive")
    if settings.locks.max_rounds < 1:
        raise ValueError("locks.max_rounds must be at least 1")
    if settings.codes.counter_width < 2:
        raise ValueError("codes.counter_width must be at least 2")
    if not isinstance(logging.getLevelName(settings.logging.level.upper()), int):
        raise ValueError(f"Unknown logging.level {settings.logging.level!r}")
    return settings


def load_settings(path: Path) -> LedgerSettings:
    """Load and parse one configuration set file."""
    return parse_settings(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
