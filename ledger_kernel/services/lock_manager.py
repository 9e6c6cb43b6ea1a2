"""
AccountLockManager -- in-process mutual exclusion keyed by account/movement id.

Responsibility:
    Serializes lifecycle calls that touch the same account or the same
    movement.  Each key maps to a ``threading.Lock``; a call acquires all of
    its keys in one fixed global order (ascending string form) and holds
    them for the whole transaction.

Architecture position:
    Kernel > Services -- concurrency infrastructure used by
    LedgerOrchestrator.  Complements, and does not replace, the
    ``SELECT ... FOR UPDATE`` row locks taken inside the transaction (which
    are what protect multi-process deployments on PostgreSQL).

Invariants enforced:
    - Deadlock freedom: keys are always acquired in sorted order.
    - Fail, never half-hold: on timeout every lock acquired so far is
      released before LockTimeoutError is raised.
    - Bounded memory: a key's lock entry is dropped when no caller holds or
      waits on it.

Failure modes:
    - LockTimeoutError when a key is not acquired within timeout_seconds.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from uuid import UUID

from ledger_kernel.exceptions import LockTimeoutError
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.lock_manager")


class _KeyLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class AccountLockManager:
    """
    Per-key lock table.

    Usage:
        with locks.acquire([account_a, account_b]):
            ...  # read balances, check, adjust, commit
    """

    def __init__(self, timeout_seconds: float = 10.0):
        self._timeout = timeout_seconds
        self._guard = threading.Lock()
        self._table: dict[str, _KeyLock] = {}

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    def _checkout(self, key: str) -> _KeyLock:
        with self._guard:
            entry = self._table.get(key)
            if entry is None:
                entry = _KeyLock()
                self._table[key] = entry
            entry.users += 1
            return entry

    def _checkin(self, key: str, entry: _KeyLock) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._table[key]

    def held_keys(self) -> int:
        """Number of keys currently held or awaited (diagnostics)."""
        with self._guard:
            return len(self._table)

    @contextmanager
    def acquire(self, keys: Iterable[UUID | str]) -> Iterator[tuple[str, ...]]:
        """
        Acquire every key in global order; release all on exit.

        Yields:
            The sorted tuple of keys actually held.
        """
        ordered = tuple(sorted({str(k) for k in keys}))
        held: list[tuple[str, _KeyLock]] = []
        try:
            for key in ordered:
                entry = self._checkout(key)
                if not entry.lock.acquire(timeout=self._timeout):
                    self._checkin(key, entry)
                    logger.warning(
                        "lock_timeout",
                        extra={"lock_key": key, "timeout_seconds": self._timeout},
                    )
                    raise LockTimeoutError(key, self._timeout)
                held.append((key, entry))
            yield ordered
        finally:
            for key, entry in reversed(held):
                entry.lock.release()
                self._checkin(key, entry)
