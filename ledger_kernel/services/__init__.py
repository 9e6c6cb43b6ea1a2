"""Kernel services: the write side of the ledger."""

from ledger_kernel.services.account_store import AccountInfo, AccountStore
from ledger_kernel.services.code_service import MovementCodeService, code_prefix
from ledger_kernel.services.ledger_orchestrator import LedgerOrchestrator, MovementResult
from ledger_kernel.services.lock_manager import AccountLockManager
from ledger_kernel.services.movement_service import MovementInfo, MovementLifecycleService
from ledger_kernel.services.sequence_service import SequenceCounter, SequenceService

__all__ = [
    "AccountInfo",
    "AccountLockManager",
    "AccountStore",
    "LedgerOrchestrator",
    "MovementCodeService",
    "MovementInfo",
    "MovementLifecycleService",
    "MovementResult",
    "SequenceCounter",
    "SequenceService",
    "code_prefix",
]
