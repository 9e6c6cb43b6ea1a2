"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers render user-facing messages ("Account Cash has only 120.00, but the
transaction amount is 150.00") and must do so without parsing strings.  So:
  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (balances, ids, field names)

Example:
    try:
        orchestrator.create_movement(...)
    except InsufficientBalanceError as e:
        api_response(code=e.code, available=e.available, requested=e.requested)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- InsufficientBalanceError
    |
    +-- InvalidStateError
    |   +-- MovementNotPendingError
    |   +-- MultiItemEditError
    |   +-- TransferEditPathError
    |   +-- CreditNotAllowedError
    |
    +-- InvalidInputError
    |   +-- SameAccountTransferError
    |   +-- NonPositiveAmountError
    |
    +-- NotFoundError
    |   +-- AccountNotFoundError
    |   +-- MovementNotFoundError
    |   +-- CategoryNotFoundError
    |   +-- ItemNotFoundError
    |
    +-- ConcurrencyError
        +-- LockTimeoutError
        +-- LockScopeError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                   | When Raised
-------------|------------------------|--------------------------------------------
Balance      | INSUFFICIENT_BALANCE   | Source account cannot cover a settled effect
-------------|------------------------|--------------------------------------------
State        | MOVEMENT_NOT_PENDING   | Pay on a movement that is already settled
             | MULTI_ITEM_EDIT        | Field edit on a multi-item movement
             | TRANSFER_EDIT_PATH     | Movement edit used on a transfer
             | CREDIT_NOT_ALLOWED     | Deferring a non-expense movement
-------------|------------------------|--------------------------------------------
Input        | INVALID_INPUT          | Missing or contradictory fields
             | SAME_ACCOUNT_TRANSFER  | Transfer source == destination
             | NON_POSITIVE_AMOUNT    | Amount, price or quantity <= 0
-------------|------------------------|--------------------------------------------
Not found    | ACCOUNT_NOT_FOUND      | Account absent from the owner's scope
             | MOVEMENT_NOT_FOUND     | Movement absent from the owner's scope
             | CATEGORY_NOT_FOUND     | Category absent or not visible to owner
             | ITEM_NOT_FOUND         | Item absent or not visible to owner
-------------|------------------------|--------------------------------------------
Concurrency  | LOCK_TIMEOUT           | Account lock not acquired in time
             | LOCK_SCOPE_UNSTABLE    | Involved accounts changed on every retry

All balance-affecting errors are raised BEFORE any write.  Store failures
(SQLAlchemy errors) are not wrapped and not retried.
"""

from decimal import Decimal


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Balance


class InsufficientBalanceError(LedgerKernelError):
    """Account balance cannot cover the requested settled effect."""

    code: str = "INSUFFICIENT_BALANCE"

    def __init__(
        self,
        account_id: str,
        account_name: str,
        available: Decimal,
        requested: Decimal,
    ):
        self.account_id = account_id
        self.account_name = account_name
        self.available = available
        self.requested = requested
        super().__init__(
            f'Account "{account_name}" has only {available:.2f}, '
            f"but the requested amount is {requested:.2f}"
        )


# State


class InvalidStateError(LedgerKernelError):
    """Operation not permitted for the movement's current state or shape."""

    code: str = "INVALID_STATE"


class MovementNotPendingError(InvalidStateError):
    """Pay was requested on a movement that is not pending credit."""

    code: str = "MOVEMENT_NOT_PENDING"

    def __init__(self, movement_id: str, settlement: str):
        self.movement_id = movement_id
        self.settlement = settlement
        super().__init__(
            f"Movement {movement_id} is not pending (settlement={settlement})"
        )


class MultiItemEditError(InvalidStateError):
    """Multi-item movements cannot be edited field by field."""

    code: str = "MULTI_ITEM_EDIT"

    def __init__(self, movement_id: str):
        self.movement_id = movement_id
        super().__init__(f"Multi-item movement {movement_id} cannot be edited")


class TransferEditPathError(InvalidStateError):
    """A transfer was routed through the movement edit path."""

    code: str = "TRANSFER_EDIT_PATH"

    def __init__(self, movement_id: str):
        self.movement_id = movement_id
        super().__init__(
            f"Movement {movement_id} is a transfer; use edit_transfer"
        )


class CreditNotAllowedError(InvalidStateError):
    """Only expenses may be deferred as pending credit."""

    code: str = "CREDIT_NOT_ALLOWED"

    def __init__(self, movement_id: str, movement_type: str):
        self.movement_id = movement_id
        self.movement_type = movement_type
        super().__init__(
            f"Movement {movement_id} of type {movement_type} cannot be put on credit"
        )


# Input


class InvalidInputError(LedgerKernelError):
    """Missing or contradictory fields."""

    code: str = "INVALID_INPUT"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class SameAccountTransferError(InvalidInputError):
    """Transfer source and destination are the same account."""

    code: str = "SAME_ACCOUNT_TRANSFER"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(
            "to_account_id",
            "source and destination accounts cannot be the same",
        )


class NonPositiveAmountError(InvalidInputError):
    """Amount, price or quantity must be greater than zero."""

    code: str = "NON_POSITIVE_AMOUNT"

    def __init__(self, field: str, value: Decimal):
        self.value = value
        super().__init__(field, f"must be greater than zero (got {value})")


# Not found


class NotFoundError(LedgerKernelError):
    """Referenced record does not exist in the caller's owner scope."""

    code: str = "NOT_FOUND"


class AccountNotFoundError(NotFoundError):
    """Account was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class MovementNotFoundError(NotFoundError):
    """Movement was not found."""

    code: str = "MOVEMENT_NOT_FOUND"

    def __init__(self, movement_id: str):
        self.movement_id = movement_id
        super().__init__(f"Movement not found: {movement_id}")


class CategoryNotFoundError(NotFoundError):
    """Category was not found."""

    code: str = "CATEGORY_NOT_FOUND"

    def __init__(self, category_id: str):
        self.category_id = category_id
        super().__init__(f"Category not found: {category_id}")


class ItemNotFoundError(NotFoundError):
    """Item was not found."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item not found: {item_id}")


# Concurrency


class ConcurrencyError(LedgerKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class LockTimeoutError(ConcurrencyError):
    """A per-account lock could not be acquired in time."""

    code: str = "LOCK_TIMEOUT"

    def __init__(self, lock_key: str, timeout_seconds: float):
        self.lock_key = lock_key
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Could not acquire lock on {lock_key} within {timeout_seconds}s"
        )


class LockScopeError(ConcurrencyError):
    """The accounts involved kept changing while locks were being taken."""

    code: str = "LOCK_SCOPE_UNSTABLE"

    def __init__(self, operation: str, attempts: int):
        self.operation = operation
        self.attempts = attempts
        super().__init__(
            f"Lock scope for {operation} did not settle after {attempts} attempts"
        )
