"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers catch by type and read structured attributes, never by parsing
message strings:

    try:
        manager.create_entry(data, actor_id=actor)
    except UnbalancedEntryError as e:
        show_difference(e.difference)          # structured data
        api_response(code=e.code)              # machine-readable

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from LedgerKernelError:

    LedgerKernelError (base)
    |
    +-- PostingError
    |   +-- UnbalancedEntryError
    |   +-- EmptyEntryError
    |   +-- InvalidLineError
    |   +-- DuplicateEntryNumberError
    |
    +-- AccountError
    |   +-- AccountNotFoundError
    |   +-- InvalidAccountTypeError
    |   +-- DuplicateAccountNumberError
    |
    +-- ReversalError
    |   +-- EntryNotPostedError
    |   +-- EntryAlreadyReversedError
    |
    +-- InventoryError
    |   +-- InvalidMovementError
    |   +-- NegativeStockError
    |   +-- ItemNotFoundError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- InfrastructureError
        +-- PersistenceError

===============================================================================
VALIDATION vs INFRASTRUCTURE
===============================================================================

Every category except InfrastructureError describes a bad input or a
forbidden state transition.  Retrying cannot make a bad input succeed, so
``ledger_kernel.services.retry`` re-raises these immediately.

InfrastructureError wraps persistence failures (lost connections,
serialization conflicts) that survived the bounded retry loop.  Callers
refetch and retry the whole operation; there is no partial success.

Duplicate inventory movements are NOT errors: they are idempotent no-ops
reported through ``InventoryItemState.applied == False``.

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Posting         | UNBALANCED_ENTRY            | |debits - credits| >= 0.01
                | EMPTY_ENTRY                 | Entry has no lines
                | INVALID_LINE                | Negative amount, or both sides non-zero
                | DUPLICATE_ENTRY_NUMBER      | entry_number already used
----------------|-----------------------------|-----------------------------------------
Account         | ACCOUNT_NOT_FOUND           | Account id/number not in the chart
                | INVALID_ACCOUNT_TYPE        | Unknown account type value
                | DUPLICATE_ACCOUNT_NUMBER    | Account number already used
----------------|-----------------------------|-----------------------------------------
Reversal        | ENTRY_NOT_POSTED            | Original missing or not posted
                | ENTRY_ALREADY_REVERSED      | A reversal already exists
----------------|-----------------------------|-----------------------------------------
Inventory       | INVALID_MOVEMENT            | Non-positive quantity, negative cost
                | NEGATIVE_STOCK              | Sale flow would take stock below zero
                | ITEM_NOT_FOUND              | Inventory item does not exist
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Update/delete of posted rows
----------------|-----------------------------|-----------------------------------------
Infrastructure  | PERSISTENCE_FAILURE         | Transient failures exhausted retries
"""

from decimal import Decimal


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Posting-related exceptions


class PostingError(LedgerKernelError):
    """Base exception for journal posting errors."""

    code: str = "POSTING_ERROR"


class UnbalancedEntryError(PostingError):
    """Journal entry debits do not equal credits within tolerance."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(
        self,
        total_debit: Decimal,
        total_credit: Decimal,
        difference: Decimal,
        entry_number: str | None = None,
    ):
        self.total_debit = total_debit
        self.total_credit = total_credit
        self.difference = difference
        self.entry_number = entry_number
        super().__init__(
            f"Unbalanced entry {entry_number or '<unnumbered>'}: "
            f"debits={total_debit}, credits={total_credit}, difference={difference}"
        )


class EmptyEntryError(PostingError):
    """Journal entry has no lines."""

    code: str = "EMPTY_ENTRY"

    def __init__(self, entry_number: str):
        self.entry_number = entry_number
        super().__init__(f"Journal entry {entry_number} has no lines")


class InvalidLineError(PostingError):
    """A journal line carries an invalid amount combination."""

    code: str = "INVALID_LINE"

    def __init__(self, line_index: int, reason: str):
        self.line_index = line_index
        self.reason = reason
        super().__init__(f"Invalid journal line {line_index}: {reason}")


class DuplicateEntryNumberError(PostingError):
    """A journal entry with this number already exists."""

    code: str = "DUPLICATE_ENTRY_NUMBER"

    def __init__(self, entry_number: str):
        self.entry_number = entry_number
        super().__init__(f"Journal entry number already used: {entry_number}")


# Account-related exceptions


class AccountError(LedgerKernelError):
    """Base exception for chart-of-accounts errors."""

    code: str = "ACCOUNT_ERROR"


class AccountNotFoundError(AccountError):
    """Account was not found in the chart."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_ref: str):
        self.account_ref = account_ref
        super().__init__(f"Account not found: {account_ref}")


class InvalidAccountTypeError(AccountError):
    """Account type value is not one of the canonical types."""

    code: str = "INVALID_ACCOUNT_TYPE"

    def __init__(self, account_type: str):
        self.account_type = account_type
        super().__init__(f"Invalid account type: {account_type}")


class DuplicateAccountNumberError(AccountError):
    """An account with this number already exists."""

    code: str = "DUPLICATE_ACCOUNT_NUMBER"

    def __init__(self, number: str):
        self.number = number
        super().__init__(f"Account number already used: {number}")


# Reversal-related exceptions


class ReversalError(LedgerKernelError):
    """Base exception for reversal-related errors."""

    code: str = "REVERSAL_ERROR"


class EntryNotPostedError(ReversalError):
    """Cannot reverse an entry that is missing or not posted."""

    code: str = "ENTRY_NOT_POSTED"

    def __init__(self, reference: str, status: str):
        self.reference = reference
        self.status = status
        super().__init__(
            f"Cannot reverse entry {reference}: status is {status}, not posted"
        )


class EntryAlreadyReversedError(ReversalError):
    """Entry has already been reversed."""

    code: str = "ENTRY_ALREADY_REVERSED"

    def __init__(self, reference: str, reversal_entry_id: str | None = None):
        self.reference = reference
        self.reversal_entry_id = reversal_entry_id
        super().__init__(f"Entry {reference} has already been reversed")


# Inventory-related exceptions


class InventoryError(LedgerKernelError):
    """Base exception for inventory costing errors."""

    code: str = "INVENTORY_ERROR"


class InvalidMovementError(InventoryError):
    """Movement quantity or unit cost is invalid."""

    code: str = "INVALID_MOVEMENT"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid inventory movement: {reason}")


class NegativeStockError(InventoryError):
    """An outbound sale/return movement would take stock below zero."""

    code: str = "NEGATIVE_STOCK"

    def __init__(
        self,
        item_id: str,
        on_hand: Decimal,
        requested: Decimal,
        movement_type: str,
    ):
        self.item_id = item_id
        self.on_hand = on_hand
        self.requested = requested
        self.movement_type = movement_type
        super().__init__(
            f"Movement {movement_type} of {requested} on item {item_id} "
            f"exceeds quantity on hand {on_hand}"
        )


class ItemNotFoundError(InventoryError):
    """Inventory item does not exist."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Inventory item not found: {item_id}")


# Immutability-related exceptions


class ImmutabilityError(LedgerKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Posted journal entries, their lines, and inventory movements are
    append-only.  Corrections are compensating entries.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Infrastructure exceptions


class InfrastructureError(LedgerKernelError):
    """Base exception for persistence/infrastructure failures."""

    code: str = "INFRASTRUCTURE_ERROR"


class PersistenceError(InfrastructureError):
    """A persistence call kept failing after the bounded retry loop."""

    code: str = "PERSISTENCE_FAILURE"

    def __init__(self, operation: str, attempts: int, cause: str):
        self.operation = operation
        self.attempts = attempts
        self.cause = cause
        super().__init__(
            f"Persistence operation {operation} failed after {attempts} attempts: {cause}"
        )
