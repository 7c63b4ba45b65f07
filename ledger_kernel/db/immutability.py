"""
ORM-level append-only enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Posted journal entries are corrected by compensating entries, never by
editing or deleting rows.  This module makes that a property of the storage
boundary rather than a convention callers are trusted to follow:

    session.flush()
         |
         v
    [before_update] --> _check_*_immutability() --> ImmutabilityViolationError
         |
    [before_delete] --> _check_*_delete() ----------^
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity              | When Immutable                 | Allowed change
--------------------|--------------------------------|-------------------------------
JournalEntry        | After status = POSTED          | DRAFT -> POSTED (the posting)
JournalLine         | When parent entry is POSTED    | none
InventoryMovement   | Always (from insert)           | none
Account             | account_type, from creation    | name, sub_category, is_active

updated_at / updated_by_id are audit metadata and may always change.
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from ledger_kernel.domain.journal import JournalEntryStatus
from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})


def _blocked(entity_type: str, entity_id, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            "field": field,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_journal_entry_immutability(mapper, connection, target):
    """
    Block updates to an entry that was already POSTED before this flush.

    status changing DRAFT -> POSTED is the posting itself and is allowed;
    status changing away from POSTED, or any other field changing while
    status stays POSTED, is blocked.
    """
    status_history = get_history(target, "status")

    if status_history.deleted:
        was_posted_before = status_history.deleted[0] == JournalEntryStatus.POSTED
    elif not status_history.added:
        was_posted_before = target.status == JournalEntryStatus.POSTED
    else:
        was_posted_before = False

    if not was_posted_before:
        return

    for attr in inspect(target).attrs:
        if attr.key in _AUDIT_FIELDS:
            continue
        if attr.history.has_changes():
            raise _blocked(
                "JournalEntry",
                target.id,
                "UPDATE",
                f"Cannot modify field '{attr.key}' on posted journal entry",
                field=attr.key,
            )


def _check_journal_entry_delete(mapper, connection, target):
    if target.status == JournalEntryStatus.POSTED:
        raise _blocked(
            "JournalEntry",
            target.id,
            "DELETE",
            "Posted journal entries cannot be deleted",
        )


def _parent_posted(target) -> bool:
    return target.entry is not None and target.entry.status == JournalEntryStatus.POSTED


def _check_journal_line_immutability(mapper, connection, target):
    if _parent_posted(target):
        raise _blocked(
            "JournalLine",
            target.id,
            "UPDATE",
            "Journal lines cannot be modified after parent entry is posted",
        )


def _check_journal_line_delete(mapper, connection, target):
    if _parent_posted(target):
        raise _blocked(
            "JournalLine",
            target.id,
            "DELETE",
            "Journal lines cannot be deleted after parent entry is posted",
        )


def _check_movement_immutability(mapper, connection, target):
    for attr in inspect(target).attrs:
        if attr.key in _AUDIT_FIELDS:
            continue
        if attr.history.has_changes():
            raise _blocked(
                "InventoryMovement",
                target.id,
                "UPDATE",
                "Inventory movements are append-only",
                field=attr.key,
            )


def _check_movement_delete(mapper, connection, target):
    raise _blocked(
        "InventoryMovement",
        target.id,
        "DELETE",
        "Inventory movements are append-only",
    )


def _check_account_type_immutability(mapper, connection, target):
    if get_history(target, "account_type").deleted:
        raise _blocked(
            "Account",
            target.id,
            "UPDATE",
            "Account type is fixed at creation",
            field="account_type",
        )


def _listeners():
    from ledger_kernel.models.account import Account
    from ledger_kernel.models.inventory import InventoryMovement
    from ledger_kernel.models.journal import JournalEntry, JournalLine

    return (
        (JournalEntry, "before_update", _check_journal_entry_immutability),
        (JournalEntry, "before_delete", _check_journal_entry_delete),
        (JournalLine, "before_update", _check_journal_line_immutability),
        (JournalLine, "before_delete", _check_journal_line_delete),
        (InventoryMovement, "before_update", _check_movement_immutability),
        (InventoryMovement, "before_delete", _check_movement_delete),
        (Account, "before_update", _check_account_type_immutability),
    )


def register_immutability_listeners() -> None:
    """
    Register the append-only listeners.

    Call once during application start-up, after models are importable.
    Registering twice is harmless.
    """
    for target, name, fn in _listeners():
        if not event.contains(target, name, fn):
            event.listen(target, name, fn)
    logger.debug("immutability_listeners_registered")


def unregister_immutability_listeners() -> None:
    """Remove the listeners. Tests that need to bypass the guard only."""
    for target, name, fn in _listeners():
        if event.contains(target, name, fn):
            event.remove(target, name, fn)
