"""
Audit Models for SmartSpend

Every mutation of the ledger is recorded as an audit event.
This provides:
1. Traceability of what changed the ledger and when
2. Debugging information when a load or import goes wrong
3. A per-session history the presentation layer can show

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every ledger mutation and every storage round trip has its own type.
    """
    # Transactions
    TRANSACTION_POSTED = "transaction_posted"
    VALIDATION_FAILED = "validation_failed"

    # Accounts
    ACCOUNT_ADDED = "account_added"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_DELETED = "account_deleted"

    # Categories
    CATEGORY_ADDED = "category_added"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"

    # Budgets and settings
    BUDGET_SET = "budget_set"
    CURRENCY_CHANGED = "currency_changed"

    # Persistence
    LEDGER_LOADED = "ledger_loaded"
    LEDGER_LOAD_FAILED = "ledger_load_failed"
    LEDGER_SAVED = "ledger_saved"
    LEDGER_RESET = "ledger_reset"

    # Backups
    LEDGER_EXPORTED = "ledger_exported"
    LEDGER_IMPORTED = "ledger_imported"
    IMPORT_FAILED = "import_failed"

    # System events
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'account', 'ledger')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID (or name) of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one import)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_posted(tx_id, "expense", 250.0, "Cash")
        event = AuditEventBuilder.import_failed("not JSON")
    """

    @staticmethod
    def transaction_posted(
        transaction_id: int,
        tx_type: str,
        amount: float,
        account: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_POSTED,
            entity_type="transaction",
            entity_id=str(transaction_id),
            description=f"Posted {tx_type} of {amount} against {account}",
            details={
                "type": tx_type,
                "amount": amount,
                "account": account,
            },
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            description=f"Validation failed with {len(issues)} issues",
            details={
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def entity_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: int,
        name: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        """Added/updated/deleted events for accounts and categories."""
        action = event_type.value.rsplit("_", 1)[-1]
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=str(entity_id),
            description=f"{entity_type.capitalize()} {action}: {name}",
            details={"name": name, **(details or {})},
            is_user_action=True,
        )

    @staticmethod
    def budget_set(
        category: str,
        month: str,
        amount: float,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_SET,
            entity_type="budget",
            entity_id=f"{month}/{category}",
            description=f"Budget for {category} in {month} set to {amount}",
            details={
                "category": category,
                "month": month,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def currency_changed(old: str, new: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CURRENCY_CHANGED,
            entity_type="settings",
            description=f"Currency changed from {old} to {new}",
            details={"old": old, "new": new},
            is_user_action=True,
        )

    @staticmethod
    def ledger_loaded(
        transaction_count: int,
        from_store: bool,
    ) -> AuditEvent:
        source = "store" if from_store else "defaults"
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            entity_type="ledger",
            description=f"Ledger loaded from {source}",
            details={
                "transaction_count": transaction_count,
                "from_store": from_store,
            },
        )

    @staticmethod
    def ledger_load_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            description="Stored ledger could not be read; using defaults",
            error_message=error_message,
        )

    @staticmethod
    def ledger_saved(size_bytes: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_SAVED,
            severity=AuditSeverity.DEBUG,
            entity_type="ledger",
            description="Ledger committed to store",
            details={"size_bytes": size_bytes},
        )

    @staticmethod
    def ledger_reset() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_RESET,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            description="All ledger data deleted",
            is_user_action=True,
        )

    @staticmethod
    def ledger_exported(filename: str, transaction_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_EXPORTED,
            entity_type="ledger",
            entity_id=filename,
            description=f"Ledger exported to {filename}",
            details={"transaction_count": transaction_count},
            is_user_action=True,
        )

    @staticmethod
    def ledger_imported(
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_IMPORTED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Ledger imported with {transaction_count} transactions",
            details={"transaction_count": transaction_count},
            is_user_action=True,
        )

    @staticmethod
    def import_failed(
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            correlation_id=correlation_id,
            description="Import failed; previous ledger kept",
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
        )
