"""
Audit Logger

DESIGN DECISION: Every mutation of the ledger is logged.
This provides:
1. Complete traceability
2. Debugging capability for failed loads and imports
3. A per-session history the user can look at

The audit logger:
- Is synchronous, like the rest of the ledger
- Gracefully handles failures (never breaks the mutation it describes)
- Keeps a bounded in-memory history of recent events
"""

from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from smartspend.models.audit import AuditEvent, AuditEventBuilder, AuditEventType


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An in-memory history (for showing recent activity)
    """

    def __init__(self, history_size: int = 200):
        """
        Initialize audit logger.

        Args:
            history_size: How many recent events to keep in memory.
                          0 disables the history.
        """
        self._history: deque[AuditEvent] = deque(maxlen=history_size)
        self._logger = structlog.get_logger("smartspend.audit")

    @property
    def recent_events(self) -> list[AuditEvent]:
        """Recent events, oldest first."""
        return list(self._history)

    def events_of_type(self, event_type: AuditEventType) -> list[AuditEvent]:
        return [e for e in self._history if e.event_type == event_type]

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if local logging failed. Never raises.
        """
        if self._history.maxlen:
            self._history.append(event)

        log_dict = event.to_log_dict()
        severity = event.severity.value

        try:
            if severity in ("error", "critical"):
                self._logger.error("audit_event", **log_dict)
            elif severity == "warning":
                self._logger.warning("audit_event", **log_dict)
            elif severity == "debug":
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            return False

        return True

    def log_transaction_posted(
        self,
        transaction_id: int,
        tx_type: str,
        amount: float,
        account: str,
    ) -> None:
        """Log a successful posting."""
        self.log(AuditEventBuilder.transaction_posted(
            transaction_id=transaction_id,
            tx_type=tx_type,
            amount=amount,
            account=account,
        ))

    def log_validation_failed(
        self,
        entity_type: str,
        issues: list[dict],
    ) -> None:
        """Log rejected user input."""
        self.log(AuditEventBuilder.validation_failed(
            entity_type=entity_type,
            issues=issues,
        ))

    def log_entity_changed(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: int,
        name: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an account or category change."""
        self.log(AuditEventBuilder.entity_changed(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            name=name,
            details=details,
        ))

    def log_budget_set(self, category: str, month: str, amount: float) -> None:
        self.log(AuditEventBuilder.budget_set(category, month, amount))

    def log_currency_changed(self, old: str, new: str) -> None:
        self.log(AuditEventBuilder.currency_changed(old, new))

    def log_ledger_loaded(self, transaction_count: int, from_store: bool) -> None:
        self.log(AuditEventBuilder.ledger_loaded(transaction_count, from_store))

    def log_ledger_load_failed(self, error_message: str) -> None:
        self.log(AuditEventBuilder.ledger_load_failed(error_message))

    def log_ledger_saved(self, size_bytes: int) -> None:
        self.log(AuditEventBuilder.ledger_saved(size_bytes))

    def log_ledger_reset(self) -> None:
        self.log(AuditEventBuilder.ledger_reset())

    def log_ledger_exported(self, filename: str, transaction_count: int) -> None:
        self.log(AuditEventBuilder.ledger_exported(filename, transaction_count))

    def log_ledger_imported(
        self,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.ledger_imported(transaction_count, correlation_id))

    def log_import_failed(
        self,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.import_failed(error_message, correlation_id))

    def log_storage_error(self, operation: str, error_message: str) -> None:
        """Log a store read/write failure."""
        self.log(AuditEventBuilder.storage_error(operation, error_message))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a multi-step user action (e.g., an import).
    """
    return uuid4()
