"""
Data Models Package

This package contains all Pydantic models used in SmartSpend.
The ledger document, report results and audit events all conform to these schemas.
"""

from smartspend.models.ledger import (
    Account,
    Category,
    Ledger,
    Transaction,
    TransactionDraft,
    TransactionType,
    UserSettings,
    default_document,
    ensure_compat,
)
from smartspend.models.reports import (
    BreakdownRow,
    BudgetRow,
    BudgetSummary,
    Insight,
    InsightKind,
    InsightTone,
    Totals,
)
from smartspend.models.validation import ValidationIssue, ValidationResult
from smartspend.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Account",
    "Category",
    "Ledger",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "UserSettings",
    "default_document",
    "ensure_compat",
    # Report models
    "BreakdownRow",
    "BudgetRow",
    "BudgetSummary",
    "Insight",
    "InsightKind",
    "InsightTone",
    "Totals",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
