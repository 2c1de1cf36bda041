"""
Input Validation

DESIGN DECISION: Every form the user fills in is validated before the
ledger changes. Checks run in the order the user sees the fields, so the
first error is the one worth showing as a notice:

TRANSACTIONS:
- Type must be expense or income
- Amount must be a positive number
- An existing account must be selected
- A date must be selected
- Expense needs a category; income needs a source

ACCOUNTS / CATEGORIES:
- Name is required
- Name must be unique, ignoring case, at creation and rename time

IMPORTANT: Validation NEVER silently fixes issues.
It reports them and leaves the user's input in place for correction.
"""

import math
import re
from datetime import date
from typing import Optional

from smartspend.models.ledger import Ledger, TransactionDraft, TransactionType
from smartspend.models.validation import ValidationIssue, ValidationResult


_MONTH_KEY = re.compile(r"\d{4}-(0[1-9]|1[0-2])")


class LedgerValidationError(Exception):
    """User input was rejected; the ledger is unchanged."""

    def __init__(self, result: ValidationResult):
        self.result = result
        first = result.first_error
        self.message = first.message if first else "Invalid input"
        super().__init__(self.message)


def _error(field: str, issue_type: str, message: str,
           suggested_fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="error",
        suggested_fix=suggested_fix,
    )


def _warning(field: str, issue_type: str, message: str) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="warning",
    )


def _result(subject: str, issues: list[ValidationIssue]) -> ValidationResult:
    return ValidationResult(
        subject=subject,
        is_valid=not any(i.severity == "error" for i in issues),
        issues=issues,
        warnings=[i.message for i in issues if i.severity == "warning"],
    )


class LedgerValidator:
    """Validates user input against the current ledger."""

    def validate_transaction(
        self,
        draft: TransactionDraft,
        ledger: Ledger,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Check a transaction draft.

        Returns: ValidationResult; `is_valid` is False if anything blocks posting.
        """
        issues = []
        valid_types = {t.value for t in TransactionType}

        if draft.type not in valid_types:
            issues.append(_error(
                "type", "invalid_value",
                f"Unknown transaction type: {draft.type}",
                suggested_fix="Choose expense or income",
            ))

        amount = draft.amount
        if amount is None or not math.isfinite(amount) or amount <= 0:
            issues.append(_error("amount", "invalid_value", "Enter a valid amount"))

        if not draft.account:
            issues.append(_error("account", "missing", "Select an account"))
        elif ledger.find_account(draft.account) is None:
            issues.append(_error(
                "account", "not_found", "Select an account",
                suggested_fix=f"Account {draft.account!r} does not exist",
            ))

        if draft.date is None:
            issues.append(_error("date", "missing", "Select a date"))
        elif draft.date > (today or date.today()):
            issues.append(_warning(
                "date", "future_date",
                f"Date ({draft.date.isoformat()}) is in the future",
            ))

        if draft.type == TransactionType.EXPENSE.value:
            if not draft.category:
                issues.append(_error("category", "missing", "Select a category"))
            elif ledger.find_category(draft.category) is None:
                issues.append(_warning(
                    "category", "not_found",
                    f"Category {draft.category!r} no longer exists",
                ))
        elif draft.type == TransactionType.INCOME.value:
            if not draft.source:
                issues.append(_error("source", "missing", "Enter income source"))

        return _result("transaction", issues)

    def validate_account_name(
        self,
        ledger: Ledger,
        name: str,
        exclude_id: Optional[int] = None,
    ) -> ValidationResult:
        """Name present and not used by another account (ignoring case)."""
        issues = []
        name = (name or "").strip()
        if not name:
            issues.append(_error("name", "missing", "Name required"))
        elif any(
            a.name.lower() == name.lower() and a.id != exclude_id
            for a in ledger.accounts
        ):
            issues.append(_error("name", "duplicate", "Account name exists"))
        return _result("account", issues)

    def validate_category_name(
        self,
        ledger: Ledger,
        name: str,
        exclude_id: Optional[int] = None,
    ) -> ValidationResult:
        """Name present and not used by another category (ignoring case)."""
        issues = []
        name = (name or "").strip()
        if not name:
            issues.append(_error("name", "missing", "Category name required"))
        elif any(
            c.name.lower() == name.lower() and c.id != exclude_id
            for c in ledger.categories
        ):
            issues.append(_error("name", "duplicate", "Category name exists"))
        return _result("category", issues)

    def validate_balance(self, balance: Optional[float]) -> ValidationResult:
        issues = []
        if balance is not None and not math.isfinite(balance):
            issues.append(_error("balance", "invalid_value", "Enter a valid balance"))
        return _result("account", issues)

    def validate_budget_amount(self, amount: Optional[float]) -> ValidationResult:
        issues = []
        if amount is None or not math.isfinite(amount) or amount < 0:
            issues.append(_error(
                "amount", "invalid_value", "Enter a valid non-negative number",
            ))
        return _result("budget", issues)

    def validate_month_key(self, month: Optional[str]) -> ValidationResult:
        """Budgets are keyed by zero-padded `YYYY-MM`."""
        issues = []
        if not isinstance(month, str) or not _MONTH_KEY.fullmatch(month):
            issues.append(_error(
                "month", "invalid_format", "Select a valid month",
                suggested_fix="Use the YYYY-MM format, e.g. 2025-06",
            ))
        return _result("budget", issues)

    def validate_currency(self, symbol: Optional[str]) -> ValidationResult:
        issues = []
        if not (symbol or "").strip():
            issues.append(_error("currency", "missing", "Select a currency"))
        return _result("settings", issues)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a short summary of validation results.

        This is what the notice area shows.
        """
        if result.is_valid and not result.warnings:
            return "✅ All good."

        lines = []
        for issue in result.issues:
            if issue.severity == "error":
                lines.append(f"❌ {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"   💡 {issue.suggested_fix}")
        for warning in result.warnings:
            lines.append(f"⚠️ {warning}")
        return "\n".join(lines)
