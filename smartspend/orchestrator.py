"""
Main Orchestrator for SmartSpend

This module ties together all the components and owns the one mutable
thing in the system: the in-memory Ledger.

Flows:
1. Load (store → compat backfill → Ledger)
2. Mutate (validate → change ledger → commit → audit)
3. Read (aggregation / insight engines over the current ledger)
4. Backup (export → text, import → validate → replace → commit)

DESIGN DECISION: The service enforces the boundaries:
- No mutation happens without passing validation first
- Every mutation ends with an explicit commit of the full document
- Aggregations and insights never see anything but a finished ledger
- A failed import leaves the previous ledger untouched
"""

import json
from collections.abc import Callable
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Union

import structlog

from smartspend.aggregation import (
    budget_for_category,
    budget_rows,
    budget_summary,
    category_breakdown,
    category_history,
    current_month_key,
    format_amount,
    matches_search,
    month_filter,
    parse_month_key,
    totals,
    unique_month_keys,
)
from smartspend.audit import AuditLogger, create_correlation_id
from smartspend.config import Settings, get_settings
from smartspend.insights import InsightEngine
from smartspend.models.audit import AuditEventType
from smartspend.models.ledger import (
    INCOME_ICON,
    MISSING_CATEGORY_ICON,
    Account,
    Category,
    Ledger,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from smartspend.models.reports import (
    BreakdownRow,
    BudgetRow,
    BudgetSummary,
    Insight,
    Totals,
)
from smartspend.models.validation import ValidationResult
from smartspend.services.backup import (
    ImportFormatError,
    build_ledger,
    export_document,
    find_duplicate_names,
    import_document,
    serialize_ledger,
)
from smartspend.services.storage import (
    InMemoryStore,
    JsonFileStore,
    KeyValueStoreInterface,
    NotFoundError,
    StorageError,
)
from smartspend.validation import LedgerValidationError, LedgerValidator


logger = structlog.get_logger("smartspend.orchestrator")


class LedgerService:
    """
    Owns the ledger and every operation on it.

    Browsing state (the selected month, the search box) is NOT part of
    the ledger document. The selected month is remembered under its own
    store key; the search query is passed per call.
    """

    def __init__(
        self,
        store: Optional[KeyValueStoreInterface] = None,
        validator: Optional[LedgerValidator] = None,
        insight_engine: Optional[InsightEngine] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        settings = settings or get_settings()
        self._app_settings = settings.app
        self._store_settings = settings.store

        self._store = store or JsonFileStore()
        self._validator = validator or LedgerValidator()
        self._insight_engine = insight_engine or InsightEngine(settings.insights)
        self._audit_logger = audit_logger or AuditLogger(
            history_size=self._app_settings.audit_history_size
        )
        self._clock = clock
        self._last_id = 0
        self._store_locked = False

        self._ledger = self._default_ledger()
        self._filter_month = current_month_key(self._clock())
        self.load()

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    @property
    def currency(self) -> str:
        return self._ledger.settings.currency

    def document(self) -> dict:
        """The persisted form of the current ledger."""
        return self._ledger.to_document()

    def load(self) -> Ledger:
        """
        (Re)load the ledger and the selected month from the store.

        A missing document gives the default ledger. A document that cannot
        be read or parsed is logged, set aside under `<key>.corrupt` and
        replaced in memory by the default ledger; the stored copy is only
        overwritten by the next commit. If it could not be set aside, commits
        are refused until a later load succeeds or the ledger is reset.
        """
        key = self._store_settings.ledger_key
        self._store_locked = False
        try:
            raw = self._store.get(key)
        except StorageError as e:
            self._audit_logger.log_ledger_load_failed(str(e))
            self._move_aside(key)
            self._ledger = self._default_ledger()
            self._filter_month = self._load_filter_month()
            return self._ledger

        if raw is None:
            self._ledger = self._default_ledger()
            self._audit_logger.log_ledger_loaded(0, from_store=False)
        else:
            try:
                self._ledger = build_ledger(
                    json.loads(raw),
                    now=self._clock(),
                    default_color=self._app_settings.default_category_color,
                    check_duplicates=False,
                    currency=self._app_settings.default_currency,
                )
                self._warn_on_duplicates()
                self._audit_logger.log_ledger_loaded(
                    len(self._ledger.transactions), from_store=True
                )
            except (ValueError, ImportFormatError) as e:
                self._audit_logger.log_ledger_load_failed(str(e))
                self._set_aside(f"{key}.corrupt", raw)
                self._ledger = self._default_ledger()

        self._filter_month = self._load_filter_month()
        return self._ledger

    def commit(self) -> None:
        """
        Serialize the full ledger to the store.

        Raises:
            StorageError: If the store write fails or the stored document
                could not be set aside on load (in-memory state is kept)
        """
        if self._store_locked:
            message = (
                f"Stored ledger {self._store_settings.ledger_key!r} could not be "
                "read or set aside; refusing to overwrite it"
            )
            self._audit_logger.log_storage_error("commit", message)
            raise StorageError(message)
        text = serialize_ledger(self._ledger, indent=None)
        try:
            self._store.set(self._store_settings.ledger_key, text)
        except StorageError as e:
            self._audit_logger.log_storage_error("commit", str(e))
            raise
        self._audit_logger.log_ledger_saved(len(text.encode("utf-8")))

    def reset(self) -> Ledger:
        """Delete the stored ledger and start over from the defaults."""
        try:
            self._store.remove(self._store_settings.ledger_key)
        except StorageError as e:
            self._audit_logger.log_storage_error("reset", str(e))
            raise
        self._store_locked = False
        self._ledger = self._default_ledger()
        self._audit_logger.log_ledger_reset()
        return self._ledger

    def _warn_on_duplicates(self) -> None:
        duplicates = find_duplicate_names(self._ledger)
        if duplicates:
            logger.warning("ledger_duplicate_names", duplicates=duplicates)

    def _default_ledger(self) -> Ledger:
        return Ledger.default(currency=self._app_settings.default_currency)

    def _set_aside(self, key: str, raw: str) -> None:
        try:
            self._store.set(key, raw)
        except StorageError as e:
            self._audit_logger.log_storage_error("set_aside", str(e))
            self._store_locked = True

    def _move_aside(self, key: str) -> None:
        try:
            self._store.move(key, f"{key}.corrupt")
        except StorageError as e:
            self._audit_logger.log_storage_error("set_aside", str(e))
            self._store_locked = True

    def _load_filter_month(self) -> str:
        try:
            stored = self._store.get(self._store_settings.filter_month_key)
        except StorageError as e:
            self._audit_logger.log_storage_error("load_filter_month", str(e))
            stored = None
        if stored and parse_month_key(stored) is not None:
            return stored
        return current_month_key(self._clock())

    def _raise_if_invalid(self, result: ValidationResult) -> None:
        if result.is_valid:
            return
        self._audit_logger.log_validation_failed(
            result.subject,
            [issue.model_dump() for issue in result.issues],
        )
        raise LedgerValidationError(result)

    def _new_id(self) -> int:
        """Millisecond timestamp, bumped past the last id handed out."""
        candidate = int(self._clock().timestamp() * 1000)
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return candidate

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def post_transaction(self, draft: TransactionDraft) -> Transaction:
        """
        Validate and post a transaction.

        On success the transaction is put first in the list, the account
        balance moves by +amount (income) or -amount (expense) and the
        ledger is committed.

        Raises:
            LedgerValidationError: If the draft is incomplete or invalid
        """
        result = self._validator.validate_transaction(
            draft, self._ledger, today=self._clock().date()
        )
        self._raise_if_invalid(result)

        tx_type = TransactionType(draft.type)
        if tx_type == TransactionType.EXPENSE:
            category_name = draft.category
            category = self._ledger.find_category(category_name)
            icon = category.icon if category else MISSING_CATEGORY_ICON
        else:
            category_name = draft.source
            icon = INCOME_ICON

        transaction = Transaction(
            id=self._new_id(),
            type=tx_type,
            amount=draft.amount,
            category=category_name,
            icon=icon,
            account=draft.account,
            date=_stamp(draft.date),
            desc=draft.desc,
        )

        self._ledger.transactions.insert(0, transaction)
        account = self._ledger.find_account(draft.account)
        account.balance += transaction.signed_amount

        self.commit()
        self._audit_logger.log_transaction_posted(
            transaction_id=transaction.id,
            tx_type=tx_type.value,
            amount=transaction.amount,
            account=transaction.account,
        )
        return transaction

    def add_expense(
        self,
        amount: float,
        account: str,
        category: str,
        on: date,
        desc: str = "",
    ) -> Transaction:
        return self.post_transaction(TransactionDraft(
            type=TransactionType.EXPENSE.value,
            amount=amount,
            account=account,
            category=category,
            date=on,
            desc=desc,
        ))

    def add_income(
        self,
        amount: float,
        account: str,
        source: str,
        on: date,
        desc: str = "",
    ) -> Transaction:
        return self.post_transaction(TransactionDraft(
            type=TransactionType.INCOME.value,
            amount=amount,
            account=account,
            source=source,
            date=on,
            desc=desc,
        ))

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def add_account(self, name: str, balance: Optional[float] = None) -> Account:
        """
        Raises:
            LedgerValidationError: Empty or duplicate name, or bad balance
        """
        self._raise_if_invalid(self._validator.validate_account_name(self._ledger, name))
        self._raise_if_invalid(self._validator.validate_balance(balance))

        account = Account(id=self._new_id(), name=name.strip(), balance=balance or 0.0)
        self._ledger.accounts.append(account)
        self.commit()
        self._audit_logger.log_entity_changed(
            AuditEventType.ACCOUNT_ADDED, "account", account.id, account.name,
            {"balance": account.balance},
        )
        return account

    def update_account(
        self,
        account_id: int,
        name: str,
        balance: Optional[float] = None,
    ) -> Account:
        """
        Rename an account and optionally overwrite its balance.

        Transactions keep the account name they were posted with.

        Raises:
            NotFoundError: Unknown account id
            LedgerValidationError: Empty or duplicate name, or bad balance
        """
        account = self._ledger.find_account_by_id(account_id)
        if account is None:
            raise NotFoundError(f"Account not found: {account_id}")
        self._raise_if_invalid(self._validator.validate_account_name(
            self._ledger, name, exclude_id=account_id
        ))
        self._raise_if_invalid(self._validator.validate_balance(balance))

        account.name = name.strip()
        if balance is not None:
            account.balance = balance
        self.commit()
        self._audit_logger.log_entity_changed(
            AuditEventType.ACCOUNT_UPDATED, "account", account.id, account.name,
            {"balance": account.balance},
        )
        return account

    def delete_account(self, account_id: int) -> int:
        """
        Delete an account.

        Transactions are kept; any transaction whose account no longer
        exists is pointed at the default account name.

        Returns:
            Number of transactions rewritten

        Raises:
            NotFoundError: Unknown account id
        """
        account = self._ledger.find_account_by_id(account_id)
        if account is None:
            raise NotFoundError(f"Account not found: {account_id}")

        self._ledger.accounts.remove(account)
        remaining = {a.name for a in self._ledger.accounts}
        sentinel = self._app_settings.default_account_name
        rewritten = 0
        for t in self._ledger.transactions:
            if t.account not in remaining:
                t.account = sentinel
                rewritten += 1

        self.commit()
        self._audit_logger.log_entity_changed(
            AuditEventType.ACCOUNT_DELETED, "account", account.id, account.name,
            {"transactions_rewritten": rewritten},
        )
        return rewritten

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    def add_category(
        self,
        name: str,
        icon: str = "🎯",
        color: Optional[str] = None,
    ) -> Category:
        """
        Raises:
            LedgerValidationError: Empty or duplicate name
        """
        self._raise_if_invalid(self._validator.validate_category_name(self._ledger, name))

        category = Category(
            id=self._new_id(),
            name=name.strip(),
            icon=icon or "🎯",
            color=color or self._app_settings.default_category_color,
        )
        self._ledger.categories.append(category)
        self.commit()
        self._audit_logger.log_entity_changed(
            AuditEventType.CATEGORY_ADDED, "category", category.id, category.name,
        )
        return category

    def update_category(
        self,
        category_id: int,
        name: str,
        icon: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Category:
        """
        Rename or restyle a category.

        Existing transactions keep the name and icon they were created with.

        Raises:
            NotFoundError: Unknown category id
            LedgerValidationError: Empty or duplicate name
        """
        category = self._ledger.find_category_by_id(category_id)
        if category is None:
            raise NotFoundError(f"Category not found: {category_id}")
        self._raise_if_invalid(self._validator.validate_category_name(
            self._ledger, name, exclude_id=category_id
        ))

        category.name = name.strip()
        if icon:
            category.icon = icon
        if color:
            category.color = color
        self.commit()
        self._audit_logger.log_entity_changed(
            AuditEventType.CATEGORY_UPDATED, "category", category.id, category.name,
        )
        return category

    def delete_category(self, category_id: int) -> int:
        """
        Delete a category.

        Transactions using it are moved to the fallback category
        ("Other") with its icon; none are deleted.

        Returns:
            Number of transactions moved

        Raises:
            NotFoundError: Unknown category id
        """
        category = self._ledger.find_category_by_id(category_id)
        if category is None:
            raise NotFoundError(f"Category not found: {category_id}")

        fallback_name = self._app_settings.fallback_category_name
        fallback_icon = self._app_settings.fallback_category_icon
        moved = 0
        for t in self._ledger.transactions:
            if t.category == category.name:
                t.category = fallback_name
                t.icon = fallback_icon
                moved += 1
        self._ledger.categories.remove(category)

        self.commit()
        self._audit_logger.log_entity_changed(
            AuditEventType.CATEGORY_DELETED, "category", category.id, category.name,
            {"transactions_moved": moved},
        )
        return moved

    # =========================================================================
    # BUDGETS AND SETTINGS
    # =========================================================================

    def get_budget(self, category: str, month: Optional[str] = None) -> float:
        return budget_for_category(self._ledger, category, month or self._filter_month)

    def set_budget(
        self,
        category: str,
        amount: float,
        month: Optional[str] = None,
    ) -> float:
        """
        Set a category's monthly cap (defaults to the selected month).

        Raises:
            LedgerValidationError: Negative or non-numeric amount, or a
                month that is not `YYYY-MM`
        """
        self._raise_if_invalid(self._validator.validate_budget_amount(amount))
        if month is not None:
            self._raise_if_invalid(self._validator.validate_month_key(month))
        month = month or self._filter_month
        value = max(0.0, float(amount))
        self._ledger.budgets_monthly.setdefault(month, {})[category] = value
        self.commit()
        self._audit_logger.log_budget_set(category, month, value)
        return value

    def change_currency(self, symbol: str) -> None:
        self._raise_if_invalid(self._validator.validate_currency(symbol))
        symbol = symbol.strip()
        old = self._ledger.settings.currency
        self._ledger.settings.currency = symbol
        self.commit()
        self._audit_logger.log_currency_changed(old, symbol)

    def format(self, amount: Optional[float]) -> str:
        """Display string in the ledger's currency."""
        return format_amount(amount, self.currency)

    # =========================================================================
    # BROWSING STATE
    # =========================================================================

    @property
    def filter_month(self) -> str:
        return self._filter_month

    def set_filter_month(self, month: Optional[str]) -> str:
        """
        Select the month to browse; a missing or malformed key selects
        the current month. Remembered across sessions.
        """
        if not month or parse_month_key(month) is None:
            month = current_month_key(self._clock())
        self._filter_month = month
        try:
            self._store.set(self._store_settings.filter_month_key, month)
        except StorageError as e:
            self._audit_logger.log_storage_error("save_filter_month", str(e))
        return month

    def month_transactions(self) -> list[Transaction]:
        return list(month_filter(self._ledger.transactions, self._filter_month))

    def records(self, search_query: str = "") -> list[Transaction]:
        """Transactions of the selected month matching the search box."""
        return [
            t for t in month_filter(self._ledger.transactions, self._filter_month)
            if matches_search(t, search_query)
        ]

    def month_keys(self) -> list[str]:
        return unique_month_keys(self._ledger.transactions, now=self._clock())

    # =========================================================================
    # READ MODELS
    # =========================================================================

    def summary(self) -> Totals:
        """Income and expense totals for the selected month."""
        return totals(month_filter(self._ledger.transactions, self._filter_month))

    def breakdown(self) -> list[BreakdownRow]:
        return category_breakdown(self.month_transactions(), self._ledger.categories)

    def category_history(self, category: str) -> list[Transaction]:
        return category_history(self._ledger.transactions, category)

    def budgets(self) -> list[BudgetRow]:
        return budget_rows(self._ledger, self._filter_month)

    def budget_summary(self) -> BudgetSummary:
        return budget_summary(self._ledger, self._filter_month)

    def insights(self, now: Optional[datetime] = None) -> list[Insight]:
        """Insights for the real current month, whatever month is selected."""
        return self._insight_engine.generate(
            self._ledger.transactions,
            currency=self.currency,
            now=now or self._clock(),
        )

    # =========================================================================
    # BACKUPS
    # =========================================================================

    def export(self) -> tuple[str, str]:
        """
        Returns:
            (filename, pretty-printed JSON)
        """
        filename, text = export_document(self._ledger, now=self._clock())
        self._audit_logger.log_ledger_exported(filename, len(self._ledger.transactions))
        return filename, text

    def export_to(self, directory: Union[str, Path]) -> Path:
        """Write an export file into `directory` and return its path."""
        filename, text = self.export()
        path = Path(directory) / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    def import_text(self, text: str) -> Ledger:
        """
        Replace the whole ledger with a backup.

        Raises:
            ImportFormatError: The backup is unusable; nothing changed
        """
        correlation_id = create_correlation_id()
        try:
            ledger = import_document(
                text,
                now=self._clock(),
                default_color=self._app_settings.default_category_color,
                currency=self._app_settings.default_currency,
            )
        except ImportFormatError as e:
            self._audit_logger.log_import_failed(str(e), correlation_id)
            raise

        self._ledger = ledger
        self.commit()
        self._audit_logger.log_ledger_imported(len(ledger.transactions), correlation_id)
        return ledger

    def import_file(self, path: Union[str, Path]) -> Ledger:
        """
        Raises:
            ImportFormatError: Unreadable file or unusable backup
        """
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self._audit_logger.log_import_failed(str(e))
            raise ImportFormatError(f"Could not read {path}: {e}") from e
        return self.import_text(text)


def _stamp(day: date) -> str:
    """Local midnight of `day` as an offset-aware ISO timestamp."""
    return datetime(day.year, day.month, day.day).astimezone().isoformat()


def create_app_components(
    use_file_store: bool = True,
    data_dir: Optional[Union[str, Path]] = None,
) -> LedgerService:
    """
    Factory function to create the ledger service.

    Args:
        use_file_store: Whether to persist to the JSON file store.
                        Set to False for a throwaway in-memory ledger.
        data_dir: Override for the store directory

    Returns:
        A loaded LedgerService
    """
    store: KeyValueStoreInterface
    if use_file_store:
        try:
            store = JsonFileStore(data_dir=data_dir)
            store.data_dir.mkdir(parents=True, exist_ok=True)
        except (OSError, StorageError) as e:
            # Storage not usable - continue in memory
            logger.warning("file_store_unavailable", error=str(e))
            store = InMemoryStore()
    else:
        store = InMemoryStore()

    return LedgerService(store=store)
