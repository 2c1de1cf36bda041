"""
Aggregation Engine

DESIGN DECISION: Aggregation is PURE.
Every function here reads the ledger (or a sequence of transactions)
and returns a fresh result. Nothing is cached, nothing is mutated and
nothing is logged, so callers can re-run any of them after every change.

Month membership uses the transaction's LOCAL calendar date. A stored
timestamp with an offset (or a trailing Z) is converted to local time
first; a naive timestamp is taken as local already. A date that cannot be
parsed belongs to no month at all and is silently left out.
"""

import calendar
from collections.abc import Iterable, Iterator
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from smartspend.models.ledger import (
    MISSING_CATEGORY_COLOR,
    MISSING_CATEGORY_ICON,
    Category,
    Ledger,
    Transaction,
    TransactionType,
)
from smartspend.models.reports import (
    BreakdownRow,
    BudgetRow,
    BudgetSummary,
    Totals,
)


# =============================================================================
# DATES AND MONTH KEYS
# =============================================================================

def parse_transaction_date(value: Union[str, date, datetime, None]) -> Optional[datetime]:
    """
    Parse a stored transaction date into a naive local datetime.

    Returns None for anything that is not a valid ISO-8601 date/timestamp,
    and for timestamps whose local time falls outside the datetime range.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text[-1] in "Zz":
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed
    try:
        return parsed.astimezone().replace(tzinfo=None)
    except (ValueError, OverflowError):
        return None


def month_key(value: Union[date, datetime]) -> str:
    """`YYYY-MM` of a date."""
    return f"{value.year:04d}-{value.month:02d}"


def current_month_key(now: Optional[datetime] = None) -> str:
    return month_key(now or datetime.now())


def parse_month_key(key: str) -> Optional[tuple[int, int]]:
    """(year, month) of a `YYYY-MM` key, or None if malformed."""
    try:
        year_str, month_str = key.split("-")
        year, month = int(year_str), int(month_str)
    except (AttributeError, ValueError):
        return None
    if not 1 <= month <= 12:
        return None
    return year, month


def previous_month_key(key: str) -> str:
    """The calendar month immediately before `key`."""
    parsed = parse_month_key(key)
    if parsed is None:
        raise ValueError(f"Invalid month key: {key!r}")
    year, month = parsed
    if month == 1:
        return f"{year - 1:04d}-12"
    return f"{year:04d}-{month - 1:02d}"


def format_month_key(key: str) -> str:
    """`2025-01` -> `Jan 2025`. Malformed keys are returned unchanged."""
    parsed = parse_month_key(key)
    if parsed is None:
        return key
    year, month = parsed
    return f"{calendar.month_abbr[month]} {year}"


def unique_month_keys(
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
) -> list[str]:
    """
    Month keys that have at least one transaction, plus the current month.

    Newest first.
    """
    keys = {current_month_key(now)}
    for t in transactions:
        parsed = parse_transaction_date(t.date)
        if parsed is not None:
            keys.add(month_key(parsed))
    return sorted(keys, reverse=True)


# =============================================================================
# FILTERS
# =============================================================================

def month_filter(
    transactions: Iterable[Transaction],
    month: str,
) -> Iterator[Transaction]:
    """
    Lazily yield the transactions that fall in calendar month `month`.

    Every call rescans its input. Filtering an already filtered sequence
    by the same key yields the same transactions.
    """
    target = parse_month_key(month)
    if target is None:
        return
    for t in transactions:
        parsed = parse_transaction_date(t.date)
        if parsed is not None and (parsed.year, parsed.month) == target:
            yield t


def _number_text(value: float) -> str:
    # Integral amounts are searched without a trailing ".0"
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def matches_search(transaction: Transaction, query: str) -> bool:
    """
    Case-insensitive substring match over description, amount,
    category and account. An empty query matches everything.
    """
    q = (query or "").strip().lower()
    if not q:
        return True
    haystack = " ".join([
        transaction.desc or "",
        _number_text(transaction.amount),
        transaction.category or "",
        transaction.account or "",
    ]).lower()
    return q in haystack


def category_history(
    transactions: Iterable[Transaction],
    category: str,
) -> list[Transaction]:
    """All expenses of one category, newest first; undated ones last."""
    items = [
        t for t in transactions
        if t.type == TransactionType.EXPENSE and t.category == category
    ]
    dated = [(parse_transaction_date(t.date), t) for t in items]
    dated.sort(key=lambda pair: pair[0] or datetime.min, reverse=True)
    return [t for _, t in dated]


# =============================================================================
# SUMS
# =============================================================================

def totals(transactions: Iterable[Transaction]) -> Totals:
    """Sum amounts by type. Anything that is not income counts as expense."""
    income = 0.0
    expense = 0.0
    for t in transactions:
        if t.type == TransactionType.INCOME:
            income += t.amount
        else:
            expense += t.amount
    return Totals(income=income, expense=expense)


def category_totals(transactions: Iterable[Transaction]) -> dict[str, float]:
    """Expense sum per category name, in order of first appearance."""
    result: dict[str, float] = {}
    for t in transactions:
        if t.type != TransactionType.EXPENSE:
            continue
        result[t.category] = result.get(t.category, 0.0) + t.amount
    return result


def category_counts(transactions: Iterable[Transaction]) -> dict[str, int]:
    """Number of expenses per category name, in order of first appearance."""
    result: dict[str, int] = {}
    for t in transactions:
        if t.type != TransactionType.EXPENSE:
            continue
        result[t.category] = result.get(t.category, 0) + 1
    return result


def account_spend(transactions: Iterable[Transaction]) -> dict[str, float]:
    """Expense sum per account name, in order of first appearance."""
    result: dict[str, float] = {}
    for t in transactions:
        if t.type != TransactionType.EXPENSE:
            continue
        result[t.account] = result.get(t.account, 0.0) + t.amount
    return result


def category_spend(
    transactions: Iterable[Transaction],
    category: str,
    month: str,
) -> float:
    """Expense sum of one category within one month."""
    return sum(
        t.amount for t in month_filter(transactions, month)
        if t.type == TransactionType.EXPENSE and t.category == category
    )


def category_breakdown(
    transactions: Iterable[Transaction],
    categories: Iterable[Category],
) -> list[BreakdownRow]:
    """
    Spend per category with its share of the total, largest first.

    Category names that no longer exist get placeholder icon and color.
    """
    amounts = category_totals(transactions)
    total = sum(amounts.values()) or 1
    meta = {c.name: c for c in categories}

    rows = []
    for name, amount in amounts.items():
        category = meta.get(name)
        rows.append(BreakdownRow(
            category=name,
            icon=category.icon if category else MISSING_CATEGORY_ICON,
            color=category.color if category else MISSING_CATEGORY_COLOR,
            amount=amount,
            percent=amount / total * 100,
        ))
    rows.sort(key=lambda row: row.amount, reverse=True)
    return rows


# =============================================================================
# BUDGETS
# =============================================================================

def budget_for_category(ledger: Ledger, category: str, month: str) -> float:
    """The cap for a category in a month; 0 when unset."""
    return ledger.budgets_monthly.get(month, {}).get(category, 0.0)


def budget_rows(ledger: Ledger, month: str) -> list[BudgetRow]:
    """Budget, spend and remaining for every category, in category order."""
    rows = []
    for c in ledger.categories:
        budget = budget_for_category(ledger, c.name, month)
        spent = category_spend(ledger.transactions, c.name, month)
        percent = min(100.0, spent / budget * 100) if budget > 0 else 0.0
        rows.append(BudgetRow(
            category=c.name,
            icon=c.icon,
            color=c.color,
            budget=budget,
            spent=spent,
            remaining=max(0.0, budget - spent),
            percent_used=percent,
        ))
    return rows


def budget_summary(ledger: Ledger, month: str) -> BudgetSummary:
    """Budget totals over all categories; remaining is clamped at zero."""
    total_budget = 0.0
    total_spent = 0.0
    for c in ledger.categories:
        total_budget += budget_for_category(ledger, c.name, month)
        total_spent += category_spend(ledger.transactions, c.name, month)
    return BudgetSummary(
        month=month,
        total_budget=total_budget,
        total_spent=total_spent,
        total_remaining=max(0.0, total_budget - total_spent),
    )


# =============================================================================
# FORMATTING
# =============================================================================

def round_half_up(value: float, places: int = 0) -> float:
    """Round like a person would (2.5 -> 3), not like round() (2.5 -> 2)."""
    exponent = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP))


def format_number(value: Optional[float]) -> str:
    """Thousands separators and at most three fraction digits."""
    rounded = round_half_up(value or 0.0, 3)
    if rounded == 0:
        return "0"
    text = f"{rounded:,.3f}".rstrip("0").rstrip(".")
    return text


def format_amount(value: Optional[float], currency: str) -> str:
    """`₹ 1,234.5` style display string."""
    return f"{currency} {format_number(value)}"
