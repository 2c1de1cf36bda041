"""
Backup Import / Export

Export writes the whole in-memory ledger as pretty-printed JSON.
Import reads such a document back.

DESIGN DECISION: Import is all-or-nothing. A document is either turned
into a complete, valid Ledger or rejected with ImportFormatError; the
caller's current ledger is never touched by a failed import.

Leniency rules for a parseable document:
- A top-level key holding the wrong container type silently falls back
  to its default (stock accounts/categories, no transactions, no budgets,
  default currency)
- Budget caps that are not finite non-negative numbers are dropped, as
  are months whose caps are not an object
- Older documents are backfilled exactly as on load (see ensure_compat)
- Duplicate account or category names (ignoring case) are rejected
"""

import json
import math
from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError

from smartspend.models.ledger import (
    DEFAULT_CURRENCY,
    MISSING_CATEGORY_COLOR,
    Ledger,
    default_accounts,
    default_categories,
    default_settings,
    ensure_compat,
)


EXPORT_PREFIX = "smartspend-backup"


class ImportFormatError(Exception):
    """The document could not be turned into a ledger."""
    pass


def export_filename(now: Optional[datetime] = None) -> str:
    """`smartspend-backup-2025-01-31-18-04-09.json`"""
    stamp = (now or datetime.now()).strftime("%Y-%m-%d-%H-%M-%S")
    return f"{EXPORT_PREFIX}-{stamp}.json"


def serialize_ledger(ledger: Ledger, indent: Optional[int] = 2) -> str:
    return json.dumps(ledger.to_document(), indent=indent, ensure_ascii=False)


def export_document(
    ledger: Ledger,
    now: Optional[datetime] = None,
) -> tuple[str, str]:
    """
    Export the ledger.

    Returns:
        (filename, json_text)
    """
    return export_filename(now), serialize_ledger(ledger)


def _is_cap(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, float) and not math.isfinite(value):
        return False
    return value >= 0


def _numeric_budgets(budgets: Any) -> dict[str, dict[str, float]]:
    if not isinstance(budgets, dict):
        return {}
    result = {}
    for month, caps in budgets.items():
        if not isinstance(caps, dict):
            continue
        result[month] = {name: value for name, value in caps.items() if _is_cap(value)}
    return result


def coerce_document(
    obj: dict[str, Any],
    currency: str = DEFAULT_CURRENCY,
) -> dict[str, Any]:
    """Keep each top-level value only if it has the expected container type."""
    accounts = obj.get("accounts")
    categories = obj.get("categories")
    transactions = obj.get("transactions")
    budgets = obj.get("budgetsMonthly")
    settings = obj.get("settings")
    return {
        "accounts": accounts if isinstance(accounts, list) else default_accounts(),
        "categories": categories if isinstance(categories, list) else default_categories(),
        "transactions": transactions if isinstance(transactions, list) else [],
        "budgetsMonthly": _numeric_budgets(budgets),
        "settings": settings if isinstance(settings, dict) else default_settings(currency),
    }


def find_duplicate_names(ledger: Ledger) -> list[str]:
    """Account and category names used more than once, ignoring case."""
    problems = []
    for label, names in (
        ("account", [a.name for a in ledger.accounts]),
        ("category", [c.name for c in ledger.categories]),
    ):
        seen: set[str] = set()
        for name in names:
            folded = name.lower()
            if folded in seen:
                problems.append(f"duplicate {label} name: {name}")
            seen.add(folded)
    return problems


def build_ledger(
    obj: Any,
    now: Optional[datetime] = None,
    default_color: Optional[str] = None,
    check_duplicates: bool = True,
    currency: str = DEFAULT_CURRENCY,
) -> Ledger:
    """
    Turn a parsed JSON value into a Ledger.

    Set `check_duplicates` to False to accept documents with repeated
    account or category names (the store copy, which predates the check).

    Raises:
        ImportFormatError: If the value cannot become a valid ledger
    """
    if not isinstance(obj, dict):
        raise ImportFormatError("Backup must be a JSON object")

    document = coerce_document(obj, currency=currency)
    ensure_compat(
        document,
        now=now,
        default_color=default_color or MISSING_CATEGORY_COLOR,
        currency=currency,
    )

    try:
        ledger = Ledger.from_document(document)
    except ValidationError as e:
        raise ImportFormatError(f"Backup has invalid entries: {e.error_count()} errors") from e

    duplicates = find_duplicate_names(ledger) if check_duplicates else []
    if duplicates:
        raise ImportFormatError("; ".join(duplicates))

    return ledger


def import_document(
    text: str,
    now: Optional[datetime] = None,
    default_color: Optional[str] = None,
    currency: str = DEFAULT_CURRENCY,
) -> Ledger:
    """
    Parse backup text into a new Ledger.

    Raises:
        ImportFormatError: If the text is not JSON or not a usable ledger
    """
    try:
        obj = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ImportFormatError(f"Backup is not valid JSON: {e}") from e
    return build_ledger(obj, now=now, default_color=default_color, currency=currency)
