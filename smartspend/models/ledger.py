"""
Core Ledger Models for SmartSpend

These models define the schema of the single JSON document that holds a
user's whole ledger. They are designed to:
1. Serialize to exactly the document shape the store and backups use
2. Keep unknown fields so documents round-trip field-for-field
3. Reject transaction types other than expense and income

DESIGN DECISION: Transactions carry denormalized copies of the category
name, category icon and account name taken at creation time. Later edits
to a category or account do NOT rewrite them. Only deleting a category or
an account rewrites the affected transactions.
"""

import copy
import datetime as dt
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """
    Supported transaction types.

    DESIGN DECISION: A third type is rejected when a transaction is created
    and when a document is loaded, rather than being summed as an expense.
    """
    EXPENSE = "expense"
    INCOME = "income"


INCOME_ICON = "💰"
MISSING_CATEGORY_ICON = "❓"
MISSING_CATEGORY_COLOR = "#64748b"
DEFAULT_CURRENCY = "₹"


# =============================================================================
# DOCUMENT ENTITIES
# =============================================================================

class Account(BaseModel):
    """
    A money account (cash, bank, wallet).

    The balance is a running sum mutated on every posting. It is never
    recomputed from transactions and can be edited by hand.
    """
    model_config = ConfigDict(extra="allow")

    id: int
    name: str
    balance: float = 0.0


class Category(BaseModel):
    """An expense category with its display glyph and color."""
    model_config = ConfigDict(extra="allow")

    id: int
    name: str
    icon: str = "🎯"
    color: str = MISSING_CATEGORY_COLOR


class Transaction(BaseModel):
    """
    A posted income or expense.

    For income, `category` holds the free-text source.
    `date` is kept as the stored ISO-8601 string; an unparseable value is
    tolerated and simply never falls into any month.
    """
    model_config = ConfigDict(extra="allow")

    id: int = Field(
        ...,
        description="Creation timestamp in milliseconds (not guaranteed unique)"
    )
    type: TransactionType
    amount: float = Field(
        ...,
        gt=0,
        description="Positive amount; the sign comes from the type"
    )
    category: str = ""
    icon: str = MISSING_CATEGORY_ICON
    account: str = ""
    date: str = Field(
        default="",
        description="ISO-8601 timestamp; empty when the date is unknown"
    )
    desc: str = ""

    @field_validator("date", mode="before")
    @classmethod
    def missing_date_is_empty(cls, v):
        return "" if v is None else v

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def signed_amount(self) -> float:
        """Amount as it affects an account balance."""
        return self.amount if self.is_income else -self.amount


class UserSettings(BaseModel):
    """Per-ledger user preferences."""
    model_config = ConfigDict(extra="allow")

    currency: str = DEFAULT_CURRENCY


class Ledger(BaseModel):
    """
    The whole ledger document.

    Serialized with `to_document()`; the JSON keys match the persisted
    format (`budgetsMonthly` is camel-cased on the wire).
    """
    model_config = ConfigDict(populate_by_name=True)

    accounts: list[Account] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    transactions: list[Transaction] = Field(
        default_factory=list,
        description="Most recent first"
    )
    budgets_monthly: dict[str, dict[str, float]] = Field(
        default_factory=dict,
        alias="budgetsMonthly",
        description="month key -> category name -> cap"
    )
    settings: UserSettings = Field(default_factory=UserSettings)

    @classmethod
    def default(cls, currency: str = DEFAULT_CURRENCY) -> "Ledger":
        """A fresh ledger with the stock accounts and categories."""
        return cls.model_validate(default_document(currency=currency))

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "Ledger":
        return cls.model_validate(document)

    def to_document(self) -> dict[str, Any]:
        """Plain JSON-ready dict in the persisted shape."""
        return self.model_dump(mode="json", by_alias=True)

    def find_account(self, name: str) -> Optional[Account]:
        return next((a for a in self.accounts if a.name == name), None)

    def find_account_by_id(self, account_id: int) -> Optional[Account]:
        return next((a for a in self.accounts if a.id == account_id), None)

    def find_category(self, name: str) -> Optional[Category]:
        return next((c for c in self.categories if c.name == name), None)

    def find_category_by_id(self, category_id: int) -> Optional[Category]:
        return next((c for c in self.categories if c.id == category_id), None)


# =============================================================================
# INPUT MODELS
# =============================================================================

class TransactionDraft(BaseModel):
    """
    What the user typed into the add-transaction form.

    CRITICAL: This is UNVERIFIED input. Every field is optional here;
    the validator decides what is missing and the ledger service only
    posts drafts that passed validation.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: str = Field(
        default=TransactionType.EXPENSE.value,
        description="expense or income"
    )
    amount: Optional[float] = None
    account: str = ""
    date: Optional[dt.date] = Field(
        default=None,
        description="Day the money moved"
    )
    category: str = Field(
        default="",
        description="Category name (expense only)"
    )
    source: str = Field(
        default="",
        description="Free-text income source (income only)"
    )
    desc: str = ""


# =============================================================================
# DEFAULTS
# =============================================================================

_DEFAULT_ACCOUNTS = [
    {"id": 1, "name": "Cash", "balance": 0},
    {"id": 2, "name": "Bank", "balance": 0},
    {"id": 3, "name": "UPI", "balance": 0},
]

# Stock categories ship without ids; they are synthesized on load.
_DEFAULT_CATEGORIES = [
    {"name": "Food", "icon": "🍔", "color": "#ef4444"},
    {"name": "Transport", "icon": "🚌", "color": "#f59e0b"},
    {"name": "Desserts", "icon": "🍨", "color": "#a78bfa"},
    {"name": "Recharge", "icon": "📱", "color": "#06b6d4"},
    {"name": "Health", "icon": "💊", "color": "#10b981"},
    {"name": "Shopping", "icon": "🛍️", "color": "#f472b6"},
    {"name": "Utilities", "icon": "💡", "color": "#f59e0b"},
    {"name": "Entertainment", "icon": "🎉", "color": "#f43f5e"},
    {"name": "Rent", "icon": "🏠", "color": "#22c55e"},
    {"name": "Bills", "icon": "🧾", "color": "#60a5fa"},
    {"name": "Groceries", "icon": "🥦", "color": "#22c55e"},
    {"name": "Education", "icon": "📚", "color": "#06b6d4"},
    {"name": "Travel", "icon": "✈️", "color": "#f97316"},
    {"name": "Fuel", "icon": "⛽", "color": "#fb7185"},
    {"name": "Insurance", "icon": "🛡️", "color": "#64748b"},
    {"name": "Investments", "icon": "📈", "color": "#84cc16"},
    {"name": "Gifts", "icon": "🎁", "color": "#e879f9"},
    {"name": "Subscriptions", "icon": "🔁", "color": "#a78bfa"},
    {"name": "Pets", "icon": "🐾", "color": "#fb923c"},
    {"name": "Kids", "icon": "🧸", "color": "#f472b6"},
    {"name": "Taxes", "icon": "💸", "color": "#f43f5e"},
    {"name": "Maintenance", "icon": "🔧", "color": "#94a3b8"},
    {"name": "Dining Out", "icon": "🍽️", "color": "#ef4444"},
    {"name": "Coffee", "icon": "☕", "color": "#a16207"},
    {"name": "Other", "icon": "🎯", "color": "#475569"},
]


def default_accounts() -> list[dict]:
    return copy.deepcopy(_DEFAULT_ACCOUNTS)


def default_categories() -> list[dict]:
    return copy.deepcopy(_DEFAULT_CATEGORIES)


def default_settings(currency: str = DEFAULT_CURRENCY) -> dict:
    return {"currency": currency}


def default_document(
    now: Optional[dt.datetime] = None,
    currency: str = DEFAULT_CURRENCY,
) -> dict[str, Any]:
    """Raw default document, already passed through `ensure_compat`."""
    document = {
        "accounts": default_accounts(),
        "categories": default_categories(),
        "transactions": [],
        "budgetsMonthly": {},
        "settings": default_settings(currency),
    }
    return ensure_compat(document, now=now, currency=currency)


def ensure_compat(
    document: dict[str, Any],
    now: Optional[dt.datetime] = None,
    default_color: str = MISSING_CATEGORY_COLOR,
    currency: str = DEFAULT_CURRENCY,
) -> dict[str, Any]:
    """
    Backfill a raw document saved by an older version.

    - Missing top-level fields are populated from the defaults; missing
      settings get `currency`.
    - Categories missing `color` get the default gray.
    - Categories missing `id` get `int(f"{load_ms}{index}")`.

    Mutates and returns `document`.
    """
    now = now or dt.datetime.now()
    load_ms = int(now.timestamp() * 1000)

    if document.get("accounts") is None:
        document["accounts"] = default_accounts()
    if document.get("categories") is None:
        document["categories"] = default_categories()
    for index, category in enumerate(document["categories"]):
        if not isinstance(category, dict):
            continue
        if "color" not in category:
            category["color"] = default_color
        if "id" not in category:
            category["id"] = int(f"{load_ms}{index}")
    if document.get("transactions") is None:
        document["transactions"] = []
    if document.get("settings") is None:
        document["settings"] = default_settings(currency)
    if document.get("budgetsMonthly") is None:
        document["budgetsMonthly"] = {}

    return document
