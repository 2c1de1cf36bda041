"""
Report Models for SmartSpend

Results returned by the aggregation and insight engines.
These are what a presentation layer renders; every one of them is a plain
pydantic model so `model_dump()` gives serializable data.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


# =============================================================================
# AGGREGATION RESULTS
# =============================================================================

class Totals(BaseModel):
    """Income and expense sums over a set of transactions."""

    income: float = 0.0
    expense: float = 0.0

    @property
    def net(self) -> float:
        return self.income - self.expense


class BudgetSummary(BaseModel):
    """
    Budget totals across all categories for one month.

    `total_remaining` never goes below zero.
    """

    month: str
    total_budget: float = Field(default=0.0, ge=0)
    total_spent: float = Field(default=0.0, ge=0)
    total_remaining: float = Field(default=0.0, ge=0)


class BudgetRow(BaseModel):
    """Budget status of a single category for one month."""

    category: str
    icon: str
    color: str
    budget: float = Field(ge=0)
    spent: float = Field(ge=0)
    remaining: float = Field(ge=0)
    percent_used: float = Field(
        ge=0,
        le=100,
        description="Spent as a share of budget, capped at 100; 0 when no budget is set"
    )

    @property
    def is_budget_set(self) -> bool:
        return self.budget > 0

    @property
    def is_exhausted(self) -> bool:
        """Budget set and nothing left of it."""
        return self.is_budget_set and self.remaining == 0


class BreakdownRow(BaseModel):
    """One slice of the monthly spend breakdown."""

    category: str
    icon: str
    color: str
    amount: float
    percent: float = Field(
        description="Share of the month's expense total (0-100)"
    )


# =============================================================================
# INSIGHTS
# =============================================================================

class InsightKind(str, Enum):
    """Which rule produced an insight."""
    INSUFFICIENT_DATA = "insufficient_data"
    SPENDING_INCREASE = "spending_increase"
    SPENDING_DECREASE = "spending_decrease"
    CATEGORY_INCREASE = "category_increase"
    HABIT = "habit"
    PROJECTION = "projection"
    TOP_ACCOUNT = "top_account"
    SAVINGS_TIP = "savings_tip"
    STABLE = "stable"


class InsightTone(str, Enum):
    """How the presentation layer should color an insight."""
    INFO = "info"
    WARNING = "warning"
    POSITIVE = "positive"


class Insight(BaseModel):
    """
    A single human-readable observation.

    `details` carries the numbers behind the message so callers can
    render their own wording.
    """

    kind: InsightKind
    tone: InsightTone = InsightTone.INFO
    icon: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
