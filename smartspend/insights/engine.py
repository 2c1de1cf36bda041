"""
Insight Engine

Turns this month's and last month's spending into short observations.

DESIGN DECISION: Insights always describe the REAL current month
(wall clock, or the `now` passed in), never the month the user happens to
be browsing. Each rule is an independent threshold check over sums from
the aggregation engine; there is no model and no statistics.

GUARANTEES:
- Never raises: every division is guarded by its zero check
- Transactions with unparseable dates are silently ignored
- Returns a complete, serializable list on every call
"""

import calendar
from collections.abc import Iterable
from datetime import datetime
from typing import Optional

from smartspend.aggregation.engine import (
    account_spend,
    category_counts,
    category_totals,
    current_month_key,
    format_amount,
    month_filter,
    previous_month_key,
    round_half_up,
)
from smartspend.config import InsightSettings, get_settings
from smartspend.models.ledger import Transaction, TransactionType
from smartspend.models.reports import Insight, InsightKind, InsightTone


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def percent_change(current: float, previous: float) -> Optional[float]:
    """(current - previous) / previous * 100, or None when previous is 0."""
    if previous <= 0:
        return None
    return (current - previous) / previous * 100


class InsightEngine:
    """
    Rule-based spending observations.

    Rules run in a fixed order and each adds zero or more insights:
    month trend, category trends, habits, burn-rate projection,
    top-draining account, savings tip. If none fire, a single
    "stable" insight is returned.
    """

    def __init__(self, settings: Optional[InsightSettings] = None):
        self._settings = settings or get_settings().insights

    def generate(
        self,
        transactions: Iterable[Transaction],
        currency: str = "₹",
        now: Optional[datetime] = None,
    ) -> list[Insight]:
        """
        Build the insight list for the month containing `now`.

        Args:
            transactions: Every transaction in the ledger (all types, all time)
            currency: Symbol used in messages
            now: Reference time; defaults to the wall clock
        """
        everything = list(transactions)
        if len(everything) < self._settings.min_transactions:
            return [Insight(
                kind=InsightKind.INSUFFICIENT_DATA,
                icon="🤖",
                message="Not enough data yet. Add more transactions to unlock smart insights.",
                details={
                    "transaction_count": len(everything),
                    "required": self._settings.min_transactions,
                },
            )]

        now = now or datetime.now()
        this_key = current_month_key(now)
        last_key = previous_month_key(this_key)

        expenses = [t for t in everything if t.type == TransactionType.EXPENSE]
        this_month = list(month_filter(expenses, this_key))
        last_month = list(month_filter(expenses, last_key))

        this_total = sum(t.amount for t in this_month)
        last_total = sum(t.amount for t in last_month)

        insights: list[Insight] = []
        insights.extend(self._month_trend(this_total, last_total))
        insights.extend(self._category_trends(this_month, last_month))
        insights.extend(self._habits(this_month))
        insights.append(self._projection(this_total, now, currency))
        insights.extend(self._top_account(this_month))
        insights.extend(self._savings_tip(this_total, currency))

        if not insights:
            insights.append(Insight(
                kind=InsightKind.STABLE,
                tone=InsightTone.POSITIVE,
                icon="🤖",
                message="Your spending looks stable. No unusual patterns detected.",
            ))
        return insights

    def _month_trend(self, this_total: float, last_total: float) -> list[Insight]:
        """Month-over-month change; skipped when last month had no spend."""
        change = percent_change(this_total, last_total)
        if change is None:
            return []

        threshold = self._settings.month_trend_threshold_pct
        details = {
            "this_month": this_total,
            "last_month": last_total,
            "change_pct": change,
        }
        if change > threshold:
            return [Insight(
                kind=InsightKind.SPENDING_INCREASE,
                tone=InsightTone.WARNING,
                icon="⚠️",
                message=f"Your spending increased by {change:.1f}% compared to last month.",
                details=details,
            )]
        if change < -threshold:
            return [Insight(
                kind=InsightKind.SPENDING_DECREASE,
                tone=InsightTone.POSITIVE,
                icon="✅",
                message=f"Good job! You reduced spending by {abs(change):.1f}% this month.",
                details=details,
            )]
        return []

    def _category_trends(
        self,
        this_month: list[Transaction],
        last_month: list[Transaction],
    ) -> list[Insight]:
        """One insight per category that grew past the threshold."""
        current = category_totals(this_month)
        previous = category_totals(last_month)
        threshold = self._settings.category_trend_threshold_pct

        insights = []
        for name, amount in current.items():
            # Categories new this month have nothing to compare against
            change = percent_change(amount, previous.get(name, 0.0))
            if change is None or change <= threshold:
                continue
            insights.append(Insight(
                kind=InsightKind.CATEGORY_INCREASE,
                tone=InsightTone.WARNING,
                icon="📈",
                message=(
                    f"Your {name} expenses increased by "
                    f"{round_half_up(change):.0f}% this month."
                ),
                details={
                    "category": name,
                    "this_month": amount,
                    "last_month": previous[name],
                    "change_pct": change,
                },
            ))
        return insights

    def _habits(self, this_month: list[Transaction]) -> list[Insight]:
        minimum = self._settings.habit_min_count
        return [
            Insight(
                kind=InsightKind.HABIT,
                icon="🔁",
                message=f"You spend very frequently on {name}. This looks like a habit.",
                details={"category": name, "count": count},
            )
            for name, count in category_counts(this_month).items()
            if count >= minimum
        ]

    def _projection(
        self,
        this_total: float,
        now: datetime,
        currency: str,
    ) -> Insight:
        """Extrapolate spend-per-day-elapsed to the whole month."""
        days_passed = max(now.day, 1)
        month_days = days_in_month(now.year, now.month)
        avg_per_day = this_total / days_passed
        projected = avg_per_day * month_days
        return Insight(
            kind=InsightKind.PROJECTION,
            icon="📊",
            message=(
                "At this rate, you may spend around "
                f"{format_amount(round_half_up(projected), currency)} this month."
            ),
            details={
                "spent_so_far": this_total,
                "days_elapsed": days_passed,
                "days_in_month": month_days,
                "avg_per_day": avg_per_day,
                "projected": projected,
            },
        )

    def _top_account(self, this_month: list[Transaction]) -> list[Insight]:
        """The account with the most expense this month; first seen wins ties."""
        top_name = None
        top_amount = 0.0
        for name, amount in account_spend(this_month).items():
            if amount > top_amount:
                top_name, top_amount = name, amount

        if top_name is None:
            return []
        return [Insight(
            kind=InsightKind.TOP_ACCOUNT,
            tone=InsightTone.WARNING,
            icon="🏦",
            message=f"Your {top_name} account is draining the fastest this month.",
            details={"account": top_name, "amount": top_amount},
        )]

    def _savings_tip(self, this_total: float, currency: str) -> list[Insight]:
        if this_total <= 0:
            return []
        rate = self._settings.savings_rate
        saving = this_total * rate
        return [Insight(
            kind=InsightKind.SAVINGS_TIP,
            tone=InsightTone.POSITIVE,
            icon="💡",
            message=(
                f"If you cut just {round_half_up(rate * 100):.0f}% spending, you could save "
                f"{format_amount(round_half_up(saving), currency)} this month."
            ),
            details={"rate": rate, "saving": saving},
        )]
