"""Aggregation package."""

from smartspend.aggregation.engine import (
    account_spend,
    budget_for_category,
    budget_rows,
    budget_summary,
    category_breakdown,
    category_counts,
    category_history,
    category_spend,
    category_totals,
    current_month_key,
    format_amount,
    format_month_key,
    format_number,
    matches_search,
    month_filter,
    month_key,
    parse_month_key,
    parse_transaction_date,
    previous_month_key,
    round_half_up,
    totals,
    unique_month_keys,
)

__all__ = [
    "account_spend",
    "budget_for_category",
    "budget_rows",
    "budget_summary",
    "category_breakdown",
    "category_counts",
    "category_history",
    "category_spend",
    "category_totals",
    "current_month_key",
    "format_amount",
    "format_month_key",
    "format_number",
    "matches_search",
    "month_filter",
    "month_key",
    "parse_month_key",
    "parse_transaction_date",
    "previous_month_key",
    "round_half_up",
    "totals",
    "unique_month_keys",
]
