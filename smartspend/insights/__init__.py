"""Insight engine package."""

from smartspend.insights.engine import InsightEngine, days_in_month, percent_change

__all__ = ["InsightEngine", "days_in_month", "percent_change"]
