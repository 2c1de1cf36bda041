"""
Tests for the aggregation engine.

All sums are pure functions of the transactions passed in.
"""

import pytest
from datetime import date, datetime, timezone

from smartspend.aggregation import (
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
from smartspend.models.ledger import Category, Ledger, TransactionType


class TestMonthKeys:
    """Tests for month key helpers."""

    def test_month_key_is_zero_padded(self):
        """Test YYYY-MM formatting."""
        assert month_key(date(2025, 3, 9)) == "2025-03"
        assert current_month_key(datetime(2024, 12, 31, 23, 59)) == "2024-12"

    def test_parse_month_key(self):
        """Test valid and malformed keys."""
        assert parse_month_key("2025-06") == (2025, 6)
        assert parse_month_key("2025-13") is None
        assert parse_month_key("June") is None
        assert parse_month_key("") is None

    def test_previous_month_wraps_year(self):
        """Test that January goes back to December of the prior year."""
        assert previous_month_key("2025-01") == "2024-12"
        assert previous_month_key("2025-03") == "2025-02"

    def test_previous_month_rejects_bad_key(self):
        """Test that a malformed key raises."""
        with pytest.raises(ValueError):
            previous_month_key("nope")

    def test_format_month_key(self):
        """Test the display label."""
        assert format_month_key("2025-01") == "Jan 2025"
        assert format_month_key("bad") == "bad"


class TestDates:
    """Tests for transaction date parsing."""

    def test_naive_timestamp_is_local(self):
        """Test that naive timestamps are taken as-is."""
        parsed = parse_transaction_date("2025-06-10T00:00:00")
        assert parsed == datetime(2025, 6, 10)

    def test_aware_timestamp_is_converted_to_local(self):
        """Test that offset timestamps become naive local times."""
        stamp = datetime(2025, 6, 10, 12, tzinfo=timezone.utc)
        parsed = parse_transaction_date(stamp.isoformat().replace("+00:00", "Z"))
        assert parsed.tzinfo is None
        assert parsed == stamp.astimezone().replace(tzinfo=None)

    def test_malformed_dates_are_none(self):
        """Test that junk dates parse to None."""
        assert parse_transaction_date("not a date") is None
        assert parse_transaction_date("") is None
        assert parse_transaction_date(None) is None

    @pytest.mark.parametrize("value", [
        "0001-01-01T00:00:00+05:00",
        "9999-12-31T23:00:00-05:00",
    ])
    def test_out_of_range_local_time_is_none(self, value):
        """Test that timestamps that overflow on conversion parse to None."""
        assert parse_transaction_date(value) is None

    def test_out_of_range_date_is_in_no_month(self, tx):
        """Test that month filtering skips overflowing timestamps."""
        far = tx(10, day="9999-12-31T23:00:00-05:00")
        assert list(month_filter([far], "2025-06")) == []
        assert unique_month_keys([far], now=datetime(2025, 6, 15)) == ["2025-06"]


class TestMonthFilter:
    """Tests for filtering by calendar month."""

    def test_filters_by_month(self, tx):
        """Test that only the requested month is kept."""
        june = tx(100, day="2025-06-01")
        may = tx(200, day="2025-05-31")
        assert list(month_filter([june, may], "2025-06")) == [june]

    def test_malformed_date_is_in_no_month(self, tx):
        """Test that an unparseable date is silently excluded."""
        junk = tx(100, day="garbage")
        assert list(month_filter([junk], "2025-06")) == []

    def test_invalid_key_yields_nothing(self, tx):
        """Test that a malformed month key matches nothing."""
        assert list(month_filter([tx(100)], "2025-99")) == []

    def test_filter_is_idempotent(self, tx):
        """Test that filtering twice gives the same result."""
        items = [tx(100, day="2025-06-01"), tx(5, day="2025-04-01")]
        once = list(month_filter(items, "2025-06"))
        assert list(month_filter(once, "2025-06")) == once

    def test_unique_month_keys_newest_first(self, tx):
        """Test month list includes the current month and skips junk."""
        items = [
            tx(1, day="2025-01-05"),
            tx(1, day="2025-03-05"),
            tx(1, day="2025-03-20"),
            tx(1, day="junk"),
        ]
        keys = unique_month_keys(items, now=datetime(2025, 6, 15))
        assert keys == ["2025-06", "2025-03", "2025-01"]


class TestSums:
    """Tests for totals and per-key sums."""

    def test_totals(self, tx):
        """Test income and expense sums."""
        items = [
            tx(1000, category="Salary", tx_type=TransactionType.INCOME),
            tx(250),
            tx(50),
        ]
        result = totals(items)
        assert result.income == 1000
        assert result.expense == 300
        assert result.net == 700

    def test_totals_of_nothing(self):
        """Test that empty input sums to zero."""
        result = totals([])
        assert result.income == 0
        assert result.expense == 0

    def test_category_totals_ignore_income(self, tx):
        """Test per-category expense sums in order of appearance."""
        items = [
            tx(10, category="Coffee"),
            tx(500, category="Salary", tx_type=TransactionType.INCOME),
            tx(20, category="Food"),
            tx(5, category="Coffee"),
        ]
        assert category_totals(items) == {"Coffee": 15, "Food": 20}
        assert list(category_counts(items).items()) == [("Coffee", 2), ("Food", 1)]

    def test_account_spend(self, tx):
        """Test per-account expense sums."""
        items = [tx(10, account="UPI"), tx(30, account="Cash"), tx(5, account="UPI")]
        assert account_spend(items) == {"UPI": 15, "Cash": 30}

    def test_category_spend_in_month(self, tx):
        """Test one category within one month."""
        items = [
            tx(10, category="Food", day="2025-06-02"),
            tx(20, category="Food", day="2025-05-02"),
            tx(40, category="Rent", day="2025-06-02"),
        ]
        assert category_spend(items, "Food", "2025-06") == 10


class TestBreakdown:
    """Tests for the category breakdown."""

    def test_sorted_descending_with_percent(self, tx):
        """Test ordering and shares."""
        categories = [
            Category(id=1, name="Food", icon="🍔", color="#ef4444"),
            Category(id=2, name="Rent", icon="🏠", color="#22c55e"),
        ]
        rows = category_breakdown([tx(25, category="Food"), tx(75, category="Rent")], categories)
        assert [r.category for r in rows] == ["Rent", "Food"]
        assert rows[0].percent == 75
        assert rows[1].icon == "🍔"

    def test_unknown_category_gets_placeholders(self, tx):
        """Test that deleted categories still show up."""
        rows = category_breakdown([tx(10, category="Gone")], [])
        assert rows[0].icon == "❓"
        assert rows[0].color == "#64748b"
        assert rows[0].percent == 100

    def test_empty_breakdown(self):
        """Test that no expenses gives no rows."""
        assert category_breakdown([], []) == []


class TestSearchAndHistory:
    """Tests for record search and category history."""

    def test_search_fields(self, tx):
        """Test that desc, amount, category and account are searched."""
        item = tx(250, category="Food", account="UPI", desc="Lunch with team")
        assert matches_search(item, "lunch")
        assert matches_search(item, "250")
        assert matches_search(item, "food")
        assert matches_search(item, "upi")
        assert not matches_search(item, "rent")

    def test_empty_query_matches_everything(self, tx):
        """Test the blank search box."""
        assert matches_search(tx(1), "")
        assert matches_search(tx(1), "   ")

    def test_fractional_amount_search(self, tx):
        """Test that decimal amounts are searchable."""
        assert matches_search(tx(2.5), "2.5")

    def test_category_history_newest_first(self, tx):
        """Test history ordering; undated expenses go last."""
        old = tx(1, category="Coffee", day="2025-01-01")
        new = tx(2, category="Coffee", day="2025-06-01")
        junk = tx(3, category="Coffee", day="junk")
        other = tx(4, category="Food", day="2025-06-01")
        assert category_history([junk, old, other, new], "Coffee") == [new, old, junk]


class TestBudgets:
    """Tests for budget lookups and summaries."""

    def _ledger(self, tx):
        ledger = Ledger.default()
        ledger.budgets_monthly = {"2025-06": {"Food": 1000.0, "Rent": 5000.0}}
        ledger.transactions = [
            tx(1500, category="Food", day="2025-06-03"),
            tx(2000, category="Rent", day="2025-06-01"),
            tx(999, category="Food", day="2025-05-03"),
        ]
        return ledger

    def test_budget_for_category(self, tx):
        """Test set, unset and other-month budgets."""
        ledger = self._ledger(tx)
        assert budget_for_category(ledger, "Food", "2025-06") == 1000
        assert budget_for_category(ledger, "Coffee", "2025-06") == 0
        assert budget_for_category(ledger, "Food", "2025-05") == 0

    def test_budget_rows_clamp(self, tx):
        """Test remaining and percent are clamped."""
        rows = {r.category: r for r in budget_rows(self._ledger(tx), "2025-06")}
        assert rows["Food"].spent == 1500
        assert rows["Food"].remaining == 0
        assert rows["Food"].percent_used == 100
        assert rows["Rent"].remaining == 3000
        assert rows["Rent"].percent_used == 40
        assert rows["Coffee"].percent_used == 0

    def test_budget_summary(self, tx):
        """Test totals across categories."""
        summary = budget_summary(self._ledger(tx), "2025-06")
        assert summary.total_budget == 6000
        assert summary.total_spent == 3500
        assert summary.total_remaining == 2500

    def test_budget_summary_never_negative(self, tx):
        """Test that overspending clamps remaining at zero."""
        ledger = self._ledger(tx)
        ledger.budgets_monthly = {"2025-06": {"Food": 100.0}}
        summary = budget_summary(ledger, "2025-06")
        assert summary.total_remaining == 0


class TestFormatting:
    """Tests for number display."""

    def test_round_half_up(self):
        """Test that halves round away from zero."""
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(0.125, 2) == 0.13

    def test_format_number(self):
        """Test thousands separators and trimmed decimals."""
        assert format_number(6000) == "6,000"
        assert format_number(1234.5) == "1,234.5"
        assert format_number(0.1234) == "0.123"
        assert format_number(0) == "0"
        assert format_number(None) == "0"

    def test_format_amount(self):
        """Test the currency prefix."""
        assert format_amount(6000, "₹") == "₹ 6,000"
        assert format_amount(12.5, "$") == "$ 12.5"
