"""
Tests for backup export and import.
"""

import json
from datetime import datetime

import pytest

from smartspend.aggregation import budget_for_category, budget_summary, month_filter
from smartspend.models.ledger import Ledger
from smartspend.services.backup import (
    ImportFormatError,
    build_ledger,
    coerce_document,
    export_document,
    export_filename,
    find_duplicate_names,
    import_document,
)


NOW = datetime(2025, 1, 31, 18, 4, 9)


class TestExport:
    """Tests for writing backups."""

    def test_filename(self):
        """Test the timestamped file name."""
        assert export_filename(NOW) == "smartspend-backup-2025-01-31-18-04-09.json"

    def test_export_is_pretty_json(self, tx):
        """Test that the export is indented and keeps non-ASCII text."""
        ledger = Ledger.default()
        ledger.transactions = [tx(250)]
        filename, text = export_document(ledger, now=NOW)
        assert filename.endswith(".json")
        assert "\n  " in text
        assert "₹" in text
        assert json.loads(text) == ledger.to_document()

    def test_export_import_round_trip(self, tx):
        """Test that importing an export reproduces the ledger."""
        ledger = Ledger.default()
        ledger.transactions = [tx(250, desc="Lunch"), tx(99.5, category="Coffee")]
        ledger.budgets_monthly = {"2025-06": {"Food": 3000.0}}
        ledger.settings.currency = "$"
        _, text = export_document(ledger, now=NOW)
        assert import_document(text, now=NOW).to_document() == ledger.to_document()


class TestImport:
    """Tests for reading backups."""

    def test_not_json(self):
        """Test that unparseable text is rejected."""
        with pytest.raises(ImportFormatError):
            import_document("{not json", now=NOW)

    def test_not_an_object(self):
        """Test that a JSON array is rejected."""
        with pytest.raises(ImportFormatError):
            import_document("[]", now=NOW)

    def test_wrong_container_types_fall_back(self):
        """Test per-key fallbacks for mistyped top-level values."""
        ledger = import_document(json.dumps({
            "accounts": "nope",
            "categories": 5,
            "transactions": {},
            "budgetsMonthly": [],
            "settings": "x",
        }), now=NOW)
        assert [a.name for a in ledger.accounts] == ["Cash", "Bank", "UPI"]
        assert len(ledger.categories) == 25
        assert ledger.transactions == []
        assert ledger.budgets_monthly == {}
        assert ledger.settings.currency == "₹"

    def test_empty_object_gives_defaults(self):
        """Test that {} imports as the stock ledger."""
        ledger = import_document("{}", now=NOW)
        assert len(ledger.accounts) == 3
        assert ledger.transactions == []

    def test_old_categories_are_backfilled(self):
        """Test that categories without id or color are completed."""
        ledger = import_document(json.dumps({
            "categories": [{"name": "Food", "icon": "🍔"}],
        }), now=NOW)
        food = ledger.categories[0]
        assert food.color == "#64748b"
        assert food.id == int(f"{int(NOW.timestamp() * 1000)}0")

    def test_invalid_transaction_rejected(self):
        """Test that a bad entry rejects the whole document."""
        with pytest.raises(ImportFormatError):
            import_document(json.dumps({
                "transactions": [{"id": 1, "type": "transfer", "amount": 5, "date": "2025-01-01"}],
            }), now=NOW)

    def test_duplicate_names_rejected(self):
        """Test that names repeated ignoring case are rejected."""
        document = {
            "accounts": [{"id": 1, "name": "Cash"}, {"id": 2, "name": "cash"}],
        }
        with pytest.raises(ImportFormatError, match="duplicate account name"):
            build_ledger(document, now=NOW)

    def test_duplicates_allowed_when_unchecked(self):
        """Test the lenient mode used for the store's own copy."""
        document = {
            "categories": [{"id": 1, "name": "Food"}, {"id": 2, "name": "FOOD"}],
        }
        ledger = build_ledger(document, now=NOW, check_duplicates=False)
        assert find_duplicate_names(ledger) == ["duplicate category name: FOOD"]

    def test_coerce_keeps_valid_containers(self):
        """Test that well-typed values pass through untouched."""
        obj = {"accounts": [], "transactions": [], "budgetsMonthly": {"2025-01": {}}}
        coerced = coerce_document(obj)
        assert coerced["accounts"] == []
        assert coerced["budgetsMonthly"] == {"2025-01": {}}

    def test_non_numeric_budget_caps_are_dropped(self):
        """Test that only usable caps survive import."""
        ledger = import_document(json.dumps({
            "budgetsMonthly": {
                "2025-06": {"Food": "abc", "Rent": 500, "Fuel": "500", "Gym": True, "Pets": -3},
                "2025-05": 1200,
            },
        }), now=NOW)
        assert ledger.budgets_monthly == {"2025-06": {"Rent": 500.0}}

    def test_non_finite_budget_caps_are_dropped(self):
        """Test that NaN and Infinity caps are dropped."""
        ledger = import_document(
            '{"budgetsMonthly": {"2025-06": {"Food": NaN, "Rent": Infinity, "Gym": 40}}}',
            now=NOW,
        )
        assert ledger.budgets_monthly == {"2025-06": {"Gym": 40.0}}

    def test_dropped_caps_read_as_unset(self):
        """Test that budget lookups after a lenient import see 0."""
        ledger = import_document(json.dumps({
            "budgetsMonthly": {"2025-06": {"Food": "abc", "Rent": 500}},
        }), now=NOW)
        assert budget_for_category(ledger, "Food", "2025-06") == 0
        assert budget_summary(ledger, "2025-06").total_budget == 500

    def test_missing_settings_use_given_currency(self):
        """Test the currency used for documents saved without settings."""
        assert import_document("{}", now=NOW, currency="$").settings.currency == "$"
        kept = import_document('{"settings": {"currency": "€"}}', now=NOW, currency="$")
        assert kept.settings.currency == "€"

    def test_transaction_without_date_imports(self):
        """Test that an undated transaction is kept but is in no month."""
        ledger = import_document(json.dumps({
            "transactions": [{"id": 1, "type": "expense", "amount": 5, "category": "Food"}],
        }), now=NOW)
        assert ledger.transactions[0].date == ""
        assert list(month_filter(ledger.transactions, "2025-01")) == []
