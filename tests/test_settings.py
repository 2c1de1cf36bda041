"""
Tests for configuration and the audit logger.
"""

from pathlib import Path

import pytest

from smartspend.audit import AuditLogger, create_correlation_id
from smartspend.config import (
    AppSettings,
    InsightSettings,
    StoreSettings,
    get_settings,
    validate_all_settings,
)
from smartspend.models.audit import AuditEventBuilder, AuditEventType


class TestSettings:
    """Tests for pydantic-settings configuration."""

    def test_defaults(self):
        """Test the built-in defaults."""
        settings = get_settings()
        assert settings.store.ledger_key == "smartspend"
        assert settings.store.filter_month_key == "filterMonth"
        assert settings.insights.min_transactions == 5
        assert settings.insights.month_trend_threshold_pct == 15
        assert settings.insights.category_trend_threshold_pct == 30
        assert settings.insights.habit_min_count == 6
        assert settings.app.default_account_name == "Cash"
        assert settings.app.fallback_category_name == "Other"

    def test_env_overrides(self, monkeypatch, tmp_path):
        """Test that environment variables override defaults."""
        monkeypatch.setenv("SMARTSPEND_STORE_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("SMARTSPEND_INSIGHTS_HABIT_MIN_COUNT", "3")
        get_settings.cache_clear()

        settings = get_settings()
        assert settings.store.data_path == Path(tmp_path)
        assert settings.insights.habit_min_count == 3

    def test_invalid_values_rejected(self):
        """Test field constraints."""
        with pytest.raises(ValueError):
            StoreSettings(write_attempts=0)
        with pytest.raises(ValueError):
            InsightSettings(savings_rate=0)
        with pytest.raises(ValueError):
            AppSettings(default_category_color="gray")

    def test_validate_all_settings(self):
        """Test the startup check."""
        status = validate_all_settings()
        assert status == {"store": True, "insights": True, "app": True}

    def test_validate_reports_errors(self, monkeypatch):
        """Test that a broken section is reported, not raised."""
        monkeypatch.setenv("SMARTSPEND_STORE_WRITE_ATTEMPTS", "99")
        status = validate_all_settings()
        assert status["store"] is False
        assert "store_error" in status


class TestAuditLogger:
    """Tests for the audit trail."""

    def test_history_is_bounded(self):
        """Test that only the newest events are kept."""
        audit = AuditLogger(history_size=2)
        audit.log_ledger_saved(10)
        audit.log_ledger_saved(20)
        audit.log_ledger_reset()
        events = audit.recent_events
        assert len(events) == 2
        assert events[-1].event_type == AuditEventType.LEDGER_RESET

    def test_history_can_be_disabled(self):
        """Test that a zero-size history keeps nothing."""
        audit = AuditLogger(history_size=0)
        assert audit.log(AuditEventBuilder.currency_changed("₹", "$")) is True
        assert audit.recent_events == []

    def test_correlated_import_events(self):
        """Test that one import shares a correlation id."""
        audit = AuditLogger()
        correlation_id = create_correlation_id()
        audit.log_import_failed("bad", correlation_id)
        event = audit.events_of_type(AuditEventType.IMPORT_FAILED)[0]
        assert event.correlation_id == correlation_id
