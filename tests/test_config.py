"""
Configuration tests.
"""

import pytest
from pydantic import ValidationError

from orbitcore.config import Settings
from orbitcore.models import AuditFrequency


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.default_audit_frequency == AuditFrequency.MONTHLY
    assert settings.timestamp_epsilon_ms == 1000
    assert settings.import_window_past_days == 60
    assert settings.import_window_future_days == 180
    assert settings.external_provider == "expo-calendar"
    assert set(Settings.model_fields) == {
        "log_level",
        "default_audit_frequency",
        "external_provider",
        "timestamp_epsilon_ms",
        "import_window_past_days",
        "import_window_future_days",
        "max_recurrence_occurrences",
    }


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("ORBITCORE_TIMESTAMP_EPSILON_MS", "250")
    monkeypatch.setenv("ORBITCORE_DEFAULT_AUDIT_FREQUENCY", "account.auditFrequency.quarterly")
    monkeypatch.setenv("ORBITCORE_LOG_LEVEL", "warning")

    settings = Settings(_env_file=None)

    assert settings.timestamp_epsilon_ms == 250
    assert settings.default_audit_frequency == AuditFrequency.QUARTERLY
    assert settings.log_level == "WARNING"


def test_rejects_invalid_values():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, log_level="LOUD")
    with pytest.raises(ValidationError):
        Settings(_env_file=None, max_recurrence_occurrences=0)


def test_configure_logging_uses_configured_level(monkeypatch):
    import logging

    from orbitcore import config

    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    config.configure_logging("warning")

    assert calls[0]["level"] == logging.WARNING
    assert "%(name)s" in calls[0]["format"]
