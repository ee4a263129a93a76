"""
Pytest fixtures for OrbitCore tests.
"""

import os
from datetime import datetime, timezone

import pytest

# Ensure test config is set before importing orbitcore modules.
os.environ.setdefault("ORBITCORE_LOG_LEVEL", "DEBUG")

from orbitcore.models import Account, CalendarEvent, CalendarMatch

JAN_1 = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def device_id() -> str:
    return "device-test"


@pytest.fixture
def make_account():
    """Factory for account snapshots with optional calendar aliases."""

    def _make(account_id: str = "acct-1", name: str = "Comcast Center", aliases=None, **overrides):
        fields = dict(
            id=account_id,
            organization_id="org-1",
            name=name,
            calendar_match=CalendarMatch(aliases=aliases) if aliases else None,
            audit_frequency_anchor_at=JAN_1,
            audit_frequency_updated_at=JAN_1,
            created_at=JAN_1,
            updated_at=JAN_1,
        )
        fields.update(overrides)
        return Account(**fields)

    return _make


@pytest.fixture
def make_calendar_event():
    """Factory for calendar event snapshots."""

    def _make(event_id: str = "calendar-1", **overrides):
        fields = dict(
            id=event_id,
            summary="Site visit",
            scheduled_for=datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc),
            created_at=JAN_1,
            updated_at=JAN_1,
        )
        fields.update(overrides)
        return CalendarEvent(**fields)

    return _make
