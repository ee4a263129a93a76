"""
Payload reducer tests: field-level fallback, type guards and entity ids.
"""

from datetime import datetime, timezone

import pytest

from orbitcore.engine import guards
from orbitcore.engine.builder import build_event
from orbitcore.engine.errors import EntityIdMismatch, EntityIdMissing
from orbitcore.engine.reducers import (
    build_account_from_payload,
    build_calendar_event_from_payload,
    build_code_from_payload,
    build_contact_from_payload,
    build_note_from_payload,
    build_organization_from_payload,
    resolve_entity_id,
)
from orbitcore.models import (
    AccountStatus,
    AuditFrequency,
    CalendarEventStatus,
    CalendarEventType,
    CodeType,
    EventType,
    OrganizationStatus,
    RecurrenceFrequency,
)

T0 = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)
T1 = datetime(2024, 1, 20, 9, 0, tzinfo=timezone.utc)


def test_guards_reject_wrong_types():
    payload = {"flag": True, "count": 3, "text": "  ", "when": "garbage"}

    assert guards.read_positive_int(payload, "flag") is None, "bool is not a count"
    assert guards.read_positive_int(payload, "count") == 3
    assert guards.read_str(payload, "text") == "  "
    assert guards.read_non_empty_str(payload, "text") is None
    assert guards.read_timestamp(payload, "when") is None
    assert guards.read_enum(payload, "count", AuditFrequency) is None
    assert guards.read_recurrence_rule({"rule": {"frequency": "hourly"}}, "rule") is None


def test_organization_created_then_partially_updated():
    created = build_organization_from_payload("org-1", {"name": "Acme"}, T0)
    assert created.name == "Acme"
    assert created.status == OrganizationStatus.ACTIVE
    assert created.created_at == T0 and created.updated_at == T0

    updated = build_organization_from_payload(
        "org-1", {"status": "organization.status.inactive"}, T1, created
    )
    assert updated.name == "Acme", "Absent fields keep the existing value"
    assert updated.status == OrganizationStatus.INACTIVE
    assert updated.created_at == T0
    assert updated.updated_at == T1
    assert created.status == OrganizationStatus.ACTIVE, "Existing snapshot is never mutated"


def test_malformed_fields_fall_back_to_existing():
    existing = build_contact_from_payload(
        "contact-1", {"firstName": "Ada", "lastName": "Lovelace"}, T0
    )
    updated = build_contact_from_payload(
        "contact-1",
        {"firstName": 42, "lastName": None, "contactType": "contact.type.nonsense", "emails": "x"},
        T1,
        existing,
    )

    assert updated.first_name == "Ada"
    assert updated.last_name == "Lovelace"
    assert updated.contact_type == existing.contact_type
    assert updated.emails == []
    assert updated.updated_at == T1


def test_contact_methods_are_parsed():
    contact = build_contact_from_payload(
        "contact-1",
        {"firstName": "Ada", "emails": [{"id": "m1", "value": "ada@example.com"}]},
        T0,
    )
    assert contact.emails[0].value == "ada@example.com"
    assert contact.display_name == "Ada"


def test_note_and_code_defaults():
    note = build_note_from_payload("note-1", {}, T0)
    assert note.title == "" and note.body == ""

    code = build_code_from_payload(
        "code-1", {"accountId": "acct-1", "label": "Lobby", "codeValue": "1234", "type": "code.type.door"}, T0
    )
    assert code.code_type == CodeType.DOOR
    assert code.is_encrypted is False

    encrypted = build_code_from_payload("code-1", {"isEncrypted": "yes"}, T1, code)
    assert encrypted.is_encrypted is False, "Non-bool flags are ignored"


def test_account_created_with_default_cadence():
    account = build_account_from_payload(
        "acct-1", {"organizationId": "org-1", "name": "Comcast Center"}, T0
    )

    assert account.status == AccountStatus.ACTIVE
    assert account.audit_frequency == AuditFrequency.MONTHLY
    assert account.audit_frequency_anchor_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert account.audit_frequency_updated_at == T0
    assert not account.has_pending_frequency()


def test_account_update_without_frequency_keeps_cadence():
    account = build_account_from_payload(
        "acct-1", {"organizationId": "org-1", "auditFrequency": "account.auditFrequency.quarterly"}, T0
    )
    renamed = build_account_from_payload("acct-1", {"name": "Renamed"}, T1, account)

    assert renamed.audit_frequency == AuditFrequency.QUARTERLY
    assert renamed.audit_frequency_anchor_at == account.audit_frequency_anchor_at
    assert renamed.audit_frequency_updated_at == T0


def test_calendar_event_normalizes_legacy_values():
    event = build_calendar_event_from_payload(
        "cal-1",
        {
            "type": "audit",
            "status": "scheduled",
            "summary": "Audit - Comcast Center",
            "scheduledFor": "2024-02-01T10:00:00Z",
            "durationMinutes": 90,
            "accountId": "acct-1",
            "score": 140,
            "floorsVisited": [1, 2],
            "recurrenceRule": {"frequency": "monthly", "interval": 1, "byMonthDay": [1]},
        },
        T0,
    )

    assert event.type == CalendarEventType.AUDIT
    assert event.status == CalendarEventStatus.SCHEDULED
    assert event.scheduled_for == datetime(2024, 2, 1, 10, 0, tzinfo=timezone.utc)
    assert event.duration_minutes == 90
    assert event.audit_data.account_id == "acct-1"
    assert event.audit_data.score is None, "Scores outside 0-100 are ignored"
    assert event.audit_data.floors_visited == [1, 2]
    assert event.recurrence_rule.frequency == RecurrenceFrequency.MONTHLY
    assert event.recurrence_rule.by_month_day == [1]


def test_calendar_event_ignores_bad_dates_and_durations():
    existing = build_calendar_event_from_payload(
        "cal-1", {"summary": "Call", "scheduledFor": "2024-02-01T10:00:00Z", "durationMinutes": 30}, T0
    )
    updated = build_calendar_event_from_payload(
        "cal-1", {"scheduledFor": "tomorrow-ish", "durationMinutes": -5}, T1, existing
    )

    assert updated.scheduled_for == existing.scheduled_for
    assert updated.duration_minutes == 30
    assert updated.audit_data is None


def test_calendar_event_without_schedule_uses_timestamp():
    event = build_calendar_event_from_payload("cal-1", {"summary": "Walk-in"}, T0)
    assert event.scheduled_for == T0


def test_resolve_entity_id_prefers_agreement():
    event = build_event(EventType.NOTE_UPDATED, {"id": "note-1"}, "device-a", entity_id="note-1")
    assert resolve_entity_id(event) == "note-1"

    envelope_only = build_event(EventType.NOTE_UPDATED, {}, "device-a", entity_id="note-2")
    assert resolve_entity_id(envelope_only) == "note-2"

    mismatched = build_event(EventType.NOTE_UPDATED, {"id": "note-1"}, "device-a", entity_id="note-2")
    with pytest.raises(EntityIdMismatch):
        resolve_entity_id(mismatched)

    missing = build_event(EventType.NOTE_UPDATED, {}, "device-a")
    with pytest.raises(EntityIdMissing):
        resolve_entity_id(missing)


def test_same_event_replayed_twice_yields_equal_snapshots():
    payload = {"summary": "Call", "scheduledFor": "2024-02-01T10:00:00Z"}
    first = build_calendar_event_from_payload("cal-1", payload, T0)
    second = build_calendar_event_from_payload("cal-1", payload, T0)
    assert first == second
    assert first is not second
