"""
Notes marker codec and account calendar-title matching tests.
"""

import json

from orbitcore.engine.markers import (
    append_marker_to_notes,
    build_external_event_notes,
    build_marker,
    extract_marker_id,
    replace_marker_in_notes,
    strip_metadata_from_notes,
)
from orbitcore.engine.matching import (
    build_account_calendar_match_update,
    find_accounts_matching_calendar_title,
    resolve_account_calendar_aliases,
)
from orbitcore.models import AuditData, CalendarEventStatus, CalendarEventType, CalendarMatch


def test_strip_and_reapply_metadata():
    marker = build_marker("calendar-1")
    notes = f'Summary\n{marker}\ncrmOrbitAudit:{{"score":95}}'

    assert marker == "crmOrbitId:calendar-1"
    assert strip_metadata_from_notes(notes) == "Summary"
    assert append_marker_to_notes("", "calendar-1") == marker
    assert replace_marker_in_notes(notes, "calendar-2") == "Summary\ncrmOrbitId:calendar-2"


def test_append_is_idempotent():
    once = append_marker_to_notes("  Bring badge  ", "calendar-1")
    assert once == "Bring badge\ncrmOrbitId:calendar-1"
    assert append_marker_to_notes(once, "calendar-1") == once


def test_extract_marker_id():
    assert extract_marker_id("Notes\ncrmOrbitId:calendar-9\n") == "calendar-9"
    assert extract_marker_id("Notes only") is None
    assert extract_marker_id(None) is None


def test_external_notes_carry_audit_results(make_calendar_event):
    calendar_event = make_calendar_event(
        "calendar-3",
        type=CalendarEventType.AUDIT,
        status=CalendarEventStatus.COMPLETED,
        summary="Comcast Center",
        audit_data=AuditData(account_id="acct-3", score=92, floors_visited=[1, 2]),
    )

    notes = build_external_event_notes("Summary", calendar_event)
    lines = notes.splitlines()

    assert lines[0] == "Summary"
    assert lines[1] == build_marker("calendar-3")
    assert lines[2].startswith("crmOrbitAudit:")
    assert json.loads(lines[2][len("crmOrbitAudit:"):]) == {"score": 92, "floorsVisited": [1, 2]}
    assert strip_metadata_from_notes(notes) == "Summary"


def test_external_notes_for_scheduled_events_have_marker_only(make_calendar_event):
    calendar_event = make_calendar_event("calendar-4")
    assert build_external_event_notes(None, calendar_event) == "crmOrbitId:calendar-4"


def test_aliases_include_defaults_then_extras(make_account):
    account = make_account(aliases=["Comcast HQ", "Audit - Comcast Center"])

    assert resolve_account_calendar_aliases(account) == [
        "Comcast Center",
        "Audit - Comcast Center",
        "Comcast HQ",
    ]


def test_title_match_is_exact(make_account):
    accounts = [
        make_account("acct-1", "Comcast Center"),
        make_account("acct-2", "Other Plaza", aliases=["Other Plaza West"]),
    ]

    matches = find_accounts_matching_calendar_title(accounts, "Audit - Comcast Center")

    assert [a.id for a in matches] == ["acct-1"]
    assert find_accounts_matching_calendar_title(accounts, "comcast center") == []
    assert find_accounts_matching_calendar_title(accounts, " Other Plaza West ")[0].id == "acct-2"


def test_calendar_match_update(make_account):
    account = make_account()

    assert build_account_calendar_match_update(account, "Comcast HQ") == CalendarMatch(
        mode="exact", aliases=["Comcast HQ"]
    )
    assert build_account_calendar_match_update(account, "Comcast Center") is None
    assert build_account_calendar_match_update(account, "   ") is None

    with_alias = make_account(aliases=["Comcast HQ"])
    assert build_account_calendar_match_update(with_alias, "Comcast East").aliases == [
        "Comcast HQ",
        "Comcast East",
    ]
