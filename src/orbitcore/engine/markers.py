"""Marker metadata embedded in external calendar event notes.

An exported event carries a `crmOrbitId:<calendar event id>` line, and
completed audits also carry a `crmOrbitAudit:<json>` line. The marker ties
the external event back to its internal calendar event after a round trip.
"""

import json
from typing import Optional

from orbitcore.models import CalendarEvent, CalendarEventStatus

MARKER_PREFIX = "crmOrbitId:"
AUDIT_PREFIX = "crmOrbitAudit:"

_METADATA_PREFIXES = (MARKER_PREFIX, AUDIT_PREFIX)


def build_marker(calendar_event_id: str) -> str:
    return f"{MARKER_PREFIX}{calendar_event_id}"


def extract_marker_id(notes: Optional[str]) -> Optional[str]:
    """Return the calendar event id of the first marker line in notes, if any."""
    if not notes:
        return None
    for line in notes.splitlines():
        stripped = line.strip()
        if stripped.startswith(MARKER_PREFIX):
            marker_id = stripped[len(MARKER_PREFIX):].strip()
            if marker_id:
                return marker_id
    return None


def strip_metadata_from_notes(notes: Optional[str]) -> str:
    """Remove every marker and audit metadata line, then trim."""
    if not notes:
        return ""
    kept = [line for line in notes.splitlines() if not line.strip().startswith(_METADATA_PREFIXES)]
    return "\n".join(kept).strip()


def append_marker_to_notes(notes: Optional[str], calendar_event_id: str) -> str:
    """Append the marker to notes unless it is already present."""
    marker = build_marker(calendar_event_id)
    if not notes or not notes.strip():
        return marker
    if marker in notes:
        return notes
    return f"{notes.strip()}\n{marker}"


def replace_marker_in_notes(notes: Optional[str], calendar_event_id: str) -> str:
    """Drop existing metadata lines and append a marker for calendar_event_id."""
    return append_marker_to_notes(strip_metadata_from_notes(notes), calendar_event_id)


def _audit_metadata(calendar_event: CalendarEvent) -> Optional[dict]:
    if not calendar_event.is_audit() or calendar_event.status != CalendarEventStatus.COMPLETED:
        return None
    audit = calendar_event.audit_data
    if audit is None:
        return None
    metadata = {}
    if audit.score is not None:
        metadata["score"] = audit.score
    if audit.floors_visited:
        metadata["floorsVisited"] = list(audit.floors_visited)
    return metadata or None


def build_external_event_notes(description: Optional[str], calendar_event: CalendarEvent) -> str:
    """
    Render the notes written to the external calendar for an event.

    The description comes first, followed by the marker line, and for
    completed audits with results, a compact JSON audit line.
    """
    notes = append_marker_to_notes(strip_metadata_from_notes(description), calendar_event.id)
    metadata = _audit_metadata(calendar_event)
    if metadata is not None:
        notes = f"{notes}\n{AUDIT_PREFIX}{json.dumps(metadata, separators=(',', ':'))}"
    return notes
