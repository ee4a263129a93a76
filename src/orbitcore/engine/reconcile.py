"""External calendar reconciliation.

Two pure operations against a device calendar provider:

- build_import_candidates proposes unlinked external events whose titles
  match an account.
- reconcile diffs a linked internal calendar event against the provider's
  current snapshot and returns the events that bring the internal side
  up to date. Running it again on a consistent pair returns nothing.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Any, Collection, Iterable, Optional

from orbitcore.config import settings
from orbitcore.engine.builder import build_event
from orbitcore.engine.markers import strip_metadata_from_notes
from orbitcore.engine.matching import find_accounts_matching_calendar_title
from orbitcore.models import (
    Account,
    CalendarEvent,
    Event,
    EventType,
    ExternalCalendarEvent,
    ExternalCalendarSnapshot,
    ExternalEventStatus,
    ImportCandidate,
    ImportWindow,
)
from orbitcore.utils.time import ensure_utc, parse_timestamp, to_iso, utc_now

logger = logging.getLogger(__name__)


def build_import_window(now: Optional[datetime] = None) -> ImportWindow:
    """Return the scan window around now used for import candidates."""
    now = ensure_utc(now or utc_now())
    return ImportWindow(
        start=now - timedelta(days=settings.import_window_past_days),
        end=now + timedelta(days=settings.import_window_future_days),
    )


def resolve_duration_minutes(start: Any, end: Any) -> Optional[int]:
    """Whole minutes between start and end, rounded half up; None unless positive."""
    start_at = parse_timestamp(start)
    end_at = parse_timestamp(end)
    if start_at is None or end_at is None:
        return None
    diff_ms = (end_at - start_at) / timedelta(milliseconds=1)
    if diff_ms <= 0:
        return None
    return math.floor(diff_ms / 60000 + 0.5)


def normalize_text(value: Optional[str]) -> str:
    return value.strip() if value else ""


def timestamps_equal(left: datetime, right: datetime) -> bool:
    """True when two instants differ by less than the configured epsilon."""
    drift = abs(ensure_utc(left) - ensure_utc(right))
    return drift < timedelta(milliseconds=settings.timestamp_epsilon_ms)


# Import candidates


def _infer_account_from_history(calendar_events: Iterable[CalendarEvent], title: str) -> Optional[str]:
    account_ids = {
        event.audit_data.account_id
        for event in calendar_events
        if event.is_audit() and event.audit_data is not None and event.summary.strip() == title
    }
    if len(account_ids) == 1:
        return next(iter(account_ids))
    return None


def _suggest_account(
    matches: list[Account], calendar_events: Iterable[CalendarEvent], title: str
) -> Optional[str]:
    if len(matches) == 1:
        return matches[0].id
    inferred = _infer_account_from_history(calendar_events, title)
    if inferred is not None and any(account.id == inferred for account in matches):
        return inferred
    return None


def build_import_candidates(
    external_events: Iterable[ExternalCalendarEvent],
    accounts: Iterable[Account],
    calendar_events: Iterable[CalendarEvent],
    linked_external_ids: Collection[str],
) -> list[ImportCandidate]:
    """
    Propose external events for import.

    An external event qualifies when its trimmed title exactly matches an
    account alias and it is not already linked. When several accounts match,
    the suggestion is inferred from past audits carrying the same summary;
    if that does not single one out, suggested_account_id is None and the
    user must choose.
    """
    accounts = list(accounts)
    calendar_events = list(calendar_events)
    candidates = []

    for external in external_events:
        title = external.title.strip()
        if not title or external.external_event_id in linked_external_ids:
            continue

        matches = find_accounts_matching_calendar_title(accounts, title)
        if not matches:
            continue

        candidates.append(
            ImportCandidate(
                external_event_id=external.external_event_id,
                calendar_id=external.calendar_id,
                title=title,
                scheduled_for=ensure_utc(external.start_date),
                duration_minutes=resolve_duration_minutes(external.start_date, external.end_date),
                location=external.location,
                notes=external.notes,
                matched_account_ids=[account.id for account in matches],
                suggested_account_id=_suggest_account(matches, calendar_events, title),
            )
        )

    logger.debug("Built %d import candidates", len(candidates))
    return candidates


# Two-way diff


def _content_changes(calendar_event: CalendarEvent, external: ExternalCalendarSnapshot) -> dict[str, Any]:
    changes: dict[str, Any] = {}

    title = external.title.strip()
    if title and title != normalize_text(calendar_event.summary):
        changes["summary"] = title

    description = strip_metadata_from_notes(external.notes)
    if normalize_text(description) != normalize_text(calendar_event.description):
        changes["description"] = description

    if normalize_text(external.location) != normalize_text(calendar_event.location):
        changes["location"] = normalize_text(external.location)

    duration = resolve_duration_minutes(external.start_date, external.end_date)
    if duration is not None and duration != calendar_event.duration_minutes:
        changes["durationMinutes"] = duration

    return changes


def reconcile(
    calendar_event: CalendarEvent,
    external: ExternalCalendarSnapshot,
    device_id: str,
    timestamp: datetime | str,
) -> list[Event]:
    """
    Return the events that apply the external snapshot to the internal event.

    A canceled external event yields a single calendarEvent.canceled (or
    nothing when already canceled) and nothing else. Otherwise start drift
    beyond the epsilon yields calendarEvent.rescheduled, and any content
    drift yields one calendarEvent.updated carrying only the changed fields.
    """

    def emit(event_type: EventType, payload: dict[str, Any]) -> Event:
        return build_event(
            event_type,
            {"id": calendar_event.id, **payload},
            device_id,
            entity_id=calendar_event.id,
            timestamp=timestamp,
        )

    if external.status == ExternalEventStatus.CANCELED:
        if calendar_event.is_canceled():
            return []
        logger.info("External event %s canceled; canceling %s", external.external_event_id, calendar_event.id)
        return [emit(EventType.CALENDAR_EVENT_CANCELED, {})]

    events = []

    internal_start = parse_timestamp(calendar_event.scheduled_for)
    external_start = parse_timestamp(external.start_date)
    if internal_start and external_start and not timestamps_equal(internal_start, external_start):
        events.append(emit(EventType.CALENDAR_EVENT_RESCHEDULED, {"scheduledFor": to_iso(external_start)}))

    changes = _content_changes(calendar_event, external)
    if changes:
        events.append(emit(EventType.CALENDAR_EVENT_UPDATED, changes))

    if events:
        logger.info(
            "Reconciled %s against %s: %s",
            calendar_event.id,
            external.external_event_id,
            ", ".join(event.type.value for event in events),
        )
    return events
