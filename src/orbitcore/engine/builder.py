"""Event construction and canonical log ordering."""

import itertools
import re
from datetime import datetime
from threading import Lock
from typing import Any, Iterable, Optional

from orbitcore.models import Event, EventType
from orbitcore.utils.time import epoch_millis, parse_timestamp, utc_now

_EVENT_ID_PATTERN = re.compile(r"^evt-(\d+)-(\d+)$")

_counter = itertools.count(1)
_counter_lock = Lock()


def next_event_id(now: Optional[datetime] = None) -> str:
    """Return a new event id of the form evt-{epoch_ms}-{counter}."""
    with _counter_lock:
        sequence = next(_counter)
    return f"evt-{epoch_millis(now or utc_now())}-{sequence}"


def build_event(
    type: EventType | str,
    payload: dict[str, Any],
    device_id: str,
    entity_id: Optional[str] = None,
    timestamp: datetime | str | None = None,
) -> Event:
    """
    Build an immutable event from a caller-supplied intent.

    Generates the id, and the timestamp when none is given. The payload is
    copied but not validated; shape checks happen in the reducers.

    Raises:
        ValueError: type is not in the event catalog or timestamp does not parse
    """
    resolved_timestamp = utc_now() if timestamp is None else parse_timestamp(timestamp)
    if resolved_timestamp is None:
        raise ValueError(f"Invalid event timestamp: {timestamp!r}")

    return Event(
        id=next_event_id(),
        type=EventType(type),
        entity_id=entity_id,
        payload=dict(payload),
        timestamp=resolved_timestamp,
        device_id=device_id,
    )


def _id_sort_key(event_id: str) -> tuple:
    match = _EVENT_ID_PATTERN.match(event_id)
    if match:
        return (0, int(match.group(1)), int(match.group(2)), event_id)
    return (1, 0, 0, event_id)


def event_sort_key(event: Event) -> tuple:
    """Canonical ordering key: timestamp, device id, then id epoch and counter."""
    return (event.timestamp, event.device_id, _id_sort_key(event.id))


def sort_events(events: Iterable[Event]) -> list[Event]:
    """
    Return events in the canonical order every replica folds them in.

    Ids that do not follow the evt-{epoch}-{counter} format sort after
    well-formed ids and compare as plain strings among themselves.
    """
    return sorted(events, key=event_sort_key)
