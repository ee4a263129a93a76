"""Recurrence instance generator.

Expands a calendar event's recurrence rule into the concrete occurrences
that fall inside a query window. The base event is the rule's first
occurrence. The count and until bounds are measured on the rule's own
timeline before the window filter is applied, so a count exhausted before
the window yields nothing.
"""

import logging
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterator, Optional

from orbitcore.config import settings
from orbitcore.engine.errors import InvalidTimeRange
from orbitcore.models import CalendarEvent, RecurrenceFrequency, RecurrenceRule
from orbitcore.utils.time import ensure_utc, parse_timestamp, to_iso

logger = logging.getLogger(__name__)

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_LAST_MILLISECOND = timedelta(days=1) - timedelta(milliseconds=1)


def build_recurrence_instance_id(base_id: str, occurrence: datetime | str) -> str:
    """Return the id of a generated occurrence: {base_id}::{iso instant}."""
    stamp = occurrence if isinstance(occurrence, str) else to_iso(occurrence)
    return f"{base_id}::{stamp}"


def _start_of_utc_day(value: date) -> datetime:
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def _end_of_utc_day(value: datetime) -> datetime:
    return _start_of_utc_day(value) + _LAST_MILLISECOND


def _parse_bound(value: Any, inclusive_day: bool) -> Optional[datetime]:
    # A bare calendar date used as a range end covers that whole day.
    parsed = parse_timestamp(value)
    if parsed is None or not inclusive_day:
        return parsed
    is_date_only = (isinstance(value, date) and not isinstance(value, datetime)) or (
        isinstance(value, str) and _DATE_ONLY.match(value.strip()) is not None
    )
    return _end_of_utc_day(parsed) if is_date_only else parsed


def _sunday_weekday(value: date) -> int:
    """Weekday numbered 0 (Sunday) through 6 (Saturday)."""
    return (value.weekday() + 1) % 7


def _daily(base: datetime, rule: RecurrenceRule, horizon: datetime) -> Iterator[datetime]:
    step = timedelta(days=rule.interval)
    current = base + step
    while current <= horizon:
        yield current
        current += step


def _weekly(base: datetime, rule: RecurrenceRule, horizon: datetime) -> Iterator[datetime]:
    week_days = sorted({day for day in rule.by_week_day or [] if 0 <= day <= 6})
    if not week_days:
        week_days = [_sunday_weekday(base)]
    time_of_day = base.timetz()
    week_start = base.date() - timedelta(days=_sunday_weekday(base))

    while _start_of_utc_day(week_start) <= horizon:
        for day in week_days:
            occurrence = datetime.combine(week_start + timedelta(days=day), time_of_day)
            if occurrence <= base:
                continue
            if occurrence > horizon:
                return
            yield occurrence
        week_start += timedelta(weeks=rule.interval)


def _monthly(base: datetime, rule: RecurrenceRule, horizon: datetime) -> Iterator[datetime]:
    month_days = sorted({day for day in rule.by_month_day or [] if 1 <= day <= 31})
    if not month_days:
        month_days = [base.day]
    time_of_day = base.timetz()
    month_index = base.year * 12 + base.month - 1

    while True:
        year, month = divmod(month_index, 12)
        month += 1
        try:
            first_of_month = datetime.combine(date(year, month, 1), time_of_day)
        except ValueError:
            return
        if first_of_month > horizon:
            return
        for day in month_days:
            try:
                occurrence = datetime.combine(date(year, month, day), time_of_day)
            except ValueError:
                continue
            if occurrence <= base:
                continue
            if occurrence > horizon:
                return
            yield occurrence
        month_index += rule.interval


def _yearly(base: datetime, rule: RecurrenceRule, horizon: datetime) -> Iterator[datetime]:
    year = base.year + rule.interval
    while True:
        try:
            occurrence = base.replace(year=year)
        except ValueError:
            # Feb 29 in a non-leap year ends the series.
            return
        if occurrence > horizon:
            return
        yield occurrence
        year += rule.interval


_WALKERS = {
    RecurrenceFrequency.DAILY: _daily,
    RecurrenceFrequency.WEEKLY: _weekly,
    RecurrenceFrequency.MONTHLY: _monthly,
    RecurrenceFrequency.YEARLY: _yearly,
}


def _build_instance(base_event: CalendarEvent, occurrence: datetime) -> CalendarEvent:
    return base_event.model_copy(
        update={
            "id": build_recurrence_instance_id(base_event.id, occurrence),
            "recurrence_id": base_event.id,
            "recurrence_rule": None,
            "scheduled_for": occurrence,
        }
    )


def generate_recurrence_instances(
    base_event: CalendarEvent,
    range_start: datetime | date | str,
    range_end: datetime | date | str,
    max_occurrences: Optional[int] = None,
) -> list[CalendarEvent]:
    """
    Return the occurrences of base_event inside [range_start, range_end], ascending.

    Args:
        base_event: Calendar event carrying the recurrence rule
        range_start: Window start (inclusive)
        range_end: Window end (inclusive; a bare date covers the whole day)
        max_occurrences: Limit on returned occurrences, defaults to settings.max_recurrence_occurrences

    Returns:
        [base_event] when it has no rule or a bound does not parse

    Raises:
        InvalidTimeRange: range_start is after range_end
    """
    rule = base_event.recurrence_rule
    if rule is None:
        return [base_event]

    start = _parse_bound(range_start, inclusive_day=False)
    end = _parse_bound(range_end, inclusive_day=True)
    if start is None or end is None:
        logger.debug("Unparsable recurrence window for %s", base_event.id)
        return [base_event]
    if start > end:
        raise InvalidTimeRange(to_iso(start), to_iso(end))

    base = ensure_utc(base_event.scheduled_for)
    horizon = end
    if rule.until is not None:
        horizon = min(horizon, _end_of_utc_day(ensure_utc(rule.until)))

    cap = max_occurrences or settings.max_recurrence_occurrences

    instances: list[CalendarEvent] = []
    if base > horizon:
        return instances

    generated = 1
    if base >= start:
        instances.append(base_event)

    for occurrence in _WALKERS[rule.frequency](base, rule, horizon):
        # count runs from the rule origin, the cap only over the window.
        if rule.count is not None and generated >= rule.count:
            break
        generated += 1
        if occurrence < start:
            continue
        if len(instances) >= cap:
            logger.warning(
                "Recurrence expansion for %s stopped at %d occurrences", base_event.id, cap
            )
            break
        instances.append(_build_instance(base_event, occurrence))

    return instances
