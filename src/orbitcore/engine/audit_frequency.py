"""Audit frequency cadence - month-granular period arithmetic.

An account's audit cadence is a two-state machine:

- StableCadence: one frequency, counted in periods from a month-start anchor.
- PendingCadence: the current frequency stays in force until
  pending_effective_at, the boundary of the period in which the change was
  requested; from that instant the pending frequency applies.

Transitions:
- immediate change  -> StableCadence(new, month_start(timestamp))
- nextPeriod change -> PendingCadence(current, anchor, new, end of current period)
- settle(instant)   -> PendingCadence past its boundary becomes
                       StableCadence(pending, pending_effective_at)
"""

from datetime import datetime, timezone
from typing import Optional, Union

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict

from orbitcore.models import Account, AuditFrequency, FrequencyChangeTiming
from orbitcore.utils.time import ensure_utc, parse_timestamp


class StableCadence(BaseModel):
    """No frequency change is scheduled."""

    model_config = ConfigDict(frozen=True)

    frequency: AuditFrequency
    anchor_at: datetime


class PendingCadence(BaseModel):
    """A frequency change is recorded for the next period boundary."""

    model_config = ConfigDict(frozen=True)

    frequency: AuditFrequency
    anchor_at: datetime
    pending_frequency: AuditFrequency
    pending_effective_at: datetime


AuditCadence = Union[StableCadence, PendingCadence]


def _month_floor(value: datetime) -> datetime:
    value = ensure_utc(value)
    return datetime(value.year, value.month, 1, tzinfo=timezone.utc)


def month_start(value: datetime | str | None) -> Optional[datetime]:
    """Floor a timestamp to the first instant of its UTC month."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return _month_floor(parsed)


def _month_index(value: datetime) -> int:
    return value.year * 12 + (value.month - 1)


def _from_month_index(index: int) -> datetime:
    return datetime(index // 12, index % 12 + 1, 1, tzinfo=timezone.utc)


def _period_start(anchor: datetime, months: int, target: datetime) -> datetime:
    anchor_index = _month_index(_month_floor(anchor))
    elapsed_periods = (_month_index(ensure_utc(target)) - anchor_index) // months
    return _from_month_index(anchor_index + elapsed_periods * months)


def period_start_from_anchor(
    anchor: datetime | str | None,
    months: int,
    target: datetime | str | None,
) -> Optional[datetime]:
    """
    Return the start of the months-wide period, counted from anchor, that contains target.

    Uses floor division on the month-index delta so targets before the
    anchor resolve to earlier periods rather than to the anchor itself.
    """
    anchor_at = parse_timestamp(anchor)
    target_at = parse_timestamp(target)
    if anchor_at is None or target_at is None or months <= 0:
        return None
    return _period_start(anchor_at, months, target_at)


def add_months(period_start: datetime, months: int) -> datetime:
    """Return the period boundary months after period_start."""
    return ensure_utc(period_start) + relativedelta(months=months)


def current_period(cadence: AuditCadence, instant: datetime) -> tuple[datetime, datetime]:
    """Return (start, end) of the audit period covering instant."""
    settled = settle(cadence, instant)
    months = settled.frequency.months
    start = _period_start(settled.anchor_at, months, instant)
    return start, add_months(start, months)


def cadence_from_account(account: Account) -> AuditCadence:
    """Read the cadence state machine from an account snapshot."""
    if account.has_pending_frequency():
        return PendingCadence(
            frequency=account.audit_frequency,
            anchor_at=account.audit_frequency_anchor_at,
            pending_frequency=account.audit_frequency_pending,
            pending_effective_at=account.audit_frequency_pending_effective_at,
        )
    return StableCadence(
        frequency=account.audit_frequency,
        anchor_at=account.audit_frequency_anchor_at,
    )


def initial_cadence(frequency: AuditFrequency, created_at: datetime) -> StableCadence:
    """Cadence for a newly created account."""
    return StableCadence(frequency=frequency, anchor_at=_month_floor(created_at))


def settle(cadence: AuditCadence, instant: datetime) -> AuditCadence:
    """Promote a pending change whose boundary has been reached."""
    if isinstance(cadence, PendingCadence) and ensure_utc(instant) >= cadence.pending_effective_at:
        return StableCadence(
            frequency=cadence.pending_frequency,
            anchor_at=cadence.pending_effective_at,
        )
    return cadence


def effective_frequency_at(cadence: AuditCadence, instant: datetime) -> AuditFrequency:
    """Frequency in force at instant."""
    return settle(cadence, instant).frequency


def apply_frequency_change(
    cadence: AuditCadence,
    new_frequency: AuditFrequency,
    timing: FrequencyChangeTiming,
    timestamp: datetime,
) -> AuditCadence:
    """Apply a frequency-change request made at timestamp."""
    current = settle(cadence, timestamp)

    if timing == FrequencyChangeTiming.IMMEDIATE:
        return StableCadence(frequency=new_frequency, anchor_at=_month_floor(timestamp))

    if new_frequency == current.frequency:
        # Re-selecting the frequency in force withdraws any pending change.
        return StableCadence(frequency=current.frequency, anchor_at=current.anchor_at)

    _, period_end = current_period(current, timestamp)
    return PendingCadence(
        frequency=current.frequency,
        anchor_at=current.anchor_at,
        pending_frequency=new_frequency,
        pending_effective_at=period_end,
    )


def cadence_fields(cadence: AuditCadence) -> dict:
    """Flatten a cadence into the account snapshot fields."""
    pending = isinstance(cadence, PendingCadence)
    return {
        "audit_frequency": cadence.frequency,
        "audit_frequency_anchor_at": cadence.anchor_at,
        "audit_frequency_pending": cadence.pending_frequency if pending else None,
        "audit_frequency_pending_effective_at": cadence.pending_effective_at if pending else None,
    }
