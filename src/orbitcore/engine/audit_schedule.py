"""Audit schedule status for an account."""

from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict

from orbitcore.engine.audit_frequency import cadence_from_account, effective_frequency_at
from orbitcore.models import Account, CalendarEvent, CalendarEventStatus
from orbitcore.utils.time import ensure_utc, utc_now


class AuditScheduleStatus(str, Enum):
    """Whether an account's audit obligation is met."""

    OK = "ok"
    MISSING = "missing"
    OVERDUE = "overdue"


class AuditScheduleResult(BaseModel):
    """Audit schedule evaluation at a given instant."""

    model_config = ConfigDict(frozen=True)

    status: AuditScheduleStatus
    due_at: datetime
    last_audit_at: Optional[datetime] = None


def latest_completed_audit_at(
    account_id: str, calendar_events: Iterable[CalendarEvent]
) -> Optional[datetime]:
    """Return when the account's most recent completed audit took place."""
    latest = None
    for event in calendar_events:
        if not event.is_audit() or event.status != CalendarEventStatus.COMPLETED:
            continue
        if event.audit_data is None or event.audit_data.account_id != account_id:
            continue
        happened_at = ensure_utc(event.occurred_at or event.scheduled_for)
        if latest is None or happened_at > latest:
            latest = happened_at
    return latest


def get_audit_schedule_status(
    account: Account,
    calendar_events: Iterable[CalendarEvent],
    now: Optional[datetime] = None,
) -> AuditScheduleResult:
    """
    Evaluate whether the account is due for an audit.

    The next audit is due one frequency period after the later of the last
    completed audit and the last frequency change. Past due, the status is
    OVERDUE when the account was audited before and MISSING when it never was.
    """
    now = ensure_utc(now or utc_now())
    anchor = ensure_utc(account.audit_frequency_updated_at or account.created_at)
    last_audit_at = latest_completed_audit_at(account.id, calendar_events)

    effective_anchor = last_audit_at if last_audit_at and last_audit_at > anchor else anchor
    frequency = effective_frequency_at(cadence_from_account(account), now)
    due_at = effective_anchor + relativedelta(months=frequency.months)

    if now <= due_at:
        status = AuditScheduleStatus.OK
    elif last_audit_at is not None:
        status = AuditScheduleStatus.OVERDUE
    else:
        status = AuditScheduleStatus.MISSING

    return AuditScheduleResult(status=status, due_at=due_at, last_audit_at=last_audit_at)
