"""Calendar event model - unified meetings, calls and audits."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from orbitcore.models.entity import Entity
from orbitcore.models.enums import (
    CalendarEventStatus,
    CalendarEventType,
    RecurrenceFrequency,
)


class RecurrenceRule(BaseModel):
    """
    Repetition pattern for a calendar event.

    Separate from the account audit frequency, which is a contractual
    cadence and not a calendar recurrence.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    frequency: RecurrenceFrequency
    interval: int = Field(default=1, ge=1)
    until: Optional[datetime] = None
    count: Optional[int] = Field(default=None, ge=1)
    by_week_day: Optional[list[int]] = Field(default=None, alias="byWeekDay")
    by_month_day: Optional[list[int]] = Field(default=None, alias="byMonthDay")


class AuditData(BaseModel):
    """Audit-specific fields, only populated for audit events."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    account_id: str = Field(alias="accountId")
    score: Optional[float] = None
    floors_visited: Optional[list[int]] = Field(default=None, alias="floorsVisited")


class CalendarEvent(Entity):
    """Scheduled or completed interaction, audit, task or reminder."""

    type: CalendarEventType = CalendarEventType.OTHER
    status: CalendarEventStatus = CalendarEventStatus.SCHEDULED
    summary: str = ""
    description: Optional[str] = None

    # Timing
    scheduled_for: datetime = Field(alias="scheduledFor")
    occurred_at: Optional[datetime] = Field(default=None, alias="occurredAt")
    duration_minutes: Optional[int] = Field(default=None, alias="durationMinutes")

    # Recurrence
    recurrence_rule: Optional[RecurrenceRule] = Field(default=None, alias="recurrenceRule")
    recurrence_id: Optional[str] = Field(default=None, alias="recurrenceId")

    audit_data: Optional[AuditData] = Field(default=None, alias="auditData")
    location: Optional[str] = None

    def is_audit(self) -> bool:
        return self.type == CalendarEventType.AUDIT

    def is_canceled(self) -> bool:
        return self.status == CalendarEventStatus.CANCELED
