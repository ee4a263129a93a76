"""External calendar provider shapes.

Identifiers here are device-local and are never merged across replicas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from orbitcore.models.enums import ExternalEventStatus


class ExternalCalendarEvent(BaseModel):
    """Event as read from the provider during an import scan."""

    model_config = ConfigDict(frozen=True)

    external_event_id: str
    calendar_id: str
    title: str
    start_date: datetime
    end_date: datetime
    location: Optional[str] = None
    notes: Optional[str] = None
    is_all_day: Optional[bool] = None


class ExternalCalendarSnapshot(BaseModel):
    """Current provider state of an event linked to an internal calendar event."""

    model_config = ConfigDict(frozen=True)

    external_event_id: str
    calendar_id: str
    title: str
    notes: str = ""
    location: Optional[str] = None
    status: ExternalEventStatus = ExternalEventStatus.CONFIRMED
    start_date: datetime
    end_date: datetime
    last_modified_at: Optional[datetime] = None


class ImportCandidate(BaseModel):
    """External event proposed for import against one or more accounts."""

    model_config = ConfigDict(frozen=True)

    external_event_id: str
    calendar_id: str
    title: str
    scheduled_for: datetime
    duration_minutes: Optional[int] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    matched_account_ids: list[str] = Field(default_factory=list)
    suggested_account_id: Optional[str] = None


class ImportWindow(BaseModel):
    """Time window scanned for import candidates."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
