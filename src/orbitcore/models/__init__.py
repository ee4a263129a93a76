"""OrbitCore data models."""

from orbitcore.models.enums import (
    AccountContactRole,
    AccountStatus,
    AuditFrequency,
    CalendarEventStatus,
    CalendarEventType,
    CodeType,
    ContactType,
    EventType,
    ExternalEventStatus,
    FrequencyChangeTiming,
    OrganizationStatus,
    RecurrenceFrequency,
)
from orbitcore.models.event import Event
from orbitcore.models.entity import (
    Account,
    AccountContact,
    CalendarMatch,
    Code,
    Contact,
    ContactMethod,
    Entity,
    EntityLink,
    Note,
    NoteLink,
    Organization,
)
from orbitcore.models.calendar_event import AuditData, CalendarEvent, RecurrenceRule
from orbitcore.models.external import (
    ExternalCalendarEvent,
    ExternalCalendarSnapshot,
    ImportCandidate,
    ImportWindow,
)

__all__ = [
    "Account",
    "AccountContact",
    "AccountContactRole",
    "AccountStatus",
    "AuditData",
    "AuditFrequency",
    "CalendarEvent",
    "CalendarEventStatus",
    "CalendarEventType",
    "CalendarMatch",
    "Code",
    "CodeType",
    "Contact",
    "ContactMethod",
    "ContactType",
    "Entity",
    "EntityLink",
    "Event",
    "EventType",
    "ExternalCalendarEvent",
    "ExternalCalendarSnapshot",
    "ExternalEventStatus",
    "FrequencyChangeTiming",
    "ImportCandidate",
    "ImportWindow",
    "Note",
    "NoteLink",
    "Organization",
    "OrganizationStatus",
    "RecurrenceFrequency",
    "RecurrenceRule",
]
