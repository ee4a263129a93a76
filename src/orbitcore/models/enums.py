"""OrbitCore enumerations."""

from enum import Enum
from typing import Optional


class EventType(str, Enum):
    """Closed catalog of semantic event types."""

    ORGANIZATION_CREATED = "organization.created"
    ORGANIZATION_UPDATED = "organization.updated"
    ORGANIZATION_STATUS_UPDATED = "organization.status.updated"
    ORGANIZATION_DELETED = "organization.deleted"

    ACCOUNT_CREATED = "account.created"
    ACCOUNT_UPDATED = "account.updated"
    ACCOUNT_STATUS_UPDATED = "account.status.updated"
    ACCOUNT_AUDIT_FREQUENCY_UPDATED = "account.auditFrequency.updated"
    ACCOUNT_DELETED = "account.deleted"
    ACCOUNT_CONTACT_LINKED = "account.contact.linked"
    ACCOUNT_CONTACT_UNLINKED = "account.contact.unlinked"
    ACCOUNT_CONTACT_SET_PRIMARY = "account.contact.setPrimary"
    ACCOUNT_CONTACT_UNSET_PRIMARY = "account.contact.unsetPrimary"

    CONTACT_CREATED = "contact.created"
    CONTACT_UPDATED = "contact.updated"
    CONTACT_METHOD_ADDED = "contact.method.added"
    CONTACT_METHOD_UPDATED = "contact.method.updated"
    CONTACT_DELETED = "contact.deleted"

    NOTE_CREATED = "note.created"
    NOTE_UPDATED = "note.updated"
    NOTE_DELETED = "note.deleted"
    NOTE_LINKED = "note.linked"
    NOTE_UNLINKED = "note.unlinked"

    CODE_CREATED = "code.created"
    CODE_UPDATED = "code.updated"
    CODE_ENCRYPTED = "code.encrypted"
    CODE_DELETED = "code.deleted"

    CALENDAR_EVENT_SCHEDULED = "calendarEvent.scheduled"
    CALENDAR_EVENT_UPDATED = "calendarEvent.updated"
    CALENDAR_EVENT_RESCHEDULED = "calendarEvent.rescheduled"
    CALENDAR_EVENT_COMPLETED = "calendarEvent.completed"
    CALENDAR_EVENT_CANCELED = "calendarEvent.canceled"
    CALENDAR_EVENT_DELETED = "calendarEvent.deleted"
    CALENDAR_EVENT_LINKED = "calendarEvent.linked"
    CALENDAR_EVENT_UNLINKED = "calendarEvent.unlinked"
    CALENDAR_EVENT_RECURRENCE_CREATED = "calendarEvent.recurrence.created"
    CALENDAR_EVENT_RECURRENCE_UPDATED = "calendarEvent.recurrence.updated"
    CALENDAR_EVENT_RECURRENCE_DELETED = "calendarEvent.recurrence.deleted"

    CALENDAR_EVENT_EXTERNAL_LINKED = "calendarEvent.external.linked"
    CALENDAR_EVENT_EXTERNAL_IMPORTED = "calendarEvent.external.imported"
    CALENDAR_EVENT_EXTERNAL_UPDATED = "calendarEvent.external.updated"
    CALENDAR_EVENT_EXTERNAL_UNLINKED = "calendarEvent.external.unlinked"


class OrganizationStatus(str, Enum):
    """Organization lifecycle status."""

    ACTIVE = "organization.status.active"
    INACTIVE = "organization.status.inactive"


class AccountStatus(str, Enum):
    """Account lifecycle status."""

    ACTIVE = "account.status.active"
    INACTIVE = "account.status.inactive"


class AuditFrequency(str, Enum):
    """Contractual audit cadence for an account."""

    MONTHLY = "account.auditFrequency.monthly"
    BIMONTHLY = "account.auditFrequency.bimonthly"
    QUARTERLY = "account.auditFrequency.quarterly"
    TRIANNUALLY = "account.auditFrequency.triannually"
    SEMIANNUALLY = "account.auditFrequency.semiannually"
    ANNUALLY = "account.auditFrequency.annually"

    @property
    def months(self) -> int:
        """Length of one audit period in months."""
        return _AUDIT_FREQUENCY_MONTHS[self]


_AUDIT_FREQUENCY_MONTHS: dict[AuditFrequency, int] = {
    AuditFrequency.MONTHLY: 1,
    AuditFrequency.BIMONTHLY: 2,
    AuditFrequency.QUARTERLY: 3,
    AuditFrequency.TRIANNUALLY: 4,
    AuditFrequency.SEMIANNUALLY: 6,
    AuditFrequency.ANNUALLY: 12,
}


class AccountContactRole(str, Enum):
    """Role a contact plays for an account."""

    PRIMARY = "account.contact.role.primary"
    BILLING = "account.contact.role.billing"
    TECHNICAL = "account.contact.role.technical"


class FrequencyChangeTiming(str, Enum):
    """When an audit frequency change takes effect."""

    IMMEDIATE = "immediate"
    NEXT_PERIOD = "nextPeriod"


class ContactType(str, Enum):
    """Contact relationship type."""

    INTERNAL = "contact.type.internal"
    EXTERNAL = "contact.type.external"
    VENDOR = "contact.type.vendor"


class CodeType(str, Enum):
    """Kind of access code stored for an account."""

    DOOR = "code.type.door"
    ALARM = "code.type.alarm"
    LOCKBOX = "code.type.lockbox"
    GATE = "code.type.gate"
    ELEVATOR = "code.type.elevator"
    OTHER = "code.type.other"


class CalendarEventType(str, Enum):
    """Calendar event kind; audits and interactions share one entity."""

    MEETING = "calendarEvent.type.meeting"
    CALL = "calendarEvent.type.call"
    EMAIL = "calendarEvent.type.email"
    OTHER = "calendarEvent.type.other"
    AUDIT = "calendarEvent.type.audit"
    TASK = "calendarEvent.type.task"
    REMINDER = "calendarEvent.type.reminder"

    @classmethod
    def normalize(cls, value: object) -> Optional["CalendarEventType"]:
        """Resolve a catalog or legacy short value ("audit") to a member."""
        return _normalize_prefixed(cls, "calendarEvent.type.", value)


class CalendarEventStatus(str, Enum):
    """Calendar event lifecycle status."""

    SCHEDULED = "calendarEvent.status.scheduled"
    COMPLETED = "calendarEvent.status.completed"
    CANCELED = "calendarEvent.status.canceled"

    @classmethod
    def normalize(cls, value: object) -> Optional["CalendarEventStatus"]:
        """Resolve a catalog or legacy short value ("canceled") to a member."""
        return _normalize_prefixed(cls, "calendarEvent.status.", value)


class RecurrenceFrequency(str, Enum):
    """Recurrence rule frequency."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class ExternalEventStatus(str, Enum):
    """Status reported by the external calendar provider."""

    CONFIRMED = "confirmed"
    TENTATIVE = "tentative"
    CANCELED = "canceled"
    NONE = "none"


def _normalize_prefixed(enum_cls, prefix: str, value: object):
    if not isinstance(value, str):
        return None
    candidate = value if value.startswith(prefix) else f"{prefix}{value}"
    try:
        return enum_cls(candidate)
    except ValueError:
        return None
