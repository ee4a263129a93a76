"""Payload reducers - one pure builder per entity kind.

Every builder takes (id, payload, timestamp, existing) and returns a complete,
newly allocated entity. A payload field wins only when it is present and
passes its type guard; otherwise the existing value, or the kind default,
is kept. Builders never raise on malformed payloads, so a single bad event
cannot abort a fold. The same builders back the live fold and history
rendering.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, TypeVar

from orbitcore.config import settings
from orbitcore.engine import guards
from orbitcore.engine.audit_frequency import (
    apply_frequency_change,
    cadence_fields,
    cadence_from_account,
    initial_cadence,
    settle,
)
from orbitcore.engine.errors import EntityIdMismatch, EntityIdMissing
from orbitcore.models import (
    Account,
    AccountStatus,
    AuditData,
    AuditFrequency,
    CalendarEvent,
    CalendarEventStatus,
    CalendarEventType,
    Code,
    CodeType,
    Contact,
    ContactType,
    Event,
    FrequencyChangeTiming,
    Note,
    Organization,
    OrganizationStatus,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Payload = Mapping[str, Any]


def resolve_entity_id(event: Event, payload_key: str = "id") -> str:
    """
    Resolve the target entity id from the payload or the event envelope.

    Raises:
        EntityIdMismatch: both are set and disagree
        EntityIdMissing: neither is set
    """
    payload_id = guards.read_non_empty_str(event.payload, payload_key)
    if payload_id and event.entity_id and payload_id != event.entity_id:
        raise EntityIdMismatch(payload_id, event.entity_id)
    entity_id = payload_id or event.entity_id
    if not entity_id:
        raise EntityIdMissing(event.id)
    return entity_id


def _pick(
    payload: Payload,
    key: str,
    reader: Callable[[Payload, str], Optional[T]],
    fallback: T,
) -> T:
    value = reader(payload, key)
    if value is not None:
        return value
    if payload.get(key) is not None:
        logger.debug("Ignoring malformed payload field %s=%r", key, payload.get(key))
    return fallback


def _enum_reader(enum_cls) -> Callable[[Payload, str], Any]:
    return lambda payload, key: guards.read_enum(payload, key, enum_cls)


def _timestamps(existing: Optional[Any], timestamp: datetime) -> dict[str, datetime]:
    return {
        "created_at": existing.created_at if existing is not None else timestamp,
        "updated_at": timestamp,
    }


def build_organization_from_payload(
    id: str,
    payload: Payload,
    timestamp: datetime,
    existing: Optional[Organization] = None,
) -> Organization:
    """Build an organization snapshot."""
    return Organization(
        id=id,
        name=_pick(payload, "name", guards.read_str, existing.name if existing else ""),
        status=_pick(
            payload,
            "status",
            _enum_reader(OrganizationStatus),
            existing.status if existing else OrganizationStatus.ACTIVE,
        ),
        metadata=_pick(payload, "metadata", guards.read_dict, existing.metadata if existing else None),
        **_timestamps(existing, timestamp),
    )


def build_account_from_payload(
    id: str,
    payload: Payload,
    timestamp: datetime,
    existing: Optional[Account] = None,
) -> Account:
    """
    Build an account snapshot, including its audit cadence.

    On creation the cadence is anchored at the month start of the creation
    timestamp. Later, an auditFrequency field is a change request whose
    optional "timing" is immediate (default) or nextPeriod. A pending change
    whose boundary has passed by timestamp is settled first.
    """
    requested = _pick(payload, "auditFrequency", _enum_reader(AuditFrequency), None)

    if existing is None:
        cadence = initial_cadence(requested or settings.default_audit_frequency, timestamp)
        frequency_updated_at = timestamp
    else:
        previous = settle(cadence_from_account(existing), timestamp)
        cadence = previous
        frequency_updated_at = existing.audit_frequency_updated_at
        if requested is not None:
            timing = _pick(
                payload, "timing", _enum_reader(FrequencyChangeTiming), FrequencyChangeTiming.IMMEDIATE
            )
            cadence = apply_frequency_change(previous, requested, timing, timestamp)
            if cadence != previous:
                frequency_updated_at = timestamp
                logger.debug(
                    "Account %s audit frequency change %s (%s)", id, requested.value, timing.value
                )

    return Account(
        id=id,
        organization_id=_pick(
            payload, "organizationId", guards.read_non_empty_str, existing.organization_id if existing else ""
        ),
        name=_pick(payload, "name", guards.read_str, existing.name if existing else ""),
        status=_pick(
            payload,
            "status",
            _enum_reader(AccountStatus),
            existing.status if existing else AccountStatus.ACTIVE,
        ),
        website=_pick(payload, "website", guards.read_str, existing.website if existing else None),
        metadata=_pick(payload, "metadata", guards.read_dict, existing.metadata if existing else None),
        calendar_match=_pick(
            payload,
            "calendarMatch",
            guards.read_calendar_match,
            existing.calendar_match if existing else None,
        ),
        audit_frequency_updated_at=frequency_updated_at,
        **cadence_fields(cadence),
        **_timestamps(existing, timestamp),
    )


def build_contact_from_payload(
    id: str,
    payload: Payload,
    timestamp: datetime,
    existing: Optional[Contact] = None,
) -> Contact:
    """Build a contact snapshot."""
    return Contact(
        id=id,
        first_name=_pick(payload, "firstName", guards.read_str, existing.first_name if existing else ""),
        last_name=_pick(payload, "lastName", guards.read_str, existing.last_name if existing else ""),
        contact_type=_pick(
            payload,
            "contactType",
            _enum_reader(ContactType),
            existing.contact_type if existing else ContactType.INTERNAL,
        ),
        title=_pick(payload, "title", guards.read_str, existing.title if existing else None),
        emails=_pick(
            payload, "emails", guards.read_contact_methods, list(existing.emails) if existing else []
        ),
        phones=_pick(
            payload, "phones", guards.read_contact_methods, list(existing.phones) if existing else []
        ),
        **_timestamps(existing, timestamp),
    )


def build_note_from_payload(
    id: str,
    payload: Payload,
    timestamp: datetime,
    existing: Optional[Note] = None,
) -> Note:
    """Build a note snapshot."""
    return Note(
        id=id,
        title=_pick(payload, "title", guards.read_str, existing.title if existing else ""),
        body=_pick(payload, "body", guards.read_str, existing.body if existing else ""),
        **_timestamps(existing, timestamp),
    )


def build_code_from_payload(
    id: str,
    payload: Payload,
    timestamp: datetime,
    existing: Optional[Code] = None,
) -> Code:
    """Build an access code snapshot."""
    return Code(
        id=id,
        account_id=_pick(
            payload, "accountId", guards.read_non_empty_str, existing.account_id if existing else ""
        ),
        label=_pick(payload, "label", guards.read_str, existing.label if existing else ""),
        code_value=_pick(payload, "codeValue", guards.read_str, existing.code_value if existing else ""),
        code_type=_pick(
            payload, "type", _enum_reader(CodeType), existing.code_type if existing else CodeType.OTHER
        ),
        is_encrypted=_pick(
            payload, "isEncrypted", guards.read_bool, existing.is_encrypted if existing else False
        ),
        notes=_pick(payload, "notes", guards.read_str, existing.notes if existing else None),
        **_timestamps(existing, timestamp),
    )


def _read_score(payload: Payload, key: str) -> Optional[float]:
    score = guards.read_number(payload, key)
    if score is None or not 0 <= score <= 100:
        return None
    return score


def _build_audit_data(
    payload: Payload,
    event_type: CalendarEventType,
    existing: Optional[CalendarEvent],
) -> Optional[AuditData]:
    if event_type != CalendarEventType.AUDIT:
        return None
    previous = existing.audit_data if existing else None
    account_id = _pick(
        payload, "accountId", guards.read_non_empty_str, previous.account_id if previous else None
    )
    if account_id is None:
        return None
    return AuditData(
        account_id=account_id,
        score=_pick(payload, "score", _read_score, previous.score if previous else None),
        floors_visited=_pick(
            payload, "floorsVisited", guards.read_int_list, previous.floors_visited if previous else None
        ),
    )


def build_calendar_event_from_payload(
    id: str,
    payload: Payload,
    timestamp: datetime,
    existing: Optional[CalendarEvent] = None,
) -> CalendarEvent:
    """
    Build a calendar event snapshot.

    Type and status accept both catalog values and legacy short names.
    Without a usable scheduledFor, a new event is scheduled at the event
    timestamp. Audit data is kept only for audit-type events that name an
    account.
    """
    event_type = _pick(
        payload,
        "type",
        lambda p, k: CalendarEventType.normalize(p.get(k)),
        existing.type if existing else CalendarEventType.OTHER,
    )
    return CalendarEvent(
        id=id,
        type=event_type,
        status=_pick(
            payload,
            "status",
            lambda p, k: CalendarEventStatus.normalize(p.get(k)),
            existing.status if existing else CalendarEventStatus.SCHEDULED,
        ),
        summary=_pick(payload, "summary", guards.read_str, existing.summary if existing else ""),
        description=_pick(
            payload, "description", guards.read_str, existing.description if existing else None
        ),
        scheduled_for=_pick(
            payload, "scheduledFor", guards.read_timestamp, existing.scheduled_for if existing else timestamp
        ),
        occurred_at=_pick(
            payload, "occurredAt", guards.read_timestamp, existing.occurred_at if existing else None
        ),
        duration_minutes=_pick(
            payload,
            "durationMinutes",
            guards.read_positive_int,
            existing.duration_minutes if existing else None,
        ),
        recurrence_rule=_pick(
            payload,
            "recurrenceRule",
            guards.read_recurrence_rule,
            existing.recurrence_rule if existing else None,
        ),
        recurrence_id=_pick(
            payload, "recurrenceId", guards.read_non_empty_str, existing.recurrence_id if existing else None
        ),
        audit_data=_build_audit_data(payload, event_type, existing),
        location=_pick(payload, "location", guards.read_str, existing.location if existing else None),
        **_timestamps(existing, timestamp),
    )
