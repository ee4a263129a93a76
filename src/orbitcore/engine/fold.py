"""Domain state fold - replays the event log into entity snapshots.

Dispatch is an explicit registry from EventType to handler. Handlers are
pure: they return a new DomainState and never mutate the one they receive.
Events that cannot apply (unknown target, duplicate create, id mismatch)
are logged and skipped so one bad event never aborts a replay.
"""

import logging
from typing import Any, Callable, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

from orbitcore.config import settings
from orbitcore.engine import guards
from orbitcore.engine.builder import sort_events
from orbitcore.engine.errors import EventNotApplicable, OrbitCoreError, UnknownEventType
from orbitcore.engine.reducers import (
    build_account_from_payload,
    build_calendar_event_from_payload,
    build_code_from_payload,
    build_contact_from_payload,
    build_note_from_payload,
    build_organization_from_payload,
    resolve_entity_id,
)
from orbitcore.models import (
    Account,
    AccountContact,
    AccountContactRole,
    CalendarEvent,
    CalendarEventStatus,
    Code,
    Contact,
    EntityLink,
    Event,
    EventType,
    Note,
    NoteLink,
    Organization,
)
from orbitcore.utils.time import to_iso

logger = logging.getLogger(__name__)


class DomainState(BaseModel):
    """Immutable snapshot of every entity and relation derived from the log."""

    model_config = ConfigDict(frozen=True)

    organizations: dict[str, Organization] = Field(default_factory=dict)
    accounts: dict[str, Account] = Field(default_factory=dict)
    contacts: dict[str, Contact] = Field(default_factory=dict)
    notes: dict[str, Note] = Field(default_factory=dict)
    codes: dict[str, Code] = Field(default_factory=dict)
    calendar_events: dict[str, CalendarEvent] = Field(default_factory=dict)
    note_links: dict[str, NoteLink] = Field(default_factory=dict)
    entity_links: dict[str, EntityLink] = Field(default_factory=dict)
    account_contacts: dict[str, AccountContact] = Field(default_factory=dict)


Handler = Callable[[DomainState, Event], DomainState]


def _put(state: DomainState, collection: str, key: str, value: Any) -> DomainState:
    items = dict(getattr(state, collection))
    items[key] = value
    return state.model_copy(update={collection: items})


def _drop(state: DomainState, collection: str, keys: Iterable[str]) -> DomainState:
    removed = set(keys)
    items = {k: v for k, v in getattr(state, collection).items() if k not in removed}
    return state.model_copy(update={collection: items})


def _require(state: DomainState, collection: str, entity_id: str, label: str) -> Any:
    existing = getattr(state, collection).get(entity_id)
    if existing is None:
        raise EventNotApplicable(f"{label} not found: {entity_id}")
    return existing


def _creator(collection: str, label: str, builder) -> Handler:
    def handler(state: DomainState, event: Event) -> DomainState:
        entity_id = resolve_entity_id(event)
        if entity_id in getattr(state, collection):
            raise EventNotApplicable(f"{label} already exists: {entity_id}")
        return _put(state, collection, entity_id, builder(entity_id, event.payload, event.timestamp))

    return handler


def _updater(collection: str, label: str, builder, strip: tuple[str, ...] = ()) -> Handler:
    def handler(state: DomainState, event: Event) -> DomainState:
        entity_id = resolve_entity_id(event)
        existing = _require(state, collection, entity_id, label)
        payload = {k: v for k, v in event.payload.items() if k not in strip}
        return _put(state, collection, entity_id, builder(entity_id, payload, event.timestamp, existing))

    return handler


def _deleter(collection: str, label: str) -> Handler:
    def handler(state: DomainState, event: Event) -> DomainState:
        entity_id = resolve_entity_id(event)
        _require(state, collection, entity_id, label)
        return _drop(state, collection, [entity_id])

    return handler


# Organizations


def _delete_organization(state: DomainState, event: Event) -> DomainState:
    organization_id = resolve_entity_id(event)
    _require(state, "organizations", organization_id, "Organization")
    if any(a.organization_id == organization_id for a in state.accounts.values()):
        raise EventNotApplicable(f"Cannot delete organization {organization_id}: accounts still reference it")
    return _drop(state, "organizations", [organization_id])


# Accounts


def _create_account(state: DomainState, event: Event) -> DomainState:
    organization_id = guards.read_non_empty_str(event.payload, "organizationId")
    if organization_id is None or organization_id not in state.organizations:
        raise EventNotApplicable(f"Organization not found for account: {organization_id}")
    return _creator("accounts", "Account", build_account_from_payload)(state, event)


def _delete_account(state: DomainState, event: Event) -> DomainState:
    account_id = resolve_entity_id(event)
    _require(state, "accounts", account_id, "Account")
    if any(c.account_id == account_id for c in state.codes.values()):
        raise EventNotApplicable(f"Cannot delete account {account_id}: codes still reference it")
    if any(r.account_id == account_id for r in state.account_contacts.values()):
        raise EventNotApplicable(f"Cannot delete account {account_id}: contacts are still linked")
    return _drop(state, "accounts", [account_id])


# Contacts


def _upsert_contact_method(state: DomainState, event: Event) -> DomainState:
    contact_id = resolve_entity_id(event)
    contact: Contact = _require(state, "contacts", contact_id, "Contact")
    method = guards.read_contact_method(event.payload.get("method"))
    method_type = event.payload.get("methodType")
    if method is None or method_type not in ("email", "phone"):
        raise EventNotApplicable(f"Malformed contact method for contact {contact_id}")

    field = "emails" if method_type == "email" else "phones"
    current = list(getattr(contact, field))
    if event.type == EventType.CONTACT_METHOD_ADDED:
        if any(existing.id == method.id for existing in current):
            raise EventNotApplicable(f"Contact method already exists: {method.id}")
        methods = current + [method]
    else:
        if not any(existing.id == method.id for existing in current):
            raise EventNotApplicable(f"Contact method not found: {method.id}")
        methods = [method if existing.id == method.id else existing for existing in current]

    updated = build_contact_from_payload(contact_id, {field: methods}, event.timestamp, contact)
    return _put(state, "contacts", contact_id, updated)


def _delete_contact(state: DomainState, event: Event) -> DomainState:
    contact_id = resolve_entity_id(event)
    _require(state, "contacts", contact_id, "Contact")
    state = _drop(state, "contacts", [contact_id])
    stale = [
        relation_id
        for relation_id, relation in state.account_contacts.items()
        if relation.contact_id == contact_id
    ]
    return _drop(state, "account_contacts", stale)


# Account contacts


def _find_account_contact(
    state: DomainState, account_id: str, contact_id: str, role: AccountContactRole
) -> Optional[str]:
    for relation_id, relation in state.account_contacts.items():
        if (relation.account_id, relation.contact_id, relation.role) == (account_id, contact_id, role):
            return relation_id
    return None


def _primary_account_contacts(state: DomainState, account_id: str, role: AccountContactRole) -> list[str]:
    return [
        relation_id
        for relation_id, relation in state.account_contacts.items()
        if relation.account_id == account_id and relation.role == role and relation.is_primary
    ]


def _read_account_contact_key(event: Event) -> tuple[str, str, AccountContactRole]:
    account_id = guards.read_non_empty_str(event.payload, "accountId")
    contact_id = guards.read_non_empty_str(event.payload, "contactId")
    role = guards.read_enum(event.payload, "role", AccountContactRole)
    if not (account_id and contact_id and role):
        raise EventNotApplicable(f"Malformed account contact relation in {event.id}")
    return account_id, contact_id, role


def _link_account_contact(state: DomainState, event: Event) -> DomainState:
    relation_id = resolve_entity_id(event)
    account_id, contact_id, role = _read_account_contact_key(event)
    _require(state, "accounts", account_id, "Account")
    _require(state, "contacts", contact_id, "Contact")
    if relation_id in state.account_contacts:
        raise EventNotApplicable(f"Account contact relation already exists: {relation_id}")
    if _find_account_contact(state, account_id, contact_id, role) is not None:
        raise EventNotApplicable(
            f"Account contact relation already exists for account={account_id} "
            f"contact={contact_id} role={role.value}"
        )
    is_primary = bool(guards.read_bool(event.payload, "isPrimary"))
    if is_primary and _primary_account_contacts(state, account_id, role):
        raise EventNotApplicable(f"Primary contact already set for account={account_id} role={role.value}")
    relation = AccountContact(account_id=account_id, contact_id=contact_id, role=role, is_primary=is_primary)
    return _put(state, "account_contacts", relation_id, relation)


def _resolve_account_contact(state: DomainState, event: Event) -> tuple[str, AccountContact]:
    """Find the relation a primary-flag event targets: by id, else by (account, contact, role)."""
    account_id, contact_id, role = _read_account_contact_key(event)
    relation_id = guards.read_non_empty_str(event.payload, "id") or event.entity_id
    if not relation_id:
        relation_id = _find_account_contact(state, account_id, contact_id, role)
    if not relation_id:
        raise EventNotApplicable(
            f"Account contact relation not found for account={account_id} contact={contact_id}"
        )
    relation: AccountContact = _require(state, "account_contacts", relation_id, "Account contact relation")
    if (relation.account_id, relation.contact_id, relation.role) != (account_id, contact_id, role):
        raise EventNotApplicable(f"Account contact relation {relation_id} does not match the payload")
    return relation_id, relation


def _set_primary_account_contact(state: DomainState, event: Event) -> DomainState:
    relation_id, relation = _resolve_account_contact(state, event)
    relations = dict(state.account_contacts)
    for primary_id in _primary_account_contacts(state, relation.account_id, relation.role):
        relations[primary_id] = relations[primary_id].model_copy(update={"is_primary": False})
    relations[relation_id] = relation.model_copy(update={"is_primary": True})
    return state.model_copy(update={"account_contacts": relations})


def _unset_primary_account_contact(state: DomainState, event: Event) -> DomainState:
    relation_id, relation = _resolve_account_contact(state, event)
    return _put(state, "account_contacts", relation_id, relation.model_copy(update={"is_primary": False}))


def _unlink_account_contact(state: DomainState, event: Event) -> DomainState:
    account_id = guards.read_non_empty_str(event.payload, "accountId")
    contact_id = guards.read_non_empty_str(event.payload, "contactId")
    # Every role linking the pair goes.
    stale = [
        relation_id
        for relation_id, relation in state.account_contacts.items()
        if relation.account_id == account_id and relation.contact_id == contact_id
    ]
    if not stale:
        raise EventNotApplicable(
            f"Account contact relation not found for account={account_id} contact={contact_id}"
        )
    return _drop(state, "account_contacts", stale)


# Notes


def _delete_note(state: DomainState, event: Event) -> DomainState:
    note_id = resolve_entity_id(event)
    _require(state, "notes", note_id, "Note")
    state = _drop(state, "notes", [note_id])
    stale = [link_id for link_id, link in state.note_links.items() if link.note_id == note_id]
    return _drop(state, "note_links", stale)


def _link_note(state: DomainState, event: Event) -> DomainState:
    link_id = resolve_entity_id(event, "linkId")
    note_id = guards.read_non_empty_str(event.payload, "noteId")
    entity_type = guards.read_non_empty_str(event.payload, "entityType")
    entity_id = guards.read_non_empty_str(event.payload, "entityId")
    if not (note_id and entity_type and entity_id):
        raise EventNotApplicable(f"Malformed note link: {link_id}")
    _require(state, "notes", note_id, "Note")
    if link_id in state.note_links:
        raise EventNotApplicable(f"Note link already exists: {link_id}")
    link = NoteLink(note_id=note_id, entity_type=entity_type, entity_id=entity_id)
    return _put(state, "note_links", link_id, link)


def _unlink_note(state: DomainState, event: Event) -> DomainState:
    link_id = resolve_entity_id(event, "linkId")
    _require(state, "note_links", link_id, "Note link")
    return _drop(state, "note_links", [link_id])


# Codes


def _create_code(state: DomainState, event: Event) -> DomainState:
    account_id = guards.read_non_empty_str(event.payload, "accountId")
    if account_id is None or account_id not in state.accounts:
        raise EventNotApplicable(f"Account not found for code: {account_id}")
    return _creator("codes", "Code", build_code_from_payload)(state, event)


def _encrypt_code(state: DomainState, event: Event) -> DomainState:
    payload = {"codeValue": event.payload.get("codeValue"), "isEncrypted": True}
    if guards.read_bool(event.payload, "isEncrypted") is not None:
        payload["isEncrypted"] = event.payload["isEncrypted"]
    code_id = resolve_entity_id(event)
    existing = _require(state, "codes", code_id, "Code")
    return _put(state, "codes", code_id, build_code_from_payload(code_id, payload, event.timestamp, existing))


# Calendar events


def _schedule_calendar_event(state: DomainState, event: Event) -> DomainState:
    state = _creator("calendar_events", "Calendar event", build_calendar_event_from_payload)(state, event)
    calendar_event_id = resolve_entity_id(event)
    links = event.payload.get("linkedEntities")
    if not isinstance(links, list):
        return state
    for link in links:
        if not isinstance(link, dict):
            continue
        link_id = guards.read_non_empty_str(link, "linkId")
        entity_type = guards.read_non_empty_str(link, "entityType")
        entity_id = guards.read_non_empty_str(link, "entityId")
        if not (link_id and entity_type and entity_id) or link_id in state.entity_links:
            logger.warning("Skipping malformed or duplicate entity link on %s", calendar_event_id)
            continue
        state = _put(
            state,
            "entity_links",
            link_id,
            EntityLink(calendar_event_id=calendar_event_id, entity_type=entity_type, entity_id=entity_id),
        )
    return state


def _transition_calendar_event(status: CalendarEventStatus) -> Handler:
    def handler(state: DomainState, event: Event) -> DomainState:
        calendar_event_id = resolve_entity_id(event)
        existing = _require(state, "calendar_events", calendar_event_id, "Calendar event")
        payload = {k: v for k, v in event.payload.items() if k not in ("scheduledFor", "type")}
        payload["status"] = status.value
        if status == CalendarEventStatus.COMPLETED and guards.read_timestamp(payload, "occurredAt") is None:
            payload["occurredAt"] = to_iso(event.timestamp)
        updated = build_calendar_event_from_payload(calendar_event_id, payload, event.timestamp, existing)
        return _put(state, "calendar_events", calendar_event_id, updated)

    return handler


def _reschedule_calendar_event(state: DomainState, event: Event) -> DomainState:
    calendar_event_id = resolve_entity_id(event)
    existing = _require(state, "calendar_events", calendar_event_id, "Calendar event")
    if guards.read_timestamp(event.payload, "scheduledFor") is None:
        raise EventNotApplicable(f"Reschedule without a valid scheduledFor: {calendar_event_id}")
    payload = {"scheduledFor": event.payload["scheduledFor"]}
    updated = build_calendar_event_from_payload(calendar_event_id, payload, event.timestamp, existing)
    return _put(state, "calendar_events", calendar_event_id, updated)


def _delete_calendar_event(state: DomainState, event: Event) -> DomainState:
    calendar_event_id = resolve_entity_id(event)
    _require(state, "calendar_events", calendar_event_id, "Calendar event")
    state = _drop(state, "calendar_events", [calendar_event_id])
    stale = [
        link_id
        for link_id, link in state.entity_links.items()
        if link.calendar_event_id == calendar_event_id
    ]
    return _drop(state, "entity_links", stale)


def _link_calendar_event(state: DomainState, event: Event) -> DomainState:
    link_id = resolve_entity_id(event, "linkId")
    calendar_event_id = guards.read_non_empty_str(event.payload, "calendarEventId")
    entity_type = guards.read_non_empty_str(event.payload, "entityType")
    entity_id = guards.read_non_empty_str(event.payload, "entityId")
    if not (calendar_event_id and entity_type and entity_id):
        raise EventNotApplicable(f"Malformed entity link: {link_id}")
    _require(state, "calendar_events", calendar_event_id, "Calendar event")
    if link_id in state.entity_links:
        raise EventNotApplicable(f"Entity link already exists: {link_id}")
    link = EntityLink(calendar_event_id=calendar_event_id, entity_type=entity_type, entity_id=entity_id)
    return _put(state, "entity_links", link_id, link)


def _unlink_calendar_event(state: DomainState, event: Event) -> DomainState:
    link_id = resolve_entity_id(event, "linkId")
    _require(state, "entity_links", link_id, "Entity link")
    return _drop(state, "entity_links", [link_id])


def _set_recurrence(state: DomainState, event: Event) -> DomainState:
    calendar_event_id = resolve_entity_id(event)
    existing = _require(state, "calendar_events", calendar_event_id, "Calendar event")
    if guards.read_recurrence_rule(event.payload, "recurrenceRule") is None:
        raise EventNotApplicable(f"Malformed recurrence rule for {calendar_event_id}")
    payload = {"recurrenceRule": event.payload["recurrenceRule"]}
    updated = build_calendar_event_from_payload(calendar_event_id, payload, event.timestamp, existing)
    return _put(state, "calendar_events", calendar_event_id, updated)


def _clear_recurrence(state: DomainState, event: Event) -> DomainState:
    calendar_event_id = resolve_entity_id(event)
    existing = _require(state, "calendar_events", calendar_event_id, "Calendar event")
    updated = existing.model_copy(update={"recurrence_rule": None, "updated_at": event.timestamp})
    return _put(state, "calendar_events", calendar_event_id, updated)


def _check_external_link(state: DomainState, event: Event) -> DomainState:
    # External identifiers are device-local; the shared state only
    # records that the referenced calendar event exists.
    calendar_event_id = guards.read_non_empty_str(event.payload, "calendarEventId")
    if calendar_event_id is None:
        raise EventNotApplicable(f"External calendar event without calendarEventId: {event.id}")
    _require(state, "calendar_events", calendar_event_id, "Calendar event")
    provider = event.payload.get("provider", settings.external_provider)
    if provider != settings.external_provider:
        raise EventNotApplicable(f"Unsupported external calendar provider: {provider}")
    logger.info("External calendar %s for %s", event.type.value, calendar_event_id)
    return state


HANDLERS: dict[EventType, Handler] = {
    EventType.ORGANIZATION_CREATED: _creator("organizations", "Organization", build_organization_from_payload),
    EventType.ORGANIZATION_UPDATED: _updater("organizations", "Organization", build_organization_from_payload),
    EventType.ORGANIZATION_STATUS_UPDATED: _updater(
        "organizations", "Organization", build_organization_from_payload
    ),
    EventType.ORGANIZATION_DELETED: _delete_organization,
    EventType.ACCOUNT_CREATED: _create_account,
    EventType.ACCOUNT_UPDATED: _updater("accounts", "Account", build_account_from_payload),
    EventType.ACCOUNT_STATUS_UPDATED: _updater("accounts", "Account", build_account_from_payload),
    EventType.ACCOUNT_AUDIT_FREQUENCY_UPDATED: _updater("accounts", "Account", build_account_from_payload),
    EventType.ACCOUNT_DELETED: _delete_account,
    EventType.ACCOUNT_CONTACT_LINKED: _link_account_contact,
    EventType.ACCOUNT_CONTACT_UNLINKED: _unlink_account_contact,
    EventType.ACCOUNT_CONTACT_SET_PRIMARY: _set_primary_account_contact,
    EventType.ACCOUNT_CONTACT_UNSET_PRIMARY: _unset_primary_account_contact,
    EventType.CONTACT_CREATED: _creator("contacts", "Contact", build_contact_from_payload),
    EventType.CONTACT_UPDATED: _updater("contacts", "Contact", build_contact_from_payload),
    EventType.CONTACT_METHOD_ADDED: _upsert_contact_method,
    EventType.CONTACT_METHOD_UPDATED: _upsert_contact_method,
    EventType.CONTACT_DELETED: _delete_contact,
    EventType.NOTE_CREATED: _creator("notes", "Note", build_note_from_payload),
    EventType.NOTE_UPDATED: _updater("notes", "Note", build_note_from_payload),
    EventType.NOTE_DELETED: _delete_note,
    EventType.NOTE_LINKED: _link_note,
    EventType.NOTE_UNLINKED: _unlink_note,
    EventType.CODE_CREATED: _create_code,
    EventType.CODE_UPDATED: _updater("codes", "Code", build_code_from_payload, strip=("accountId",)),
    EventType.CODE_ENCRYPTED: _encrypt_code,
    EventType.CODE_DELETED: _deleter("codes", "Code"),
    EventType.CALENDAR_EVENT_SCHEDULED: _schedule_calendar_event,
    EventType.CALENDAR_EVENT_UPDATED: _updater(
        "calendar_events",
        "Calendar event",
        build_calendar_event_from_payload,
        strip=("scheduledFor", "status", "occurredAt", "recurrenceRule", "recurrenceId"),
    ),
    EventType.CALENDAR_EVENT_RESCHEDULED: _reschedule_calendar_event,
    EventType.CALENDAR_EVENT_COMPLETED: _transition_calendar_event(CalendarEventStatus.COMPLETED),
    EventType.CALENDAR_EVENT_CANCELED: _transition_calendar_event(CalendarEventStatus.CANCELED),
    EventType.CALENDAR_EVENT_DELETED: _delete_calendar_event,
    EventType.CALENDAR_EVENT_LINKED: _link_calendar_event,
    EventType.CALENDAR_EVENT_UNLINKED: _unlink_calendar_event,
    EventType.CALENDAR_EVENT_RECURRENCE_CREATED: _set_recurrence,
    EventType.CALENDAR_EVENT_RECURRENCE_UPDATED: _set_recurrence,
    EventType.CALENDAR_EVENT_RECURRENCE_DELETED: _clear_recurrence,
    EventType.CALENDAR_EVENT_EXTERNAL_LINKED: _check_external_link,
    EventType.CALENDAR_EVENT_EXTERNAL_IMPORTED: _check_external_link,
    EventType.CALENDAR_EVENT_EXTERNAL_UPDATED: _check_external_link,
    EventType.CALENDAR_EVENT_EXTERNAL_UNLINKED: _check_external_link,
}


def handler_for(event_type: EventType) -> Handler:
    """Return the handler registered for an event type."""
    handler = HANDLERS.get(event_type)
    if handler is None:
        raise UnknownEventType(str(event_type))
    return handler


def apply_event(state: DomainState, event: Event) -> DomainState:
    """Apply one event; events that cannot apply leave the state unchanged."""
    logger.debug("Applying %s (%s)", event.type.value, event.id)
    try:
        return handler_for(event.type)(state, event)
    except OrbitCoreError as e:
        logger.warning("Skipping event %s (%s): %s", event.id, event.type.value, e.message)
        return state


def fold_events(events: Iterable[Event], state: Optional[DomainState] = None) -> DomainState:
    """Replay events in canonical order on top of state (empty by default)."""
    current = state if state is not None else DomainState()
    for event in sort_events(events):
        current = apply_event(current, event)
    return current
