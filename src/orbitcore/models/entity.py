"""CRM entity models derived from the event log."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from orbitcore.models.enums import (
    AccountContactRole,
    AccountStatus,
    AuditFrequency,
    CodeType,
    ContactType,
    OrganizationStatus,
)


class Entity(BaseModel):
    """Base snapshot shared by every entity kind."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class Organization(Entity):
    """Top-level customer organization."""

    name: str = ""
    status: OrganizationStatus = OrganizationStatus.ACTIVE
    metadata: Optional[dict[str, Any]] = None


class CalendarMatch(BaseModel):
    """Extra calendar titles that identify an account."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["exact"] = "exact"
    aliases: list[str] = Field(default_factory=list)


class Account(Entity):
    """Serviced site belonging to an organization, with its audit cadence."""

    organization_id: str = Field(default="", alias="organizationId")
    name: str = ""
    status: AccountStatus = AccountStatus.ACTIVE
    website: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    calendar_match: Optional[CalendarMatch] = Field(default=None, alias="calendarMatch")

    # Audit cadence
    audit_frequency: AuditFrequency = Field(
        default=AuditFrequency.MONTHLY, alias="auditFrequency"
    )
    audit_frequency_anchor_at: datetime = Field(alias="auditFrequencyAnchorAt")
    audit_frequency_updated_at: datetime = Field(alias="auditFrequencyUpdatedAt")
    audit_frequency_pending: Optional[AuditFrequency] = Field(
        default=None, alias="auditFrequencyPending"
    )
    audit_frequency_pending_effective_at: Optional[datetime] = Field(
        default=None, alias="auditFrequencyPendingEffectiveAt"
    )

    def has_pending_frequency(self) -> bool:
        """Check whether a next-period frequency change is recorded."""
        return (
            self.audit_frequency_pending is not None
            and self.audit_frequency_pending_effective_at is not None
        )


class ContactMethod(BaseModel):
    """Email address or phone number attached to a contact."""

    model_config = ConfigDict(frozen=True)

    id: str
    value: str
    label: str = "contact.method.label.work"
    extension: Optional[str] = None


class Contact(Entity):
    """Person associated with accounts."""

    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    contact_type: ContactType = Field(default=ContactType.INTERNAL, alias="contactType")
    title: Optional[str] = None
    emails: list[ContactMethod] = Field(default_factory=list)
    phones: list[ContactMethod] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Note(Entity):
    """Free-text note that can be linked to other entities."""

    title: str = ""
    body: str = ""


class Code(Entity):
    """Access code (door, alarm, lockbox) stored for an account."""

    account_id: str = Field(default="", alias="accountId")
    label: str = ""
    code_value: str = Field(default="", alias="codeValue")
    code_type: CodeType = Field(default=CodeType.OTHER, alias="type")
    is_encrypted: bool = Field(default=False, alias="isEncrypted")
    notes: Optional[str] = None


class AccountContact(BaseModel):
    """Relation between an account and one of its contacts."""

    model_config = ConfigDict(frozen=True)

    account_id: str
    contact_id: str
    role: AccountContactRole
    is_primary: bool = False


class NoteLink(BaseModel):
    """Relation between a note and another entity."""

    model_config = ConfigDict(frozen=True)

    note_id: str
    entity_type: str
    entity_id: str


class EntityLink(BaseModel):
    """Relation between a calendar event and another entity."""

    model_config = ConfigDict(frozen=True)

    calendar_event_id: str
    entity_type: str
    entity_id: str
