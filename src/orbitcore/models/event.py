"""Event model - immutable record of mutation intent."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from orbitcore.models.enums import EventType
from orbitcore.utils.time import ensure_utc, to_iso


class Event(BaseModel):
    """Append-only log entry; the sole unit of mutation intent."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    type: EventType
    entity_id: Optional[str] = Field(default=None, alias="entityId")
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    device_id: str = Field(alias="deviceId")

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        """Store every event timestamp in UTC."""
        return ensure_utc(v)

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the camelCase wire shape shared with other replicas."""
        wire: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "payload": dict(self.payload),
            "timestamp": to_iso(self.timestamp),
            "deviceId": self.device_id,
        }
        if self.entity_id is not None:
            wire["entityId"] = self.entity_id
        return wire

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "Event":
        """Build an event from its wire shape."""
        return cls.model_validate(data)
