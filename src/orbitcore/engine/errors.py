"""OrbitCore engine errors.

Only caller-contract violations are raised. Malformed event data is absorbed
by the reducers and never surfaces as an exception.
"""


class OrbitCoreError(Exception):
    """Base error for OrbitCore operations."""

    def __init__(self, message: str, code: str = "ORBITCORE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidTimeRange(OrbitCoreError):
    """Range start is after range end."""

    def __init__(self, range_start: str, range_end: str):
        super().__init__(
            f"Invalid time range: {range_start} is after {range_end}",
            "INVALID_TIME_RANGE",
        )
        self.range_start = range_start
        self.range_end = range_end


class UnknownEventType(OrbitCoreError):
    """No reducer is registered for an event type."""

    def __init__(self, event_type: str):
        super().__init__(f"No reducer registered for event type: {event_type}", "UNKNOWN_EVENT_TYPE")
        self.event_type = event_type


class EntityIdMissing(OrbitCoreError):
    """Neither the payload nor the event names the target entity."""

    def __init__(self, event_id: str):
        super().__init__(f"Event {event_id} does not name an entity", "ENTITY_ID_MISSING")
        self.event_id = event_id


class EntityIdMismatch(OrbitCoreError):
    """Payload id and event entityId disagree."""

    def __init__(self, payload_id: str, entity_id: str):
        super().__init__(
            f"Event entityId mismatch: payload={payload_id}, event={entity_id}",
            "ENTITY_ID_MISMATCH",
        )
        self.payload_id = payload_id
        self.entity_id = entity_id


class EventNotApplicable(OrbitCoreError):
    """Event cannot apply to the current state (unknown target, duplicate create)."""

    def __init__(self, reason: str):
        super().__init__(reason, "EVENT_NOT_APPLICABLE")
