"""Per-field type guards for event payloads.

Each reader returns the typed value when the payload field is present and
well-formed, and None otherwise, so reducers can fall back field by field.
"""

from datetime import datetime
from typing import Any, Mapping, Optional, TypeVar

from pydantic import ValidationError

from orbitcore.models import RecurrenceRule
from orbitcore.models.entity import CalendarMatch, ContactMethod
from orbitcore.utils.time import parse_timestamp

E = TypeVar("E")


def is_str(value: Any) -> bool:
    return isinstance(value, str)


def is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def is_int(value: Any) -> bool:
    # bool is an int subclass; a flag is never a count.
    return isinstance(value, int) and not isinstance(value, bool)


def is_positive_int(value: Any) -> bool:
    return is_int(value) and value > 0


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def read_str(payload: Mapping[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    return value if is_str(value) else None


def read_non_empty_str(payload: Mapping[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    return value if is_non_empty_str(value) else None


def read_bool(payload: Mapping[str, Any], key: str) -> Optional[bool]:
    value = payload.get(key)
    return value if isinstance(value, bool) else None


def read_positive_int(payload: Mapping[str, Any], key: str) -> Optional[int]:
    value = payload.get(key)
    return value if is_positive_int(value) else None


def read_number(payload: Mapping[str, Any], key: str) -> Optional[float]:
    value = payload.get(key)
    return value if is_number(value) else None


def read_int_list(payload: Mapping[str, Any], key: str) -> Optional[list[int]]:
    value = payload.get(key)
    if not isinstance(value, list) or not all(is_int(item) for item in value):
        return None
    return list(value)


def read_dict(payload: Mapping[str, Any], key: str) -> Optional[dict[str, Any]]:
    value = payload.get(key)
    return dict(value) if isinstance(value, dict) else None


def read_timestamp(payload: Mapping[str, Any], key: str) -> Optional[datetime]:
    return parse_timestamp(payload.get(key))


def read_enum(payload: Mapping[str, Any], key: str, enum_cls: type[E]) -> Optional[E]:
    value = payload.get(key)
    if not is_str(value):
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return None


def read_recurrence_rule(payload: Mapping[str, Any], key: str) -> Optional[RecurrenceRule]:
    value = payload.get(key)
    if isinstance(value, RecurrenceRule):
        return value
    if not isinstance(value, dict):
        return None
    try:
        return RecurrenceRule.model_validate(value)
    except ValidationError:
        return None


def read_calendar_match(payload: Mapping[str, Any], key: str) -> Optional[CalendarMatch]:
    value = payload.get(key)
    if not isinstance(value, dict):
        return None
    try:
        return CalendarMatch.model_validate(value)
    except ValidationError:
        return None


def read_contact_method(value: Any) -> Optional[ContactMethod]:
    if isinstance(value, ContactMethod):
        return value
    if not isinstance(value, dict):
        return None
    try:
        return ContactMethod.model_validate(value)
    except ValidationError:
        return None


def read_contact_methods(payload: Mapping[str, Any], key: str) -> Optional[list[ContactMethod]]:
    value = payload.get(key)
    if not isinstance(value, list):
        return None
    methods = [read_contact_method(item) for item in value]
    if any(method is None for method in methods):
        return None
    return methods
