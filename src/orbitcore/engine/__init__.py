"""OrbitCore engine - event replay, recurrence and calendar reconciliation."""

from orbitcore.engine.builder import build_event, sort_events
from orbitcore.engine.errors import (
    EntityIdMismatch,
    EntityIdMissing,
    EventNotApplicable,
    InvalidTimeRange,
    OrbitCoreError,
    UnknownEventType,
)
from orbitcore.engine.fold import DomainState, apply_event, fold_events
from orbitcore.engine.reconcile import build_import_candidates, reconcile
from orbitcore.engine.recurrence import generate_recurrence_instances

__all__ = [
    "DomainState",
    "EntityIdMismatch",
    "EntityIdMissing",
    "EventNotApplicable",
    "InvalidTimeRange",
    "OrbitCoreError",
    "UnknownEventType",
    "apply_event",
    "build_event",
    "build_import_candidates",
    "fold_events",
    "generate_recurrence_instances",
    "reconcile",
    "sort_events",
]
