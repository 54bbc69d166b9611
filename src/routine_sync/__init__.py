"""Live weekly class routine synchronization.

Tracks the catalog of classes, keeps one live listener per weekday for the
selected class, and merges the six day snapshots into one routine.
"""

from src.routine_sync.assembler import apply_day_snapshot, lookup, normalize_period
from src.routine_sync.catalog import EntityCatalog
from src.routine_sync.controller import SelectionController
from src.routine_sync.models import Entity, PeriodRecord, SelectionState, ViewState
from src.routine_sync.sources import InMemoryScheduleSource, ScheduleSource
from src.routine_sync.subscriptions import ScheduleSubscriptionManager
from src.routine_sync.timetable import TIME_SLOTS, WEEKDAYS

__all__ = [
    "EntityCatalog",
    "ScheduleSubscriptionManager",
    "SelectionController",
    "InMemoryScheduleSource",
    "ScheduleSource",
    "Entity",
    "PeriodRecord",
    "SelectionState",
    "ViewState",
    "apply_day_snapshot",
    "lookup",
    "normalize_period",
    "TIME_SLOTS",
    "WEEKDAYS",
]
