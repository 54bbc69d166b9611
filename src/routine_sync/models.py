"""Pydantic models for routine data and engine state.

All data structures use Pydantic v2 for validation, serialization, and type safety.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SourceDocument(BaseModel):
    """One document as delivered by a live collection listener."""

    model_config = ConfigDict(frozen=True)

    id: str
    fields: dict[str, Any] = Field(default_factory=dict)


class Entity(BaseModel):
    """A schedulable class section from the routines collection.

    Replaced wholesale on every catalog update, never patched.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = Field(default="", validate_default=True)  # display label

    @field_validator("name")
    @classmethod
    def _fallback_to_id(cls, value: str, info) -> str:
        return value or info.data.get("id", "")


class PeriodRecord(BaseModel):
    """A single period within one day of a class routine.

    Identity is (day, period_number); the period number comes from the
    document id, the other fields from the document body.
    """

    model_config = ConfigDict(frozen=True)

    period_number: int = Field(ge=1)
    subject: str = ""
    teacher: str = ""
    code: str = ""  # subject or teacher code
    room: str = ""


# day key -> periods sorted ascending by period_number
DaySchedule = list[PeriodRecord]
ScheduleSnapshot = dict[str, DaySchedule]


class SelectionSession(BaseModel):
    """The selected entity plus the subscription generation it belongs to."""

    model_config = ConfigDict(frozen=True)

    entity_id: str
    epoch: int = Field(ge=1)


class SelectionState(str, Enum):
    IDLE = "idle"
    SELECTING = "selecting"
    ACTIVE = "active"
    INVALIDATED = "invalidated"


class CatalogStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class TimeSlot(BaseModel):
    """One column of the weekly grid. Static configuration, not data."""

    model_config = ConfigDict(frozen=True)

    period: int
    time: str
    is_lunch: bool = False


class GridCell(BaseModel):
    """A rendered day x slot cell. `period` is None for lunch and missing periods."""

    slot: TimeSlot
    period: PeriodRecord | None = None

    @property
    def is_lunch(self) -> bool:
        return self.slot.is_lunch

    @property
    def is_empty(self) -> bool:
        # a period without a subject renders as an empty cell
        return not self.slot.is_lunch and (self.period is None or not self.period.subject)


class GridRow(BaseModel):
    day: str
    label: str  # "Monday"
    cells: list[GridCell]


class SelectOption(BaseModel):
    value: str
    label: str


class SelectorProps(BaseModel):
    """What the selection widget needs to render."""

    options: list[SelectOption]
    selected_id: str | None = None
    disabled: bool = False
    clearable: bool = True


class ViewState(BaseModel):
    """Everything the rendering consumer reads after a change."""

    entities: list[Entity]
    selection: SelectionSession | None = None
    schedule: ScheduleSnapshot = Field(default_factory=dict)
    loading: bool = False
    state: SelectionState = SelectionState.IDLE
    catalog_status: CatalogStatus = CatalogStatus.LOADING
    offline: bool = False
    title: str | None = None  # selected class name, falls back to id
