"""Static weekly timetable layout.

The weekday partitions and the period/time-slot table are fixed configuration
shared by the subscription manager and the rendering consumer. They are not
derived from data: a class with no period 8 still shows an empty 4:00 - 5:00 cell.
"""

from src.routine_sync.models import TimeSlot

WEEKDAYS: tuple[str, ...] = ("mon", "tue", "wed", "thu", "fri", "sat")

DAY_DISPLAY_NAMES: dict[str, str] = {
    "mon": "Monday",
    "tue": "Tuesday",
    "wed": "Wednesday",
    "thu": "Thursday",
    "fri": "Friday",
    "sat": "Saturday",
}

TIME_SLOTS: tuple[TimeSlot, ...] = (
    TimeSlot(period=1, time="9:00 - 10:00"),
    TimeSlot(period=2, time="10:00 - 11:00"),
    TimeSlot(period=3, time="11:00 - 12:00"),
    TimeSlot(period=4, time="12:00 - 1:00", is_lunch=True),
    TimeSlot(period=5, time="1:00 - 2:00"),
    TimeSlot(period=6, time="2:00 - 3:00"),
    TimeSlot(period=7, time="3:00 - 4:00"),
    TimeSlot(period=8, time="4:00 - 5:00"),
)


def day_key(day: str) -> str:
    """Normalize "Wednesday", "WED" or "wed" to the partition key "wed"."""
    return day.strip().lower()[:3]
