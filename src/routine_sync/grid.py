"""Day x period grid for the rendering consumer."""

from src.routine_sync.assembler import lookup
from src.routine_sync.models import GridCell, GridRow, ScheduleSnapshot, TimeSlot
from src.routine_sync.timetable import DAY_DISPLAY_NAMES, TIME_SLOTS, WEEKDAYS


def build_grid(
    snapshot: ScheduleSnapshot,
    *,
    days: tuple[str, ...] = WEEKDAYS,
    slots: tuple[TimeSlot, ...] = TIME_SLOTS,
) -> list[GridRow]:
    """Lay the routine out as one row per weekday and one cell per time slot.

    Lunch slots never carry data, even if a period document exists for them.
    """
    rows: list[GridRow] = []
    for day in days:
        cells = [
            GridCell(slot=slot, period=None if slot.is_lunch else lookup(snapshot, day, slot.period))
            for slot in slots
        ]
        rows.append(GridRow(day=day, label=DAY_DISPLAY_NAMES.get(day, day), cells=cells))
    return rows


def _cell_text(cell: GridCell) -> str:
    if cell.is_lunch:
        return "Lunch Break"
    if cell.is_empty:
        return "-"
    period = cell.period
    parts = [period.subject]
    for extra in (period.code, period.teacher, period.room):
        if extra:
            parts.append(extra)
    return " / ".join(parts)


def format_grid(rows: list[GridRow], *, slots: tuple[TimeSlot, ...] = TIME_SLOTS) -> str:
    """Format the grid as a human-readable table.

    Columns: Day / Time | one column per time slot
    """
    headers = ["Day / Time", *(slot.time for slot in slots)]
    table = [[row.label, *(_cell_text(cell) for cell in row.cells)] for row in rows]

    widths = [len(h) for h in headers]
    for line in table:
        for i, cell in enumerate(line):
            widths[i] = max(widths[i], len(cell))

    header_line = " | ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    separator = "-+-".join("-" * w for w in widths)
    row_lines = [" | ".join(cell.ljust(widths[i]) for i, cell in enumerate(line)) for line in table]

    return "\n".join([header_line, separator, *row_lines])
