"""ScheduleGridAssembler - folds day snapshots into one class routine.

Pure functions over `ScheduleSnapshot` (day key -> sorted periods). Every
delivery carries the epoch its listener was opened under; anything not
matching the current epoch is returned unchanged so a slow listener from a
previous selection can never leak into the current one.

Day deliveries may arrive in any interleaving. Each one replaces its own day
wholesale, so the result for a day depends only on the last snapshot
accepted for it.
"""

import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from src.routine_sync.config import DEFAULT_FIELD_ALIASES
from src.routine_sync.errors import MalformedPeriodId
from src.routine_sync.logging import get_logger
from src.routine_sync.models import (
    DaySchedule,
    PeriodRecord,
    ScheduleSnapshot,
    SourceDocument,
)
from src.routine_sync.timetable import day_key

log = get_logger(__name__)

# ASCII digits only: no signs, underscores or non-ASCII numerals
_PERIOD_ID = re.compile(r"[0-9]+")


def parse_period_number(doc_id: str) -> int:
    """Period documents are keyed by their period number ("1", "2", ...).

    Raises:
        MalformedPeriodId: If the id is not a positive integer.
    """
    text = doc_id.strip() if isinstance(doc_id, str) else ""
    if not _PERIOD_ID.fullmatch(text):
        raise MalformedPeriodId(doc_id)
    number = int(text)
    if number < 1:
        raise MalformedPeriodId(doc_id)
    return number


def _first_present(fields: Mapping[str, Any], names: Sequence[str]) -> str:
    # Empty values fall through to the next alias
    for name in names:
        value = fields.get(name)
        if value:
            return str(value)
    return ""


def normalize_period(
    doc: SourceDocument,
    field_aliases: Mapping[str, Sequence[str]] | None = None,
) -> PeriodRecord:
    """Convert a raw period document into a PeriodRecord.

    Raises:
        MalformedPeriodId: If the document id is not a period number.
    """
    aliases = field_aliases or DEFAULT_FIELD_ALIASES
    return PeriodRecord(
        period_number=parse_period_number(doc.id),
        subject=_first_present(doc.fields, aliases.get("subject", ())),
        teacher=_first_present(doc.fields, aliases.get("teacher", ())),
        code=_first_present(doc.fields, aliases.get("code", ())),
        room=_first_present(doc.fields, aliases.get("room", ())),
    )


def normalize_day(
    docs: Iterable[SourceDocument],
    field_aliases: Mapping[str, Sequence[str]] | None = None,
    *,
    day: str = "",
) -> DaySchedule:
    """Normalize one day's documents and sort them by period number.

    Malformed documents are dropped with a warning. Duplicate period numbers
    collapse to the last one delivered.
    """
    by_period: dict[int, PeriodRecord] = {}
    for doc in docs:
        try:
            record = normalize_period(doc, field_aliases)
        except (MalformedPeriodId, ValidationError) as e:
            log.warning("malformed_period_dropped", day=day, doc_id=doc.id, error=str(e))
            continue
        by_period[record.period_number] = record
    return [by_period[n] for n in sorted(by_period)]


def apply_day_snapshot(
    snapshot: ScheduleSnapshot,
    day: str,
    raw_docs: Iterable[SourceDocument],
    epoch: int,
    current_epoch: int | None,
    field_aliases: Mapping[str, Sequence[str]] | None = None,
) -> ScheduleSnapshot:
    """Replace `day` in the snapshot with the normalized delivery.

    Returns the snapshot unchanged when `epoch` is stale. An empty delivery is
    authoritative: it empties the day (a holiday, or every period removed).
    """
    if epoch != current_epoch:
        log.debug("stale_day_snapshot_dropped", day=day, epoch=epoch, current_epoch=current_epoch)
        return snapshot

    periods = normalize_day(raw_docs, field_aliases, day=day)
    log.debug("day_snapshot_applied", day=day, epoch=epoch, periods=len(periods))
    return {**snapshot, day: periods}


def apply_day_error(
    snapshot: ScheduleSnapshot, day: str, epoch: int, current_epoch: int | None
) -> ScheduleSnapshot:
    """A failed day listener leaves that day empty and touches nothing else."""
    if epoch != current_epoch:
        log.debug("stale_day_error_dropped", day=day, epoch=epoch, current_epoch=current_epoch)
        return snapshot
    return {**snapshot, day: []}


def lookup(snapshot: ScheduleSnapshot, day: str, period_number: int) -> PeriodRecord | None:
    """Find one period. Accepts "wed" or a display name like "Wednesday".

    None means an empty cell, not an error.
    """
    for period in snapshot.get(day_key(day), ()):
        if period.period_number == period_number:
            return period
    return None


class SettleTracker:
    """Counts which day partitions have reported since the current epoch began.

    A partition settles on its first snapshot or error. Loading is over only
    when every partition has settled, not when the first one does.
    """

    def __init__(self, days: Iterable[str]) -> None:
        self.days = frozenset(days)
        self._settled: set[str] = set()

    def reset(self) -> None:
        self._settled.clear()

    def settle(self, day: str) -> bool:
        """Mark a day settled. Returns True if this is its first report."""
        if day not in self.days or day in self._settled:
            return False
        self._settled.add(day)
        return True

    @property
    def settled(self) -> frozenset[str]:
        return frozenset(self._settled)

    @property
    def pending(self) -> frozenset[str]:
        return self.days - self._settled

    @property
    def all_settled(self) -> bool:
        return not self.pending
