"""ScheduleSubscriptionManager - one live listener per weekday.

`start()` opens six independent listeners scoped to (class, day) and returns
a StopAll handle that owns them. Callbacks are tagged with the epoch the
session was started under; deciding whether that epoch is still current is
the receiver's job, not the manager's.
"""

from collections.abc import Callable, Iterable

from src.routine_sync.errors import DaySubscribeError
from src.routine_sync.logging import get_logger
from src.routine_sync.models import SourceDocument
from src.routine_sync.sources import ScheduleSource, Unsubscribe, open_listener
from src.routine_sync.timetable import WEEKDAYS

log = get_logger(__name__)

OnDaySnapshot = Callable[[str, list[SourceDocument], int], None]
OnDayError = Callable[[str, int, DaySubscribeError], None]


class StopAll:
    """Detaches every day listener of one session. Idempotent."""

    def __init__(self, entity_id: str, epoch: int, unsubscribers: list[Unsubscribe]) -> None:
        self.entity_id = entity_id
        self.epoch = epoch
        self._unsubscribers = unsubscribers
        self.stopped = False

    def __call__(self) -> None:
        if self.stopped:
            return
        self.stopped = True
        unsubscribers, self._unsubscribers = self._unsubscribers, []
        for unsubscribe in unsubscribers:
            unsubscribe()
        log.info(
            "day_subscriptions_stopped",
            entity_id=self.entity_id,
            epoch=self.epoch,
            listeners=len(unsubscribers),
        )

    @property
    def listener_count(self) -> int:
        return len(self._unsubscribers)


class ScheduleSubscriptionManager:
    """Opens the per-day listeners for a selected class."""

    def __init__(
        self,
        source: ScheduleSource,
        *,
        days: Iterable[str] = WEEKDAYS,
        subscribe_attempts: int = 3,
        subscribe_retry_wait_seconds: float = 0.5,
    ) -> None:
        self.source = source
        self.days = tuple(days)
        self.subscribe_attempts = subscribe_attempts
        self.subscribe_retry_wait_seconds = subscribe_retry_wait_seconds

    def start(
        self,
        entity_id: str,
        epoch: int,
        on_day_snapshot: OnDaySnapshot,
        on_day_error: OnDayError,
    ) -> StopAll:
        """Open one listener per weekday for `entity_id`.

        A day whose listener cannot be opened reports through `on_day_error`
        and the remaining days still start.

        Returns:
            StopAll handle owning every listener that did open.
        """
        log.info("day_subscriptions_starting", entity_id=entity_id, epoch=epoch, days=len(self.days))
        unsubscribers: list[Unsubscribe] = []
        for day in self.days:
            unsubscribe = self._open_day(entity_id, day, epoch, on_day_snapshot, on_day_error)
            if unsubscribe is not None:
                unsubscribers.append(unsubscribe)
        return StopAll(entity_id, epoch, unsubscribers)

    def _open_day(
        self,
        entity_id: str,
        day: str,
        epoch: int,
        on_day_snapshot: OnDaySnapshot,
        on_day_error: OnDayError,
    ) -> Unsubscribe | None:
        def handle_change(docs: list[SourceDocument]) -> None:
            on_day_snapshot(day, docs, epoch)

        def handle_error(exc: Exception) -> None:
            log.warning(
                "day_subscription_failed",
                entity_id=entity_id,
                day=day,
                epoch=epoch,
                error=str(exc),
                type=type(exc).__name__,
            )
            error = DaySubscribeError(day, f"Listener for {entity_id}/{day} failed: {exc}")
            error.__cause__ = exc
            on_day_error(day, epoch, error)

        try:
            return open_listener(
                lambda: self.source.subscribe_subcollection(
                    entity_id, day, handle_change, handle_error
                ),
                attempts=self.subscribe_attempts,
                wait_seconds=self.subscribe_retry_wait_seconds,
            )
        except Exception as e:
            handle_error(e)
            return None
