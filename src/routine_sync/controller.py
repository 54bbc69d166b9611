"""SelectionController - owns which class is selected and its live routine.

State machine:

    IDLE --select--> SELECTING --ack / first day--> ACTIVE
    SELECTING/ACTIVE --select--> SELECTING        (old listeners stopped first)
    SELECTING/ACTIVE --catalog drops class--> INVALIDATED --> IDLE
    any --clear--> IDLE

Every selection starts a new epoch. The previous session's listeners are
stopped before the new epoch exists, and every day delivery is checked
against the current epoch, so late data from a superseded selection is
dropped even if the transport keeps calling back after unsubscribe.

All mutation happens under one re-entrant lock: transports may call back on
their own threads, and in-process ones call back while a listener is still
being attached. Listeners are opened outside the lock, since opening can wait
between retries; a selection superseded meanwhile stops its own listeners.
"""

import threading
from collections.abc import Callable

from src.routine_sync.assembler import (
    SettleTracker,
    apply_day_error,
    apply_day_snapshot,
    lookup,
)
from src.routine_sync.catalog import EntityCatalog
from src.routine_sync.config import RoutineSyncConfig, get_config
from src.routine_sync.connectivity import ConnectivityMonitor
from src.routine_sync.errors import CatalogSubscribeError, DaySubscribeError
from src.routine_sync.logging import bind_selection, clear_selection, get_logger
from src.routine_sync.models import (
    CatalogStatus,
    Entity,
    PeriodRecord,
    ScheduleSnapshot,
    SelectionSession,
    SelectionState,
    SelectOption,
    SelectorProps,
    SourceDocument,
    ViewState,
)
from src.routine_sync.sources import ScheduleSource, Unsubscribe
from src.routine_sync.subscriptions import ScheduleSubscriptionManager, StopAll

log = get_logger(__name__)

ViewListener = Callable[[ViewState], None]


class SelectionController:
    """Keeps the selected class, its six day listeners and the merged routine in step."""

    def __init__(
        self,
        catalog: EntityCatalog,
        subscriptions: ScheduleSubscriptionManager,
        *,
        config: RoutineSyncConfig | None = None,
        connectivity: ConnectivityMonitor | None = None,
    ) -> None:
        self.catalog = catalog
        self.subscriptions = subscriptions
        self.config = config or get_config()
        self.connectivity = connectivity

        self._lock = threading.RLock()
        self._state = SelectionState.IDLE
        self._session: SelectionSession | None = None
        self._epoch = 0
        self._snapshot: ScheduleSnapshot = {}
        self._settle = SettleTracker(subscriptions.days)
        self._stop_all: StopAll | None = None

        self._entities: list[Entity] = []
        self._catalog_status = CatalogStatus.LOADING
        self._catalog_error: CatalogSubscribeError | None = None
        self._auto_selected = False

        self._listeners: list[ViewListener] = []
        self._detach: list[Unsubscribe] = []

    @classmethod
    def from_source(
        cls,
        source: ScheduleSource,
        config: RoutineSyncConfig | None = None,
        connectivity: ConnectivityMonitor | None = None,
    ) -> "SelectionController":
        """Wire catalog and subscription manager to one source from config."""
        config = config or get_config()
        catalog = EntityCatalog(
            source,
            config.entity_collection,
            subscribe_attempts=config.subscribe_attempts,
            subscribe_retry_wait_seconds=config.subscribe_retry_wait_seconds,
        )
        subscriptions = ScheduleSubscriptionManager(
            source,
            subscribe_attempts=config.subscribe_attempts,
            subscribe_retry_wait_seconds=config.subscribe_retry_wait_seconds,
        )
        return cls(catalog, subscriptions, config=config, connectivity=connectivity)

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        """Attach to the catalog (and connectivity, if any)."""
        if self.connectivity is not None:
            self._detach.append(self.connectivity.add_listener(self._on_connectivity))
        self._detach.append(
            self.catalog.subscribe(self._on_catalog_update, self._on_catalog_error)
        )

    def close(self) -> None:
        """Stop everything this controller opened."""
        with self._lock:
            self._reset_to_idle()
            detach, self._detach = self._detach, []
        for unsubscribe in detach:
            unsubscribe()
        log.info("controller_closed")

    def __enter__(self) -> "SelectionController":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -- read side ---------------------------------------------------------

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def session(self) -> SelectionSession | None:
        return self._session

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def entities(self) -> list[Entity]:
        return list(self._entities)

    @property
    def catalog_error(self) -> CatalogSubscribeError | None:
        return self._catalog_error

    @property
    def snapshot(self) -> ScheduleSnapshot:
        with self._lock:
            return {day: list(periods) for day, periods in self._snapshot.items()}

    @property
    def loading(self) -> bool:
        with self._lock:
            return self._session is not None and not self._settle.all_settled

    @property
    def selected_entity(self) -> Entity | None:
        with self._lock:
            if self._session is None:
                return None
            for entity in self._entities:
                if entity.id == self._session.entity_id:
                    return entity
            return None

    def lookup(self, day: str, period_number: int) -> PeriodRecord | None:
        with self._lock:
            return lookup(self._snapshot, day, period_number)

    def selector_props(self) -> SelectorProps:
        with self._lock:
            options = [SelectOption(value=e.id, label=e.name) for e in self._entities]
            selected_id = None
            if self._session is not None and any(
                o.value == self._session.entity_id for o in options
            ):
                selected_id = self._session.entity_id
            return SelectorProps(
                options=options,
                selected_id=selected_id,
                disabled=self.loading,
                clearable=self.config.clearable,
            )

    def view_state(self) -> ViewState:
        with self._lock:
            title = None
            if self._session is not None:
                entity = self.selected_entity
                title = entity.name if entity is not None else self._session.entity_id
            offline = (
                self.config.show_offline_overlay
                and self.connectivity is not None
                and self.connectivity.is_offline
            )
            return ViewState(
                entities=list(self._entities),
                selection=self._session,
                schedule=self.snapshot,
                loading=self.loading,
                state=self._state,
                catalog_status=self._catalog_status,
                offline=offline,
                title=title,
            )

    def add_listener(self, listener: ViewListener) -> Callable[[], None]:
        """Notify `listener` with a fresh ViewState after every change."""
        with self._lock:
            self._listeners.append(listener)

        def remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return remove

    # -- selection input ---------------------------------------------------

    def select(self, entity_id: str | None) -> None:
        """Select a class, or deselect with None.

        Raises:
            ValueError: If the catalog is loaded and does not contain `entity_id`.
        """
        if entity_id is None:
            if not self.config.clearable:
                log.info("clear_ignored", reason="not_clearable")
                return
            self.clear()
            return

        with self._lock:
            if self._catalog_status is CatalogStatus.READY and not any(
                e.id == entity_id for e in self._entities
            ):
                raise ValueError(
                    f"Unknown class {entity_id!r}. Valid: {[e.id for e in self._entities]}"
                )

            # Old listeners go first, before the new epoch can be observed
            self._teardown()
            self._epoch += 1
            epoch = self._epoch
            self._session = SelectionSession(entity_id=entity_id, epoch=epoch)
            self._snapshot = {}
            self._settle.reset()
            self._state = SelectionState.SELECTING
            bind_selection(entity_id, epoch)
            log.info("selection_started", entity_id=entity_id, epoch=epoch)

        # Opening may retry with waits; readers and day callbacks must not stall on it
        stop_all = self.subscriptions.start(
            entity_id, epoch, self._on_day_snapshot, self._on_day_error
        )

        with self._lock:
            if self._is_current(epoch):
                self._stop_all = stop_all
                if self._state is SelectionState.SELECTING:
                    self._state = SelectionState.ACTIVE
            else:
                # Superseded while the listeners were being attached
                stop_all()
        self._notify()

    def clear(self) -> None:
        """Deselect: stop the day listeners and empty the routine."""
        with self._lock:
            if self._session is not None:
                log.info("selection_cleared", entity_id=self._session.entity_id)
            self._reset_to_idle()
        self._notify()

    # -- catalog callbacks -------------------------------------------------

    def _on_catalog_update(self, entities: list[Entity]) -> None:
        auto_select = None
        with self._lock:
            self._entities = list(entities)
            # An empty list after a listener failure keeps the ERROR status
            self._catalog_status = self.catalog.status
            if self._catalog_status is CatalogStatus.READY:
                self._catalog_error = None

            if self._session is not None:
                if self._catalog_status is CatalogStatus.READY and not any(
                    e.id == self._session.entity_id for e in entities
                ):
                    self._state = SelectionState.INVALIDATED
                    log.info(
                        "selection_invalidated",
                        entity_id=self._session.entity_id,
                        reason="removed_from_catalog",
                    )
                    self._reset_to_idle()
            elif self.config.auto_select_first and not self._auto_selected and entities:
                self._auto_selected = True
                auto_select = entities[0].id

        if auto_select is not None:
            log.info("auto_select_first", entity_id=auto_select)
            self.select(auto_select)
            return
        self._notify()

    def _on_catalog_error(self, error: CatalogSubscribeError) -> None:
        with self._lock:
            self._catalog_status = CatalogStatus.ERROR
            self._catalog_error = error
            self._entities = []
        self._notify()

    # -- day callbacks -----------------------------------------------------

    def _on_day_snapshot(self, day: str, docs: list[SourceDocument], epoch: int) -> None:
        with self._lock:
            current = self._current_epoch()
            self._snapshot = apply_day_snapshot(
                self._snapshot, day, docs, epoch, current, self.config.field_aliases
            )
            if epoch != current:
                return
            self._day_settled(day)
        self._notify()

    def _on_day_error(self, day: str, epoch: int, error: DaySubscribeError) -> None:
        with self._lock:
            current = self._current_epoch()
            self._snapshot = apply_day_error(self._snapshot, day, epoch, current)
            if epoch != current:
                return
            log.warning("day_left_empty", day=day, error=str(error))
            self._day_settled(day)
        self._notify()

    def _on_connectivity(self, online: bool) -> None:
        self._notify()

    # -- internals ---------------------------------------------------------

    def _current_epoch(self) -> int | None:
        # Nothing is current while idle, so late data after clear() is dropped too
        return self._session.epoch if self._session is not None else None

    def _is_current(self, epoch: int) -> bool:
        return self._session is not None and self._session.epoch == epoch

    def _day_settled(self, day: str) -> None:
        if self._state is SelectionState.SELECTING:
            self._state = SelectionState.ACTIVE
        if self._settle.settle(day) and self._settle.all_settled:
            log.info("routine_loaded", days=len(self._settle.days))

    def _teardown(self) -> None:
        if self._stop_all is not None:
            stop_all, self._stop_all = self._stop_all, None
            stop_all()

    def _reset_to_idle(self) -> None:
        self._teardown()
        self._session = None
        self._snapshot = {}
        self._settle.reset()
        self._state = SelectionState.IDLE
        clear_selection()

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
            if not listeners:
                return
            view = self.view_state()
        for listener in listeners:
            listener(view)
