"""Live document sources the engine subscribes to.

The engine never talks to a concrete store directly. It is handed a
`ScheduleSource` and only ever attaches and detaches listeners on it:

    routines/                     one document per class ({"name": ...})
    routines/{class_id}/{day}/    one document per period, id = period number

Every listener receives the full, id-ordered document list on each change,
never a diff. `InMemoryScheduleSource` is a complete in-process implementation
used by the demo script and the test suite.
"""

import json
import threading
from collections import deque
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from src.routine_sync.errors import TransientError
from src.routine_sync.logging import get_logger
from src.routine_sync.models import SourceDocument

log = get_logger(__name__)

Unsubscribe = Callable[[], None]
OnChange = Callable[[list[SourceDocument]], None]
OnError = Callable[[Exception], None]


class ScheduleSource(Protocol):
    """Transport collaborator: scoped subscribe/unsubscribe pairs."""

    def subscribe_collection(
        self, path: str, on_change: OnChange, on_error: OnError
    ) -> Unsubscribe: ...

    def subscribe_subcollection(
        self, entity_id: str, day: str, on_change: OnChange, on_error: OnError
    ) -> Unsubscribe: ...


def open_listener(
    open_fn: Callable[[], Unsubscribe], *, attempts: int, wait_seconds: float
) -> Unsubscribe:
    """Attach a listener, retrying transient transport failures.

    Permanent failures and the last transient failure are re-raised unchanged.
    """
    retryer = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(wait_seconds),
        retry=retry_if_exception_type(TransientError),
        reraise=True,
    )
    return retryer(open_fn)


class _Listener:
    __slots__ = ("path", "on_change", "on_error", "active")

    def __init__(self, path: tuple[str, ...], on_change: OnChange, on_error: OnError):
        self.path = path
        self.on_change = on_change
        self.on_error = on_error
        self.active = True


class InMemoryScheduleSource:
    """In-process document tree with live listeners.

    Like a real store listener, subscribing immediately delivers the current
    snapshot (an empty list for a collection with no documents). With
    ``deliver_immediately=False`` deliveries queue up until ``flush()``; a
    delivery already queued when its listener detaches is still dispatched,
    the same way a callback already in flight on a transport thread would be.
    """

    def __init__(self, root: str = "routines", *, deliver_immediately: bool = True):
        self.root = root
        self.deliver_immediately = deliver_immediately
        self._collections: dict[tuple[str, ...], dict[str, dict[str, Any]]] = {}
        self._listeners: list[_Listener] = []
        self._open_failures: dict[tuple[str, ...], list[Exception]] = {}
        self._pending: deque[Callable[[], None]] = deque()
        self._lock = threading.Lock()
        self.subscribe_calls = 0

    # -- paths -------------------------------------------------------------

    def day_path(self, entity_id: str, day: str) -> tuple[str, ...]:
        return (self.root, entity_id, day)

    # -- ScheduleSource ----------------------------------------------------

    def subscribe_collection(
        self, path: str, on_change: OnChange, on_error: OnError
    ) -> Unsubscribe:
        return self._subscribe(tuple(path.strip("/").split("/")), on_change, on_error)

    def subscribe_subcollection(
        self, entity_id: str, day: str, on_change: OnChange, on_error: OnError
    ) -> Unsubscribe:
        return self._subscribe(self.day_path(entity_id, day), on_change, on_error)

    def _subscribe(
        self, path: tuple[str, ...], on_change: OnChange, on_error: OnError
    ) -> Unsubscribe:
        with self._lock:
            self.subscribe_calls += 1
            failures = self._open_failures.get(path)
            if failures:
                error = failures.pop(0)
                log.debug("listener_open_failed", path="/".join(path), error=str(error))
                raise error
            listener = _Listener(path, on_change, on_error)
            self._listeners.append(listener)
            docs = self._documents(path)

        self._dispatch(lambda: listener.on_change(docs))

        def unsubscribe() -> None:
            with self._lock:
                if not listener.active:
                    return
                listener.active = False
                self._listeners.remove(listener)

        return unsubscribe

    # -- introspection -----------------------------------------------------

    @property
    def active_subscription_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def active_paths(self) -> list[str]:
        with self._lock:
            return ["/".join(listener.path) for listener in self._listeners]

    @property
    def pending_deliveries(self) -> int:
        return len(self._pending)

    def flush(self, limit: int | None = None) -> int:
        """Dispatch queued deliveries in order. Returns how many ran."""
        delivered = 0
        while self._pending and (limit is None or delivered < limit):
            self._pending.popleft()()
            delivered += 1
        return delivered

    # -- mutation ----------------------------------------------------------

    def set_entity(self, entity_id: str, name: str | None = None, **fields: Any) -> None:
        if name is not None:
            fields["name"] = name
        self._write((self.root,), entity_id, fields)

    def remove_entity(self, entity_id: str) -> None:
        # Like a document store, the day subcollections outlive the parent doc
        self._delete((self.root,), entity_id)

    def set_period(self, entity_id: str, day: str, period_id: str, **fields: Any) -> None:
        self._write(self.day_path(entity_id, day), str(period_id), fields)

    def remove_period(self, entity_id: str, day: str, period_id: str) -> None:
        self._delete(self.day_path(entity_id, day), str(period_id))

    def set_day(
        self, entity_id: str, day: str, periods: dict[str, dict[str, Any]]
    ) -> None:
        """Replace a whole day in one change (a single snapshot to listeners)."""
        path = self.day_path(entity_id, day)
        with self._lock:
            self._collections[path] = {str(k): dict(v) for k, v in periods.items()}
        self._notify(path)

    # -- failure injection -------------------------------------------------

    def fail_next_subscribe(
        self, *path: str, times: int = 1, error: Exception | None = None
    ) -> None:
        """Make the next `times` listener opens on `path` raise `error`."""
        failure = error or TransientError(f"listener open failed: {'/'.join(path)}")
        with self._lock:
            self._open_failures.setdefault(tuple(path), []).extend([failure] * times)

    def fail_collection(self, error: Exception | None = None) -> None:
        self._break((self.root,), error)

    def fail_day(self, entity_id: str, day: str, error: Exception | None = None) -> None:
        self._break(self.day_path(entity_id, day), error)

    # -- internals ---------------------------------------------------------

    def _documents(self, path: tuple[str, ...]) -> list[SourceDocument]:
        docs = self._collections.get(path, {})
        return [SourceDocument(id=doc_id, fields=dict(docs[doc_id])) for doc_id in sorted(docs)]

    def _write(self, path: tuple[str, ...], doc_id: str, fields: dict[str, Any]) -> None:
        with self._lock:
            self._collections.setdefault(path, {})[doc_id] = dict(fields)
        self._notify(path)

    def _delete(self, path: tuple[str, ...], doc_id: str) -> None:
        with self._lock:
            self._collections.get(path, {}).pop(doc_id, None)
        self._notify(path)

    def _notify(self, path: tuple[str, ...]) -> None:
        with self._lock:
            targets = [lsn for lsn in self._listeners if lsn.path == path]
            docs = self._documents(path)
        for listener in targets:
            self._dispatch(lambda listener=listener: listener.on_change(docs))

    def _break(self, path: tuple[str, ...], error: Exception | None) -> None:
        """Terminate every listener on `path` with an error, as a broken stream does."""
        failure = error or TransientError(f"listener broken: {'/'.join(path)}")
        with self._lock:
            targets = [lsn for lsn in self._listeners if lsn.path == path]
            for listener in targets:
                listener.active = False
                self._listeners.remove(listener)
        for listener in targets:
            self._dispatch(lambda listener=listener: listener.on_error(failure))

    def _dispatch(self, delivery: Callable[[], None]) -> None:
        if self.deliver_immediately:
            delivery()
        else:
            self._pending.append(delivery)


def load_fixture(path: str | Path, *, root: str = "routines") -> InMemoryScheduleSource:
    """Build an in-memory source from a JSON export.

    Expected shape::

        {"routines": {"10A": {"name": "Class 10A",
                              "days": {"mon": {"1": {"sname": "Math"}}}}}}
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    source = InMemoryScheduleSource(root=root)
    for entity_id, body in data.get(root, {}).items():
        body = dict(body)
        days = body.pop("days", {}) or {}
        source.set_entity(str(entity_id), **body)
        for day, periods in days.items():
            source.set_day(str(entity_id), day, periods or {})
    log.info("fixture_loaded", path=str(path), entities=len(data.get(root, {})))
    return source
