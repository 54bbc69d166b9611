"""Online/offline tracking for the offline overlay.

Purely presentational: the live listeners reconnect on their own, so nothing
here starts, stops or invalidates a subscription.
"""

import threading
from collections.abc import Callable

from src.routine_sync.logging import get_logger

log = get_logger(__name__)


class ConnectivityMonitor:
    """Holds the last reported network state and notifies on transitions."""

    def __init__(self, online: bool = True) -> None:
        self._online = online
        self._listeners: list[Callable[[bool], None]] = []
        self._lock = threading.Lock()

    @property
    def is_online(self) -> bool:
        return self._online

    @property
    def is_offline(self) -> bool:
        return not self._online

    def set_online(self, online: bool) -> None:
        with self._lock:
            if online == self._online:
                return
            self._online = online
            listeners = list(self._listeners)
        log.info("connectivity_changed", online=online)
        for listener in listeners:
            listener(online)

    def add_listener(self, listener: Callable[[bool], None]) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return remove
