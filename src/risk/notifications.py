"""
State-change notifications for risk collaborators.

Listeners are plain callables receiving a StateChangeEvent. A failing listener
is logged and skipped; the transition that produced the event stands.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List

from .schema import StateChangeEvent

logger = logging.getLogger(__name__)

StateChangeListener = Callable[[StateChangeEvent], None]


class StateChangeNotifier:
    """Fan-out of state-change events to subscribed listeners."""

    def __init__(self) -> None:
        self._listeners: List[StateChangeListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: StateChangeListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unsubscribe(self, listener: StateChangeListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def publish(self, event: StateChangeEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "State-change listener %r failed for %s", listener, event.entity_id
                )
