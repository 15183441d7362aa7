"""
Change notification between the engine and views.

The engine fires after every successful mutation; views subscribe and
re-read the store when notified.
"""

import logging
from typing import Callable

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class ChangeNotifier:
    """Explicit subscribe/fire registry of change listeners."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def fire(self) -> None:
        """Call every listener in registration order.

        A failing listener is logged; the remaining listeners still run.
        """
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.warning("Change listener %r failed: %s", listener, e)

    def __len__(self) -> int:
        return len(self._listeners)
