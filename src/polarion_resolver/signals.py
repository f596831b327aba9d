"""Connectivity notifications published by sessions."""

from collections.abc import Callable

import structlog

logger = structlog.get_logger()

Listener = Callable[[bool], None]


class ConnectivitySignal:
    """Publishes connectivity changes to subscribers."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self.last: bool | None = None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, connected: bool) -> None:
        self.last = connected
        logger.debug("Connectivity changed", connected=connected, listeners=len(self._listeners))
        for listener in list(self._listeners):
            try:
                listener(connected)
            except Exception as e:
                logger.warning("Connectivity listener failed", error=str(e))
