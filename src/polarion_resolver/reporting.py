"""Logging and user-facing notifications."""

from collections.abc import Callable
from enum import Enum

import structlog

logger = structlog.get_logger()

DEFAULT_POPUP_BUDGET = 2


class Level(str, Enum):
    INFO = "info"
    ERROR = "error"


Notifier = Callable[[str, Level], None]


class Reporter:
    """Writes every message to the log and surfaces a few important ones.

    Popup messages reach the subscribed notifiers only while the budget lasts,
    so a cascade of failures does not flood the user.
    """

    def __init__(self, popup_budget: int = DEFAULT_POPUP_BUDGET) -> None:
        self.popups_remaining = popup_budget
        self.last_message: str | None = None
        self._notifiers: list[Notifier] = []

    def add_notifier(self, notifier: Notifier) -> None:
        self._notifiers.append(notifier)

    def report(self, message: str, level: Level = Level.INFO, popup: bool = False, **fields: object) -> None:
        if level is Level.ERROR:
            logger.error(message, **fields)
        else:
            logger.info(message, **fields)

        if not popup or self.popups_remaining <= 0:
            return
        self.popups_remaining -= 1
        self.last_message = message
        for notifier in self._notifiers:
            try:
                notifier(message, level)
            except Exception as e:
                logger.warning("Notifier failed", error=str(e))
