"""
User-facing notification and render hooks.

The coordinator never talks to a UI directly. It calls notify() for alerts
(validation failures, fetch errors, partial-failure warnings) and render()
after every state change.
"""
import logging
import threading
from typing import List, Sequence

from .models import TimeWindow

logger = logging.getLogger(__name__)


class Notifier:
    def notify(self, message: str) -> None:
        raise NotImplementedError

    def render(self, windows: Sequence[TimeWindow]) -> None:
        pass


class LoggingNotifier(Notifier):
    """Sends alerts to the log. Used by the CLI."""

    def notify(self, message: str) -> None:
        logger.warning(message)

    def render(self, windows: Sequence[TimeWindow]) -> None:
        for w in windows:
            if w.busy:
                logger.debug(f"{w.window_id} ({w.from_time}-{w.to_time}): loading")


class CollectingNotifier(Notifier):
    """Keeps alerts in memory until the caller collects them."""

    def __init__(self):
        self._lock = threading.Lock()
        self.messages: List[str] = []
        self.render_count = 0

    def notify(self, message: str) -> None:
        with self._lock:
            self.messages.append(message)

    def render(self, windows: Sequence[TimeWindow]) -> None:
        with self._lock:
            self.render_count += 1

    def pop_messages(self) -> List[str]:
        with self._lock:
            messages, self.messages = self.messages, []
        return messages
