"""Host facing callbacks for session arrivals and departures."""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from .decider import RandomSource, evaluate, format_duration
from .policy import NotificationConfig, StyleTag
from .tracker import DepartureTracker

logger = logging.getLogger(__name__)


class ConfigProvider(Protocol):
    @property
    def current(self) -> NotificationConfig: ...


@dataclass(frozen=True, slots=True)
class Notification:
    recipient: str
    text: str
    style_tag: StyleTag
    elapsed_minutes: int

    @property
    def styled(self) -> str:
        return self.style_tag.apply(self.text)


def current_millis() -> int:
    return time.time_ns() // 1_000_000


class SessionListener:
    """Feed host events into the tracker and the notification decider.

    Departures and joins are serialized by one lock so a join never observes
    a half-written departure.
    """

    def __init__(
        self,
        config: ConfigProvider,
        *,
        tracker: DepartureTracker | None = None,
        rng: RandomSource | None = None,
        clock: Callable[[], int] = current_millis,
    ) -> None:
        self.config = config
        self.tracker = tracker or DepartureTracker()
        self.rng = rng or random.Random()
        self.clock = clock
        self._lock = threading.Lock()

    def on_departure(self, player: str, timestamp: int | None = None) -> None:
        now = self.clock() if timestamp is None else timestamp
        with self._lock:
            self.tracker.record(player, now)

    def on_join(self, player: str, roster_size_after_join: int, timestamp: int | None = None) -> Notification | None:
        now = self.clock() if timestamp is None else timestamp
        config = self.config.current
        with self._lock:
            text = evaluate(roster_size_after_join, self.tracker, now, player, config, self.rng)
            if text is None:
                return None
            minutes = self.tracker.elapsed_minutes(now)

        logger.info(
            "%s logged in alone, and was notified that the last player only logged off %s ago.",
            player,
            format_duration(minutes),
        )
        return Notification(recipient=player, text=text, style_tag=config.style_tag, elapsed_minutes=minutes)
