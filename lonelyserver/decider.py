"""Decide whether a lonely arrival gets notified, and render the message."""

from __future__ import annotations

import re
from typing import Protocol, Sequence, TypeVar

from .policy import NotificationConfig
from .tracker import DepartureTracker

T = TypeVar("T")

_PLACEHOLDER = re.compile(r"\$(MINS|TIME|LASTPLAYER|CURPLAYER)")


class RandomSource(Protocol):
    def choice(self, seq: Sequence[T]) -> T: ...


def format_duration(minutes: int) -> str:
    """Render elapsed minutes as ``"d days, h hours, m minutes"``.

    Zero clauses are dropped. Units are never singularised ("1 hours").
    """

    days = (minutes // 60) // 24
    hours = (minutes // 60) % 24
    mins = minutes % 60

    clauses = []
    if days > 0:
        clauses.append(f"{days} days")
    if hours > 0:
        clauses.append(f"{hours} hours")
    if mins > 0:
        clauses.append(f"{mins} minutes")
    return ", ".join(clauses) or "less than a minute"


def render_message(template: str, *, minutes: int, last_player: str, current_player: str) -> str:
    values = {
        "MINS": str(minutes),
        "TIME": format_duration(minutes),
        "LASTPLAYER": last_player,
        "CURPLAYER": current_player,
    }
    return _PLACEHOLDER.sub(lambda match: values[match.group(1)], template)


def is_eligible(roster_size_after_join: int, tracker: DepartureTracker, now: int, config: NotificationConfig) -> bool:
    return (
        roster_size_after_join == 1
        and tracker.has_record()
        and tracker.elapsed_hours(now) < config.threshold_hours
    )


def evaluate(
    roster_size_after_join: int,
    tracker: DepartureTracker,
    now: int,
    joining_player: str,
    config: NotificationConfig,
    rng: RandomSource,
) -> str | None:
    """Return the message for ``joining_player``, or ``None`` when not eligible.

    The returned text is unstyled; prefixing it with ``config.style_tag`` is up
    to whoever displays it.
    """

    if not is_eligible(roster_size_after_join, tracker, now, config):
        return None
    assert config.message_templates, "notification config has no templates"
    template = rng.choice(config.message_templates)
    return render_message(
        template,
        minutes=tracker.elapsed_minutes(now),
        last_player=tracker.last_player,
        current_player=joining_player,
    )
