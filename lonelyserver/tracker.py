"""Track the most recent participant departure."""

from __future__ import annotations

from dataclasses import dataclass

MILLIS_PER_MINUTE = 60_000


@dataclass(frozen=True, slots=True)
class DepartureRecord:
    player: str
    timestamp_millis: int


class DepartureTracker:
    """Hold the single most recent departure; older ones are forgotten."""

    def __init__(self) -> None:
        self._record: DepartureRecord | None = None

    def record(self, player: str, now: int) -> None:
        self._record = DepartureRecord(player=player, timestamp_millis=now)

    def has_record(self) -> bool:
        return self._record is not None

    @property
    def last_record(self) -> DepartureRecord | None:
        return self._record

    @property
    def last_player(self) -> str:
        return self._require().player

    def elapsed_minutes(self, now: int) -> int:
        span = now - self._require().timestamp_millis
        # wall clock may step backwards between events
        return max(span, 0) // MILLIS_PER_MINUTE

    def elapsed_hours(self, now: int) -> int:
        return self.elapsed_minutes(now) // 60

    def _require(self) -> DepartureRecord:
        if self._record is None:
            raise LookupError("no departure recorded yet")
        return self._record
