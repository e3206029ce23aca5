"""Detection of rapid up/down scaling within a sliding time window."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


@dataclass
class ScalingEvent:
    """One applied scaling action; naive timestamps are taken as local time."""

    timestamp: datetime
    direction: str
    from_replicas: int = 0
    to_replicas: int = 0


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.astimezone()


class OscillationDetector:
    """Keeps the last ``max_size`` events and flags flapping within ``window``."""

    def __init__(self, window: timedelta, max_size: int) -> None:
        self._lock = threading.Lock()
        self._events: deque[ScalingEvent] = deque(maxlen=max(max_size, 0))
        self.window = window

    def record(self, event: ScalingEvent) -> None:
        """Add an event, dropping the oldest when full."""
        with self._lock:
            self._events.append(event)

    def _recent(self) -> list[ScalingEvent]:
        cutoff = datetime.now(timezone.utc) - self.window
        return [e for e in self._events if _aware(e.timestamp) > cutoff]

    def is_oscillating(self) -> bool:
        """True if three or more recent events change direction at least twice."""
        with self._lock:
            recent = self._recent()
        if len(recent) < 3:
            return False
        changes = sum(
            1 for before, after in zip(recent, recent[1:]) if before.direction != after.direction
        )
        return changes >= 2

    def recent_events(self) -> list[ScalingEvent]:
        """Events inside the detection window, oldest first."""
        with self._lock:
            return self._recent()