"""Event records, detection thresholds and a bounded event history."""

from __future__ import annotations

import enum
import logging
from collections import deque
from dataclasses import dataclass
from typing import Iterator, Sequence

log = logging.getLogger(__name__)

MAX_EVENT_HISTORY = 32

# Weights are in grams, times in milliseconds.
FOOD_WATER_THRESHOLD_G = 2.0
FOOD_MAX_G = 150.0
WATER_MAX_G = 200.0
ENTER_THRESHOLD_G = 300.0
EXIT_THRESHOLD_G = 300.0
DEFECATE_THRESHOLD_G = 2.0
DEFECATE_MAX_G = 250.0
STABLE_SAMPLES = 3
STABLE_TOLERANCE_G = 10.0
EXIT_CONFIRM_SAMPLES = 2
MIN_DWELL_MS = 5000
EXIT_RECOVERY_MIN = -50.0
EXIT_RECOVERY_MAX = 150.0
BASELINE_ALPHA = 0.02
ENTER_PEAK_TOLERANCE_G = 50.0

MEDIAN_WINDOW = 16


class EventType(enum.Enum):
    FEED = "feed"
    DRINK = "drink"
    CAT_ENTER = "cat_enter"
    CAT_EXIT = "cat_exit"
    DEFECATE = "defecate"
    ENTER_NO_DEFECATE = "enter_no_defecate"
    LITTER_CHANGE = "litter_change"


@dataclass(frozen=True)
class EventRecord:
    """One detected event on a weighing channel."""

    event_type: EventType
    sensor_id: int
    start_time: int
    end_time: int
    weight_before: float
    weight_after: float
    delta_weight: float
    valid: bool = True


@dataclass
class DailyStats:
    """Counts and weight totals of feeding, drinking and defecation."""

    feed_count: int = 0
    feed_total: float = 0.0
    drink_count: int = 0
    drink_total: float = 0.0
    defecate_count: int = 0
    defecate_total: float = 0.0


class EventHistory:
    """Keeps the most recent events, dropping the oldest when full."""

    def __init__(self, capacity: int = MAX_EVENT_HISTORY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._events: deque[EventRecord] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._events.maxlen or 0

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[EventRecord]:
        return iter(list(self._events))

    def record(self, event: EventRecord) -> None:
        self._events.append(event)
        log.debug(
            "record event: type=%s delta=%.2f", event.event_type.value, event.delta_weight
        )

    def last(self) -> EventRecord | None:
        """The most recent event, or None when there is none."""
        return self._events[-1] if self._events else None

    def today_stats(self) -> DailyStats:
        stats = DailyStats()
        for event in self._events:
            if event.event_type is EventType.FEED:
                stats.feed_count += 1
                stats.feed_total += event.delta_weight
            elif event.event_type is EventType.DRINK:
                stats.drink_count += 1
                stats.drink_total += event.delta_weight
            elif event.event_type is EventType.DEFECATE:
                stats.defecate_count += 1
                stats.defecate_total += event.delta_weight
        return stats

    def reset(self) -> None:
        self._events.clear()


def median_of(values: Sequence[float]) -> float:
    """Median of at most the first sixteen values; 0.0 for none."""
    window = sorted(values[:MEDIAN_WINDOW])
    if not window:
        return 0.0
    mid = len(window) // 2
    if len(window) % 2 == 1:
        return window[mid]
    return (window[mid - 1] + window[mid]) / 2.0