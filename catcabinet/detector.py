"""Event detection across the food, water and litter channels."""

from __future__ import annotations

from typing import Callable, NamedTuple

from catcabinet.bowl import BowlDetector
from catcabinet.events import (
    FOOD_MAX_G,
    MAX_EVENT_HISTORY,
    WATER_MAX_G,
    DailyStats,
    EventHistory,
    EventRecord,
    EventType,
)
from catcabinet.litter import LitterDetector
from catcabinet.timer import monotonic_ms

FOOD_SENSOR = 0
WATER_SENSOR = 1
LITTER_SENSOR = 2


class Change(NamedTuple):
    """Rounded change of a channel and the weight left afterwards."""

    delta: int
    total: int


class EventDetector:
    """Samples the three weighing channels and records detected events."""

    def __init__(
        self,
        read_weight: Callable[[int], float],
        clock: Callable[[], int] = monotonic_ms,
    ) -> None:
        self._read_weight = read_weight
        self._history = EventHistory(MAX_EVENT_HISTORY)
        self.food = BowlDetector(EventType.FEED, FOOD_SENSOR, FOOD_MAX_G, clock)
        self.water = BowlDetector(EventType.DRINK, WATER_SENSOR, WATER_MAX_G, clock)
        self.litter = LitterDetector(lambda: read_weight(LITTER_SENSOR), clock)
        self._food_event: Change | None = None
        self._drink_event: Change | None = None
        self._toilet_event: Change | None = None
        self._weight_event: float | None = None

    @staticmethod
    def _change(event: EventRecord) -> Change:
        return Change(int(event.delta_weight + 0.5), int(event.weight_after))

    def update(self) -> None:
        """Take one sample from every channel and record any events."""
        food = self.food.update(self._read_weight(FOOD_SENSOR))
        if food is not None:
            self._history.record(food)
            self._food_event = self._change(food)

        water = self.water.update(self._read_weight(WATER_SENSOR))
        if water is not None:
            self._history.record(water)
            self._drink_event = self._change(water)

        litter = self.litter.update(self._read_weight(LITTER_SENSOR))
        if litter is not None:
            if litter.event_type is EventType.CAT_ENTER:
                self._weight_event = max(litter.delta_weight, 0.0)
            elif litter.event_type is EventType.DEFECATE:
                self._toilet_event = self._change(litter)
            self._history.record(litter)

    def last_event(self) -> EventRecord | None:
        return self._history.last()

    def today_stats(self) -> DailyStats:
        return self._history.today_stats()

    def take_food_event(self) -> Change | None:
        """Return the newest feeding change once, then None until the next."""
        event, self._food_event = self._food_event, None
        return event

    def take_drink_event(self) -> Change | None:
        event, self._drink_event = self._drink_event, None
        return event

    def take_toilet_event(self) -> Change | None:
        event, self._toilet_event = self._toilet_event, None
        return event

    def take_weight_event(self) -> float | None:
        """Return the newest weight of the cat alone, once."""
        event, self._weight_event = self._weight_event, None
        return event

    def reset_today_stats(self) -> None:
        self._history.reset()