"""Ring of the last ten days of usage figures, kept in a preference store."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass

from catcabinet.store import PreferenceStore

HISTORY_DAYS = 10
LOG_NAMESPACE = "catcabinet"
HISTORY_KEY = "history"


@dataclass
class DailyData:
    food: float = 0.0
    water: float = 0.0
    excretion: float = 0.0
    weight: float = 0.0
    count: int = 0
    timestamp: int = 0


class DataLogger:
    """Keeps a ten-slot ring of daily usage records."""

    def __init__(self, store: PreferenceStore) -> None:
        self._store = store
        self._history: list[DailyData] = []
        self._current_index = 0

    @property
    def history(self) -> list[DailyData]:
        return list(self._history)

    @property
    def current_index(self) -> int:
        return self._current_index

    def add_daily_data(
        self, food: float, water: float, excretion: float, weight: float, count: int
    ) -> None:
        """Write a record into the current slot and advance around the ring."""
        if len(self._history) < HISTORY_DAYS:
            self._history.extend(
                DailyData() for _ in range(HISTORY_DAYS - len(self._history))
            )
        self._history[self._current_index] = DailyData(
            food, water, excretion, weight, count, int(time.time())
        )
        self._current_index = (self._current_index + 1) % HISTORY_DAYS

    def save_historical_data(self) -> None:
        self._store.put(LOG_NAMESPACE, HISTORY_KEY, [asdict(d) for d in self._history])

    def load_historical_data(self) -> None:
        """Load stored history; a missing, empty or oversized entry is ignored."""
        stored = self._store.get(LOG_NAMESPACE, HISTORY_KEY)
        if stored and len(stored) <= HISTORY_DAYS:
            self._history = [DailyData(**item) for item in stored]

    def clear_data(self) -> None:
        self._history.clear()
        self._current_index = 0
        self._store.remove(LOG_NAMESPACE, HISTORY_KEY)