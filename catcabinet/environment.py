"""Environment sensing helpers: humidity, pressure and air quality."""

from __future__ import annotations

import logging
import math
from collections import deque
from typing import Callable, Iterable

from catcabinet.helpers import constrain, map_range
from catcabinet.store import PreferenceStore
from catcabinet.timer import monotonic_ms

log = logging.getLogger(__name__)

AQ_BUF_SIZE = 8
ADC_MAX = 4095
TVOC_MAX = 1000
BASELINE_NAMESPACE = "sgp"
BASELINE_SAVE_INTERVAL_MS = 12 * 3600 * 1000
DEFAULT_TEMPERATURE = 25.0
DEFAULT_HUMIDITY = 50.0


def absolute_humidity(temperature: float, relative_humidity: float) -> float:
    """Absolute humidity in g/m^3 from degrees Celsius and percent RH."""
    saturation = 6.112 * math.exp((17.62 * temperature) / (243.12 + temperature))
    actual = (relative_humidity / 100.0) * saturation
    return 216.7 * actual / (temperature + 273.15)


def pressure_diff(raw_readings: Iterable[int]) -> int:
    """Average ADC readings and map them to a 0..100 pressure difference."""
    readings = [int(r) for r in raw_readings]
    if not readings:
        raise ValueError("at least one reading is required")
    average = sum(readings) // len(readings)
    return constrain(map_range(average, 0, ADC_MAX, 0, 100), 0, 100)


class AirQualityFilter:
    """Moving average of TVOC readings mapped to a 0..100 air-quality index."""

    def __init__(self, size: int = AQ_BUF_SIZE) -> None:
        if size <= 0:
            raise ValueError("size must be positive")
        self._buffer: deque[int] = deque(maxlen=size)

    def add(self, tvoc: int) -> int:
        """Add a TVOC reading and return the smoothed air-quality index."""
        self._buffer.append(int(tvoc))
        smoothed = sum(self._buffer) // len(self._buffer)
        return map_range(constrain(smoothed, 0, TVOC_MAX), 0, TVOC_MAX, 0, 100)


class BaselineKeeper:
    """Restores and periodically stores the gas sensor's IAQ baseline."""

    def __init__(
        self,
        store: PreferenceStore,
        clock: Callable[[], int] = monotonic_ms,
    ) -> None:
        self._store = store
        self._clock = clock
        self._last_save = clock()

    def restore(self) -> tuple[int, int] | None:
        """Return the saved (eCO2, TVOC) baseline, or None when none is saved."""
        eco2 = int(self._store.get(BASELINE_NAMESPACE, "sgp_b0", 0))
        tvoc = int(self._store.get(BASELINE_NAMESPACE, "sgp_b1", 0))
        if eco2 == 0 and tvoc == 0:
            log.info("No saved SGP30 baseline found")
            return None
        return eco2 & 0xFFFF, tvoc & 0xFFFF

    def maybe_save(self, baseline: tuple[int, int] | None) -> bool:
        """Store ``baseline`` if twelve hours have passed since the last save.

        A ``None`` baseline means the sensor could not report one. Returns
        whether the baseline was written.
        """
        now = self._clock()
        if now - self._last_save < BASELINE_SAVE_INTERVAL_MS:
            return False
        if baseline is None:
            log.warning("Failed to get SGP30 baseline")
            return False
        eco2, tvoc = baseline
        self._store.put(BASELINE_NAMESPACE, "sgp_b0", int(eco2))
        self._store.put(BASELINE_NAMESPACE, "sgp_b1", int(tvoc))
        self._last_save = now
        log.info("Saved SGP30 baseline: ec=%d tvoc=%d", eco2, tvoc)
        return True