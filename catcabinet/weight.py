"""Load-cell weight sensors and the manager that samples them."""

from __future__ import annotations

import logging
import math
import time
from typing import Callable, Protocol, Sequence

from catcabinet.store import PreferenceStore
from catcabinet.timer import monotonic_ms

log = logging.getLogger(__name__)

DEFAULT_CALIBRATION_FACTOR = 2230.0
CALIBRATION_NAMESPACE = "scale"
MAX_SENSOR_ID = 10
MIN_FACTOR = 1.0
MAX_FACTOR = 1_000_000.0


class CalibrationError(RuntimeError):
    """Raised when a calibration cannot be carried out or gives a bad factor."""


class LoadCell(Protocol):
    """The amplifier interface a weight sensor drives."""

    def is_ready(self) -> bool: ...

    def set_scale(self, scale: float) -> None: ...

    def tare(self) -> None: ...

    def get_units(self, times: int) -> float: ...

    def get_value(self, times: int) -> float: ...


def _check_id(sensor_id: int) -> None:
    if not 0 <= sensor_id <= MAX_SENSOR_ID:
        raise ValueError(f"sensor id must be between 0 and {MAX_SENSOR_ID}")


def _is_number(value) -> bool:
    return value is not None and not math.isnan(float(value))


class WeightSensor:
    """One weighing channel: calibration factor, tare and readings in grams."""

    poll_interval: float = 0.01
    tare_settle: float = 0.2
    calibrate_settle: float = 0.5

    def __init__(self, load_cell: LoadCell, store: PreferenceStore | None = None) -> None:
        self._cell = load_cell
        self._store = store if store is not None else PreferenceStore()
        self._factor = DEFAULT_CALIBRATION_FACTOR
        self._empty_weight = 0.0
        self._initialized = False

    @property
    def calibration_factor(self) -> float:
        return self._factor

    @property
    def empty_weight(self) -> float:
        return self._empty_weight

    @property
    def available(self) -> bool:
        return self._initialized

    def init(self, timeout: int = 1000, clock: Callable[[], int] = monotonic_ms) -> None:
        """Apply the factor, wait for the cell to be ready and tare it.

        Raises TimeoutError when the cell is not ready within ``timeout`` ms.
        """
        self._cell.set_scale(self._factor)
        start = clock()
        while not self._cell.is_ready():
            if clock() - start > timeout:
                self._initialized = False
                raise TimeoutError("load cell did not respond in time")
            time.sleep(self.poll_interval)
        self._cell.tare()
        self._empty_weight = self.read_weight()
        self._initialized = True
        log.info(
            "Weight sensor initialized, empty weight %.2fg, factor %.2f",
            self._empty_weight, self._factor,
        )

    def read_weight(self) -> float:
        """Current weight in grams; never negative, 0.0 when not ready."""
        if not self._initialized or not self._cell.is_ready():
            return 0.0
        weight = float(self._cell.get_units(3))
        return weight if weight > 0 else 0.0

    def calibrate(self, known_weight: float) -> float:
        """Derive the factor from a known weight placed on a tared cell.

        Returns the new factor.
        """
        if not self._initialized:
            raise CalibrationError("weight sensor not initialized")
        if known_weight <= 0.0:
            raise ValueError("known weight must be positive")
        self._cell.set_scale(1.0)
        time.sleep(self.calibrate_settle)
        raw = int(self._cell.get_value(10))
        if raw <= 0:
            self._cell.set_scale(self._factor)
            raise CalibrationError("invalid raw reading")
        factor = raw / known_weight
        if not MIN_FACTOR <= factor <= MAX_FACTOR:
            self._cell.set_scale(self._factor)
            raise CalibrationError(f"calibration factor out of range: {factor:.2f}")
        self._factor = factor
        self._cell.set_scale(factor)
        log.info("Calibration complete, factor %.2f", factor)
        return factor

    def tare(self) -> None:
        """Zero the cell and record the weight read afterwards."""
        if not self._initialized:
            return
        self._cell.tare()
        time.sleep(self.tare_settle)
        self._empty_weight = self.read_weight()

    def set_calibration_factor(self, factor: float) -> None:
        if factor <= 0.0:
            raise ValueError("calibration factor must be positive")
        self._factor = float(factor)
        self._cell.set_scale(self._factor)

    def save_calibration(self, sensor_id: int) -> None:
        """Persist the factor and the empty weight of this channel."""
        _check_id(sensor_id)
        self._store.put(CALIBRATION_NAMESPACE, f"scale{sensor_id}", self._factor)
        self._store.put(CALIBRATION_NAMESPACE, f"tare{sensor_id}", self._empty_weight)
        log.info(
            "Saved calibration id=%d factor=%.2f tare=%.2f",
            sensor_id, self._factor, self._empty_weight,
        )

    def load_calibration(self, sensor_id: int) -> None:
        """Load a stored factor and empty weight, keeping current values if absent."""
        _check_id(sensor_id)
        factor = self._store.get(CALIBRATION_NAMESPACE, f"scale{sensor_id}")
        if _is_number(factor) and float(factor) > 0.0:
            self._factor = float(factor)
            log.info("Loaded calibration factor id=%d: %.2f", sensor_id, self._factor)
        else:
            log.info("No saved calibration factor for id=%d", sensor_id)
        self.load_tare(sensor_id)
        if self._initialized:
            self._cell.set_scale(self._factor)

    def save_tare(self, sensor_id: int) -> None:
        _check_id(sensor_id)
        self._store.put(CALIBRATION_NAMESPACE, f"tare{sensor_id}", self._empty_weight)

    def load_tare(self, sensor_id: int) -> bool:
        """Load a stored empty weight; return whether one was found."""
        _check_id(sensor_id)
        tare = self._store.get(CALIBRATION_NAMESPACE, f"tare{sensor_id}")
        if not _is_number(tare):
            return False
        self._empty_weight = float(tare)
        return True


class WeightManager:
    """Caches the latest reading of each weighing channel."""

    def __init__(self, sensors: Sequence[WeightSensor]) -> None:
        self._sensors = list(sensors)
        self._last = [0.0] * len(self._sensors)

    def update(self) -> None:
        """Read every sensor once."""
        self._last = [sensor.read_weight() for sensor in self._sensors]

    def net_weight(self, index: int) -> float:
        """The cached weight of channel ``index``."""
        return self._last[index]