"""Detection of eating or drinking from the weight of a bowl."""

from __future__ import annotations

import enum
import logging
from collections import deque
from typing import Callable

from catcabinet.events import (
    BASELINE_ALPHA,
    FOOD_WATER_THRESHOLD_G,
    EventRecord,
    EventType,
    median_of,
)
from catcabinet.timer import monotonic_ms

log = logging.getLogger(__name__)

COMPLETE_SAMPLES = 10
COMPLETE_WINDOW_MS = 30_000
COMPLETE_TOLERANCE_G = 1.5
MIN_PERSIST_MS = 2_000
MIN_EVENT_DURATION_MS = 2_000
MAX_EVENT_DURATION_MS = 5 * 60 * 1000
FLUCT_AMPLITUDE_MIN_G = 1.0
FLUCT_MIN_COUNT = 3
STABLE_NOISE_G = 0.5


class BowlState(enum.Enum):
    IDLE = 0
    CANDIDATE = 1
    IN_PROGRESS = 2


class BowlDetector:
    """State machine that turns bowl weights into consumption events.

    A change of at least the threshold starts a candidate; a candidate that
    keeps fluctuating long and strongly enough goes in progress; ten steady
    samples then confirm an event whose delta is the weight before the
    fluctuation minus the median of those samples.
    """

    def __init__(
        self,
        event_type: EventType,
        sensor_id: int,
        max_delta: float,
        clock: Callable[[], int] = monotonic_ms,
    ) -> None:
        self.event_type = event_type
        self.sensor_id = sensor_id
        self.max_delta = max_delta
        self._clock = clock
        self._state = BowlState.IDLE
        self._first_fluct = 0
        self._last_fluct = 0
        self._fluct_count = 0
        self._fluct_max = 0.0
        self._fluct_min = 0.0
        self._pre_fluct = 0.0
        self._samples: deque[float] = deque(maxlen=COMPLETE_SAMPLES)
        self._last_stable = 0.0
        self.last_weight = 0.0

    @property
    def state(self) -> BowlState:
        return self._state

    @property
    def last_stable(self) -> float:
        return self._last_stable

    def _smooth(self, weight: float) -> None:
        self._last_stable = (
            self._last_stable * (1.0 - BASELINE_ALPHA) + weight * BASELINE_ALPHA
        )

    def _reset(self) -> None:
        self._state = BowlState.IDLE
        self._samples.clear()
        self._fluct_count = 0
        self._fluct_max = self._fluct_min = 0.0

    def _note_fluctuation(self, weight: float, now: int) -> None:
        self._fluct_max = max(self._fluct_max, weight)
        self._fluct_min = min(self._fluct_min, weight)
        self._fluct_count += 1
        self._last_fluct = now

    def update(self, weight: float) -> EventRecord | None:
        """Feed one weight sample; return an event when one is confirmed."""
        if self._last_stable == 0.0:
            self._last_stable = weight
        event = None
        if self._state is BowlState.IDLE:
            self._update_idle(weight)
        elif self._state is BowlState.CANDIDATE:
            self._update_candidate(weight)
        else:
            event = self._update_in_progress(weight)
        self.last_weight = weight
        return event

    def _update_idle(self, weight: float) -> None:
        diff = abs(weight - self._last_stable)
        if diff <= STABLE_NOISE_G:
            self._smooth(weight)
        elif diff >= FOOD_WATER_THRESHOLD_G:
            now = self._clock()
            self._state = BowlState.CANDIDATE
            self._first_fluct = self._last_fluct = now
            self._fluct_count = 1
            self._fluct_max = self._fluct_min = weight
            self._pre_fluct = self._last_stable
            self._samples.clear()
            self._samples.append(weight)
            log.debug(
                "%s -> candidate pre=%.2f cur=%.2f",
                self.event_type.value, self._pre_fluct, weight,
            )

    def _update_candidate(self, weight: float) -> None:
        now = self._clock()
        if abs(weight - self._pre_fluct) < FOOD_WATER_THRESHOLD_G:
            log.debug("%s candidate rebound -> cancel", self.event_type.value)
            self._state = BowlState.IDLE
            self._samples.clear()
            self._smooth(weight)
            return
        self._note_fluctuation(weight, now)
        self._samples.append(weight)
        elapsed = now - self._first_fluct
        if elapsed >= MIN_PERSIST_MS:
            amplitude = self._fluct_max - self._fluct_min
            if self._fluct_count >= FLUCT_MIN_COUNT and amplitude >= FLUCT_AMPLITUDE_MIN_G:
                self._state = BowlState.IN_PROGRESS
                log.debug("%s candidate -> in progress", self.event_type.value)
        if elapsed > MAX_EVENT_DURATION_MS:
            log.debug("%s candidate exceeded max duration", self.event_type.value)
            self._reset()
            self._last_stable = weight

    def _update_in_progress(self, weight: float) -> EventRecord | None:
        now = self._clock()
        event = None
        self._samples.append(weight)
        if abs(weight - self._pre_fluct) >= FOOD_WATER_THRESHOLD_G:
            self._note_fluctuation(weight, now)
        spread = max(self._samples) - min(self._samples)

        if now - self._first_fluct <= COMPLETE_WINDOW_MS:
            if len(self._samples) >= COMPLETE_SAMPLES and spread <= COMPLETE_TOLERANCE_G:
                event = self._finish(weight, now)
        else:
            log.debug("%s in progress window timeout", self.event_type.value)
            self._reset()
            self._last_stable = weight

        if now - self._first_fluct > MAX_EVENT_DURATION_MS:
            self._reset()
            self._last_stable = weight
        return event

    def _finish(self, weight: float, now: int) -> EventRecord | None:
        duration = self._last_fluct - self._first_fluct
        amplitude = self._fluct_max - self._fluct_min
        median = median_of(list(self._samples))
        if (
            duration < MIN_EVENT_DURATION_MS
            or self._fluct_count < FLUCT_MIN_COUNT
            or amplitude < FLUCT_AMPLITUDE_MIN_G
        ):
            self._reset()
            self._last_stable = median
            return None
        if duration > MAX_EVENT_DURATION_MS:
            self._reset()
            self._last_stable = weight
            return None

        delta = max(self._pre_fluct - median, 0.0)
        event = None
        if FOOD_WATER_THRESHOLD_G <= delta < self.max_delta and int(delta + 0.5) > 0:
            event = EventRecord(
                self.event_type, self.sensor_id, now, 0,
                self._pre_fluct, median, delta, True,
            )
            log.debug(
                "%s confirmed pre=%.2f post=%.2f delta=%.2f",
                self.event_type.value, self._pre_fluct, median, delta,
            )
        else:
            log.debug("%s ignored by bounds: delta=%.2f", self.event_type.value, delta)
        self._reset()
        self._last_stable = median
        return event