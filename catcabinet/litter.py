"""Detection of a cat entering and leaving the litter box."""

from __future__ import annotations

import enum
import logging
from collections import deque
from typing import Callable

from catcabinet.events import (
    BASELINE_ALPHA,
    DEFECATE_MAX_G,
    DEFECATE_THRESHOLD_G,
    ENTER_THRESHOLD_G,
    EXIT_CONFIRM_SAMPLES,
    EXIT_RECOVERY_MAX,
    EXIT_RECOVERY_MIN,
    EXIT_THRESHOLD_G,
    MIN_DWELL_MS,
    STABLE_SAMPLES,
    STABLE_TOLERANCE_G,
    EventRecord,
    EventType,
    median_of,
)
from catcabinet.timer import monotonic_ms

log = logging.getLogger(__name__)

LITTER_SENSOR_ID = 2


class LitterState(enum.Enum):
    IDLE = 0
    IN_PROGRESS = 1
    CONFIRMED = 2


class LitterDetector:
    """State machine over litter-box weights.

    A rise above the baseline by the entry threshold starts a candidate;
    steady samples held for the minimum dwell confirm the cat is inside.
    Once the weight falls back for enough samples, the change against the
    baseline before entry decides whether the visit was a defecation.
    """

    def __init__(
        self,
        read_weight: Callable[[], float],
        clock: Callable[[], int] = monotonic_ms,
    ) -> None:
        self._read_weight = read_weight
        self._clock = clock
        self._state = LitterState.IDLE
        self._baseline_initialized = False
        self._baseline = 0.0
        self._baseline_before_entry = 0.0
        self._stable_samples: deque[float] = deque(maxlen=STABLE_SAMPLES)
        self._candidate_start = 0
        self._candidate_peak = 0.0
        self._exit_confirm_count = 0
        self._cat_enter_time = 0
        self._cat_weight_median = 0.0
        self.last_weight = 0.0

    @property
    def state(self) -> LitterState:
        return self._state

    @property
    def baseline(self) -> float:
        return self._baseline

    @property
    def baseline_before_entry(self) -> float:
        return self._baseline_before_entry

    def _smooth_baseline(self, value: float) -> None:
        self._baseline = self._baseline * (1.0 - BASELINE_ALPHA) + value * BASELINE_ALPHA

    def update(self, weight: float) -> EventRecord | None:
        """Feed one weight sample; return an event when one is recorded."""
        if not self._baseline_initialized:
            self._baseline = weight
            self._baseline_initialized = True

        event = None
        if self._state is LitterState.IDLE:
            self._update_idle(weight)
        elif self._state is LitterState.IN_PROGRESS:
            event = self._update_in_progress(weight)
        else:
            event = self._update_confirmed(weight)
        self.last_weight = weight
        return event

    def _update_idle(self, weight: float) -> None:
        if weight < self._baseline + ENTER_THRESHOLD_G:
            self._smooth_baseline(weight)
        if weight > self._baseline + ENTER_THRESHOLD_G:
            self._state = LitterState.IN_PROGRESS
            self._candidate_start = self._clock()
            self._baseline_before_entry = self._baseline
            self._candidate_peak = weight
            self._stable_samples.clear()
            self._stable_samples.append(weight)
            log.debug(
                "enter candidate: baseline=%.2f cur=%.2f",
                self._baseline_before_entry, weight,
            )

    def _update_in_progress(self, weight: float) -> EventRecord | None:
        if weight < self._baseline_before_entry + ENTER_THRESHOLD_G:
            log.debug("enter candidate broken at %.2f", weight)
            self._state = LitterState.IDLE
            self._stable_samples.clear()
            self._candidate_peak = 0.0
            return None

        self._stable_samples.append(weight)
        self._candidate_peak = max(self._candidate_peak, weight)
        if len(self._stable_samples) < STABLE_SAMPLES:
            return None

        spread = max(self._stable_samples) - min(self._stable_samples)
        now = self._clock()
        if spread > STABLE_TOLERANCE_G or now - self._candidate_start < MIN_DWELL_MS:
            return None

        self._cat_weight_median = median_of(list(self._stable_samples))
        self._state = LitterState.CONFIRMED
        self._cat_enter_time = now
        self._exit_confirm_count = 0
        log.debug("cat enter confirmed: median=%.2f", self._cat_weight_median)
        return EventRecord(
            EventType.CAT_ENTER,
            LITTER_SENSOR_ID,
            now,
            0,
            self._baseline_before_entry,
            self._cat_weight_median,
            self._cat_weight_median - self._baseline_before_entry,
            True,
        )

    def _update_confirmed(self, weight: float) -> EventRecord | None:
        if weight < self._baseline_before_entry + EXIT_THRESHOLD_G:
            self._exit_confirm_count += 1
        else:
            self._exit_confirm_count = 0

        if self._exit_confirm_count < EXIT_CONFIRM_SAMPLES:
            return None

        now = self._clock()
        if now - self._cat_enter_time < MIN_DWELL_MS:
            log.debug("exit seen but dwell too short")
            self._exit_confirm_count = 0
            return None

        exit_samples = [weight]
        exit_samples.extend(self._read_weight() for _ in range(STABLE_SAMPLES - 1))
        after = median_of(exit_samples)
        before = self._baseline_before_entry
        delta = after - before
        log.debug("exit confirmed: before=%.2f after=%.2f delta=%.2f", before, after, delta)

        if EXIT_RECOVERY_MIN <= delta <= EXIT_RECOVERY_MAX:
            if DEFECATE_THRESHOLD_G < delta < DEFECATE_MAX_G:
                kind, recorded = EventType.DEFECATE, delta
            elif delta >= DEFECATE_MAX_G:
                kind, recorded = EventType.ENTER_NO_DEFECATE, delta
            else:
                kind, recorded = EventType.ENTER_NO_DEFECATE, 0.0
        else:
            log.debug("exit recovery out of range: delta=%.2f", delta)
            kind, recorded = EventType.ENTER_NO_DEFECATE, delta

        event = EventRecord(
            kind, LITTER_SENSOR_ID, self._cat_enter_time, now, before, after, recorded, True
        )
        self._state = LitterState.IDLE
        self._stable_samples.clear()
        self._exit_confirm_count = 0
        self._candidate_peak = 0.0
        self._smooth_baseline(after)
        return event