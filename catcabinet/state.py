"""Periodic upkeep: daily reset, fan health, fan control and litter reports."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Protocol

from catcabinet.config import (
    AIR_QUALITY_THRESHOLD,
    FAN_LIFETIME,
    SensorReadings,
    SystemState,
)
from catcabinet.events import EventRecord, EventType
from catcabinet.helpers import constrain
from catcabinet.relay import RelayController
from catcabinet.timer import monotonic_ms

log = logging.getLogger(__name__)

DAY_MS = 86_400_000
FAN_RUNTIME_TICK_MS = 1000
LITTER_SENSOR_ID = 2

_LITTER_EVENTS = {
    EventType.CAT_ENTER,
    EventType.CAT_EXIT,
    EventType.DEFECATE,
    EventType.ENTER_NO_DEFECATE,
    EventType.LITTER_CHANGE,
}


class EventSource(Protocol):
    def last_event(self) -> EventRecord | None: ...


class EventPublisher(Protocol):
    @property
    def connected(self) -> bool: ...

    def publish_event(self, event_type: str, data: str) -> Any: ...


class StateManager:
    """Keeps state and readings up to date and drives the fan relay."""

    def __init__(
        self,
        state: SystemState,
        readings: SensorReadings,
        detector: EventSource,
        mqtt: EventPublisher,
        relays: RelayController,
        clock: Callable[[], int] = monotonic_ms,
    ) -> None:
        self._state = state
        self._readings = readings
        self._detector = detector
        self._mqtt = mqtt
        self._relays = relays
        self._clock = clock
        self._last_daily_reset = clock()
        self._last_fan_update = 0

    def update(self) -> None:
        self.check_daily_reset()
        self.update_fan_health()
        self.process_litter_events()
        self.update_fan_state()

    def check_daily_reset(self) -> bool:
        """Reset daily figures once a day has passed; return whether it did."""
        now = self._clock()
        if now - self._last_daily_reset >= DAY_MS:
            self.reset_daily_data()
            self._last_daily_reset = now
            return True
        return False

    def reset_daily_data(self) -> None:
        self._readings.cat.excretion_count = 0
        self._readings.cat.excretion_amount = 0.0
        log.info("Daily data reset")

    def update_fan_health(self) -> None:
        """Estimate fan health from pressure difference and runtime."""
        env = self._readings.environment
        system = self._readings.system
        if env.pressure_diff > 100:
            return
        pressure_factor = 1.0 - env.pressure_diff / 100.0
        time_factor = 1.0 - system.fan_runtime / FAN_LIFETIME
        health = int((pressure_factor * 0.7 + time_factor * 0.3) * 100)
        system.fan_health = constrain(health, 0, 100)

    def process_litter_events(self) -> bool:
        """Publish the latest litter-box event; return whether one was sent."""
        event = self._detector.last_event()
        if event is None or event.sensor_id != LITTER_SENSOR_ID:
            return False
        if event.event_type not in _LITTER_EVENTS:
            return False
        doc = {
            "event_type": event.event_type.value,
            "cat_weight": self._readings.cat.weight,
            "excretion_count": self._readings.cat.excretion_count,
            "timestamp": self._clock(),
        }
        if not self._mqtt.connected:
            return False
        self._mqtt.publish_event("litter_event", json.dumps(doc, separators=(",", ":")))
        return True

    def handle_command(self, command: dict[str, Any]) -> None:
        """Apply light and fan settings from a command."""
        state = self._state
        if "ambient_light" in command:
            state.ambient_light = bool(command["ambient_light"])
            self._relays.set_ambient_light(state.ambient_light)
            log.info("Ambient light: %s", "ON" if state.ambient_light else "OFF")
        if "main_light" in command:
            state.main_light = bool(command["main_light"])
            self._relays.set_main_light(state.main_light)
            log.info("Main light: %s", "ON" if state.main_light else "OFF")
        if "fan_mode" in command:
            mode = command["fan_mode"] if isinstance(command["fan_mode"], str) else ""
            if mode == "auto":
                state.fan_auto_mode = True
                state.fan_manual_on = False
            elif mode == "manual":
                state.fan_auto_mode = False
                if "fan_state" in command:
                    state.fan_manual_on = bool(command["fan_state"])
            self.update_fan_state()

    def update_fan_state(self) -> bool:
        """Switch the fresh-air relay and count runtime; return whether it runs."""
        if self._state.fan_auto_mode:
            should_run = self._readings.environment.air_quality > AIR_QUALITY_THRESHOLD
        else:
            should_run = self._state.fan_manual_on
        self._relays.set_fresh_power(should_run)
        now = self._clock()
        if should_run and now - self._last_fan_update >= FAN_RUNTIME_TICK_MS:
            self._readings.system.fan_runtime += 1
            self._last_fan_update = now
        return should_run