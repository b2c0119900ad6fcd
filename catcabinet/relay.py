"""Relay bank with named outputs for lights and fresh-air power."""

from __future__ import annotations

import logging
from typing import Iterable

log = logging.getLogger(__name__)


class RelayController:
    """Tracks the on/off state of a set of relay pins, all off at start."""

    def __init__(
        self,
        pins: Iterable[int],
        main_pin: int,
        ambient_pin: int,
        fan_pin: int,
    ) -> None:
        self._pins = list(pins)
        self._states = [False] * len(self._pins)
        self.main_pin = main_pin
        self.ambient_pin = ambient_pin
        self.fan_pin = fan_pin
        log.info("Relay controller initialized with %d relays", len(self._pins))

    @property
    def pins(self) -> list[int]:
        return list(self._pins)

    def set_relay(self, index: int, state: bool) -> None:
        """Switch the relay at ``index``; indexes outside the bank are ignored."""
        if not 0 <= index < len(self._pins):
            return
        state = bool(state)
        if self._states[index] != state:
            log.info(
                "Relay %d (GPIO%d): %s", index, self._pins[index], "ON" if state else "OFF"
            )
        self._states[index] = state

    def set_relay_by_pin(self, pin: int, state: bool) -> None:
        """Switch the relay wired to ``pin``; raise KeyError for an unknown pin."""
        try:
            index = self._pins.index(pin)
        except ValueError:
            raise KeyError(f"relay pin {pin} not found") from None
        self.set_relay(index, state)

    def get_relay_state(self, index: int) -> bool:
        if not 0 <= index < len(self._pins):
            return False
        return self._states[index]

    def get_relay_state_by_pin(self, pin: int) -> bool:
        for relay_pin, state in zip(self._pins, self._states):
            if relay_pin == pin:
                return state
        return False

    def set_main_light(self, state: bool) -> None:
        self.set_relay_by_pin(self.main_pin, state)

    def get_main_light(self) -> bool:
        return self.get_relay_state_by_pin(self.main_pin)

    def set_ambient_light(self, state: bool) -> None:
        self.set_relay_by_pin(self.ambient_pin, state)

    def get_ambient_light(self) -> bool:
        return self.get_relay_state_by_pin(self.ambient_pin)

    def set_fresh_power(self, state: bool) -> None:
        self.set_relay_by_pin(self.fan_pin, state)

    def get_fresh_power(self) -> bool:
        return self.get_relay_state_by_pin(self.fan_pin)