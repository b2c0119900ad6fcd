"""Control logic for a smart cat cabinet: event detection, scales, relays, environment helpers and MQTT reporting."""

__version__ = "1.0.0"