"""System configuration, runtime state and sensor reading records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from catcabinet.store import PreferenceStore

log = logging.getLogger(__name__)

FIRMWARE_VERSION = "1.0.0"
SERIAL_BAUD_RATE = 115200
DISPLAY_WIDTH = 320
DISPLAY_HEIGHT = 480
DISPLAY_ROTATION = 1
DISPLAY_UPDATE_INTERVAL = 100
AIR_QUALITY_THRESHOLD = 50
FAN_LIFETIME = 10000

CONFIG_NAMESPACE = "cat-cabinet"


@dataclass
class SystemConfig:
    """Calibration and control settings kept across restarts."""

    food_calibration_factor: float = 1.0
    litter_calibration_factor: float = 1.0
    water_calibration_factor: float = 1.0
    temperature_offset: float = 0.0
    humidity_offset: float = 0.0
    fan_auto_threshold: int = 25
    fan_max_speed: int = 255
    heater_threshold: int = 18


@dataclass
class SystemState:
    """Volatile state of the user interface and actuators."""

    current_page: int = 0
    last_touch_x: int = 0
    last_touch_y: int = 0
    touch_detected: bool = False
    temperature: float = 0.0
    humidity: float = 0.0
    weight: float = 0.0
    fan_running: bool = False
    heater_on: bool = False
    ionizer_on: bool = False
    fan_auto_mode: bool = True
    fan_manual_on: bool = False
    lights_on: bool = False
    ambient_light: bool = False
    main_light: bool = False


@dataclass
class SystemReadings:
    uptime: int = 0
    cpu_temperature: float = 0.0
    battery_level: float = 0.0
    fan_runtime: int = 0
    fan_health: int = 0


@dataclass
class EnvironmentReadings:
    weight: float = 0.0
    temperature: float = 0.0
    humidity: float = 0.0
    air_quality: int = 0
    pressure: float = 0.0
    pressure_diff: float = 0.0
    current: float = 0.0
    remaining_days: float = 0.0


@dataclass
class SupplyReadings:
    """Readings for a consumable: food, litter or water."""

    weight: float = 0.0
    current: float = 0.0
    remaining_days: float = 0.0


@dataclass
class CatReadings:
    weight: float = 0.0
    excretion_count: int = 0
    excretion_amount: float = 0.0


@dataclass
class SensorReadings:
    """All sensor readings, grouped by subsystem."""

    system: SystemReadings = field(default_factory=SystemReadings)
    environment: EnvironmentReadings = field(default_factory=EnvironmentReadings)
    food: SupplyReadings = field(default_factory=SupplyReadings)
    litter: SupplyReadings = field(default_factory=SupplyReadings)
    cat: CatReadings = field(default_factory=CatReadings)
    water: SupplyReadings = field(default_factory=SupplyReadings)


# Field name, store key, and converter.
_STORED_FIELDS = (
    ("food_calibration_factor", "foodCal", float),
    ("litter_calibration_factor", "litterCal", float),
    ("water_calibration_factor", "waterCal", float),
    ("temperature_offset", "tempOffset", float),
    ("humidity_offset", "humOffset", float),
    ("fan_auto_threshold", "fanThresh", int),
    ("fan_max_speed", "fanMax", int),
    ("heater_threshold", "heatThresh", int),
)


def load_configuration(store: PreferenceStore) -> SystemConfig:
    """Read the configuration, using defaults for any missing key."""
    defaults = SystemConfig()
    values = {
        name: convert(store.get(CONFIG_NAMESPACE, key, getattr(defaults, name)))
        for name, key, convert in _STORED_FIELDS
    }
    log.info("Configuration loaded")
    return SystemConfig(**values)


def save_configuration(store: PreferenceStore, config: SystemConfig) -> None:
    """Write every configuration field to the store."""
    for name, key, convert in _STORED_FIELDS:
        store.put(CONFIG_NAMESPACE, key, convert(getattr(config, name)))
    log.info("Configuration saved")