# catcabinet

This package holds the control logic of a smart cat cabinet, in plain
Python. The cabinet has a food bowl, a water bowl and a litter box. Each
stands on a load cell. The cabinet also has lights and a fresh-air relay and
an air-quality sensor, and it reports over MQTT.

## Installing

```
pip install catcabinet
```

To install it with the test requirements:

```
pip install "catcabinet[test]"
```

## Modules

- `catcabinet.store`
  - `PreferenceStore(path=None)` is a key/value store grouped by namespace,
    with `get`, `put` and `remove`. When you give it a path, every change is
    written to that JSON file. Without a path, it keeps values in memory only.
  - `StorageManager` saves and loads tare values per sensor.
- `catcabinet.config`
  - The dataclasses `SystemConfig`, `SystemState` and `SensorReadings`.
    `SensorReadings` groups its readings into system, environment, food,
    litter, cat and water.
  - `load_configuration(store)` fills in defaults for any key that is missing.
  - `save_configuration(store, config)`.
- `catcabinet.helpers`
  - `format_time(seconds)` returns `HH:MM:SS`.
  - `map_float`.
  - `map_range` maps integers, and its division truncates toward zero.
  - `constrain`, `is_in_range` and `rgb_to_565`.
- `catcabinet.timer`
  - `Timer(interval, clock)` has `is_time()`, `elapsed()` and `reset()`.
- `catcabinet.relay`
  - `RelayController(pins, main_pin, ambient_pin, fan_pin)` sets relays by
    index or by pin. It has shortcuts for the main light, the ambient light
    and fresh-air power.
  - An unknown pin passed to `set_relay_by_pin` raises `KeyError`.
- `catcabinet.datalog`
  - `DataLogger` keeps a ring of ten `DailyData` records. It saves, loads and
    clears them in a `PreferenceStore`.
- `catcabinet.events`
  - `EventType`, `EventRecord` and `DailyStats`.
  - `EventHistory` is a bounded history that holds 32 events by default.
  - `median_of`.
- `catcabinet.bowl`
  - `BowlDetector` turns bowl weights into feeding or drinking events.
  - `update(weight)` returns an `EventRecord` when an event is confirmed.
- `catcabinet.litter`
  - `LitterDetector` detects a cat entering and leaving the litter box. On
    exit it records either a defecation or an entry with no defecation.
- `catcabinet.detector`
  - `EventDetector(read_weight, clock)` runs the food, water and litter
    detectors on channels 0, 1 and 2, and keeps the event history.
  - `take_food_event()`, `take_drink_event()` and `take_toilet_event()` each
    return a `Change(delta, total)` once, and then `None` until the next
    event.
  - `take_weight_event()` returns the weight of the cat alone.
- `catcabinet.weight`
  - `WeightSensor(load_cell, store)` drives any object with `is_ready`,
    `set_scale`, `tare`, `get_units` and `get_value`.
  - `init` raises `TimeoutError` when the cell does not become ready in time.
  - `calibrate` raises `CalibrationError` on a bad reading or factor.
  - It saves and loads its factor and empty weight for sensor ids 0 to 10.
  - `WeightManager` caches the latest reading of each sensor.
- `catcabinet.environment`
  - `absolute_humidity` and `pressure_diff`.
  - `AirQualityFilter` is a moving average of TVOC readings that returns an
    index from 0 to 100.
  - `BaselineKeeper` restores the gas sensor baseline, and saves it when at
    least twelve hours have passed since the last save.
- `catcabinet.mqtt`
  - `MqttManager` publishes data, status, events, acknowledgements, daily
    reports, curve history and device info under
    `cat-cabinet/<device id>/...`. It keeps unsent events for retry.
  - `on_message` and `handle_command` handle incoming JSON commands. Values
    that commands set for a user interface go into `MqttManager.ui`, which is
    a `UiUpdates`.
  - `PahoClient(host, port)` connects the manager to a broker through
    paho-mqtt.
- `catcabinet.state`
  - `StateManager` handles the daily reset, fan health, fan control through
    the relays, and publishing of litter-box events.

## Example

```python
import itertools

from catcabinet.detector import EventDetector

ticks = itertools.count(0, 500)  # fake clock: 500 ms later on each call
weights = {0: 500.0, 1: 800.0, 2: 3000.0}
detector = EventDetector(read_weight=lambda index: weights[index],
                         clock=lambda: next(ticks))

detector.update()
food = detector.take_food_event()
if food is not None:
    print("ate", food.delta, "g")
```

Publishing over MQTT:

```python
from catcabinet.config import SensorReadings, SystemState
from catcabinet.mqtt import MqttManager, PahoClient

manager = MqttManager(PahoClient("localhost", 1883), device_id="cabinet-01",
                      auth_token="token", state=SystemState(),
                      readings=SensorReadings())
manager.publish_status()
```

## Clocks

The detectors, `Timer`, `WeightSensor.init`, `BaselineKeeper` and
`StateManager` take a `clock` callable that returns milliseconds. The default
is a monotonic clock. `MqttManager` takes a clock that returns seconds and
uses it for message timestamps. The default is `time.time`.

## What it does not do

The package contains logic only. It has no drivers for load cells, the
temperature or gas sensors, or relay pins. You pass in objects or values
that stand for them. It has no display or touch screen and no Wi-Fi setup.
There is no command-line program and no main loop that ties the parts
together.

## Running the tests

```
pytest
```