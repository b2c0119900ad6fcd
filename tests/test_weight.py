import itertools

import pytest

from catcabinet.store import PreferenceStore
from catcabinet.weight import (
    DEFAULT_CALIBRATION_FACTOR,
    CalibrationError,
    WeightManager,
    WeightSensor,
)


class FakeCell:
    def __init__(self, raw=0.0, ready=True):
        self.raw = raw
        self.offset = 0.0
        self.scale = 1.0
        self.ready = ready

    def is_ready(self):
        return self.ready

    def set_scale(self, scale):
        self.scale = scale

    def tare(self):
        self.offset = self.raw

    def get_units(self, times):
        return (self.raw - self.offset) / self.scale

    def get_value(self, times):
        return self.raw - self.offset


def make_sensor(cell=None, store=None):
    sensor = WeightSensor(cell or FakeCell(), store or PreferenceStore())
    sensor.poll_interval = 0
    sensor.tare_settle = 0
    sensor.calibrate_settle = 0
    return sensor


def ready_sensor(store=None):
    cell = FakeCell()
    sensor = make_sensor(cell, store)
    sensor.init(1000, itertools.count().__next__)
    return cell, sensor


def test_default_factor_and_uninitialized_reading():
    sensor = make_sensor(FakeCell(raw=5000))
    assert sensor.calibration_factor == DEFAULT_CALIBRATION_FACTOR
    assert sensor.read_weight() == 0.0
    assert not sensor.available


def test_init_applies_scale_and_tares():
    cell = FakeCell(raw=1234)
    sensor = make_sensor(cell)
    sensor.init(1000, itertools.count().__next__)
    assert sensor.available
    assert cell.scale == DEFAULT_CALIBRATION_FACTOR
    assert cell.offset == 1234
    assert sensor.read_weight() == 0.0


def test_init_times_out():
    sensor = make_sensor(FakeCell(ready=False))
    with pytest.raises(TimeoutError):
        sensor.init(1000, itertools.count(0, 100).__next__)
    assert not sensor.available


def test_reading_is_scaled_and_never_negative():
    cell, sensor = ready_sensor()
    cell.raw = DEFAULT_CALIBRATION_FACTOR * 50
    assert sensor.read_weight() == pytest.approx(50.0)
    cell.raw = -DEFAULT_CALIBRATION_FACTOR * 5
    assert sensor.read_weight() == 0.0


def test_calibrate_computes_factor():
    cell, sensor = ready_sensor()
    cell.raw = 22300
    factor = sensor.calibrate(10.0)
    assert factor == pytest.approx(2230.0)
    assert sensor.calibration_factor == pytest.approx(2230.0)
    assert cell.scale == pytest.approx(2230.0)


def test_calibrate_errors():
    with pytest.raises(CalibrationError):
        make_sensor().calibrate(10.0)
    cell, sensor = ready_sensor()
    with pytest.raises(ValueError):
        sensor.calibrate(0.0)
    with pytest.raises(CalibrationError):
        sensor.calibrate(10.0)
    assert sensor.calibration_factor == DEFAULT_CALIBRATION_FACTOR
    cell.raw = 5
    with pytest.raises(CalibrationError):
        sensor.calibrate(100.0)
    assert cell.scale == DEFAULT_CALIBRATION_FACTOR


def test_set_calibration_factor():
    cell, sensor = ready_sensor()
    sensor.set_calibration_factor(500.0)
    assert cell.scale == 500.0
    with pytest.raises(ValueError):
        sensor.set_calibration_factor(-1.0)
    assert sensor.calibration_factor == 500.0


def test_calibration_round_trip(tmp_path):
    path = tmp_path / "prefs.json"
    _, sensor = ready_sensor(PreferenceStore(path))
    sensor.set_calibration_factor(1800.0)
    sensor.save_calibration(1)

    other = make_sensor(FakeCell(), PreferenceStore(path))
    other.load_calibration(1)
    assert other.calibration_factor == 1800.0
    assert other.empty_weight == sensor.empty_weight


def test_load_calibration_without_data_keeps_defaults():
    sensor = make_sensor()
    sensor.load_calibration(2)
    assert sensor.calibration_factor == DEFAULT_CALIBRATION_FACTOR
    assert sensor.load_tare(2) is False


def test_tare_round_trip():
    store = PreferenceStore()
    store.put("scale", "tare0", 12.5)
    sensor = make_sensor(store=store)
    assert sensor.load_tare(0) is True
    assert sensor.empty_weight == 12.5
    sensor.save_tare(3)
    assert store.get("scale", "tare3") == 12.5


def test_sensor_id_out_of_range():
    sensor = make_sensor()
    with pytest.raises(ValueError):
        sensor.save_calibration(11)
    with pytest.raises(ValueError):
        sensor.load_tare(11)


def test_manager_caches_readings():
    cells = [FakeCell(), FakeCell(), FakeCell()]
    sensors = [make_sensor(c) for c in cells]
    for s in sensors:
        s.init(1000, itertools.count().__next__)
    manager = WeightManager(sensors)
    assert manager.net_weight(0) == 0.0
    cells[2].raw = DEFAULT_CALIBRATION_FACTOR * 40
    assert manager.net_weight(2) == 0.0
    manager.update()
    assert manager.net_weight(2) == pytest.approx(40.0)
    assert manager.net_weight(1) == 0.0