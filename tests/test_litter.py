import pytest

from catcabinet.events import EventType
from catcabinet.litter import LitterDetector, LitterState


class FakeClock:
    def __init__(self):
        self.now = 0

    def __call__(self):
        return self.now


def make(exit_weight=1020.0):
    clock = FakeClock()
    detector = LitterDetector(lambda: exit_weight, clock)
    return detector, clock


def feed(detector, clock, samples):
    events = []
    for t, w in samples:
        clock.now = t
        ev = detector.update(w)
        if ev is not None:
            events.append(ev)
    return events


ENTER = [(0, 1000.0), (1000, 1400.0), (3000, 1402.0), (6000, 1401.0)]


def test_stable_weight_stays_idle():
    detector, clock = make()
    events = feed(detector, clock, [(t * 500, 1000.0) for t in range(10)])
    assert events == []
    assert detector.state is LitterState.IDLE
    assert detector.baseline == pytest.approx(1000.0)


def test_cat_enter_confirmed():
    detector, clock = make()
    events = feed(detector, clock, ENTER)
    assert len(events) == 1
    ev = events[0]
    assert ev.event_type is EventType.CAT_ENTER
    assert ev.sensor_id == 2
    assert ev.weight_before == pytest.approx(1000.0)
    assert ev.weight_after == pytest.approx(1401.0)
    assert ev.delta_weight == pytest.approx(ev.weight_after - ev.weight_before)
    assert ev.start_time == 6000
    assert detector.state is LitterState.CONFIRMED


def test_dwell_too_short_keeps_collecting():
    detector, clock = make()
    events = feed(detector, clock, [(0, 1000.0), (1000, 1400.0), (1500, 1401.0), (2000, 1400.0)])
    assert events == []
    assert detector.state is LitterState.IN_PROGRESS


def test_unstable_samples_do_not_confirm():
    detector, clock = make()
    events = feed(detector, clock, [(0, 1000.0), (1000, 1400.0), (4000, 1450.0), (7000, 1400.0)])
    assert events == []
    assert detector.state is LitterState.IN_PROGRESS


def test_broken_candidate_returns_to_idle():
    detector, clock = make()
    feed(detector, clock, [(0, 1000.0), (1000, 1400.0)])
    assert detector.state is LitterState.IN_PROGRESS
    feed(detector, clock, [(2000, 1100.0)])
    assert detector.state is LitterState.IDLE


def test_exit_with_defecation():
    detector, clock = make(exit_weight=1020.0)
    feed(detector, clock, ENTER)
    events = feed(detector, clock, [(7000, 1020.0), (12000, 1020.0)])
    assert len(events) == 1
    ev = events[0]
    assert ev.event_type is EventType.DEFECATE
    assert ev.start_time == 6000
    assert ev.end_time == 12000
    assert ev.weight_after == pytest.approx(1020.0)
    assert ev.delta_weight == pytest.approx(ev.weight_after - ev.weight_before)
    assert detector.state is LitterState.IDLE


def test_exit_too_soon_is_ignored():
    detector, clock = make()
    feed(detector, clock, ENTER)
    events = feed(detector, clock, [(7000, 1020.0), (8000, 1020.0)])
    assert events == []
    assert detector.state is LitterState.CONFIRMED


def test_exit_interrupted_resets_count():
    detector, clock = make()
    feed(detector, clock, ENTER)
    events = feed(detector, clock, [(12000, 1020.0), (13000, 1400.0), (14000, 1020.0)])
    assert events == []
    assert detector.state is LitterState.CONFIRMED


def test_exit_without_defecation_records_zero():
    detector, clock = make(exit_weight=1001.0)
    feed(detector, clock, ENTER)
    events = feed(detector, clock, [(12000, 1001.0), (13000, 1001.0)])
    assert len(events) == 1
    assert events[0].event_type is EventType.ENTER_NO_DEFECATE
    assert events[0].delta_weight == 0.0


def test_exit_out_of_recovery_range_keeps_delta():
    detector, clock = make(exit_weight=1200.0)
    feed(detector, clock, ENTER)
    events = feed(detector, clock, [(12000, 1200.0), (13000, 1200.0)])
    assert len(events) == 1
    ev = events[0]
    assert ev.event_type is EventType.ENTER_NO_DEFECATE
    assert ev.delta_weight == pytest.approx(ev.weight_after - ev.weight_before)


def test_exit_uses_extra_readings_for_median():
    detector, clock = make(exit_weight=1030.0)
    feed(detector, clock, ENTER)
    events = feed(detector, clock, [(12000, 1010.0), (13000, 1010.0)])
    assert events[0].weight_after == pytest.approx(1030.0)


def test_baseline_moves_toward_exit_weight():
    detector, clock = make(exit_weight=1020.0)
    feed(detector, clock, ENTER)
    feed(detector, clock, [(12000, 1020.0), (13000, 1020.0)])
    assert 1000.0 < detector.baseline < 1020.0