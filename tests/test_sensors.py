import pytest

from pomodoro_tracker.errors import SensorUnavailable
from pomodoro_tracker.sensors import OrientationSensor, ShakeConfig, ShakeDetector


class FakeClock:
    def __init__(self, start: int = 10_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


STILL = (0.0, 0.0, 9.8)
VIOLENT = (30.0, 0.0, 9.8)


def test_sustained_shake_emits_once_per_interval(qtbot):
    clock = FakeClock()
    detector = ShakeDetector(clock=clock)
    shakes = []
    detector.shaken.connect(lambda: shakes.append(clock.now))

    # 0ms, 100ms: movement not yet sustained long enough
    detector.feed(*VIOLENT)
    clock.advance(100)
    detector.feed(*VIOLENT)
    assert shakes == []

    clock.advance(100)
    detector.feed(*VIOLENT)
    assert len(shakes) == 1

    # Inside the debounce interval
    clock.advance(100)
    detector.feed(*VIOLENT)
    assert len(shakes) == 1

    clock.advance(800)
    detector.feed(*VIOLENT)
    assert len(shakes) == 2


def test_brief_spike_is_not_a_shake(qtbot):
    clock = FakeClock()
    detector = ShakeDetector(clock=clock)
    shakes = []
    detector.shaken.connect(lambda: shakes.append(1))
    for _ in range(10):
        detector.feed(*VIOLENT)
        clock.advance(100)
        detector.feed(*STILL)
        clock.advance(100)
    assert shakes == []


def test_gentle_motion_is_ignored(qtbot):
    clock = FakeClock()
    detector = ShakeDetector(ShakeConfig(threshold=14.0), clock=clock)
    shakes = []
    detector.shaken.connect(lambda: shakes.append(1))
    for _ in range(20):
        detector.feed(5.0, 5.0, 9.8)
        clock.advance(100)
    assert shakes == []


def test_unavailable_detector_ignores_samples(qtbot):
    clock = FakeClock()
    detector = ShakeDetector(available=False, clock=clock)
    shakes = []
    detector.shaken.connect(lambda: shakes.append(1))
    for _ in range(5):
        detector.feed(*VIOLENT)
        clock.advance(200)
    assert not detector.available
    assert shakes == []


def test_orientation_reports_face_down_from_fresh_sample(qtbot):
    clock = FakeClock()
    sensor = OrientationSensor(clock=clock)
    assert sensor.is_face_down() is False

    sensor.feed(0.0, 0.0, -9.6)
    clock.advance(200)
    assert sensor.is_face_down() is True

    sensor.feed(0.0, 0.0, 9.6)
    assert sensor.is_face_down() is False


def test_orientation_treats_stale_sample_as_not_face_down(qtbot):
    clock = FakeClock()
    sensor = OrientationSensor(max_age_ms=500, clock=clock)
    sensor.feed(0.0, 0.0, -9.6)
    clock.advance(600)
    assert sensor.is_face_down() is False


def test_orientation_without_hardware_raises(qtbot):
    sensor = OrientationSensor(available=False)
    with pytest.raises(SensorUnavailable):
        sensor.is_face_down()
