from __future__ import annotations

"""Accelerometer-backed sensor sources.

Samples are pushed in with ``feed(x, y, z)`` (m/s², device axes) by whatever
platform bridge owns the hardware. On machines without an accelerometer the
sources are built with ``available=False`` and the policy adapters report them
as unavailable instead of subscribing.

``ShakeDetector`` turns samples into debounced ``shaken`` signals.
``OrientationSensor`` answers "is the device lying face-down right now?"
from the most recent sample, treating a stale sample as "no".
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from .errors import SensorUnavailable

MonotonicMs = Callable[[], int]

GRAVITY_EARTH = 9.80665
FACE_DOWN_Z = -7.0

_log = logging.getLogger(__name__)


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


@dataclass(slots=True)
class ShakeConfig:
    threshold: float = 14.0  # g-force above gravity, m/s²
    min_interval_ms: int = 800  # between two accepted shakes
    count_reset_ms: int = 1500
    min_count: int = 1
    min_duration_ms: int = 150  # sustained movement before a shake counts


class ShakeDetector(QObject):
    shaken = pyqtSignal()

    def __init__(
        self,
        config: ShakeConfig | None = None,
        *,
        available: bool = True,
        clock: Optional[MonotonicMs] = None,
    ):
        super().__init__()
        self._config = config or ShakeConfig()
        self._available = available
        self._clock: MonotonicMs = clock or _monotonic_ms
        self._last_shake = 0
        self._count = 0
        self._last_reset = 0
        self._shake_start = 0
        self._shaking = False

    @property
    def available(self) -> bool:
        return self._available

    def feed(self, x: float, y: float, z: float) -> None:
        if not self._available:
            return
        cfg = self._config
        now = self._clock()
        g_force = math.sqrt(x * x + y * y + z * z) - GRAVITY_EARTH

        if now - self._last_reset > cfg.count_reset_ms:
            self._count = 0
            self._last_reset = now

        if g_force <= cfg.threshold:
            self._shaking = False
            return

        if not self._shaking:
            self._shake_start = now
            self._shaking = True
        duration = now - self._shake_start
        if duration < cfg.min_duration_ms or now - self._last_shake <= cfg.min_interval_ms:
            return

        self._count += 1
        self._last_shake = now
        self._last_reset = now
        _log.debug("shake movement", extra={"_json_count": self._count, "_json_g": round(g_force, 2)})
        if self._count >= cfg.min_count:
            self._count = 0
            self.shaken.emit()


class OrientationSensor(QObject):
    def __init__(
        self,
        *,
        available: bool = True,
        max_age_ms: int = 500,
        clock: Optional[MonotonicMs] = None,
    ):
        super().__init__()
        self._available = available
        self._max_age_ms = max_age_ms
        self._clock: MonotonicMs = clock or _monotonic_ms
        self._last_z: float | None = None
        self._last_at = 0

    @property
    def available(self) -> bool:
        return self._available

    def feed(self, x: float, y: float, z: float) -> None:
        if not self._available:
            return
        self._last_z = z
        self._last_at = self._clock()

    def is_face_down(self) -> bool:
        if not self._available:
            raise SensorUnavailable("no accelerometer")
        if self._last_z is None or self._clock() - self._last_at > self._max_age_ms:
            return False
        return self._last_z < FACE_DOWN_Z


__all__ = ["ShakeDetector", "ShakeConfig", "OrientationSensor", "GRAVITY_EARTH", "FACE_DOWN_Z"]
