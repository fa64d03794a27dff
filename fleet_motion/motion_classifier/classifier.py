"""Stateful motion classifier: gravity removal, vehicle/human classification,
movement accumulation and the one-shot mileage-limit signal.

One instance owns the state of one monitoring session. It does no I/O and is
not thread-safe; callers that receive samples on a callback thread must
serialize calls (see fleet_motion.session.MonitoringSession).
"""

import logging
import math
import time
from collections import deque
from typing import Callable, Optional

from fleet_motion.motion_classifier.config import MotionConfig
from fleet_motion.motion_classifier.filters import GravityFilter, clamp_axis
from fleet_motion.motion_classifier.types import ClassificationEvent, FinalReading, RawSample

logger = logging.getLogger(__name__)


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class MotionClassifier:
    def __init__(self, clock: Callable[[], int] = None):
        self._clock = clock or monotonic_ms
        self.config = MotionConfig()
        self._gravity = GravityFilter(self.config.gravity_alpha)
        self._buffer = deque(maxlen=self.config.buffer_size)

        self.total_movement = 0.0
        self.is_vehicle_movement = False
        self.is_monitoring = False
        self.limit_reached = False
        self.rejected_samples = 0

        self._started_at_ms: Optional[int] = None
        self._duration_ms = 0

    # ── Read-only views ───────────────────────────────────────────────────

    @property
    def mileage_limit(self) -> float:
        return self.config.mileage_limit

    @property
    def gravity(self) -> tuple:
        return self._gravity.gravity

    @property
    def buffer(self) -> tuple:
        return tuple(self._buffer)

    @property
    def rolling_average(self) -> float:
        if not self._buffer:
            return 0.0
        return sum(self._buffer) / len(self._buffer)

    @property
    def duration_ms(self) -> int:
        if self.is_monitoring and self._started_at_ms is not None:
            return max(0, self._clock() - self._started_at_ms)
        return self._duration_ms

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def start(self, seed_total: float = 0.0, config: MotionConfig = None) -> None:
        """Begin a session seeded with the last durable total.

        A start while already monitoring is ignored: the running gravity estimate
        and total are kept.
        """
        if self.is_monitoring:
            logger.warning("start() while already monitoring; ignored")
            return

        self.config = config if config is not None else MotionConfig()
        self._gravity = GravityFilter(self.config.gravity_alpha)
        self._buffer = deque(maxlen=max(1, self.config.buffer_size))

        self.total_movement = float(seed_total)
        self.is_vehicle_movement = False
        self.limit_reached = False
        self.rejected_samples = 0
        self._started_at_ms = self._clock()
        self._duration_ms = 0
        self.is_monitoring = True
        logger.debug(
            "Monitoring started: seed=%.3f min=%.3f vehicle=%.3f limit=%.3f",
            self.total_movement, self.config.min_movement_threshold,
            self.config.vehicle_movement_threshold, self.config.mileage_limit,
        )

    def stop(self) -> FinalReading:
        """End the session and return the reading to persist. Idempotent."""
        if self.is_monitoring:
            self._duration_ms = self.duration_ms
            self.is_monitoring = False
            logger.debug("Monitoring stopped: total=%.3f duration=%dms",
                         self.total_movement, self._duration_ms)
        return FinalReading(
            total_movement=self.total_movement,
            is_vehicle_movement=self.is_vehicle_movement,
            duration_ms=self._duration_ms,
            limit_reached=self.limit_reached,
        )

    def reset(self) -> None:
        """Zero the accumulator and clear the limit flag. Does not change the
        monitoring state."""
        self.total_movement = 0.0
        self._buffer.clear()
        self.is_vehicle_movement = False
        self.limit_reached = False

    # ── Sample path ───────────────────────────────────────────────────────

    def ingest(self, sample: RawSample) -> Optional[ClassificationEvent]:
        """Process one sample. Returns None when no session is active."""
        if not self.is_monitoring:
            return None

        cfg = self.config
        gx, gy, gz = self._gravity.gravity
        x, bad_x = clamp_axis(sample.x, gx, cfg.max_sample_abs)
        y, bad_y = clamp_axis(sample.y, gy, cfg.max_sample_abs)
        z, bad_z = clamp_axis(sample.z, gz, cfg.max_sample_abs)
        if bad_x or bad_y or bad_z:
            self.rejected_samples += 1

        # Gravity removal
        lx, ly, lz = self._gravity.update(x, y, z)
        magnitude = math.sqrt(lx * lx + ly * ly + lz * lz)

        self._buffer.append(magnitude)

        # Accumulate only above the noise floor
        if magnitude > max(cfg.min_movement_threshold, 0.0):
            self.total_movement += magnitude

        self.is_vehicle_movement = self.rolling_average > cfg.vehicle_movement_threshold

        final_reading = None
        if (cfg.limit_enabled and self.is_vehicle_movement
                and self.total_movement >= cfg.mileage_limit):
            self.limit_reached = True
            logger.info("Mileage limit reached: total=%.3f limit=%.3f",
                        self.total_movement, cfg.mileage_limit)
            final_reading = self.stop()

        return ClassificationEvent(
            linear_x=lx,
            linear_y=ly,
            linear_z=lz,
            magnitude=magnitude,
            total_movement=self.total_movement,
            is_vehicle_movement=self.is_vehicle_movement,
            is_monitoring=self.is_monitoring,
            timestamp_ms=sample.timestamp_ms,
            limit_reached=final_reading is not None,
            final_reading=final_reading,
        )

    def ingest_xyz(self, x: float, y: float, z: float,
                   timestamp_ms: int = 0) -> Optional[ClassificationEvent]:
        return self.ingest(RawSample(x, y, z, timestamp_ms))
