"""Threshold resolution for monitoring sessions.

Values come from a remotely delivered key/value set (a dict, a JSON file or
environment variables). Missing or non-positive values fall back to defaults.
"""

import json
import logging
import os

from fleet_motion.motion_classifier.config import (
    DEFAULT_MIN_MOVEMENT_THRESHOLD,
    DEFAULT_SAMPLING_INTERVAL_MS,
    DEFAULT_VEHICLE_MOVEMENT_THRESHOLD,
    MotionConfig,
)

logger = logging.getLogger(__name__)

KEY_MIN_THRESHOLD = "min_threshold"
KEY_CRASH_THRESHOLD = "crash_threshold"    # vehicle-movement threshold
KEY_SAMPLING_INTERVAL = "sampling_interval"

ENV_PREFIX = "FLEET_MOTION_"


def _positive_or(value, default, cast=float):
    try:
        value = cast(value)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


class ThresholdProvider:
    def __init__(self, values: dict = None):
        self._values = dict(values or {})

    @classmethod
    def from_json(cls, path: str) -> "ThresholdProvider":
        with open(path) as f:
            values = json.load(f)
        if not isinstance(values, dict):
            raise ValueError(f"Expected a JSON object in {path}")
        return cls(values)

    @classmethod
    def from_env(cls, environ: dict = None) -> "ThresholdProvider":
        environ = os.environ if environ is None else environ
        values = {}
        for key in (KEY_MIN_THRESHOLD, KEY_CRASH_THRESHOLD, KEY_SAMPLING_INTERVAL):
            env_key = ENV_PREFIX + key.upper()
            if env_key in environ:
                values[key] = environ[env_key]
        return cls(values)

    def update(self, values: dict):
        """Apply a fresh fetch. Takes effect at the next session start."""
        self._values.update(values)

    def min_threshold(self) -> float:
        return _positive_or(self._values.get(KEY_MIN_THRESHOLD),
                            DEFAULT_MIN_MOVEMENT_THRESHOLD)

    def vehicle_threshold(self) -> float:
        return _positive_or(self._values.get(KEY_CRASH_THRESHOLD),
                            DEFAULT_VEHICLE_MOVEMENT_THRESHOLD)

    def sampling_interval_ms(self) -> int:
        return _positive_or(self._values.get(KEY_SAMPLING_INTERVAL),
                            DEFAULT_SAMPLING_INTERVAL_MS, cast=int)

    def motion_config(self, mileage_limit: float = None) -> MotionConfig:
        cfg = MotionConfig.from_thresholds(
            min_movement_threshold=self.min_threshold(),
            vehicle_movement_threshold=self.vehicle_threshold(),
            mileage_limit=mileage_limit,
            sampling_interval_ms=self.sampling_interval_ms(),
        )
        logger.debug("Resolved thresholds: min=%.3f vehicle=%.3f interval=%dms",
                     cfg.min_movement_threshold, cfg.vehicle_movement_threshold,
                     cfg.sampling_interval_ms)
        return cfg
