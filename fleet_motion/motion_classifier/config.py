from dataclasses import dataclass


DEFAULT_MIN_MOVEMENT_THRESHOLD = 0.5
DEFAULT_VEHICLE_MOVEMENT_THRESHOLD = 3.0
DEFAULT_MILEAGE_LIMIT = 1000.0
DEFAULT_SAMPLING_INTERVAL_MS = 100


@dataclass(frozen=True)
class MotionConfig:
    # Classification thresholds (m/s², gravity removed)
    min_movement_threshold: float = DEFAULT_MIN_MOVEMENT_THRESHOLD      # ignore hand-held jitter below this
    vehicle_movement_threshold: float = DEFAULT_VEHICLE_MOVEMENT_THRESHOLD  # rolling average above → vehicle

    # Accumulation ceiling that ends the session
    mileage_limit: float = DEFAULT_MILEAGE_LIMIT

    # Gravity low-pass
    gravity_alpha: float = 0.8              # weight of previous gravity estimate

    # Rolling average
    buffer_size: int = 100                  # recent magnitudes kept for classification

    # Sampling
    sampling_interval_ms: int = DEFAULT_SAMPLING_INTERVAL_MS

    # Input sanitization
    max_sample_abs: float = 160.0           # clamp per-axis readings to ±16 g

    @property
    def limit_enabled(self) -> bool:
        """Non-positive thresholds mean the limit can never trigger."""
        return self.mileage_limit > 0 and self.vehicle_movement_threshold > 0

    @classmethod
    def from_thresholds(
        cls,
        min_movement_threshold: float = None,
        vehicle_movement_threshold: float = None,
        mileage_limit: float = None,
        **kwargs,
    ) -> "MotionConfig":
        """Build a config, substituting defaults for thresholds passed as None."""
        return cls(
            min_movement_threshold=(
                DEFAULT_MIN_MOVEMENT_THRESHOLD if min_movement_threshold is None
                else float(min_movement_threshold)
            ),
            vehicle_movement_threshold=(
                DEFAULT_VEHICLE_MOVEMENT_THRESHOLD if vehicle_movement_threshold is None
                else float(vehicle_movement_threshold)
            ),
            mileage_limit=(
                DEFAULT_MILEAGE_LIMIT if mileage_limit is None else float(mileage_limit)
            ),
            **kwargs,
        )
