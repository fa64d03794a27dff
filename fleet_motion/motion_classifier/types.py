from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RawSample:
    x: float
    y: float
    z: float
    timestamp_ms: int = 0


@dataclass(frozen=True)
class FinalReading:
    """Session result handed to the caller for persistence."""
    total_movement: float
    is_vehicle_movement: bool
    duration_ms: int
    limit_reached: bool = False


@dataclass(frozen=True)
class ClassificationEvent:
    linear_x: float
    linear_y: float
    linear_z: float
    magnitude: float
    total_movement: float
    is_vehicle_movement: bool
    is_monitoring: bool
    timestamp_ms: int = 0
    limit_reached: bool = False
    final_reading: Optional[FinalReading] = None  # set only on the terminal event

    def as_dict(self) -> dict:
        return {
            "timestamp_ms": self.timestamp_ms,
            "linear_x": self.linear_x,
            "linear_y": self.linear_y,
            "linear_z": self.linear_z,
            "magnitude": self.magnitude,
            "total_movement": self.total_movement,
            "is_vehicle_movement": self.is_vehicle_movement,
            "is_monitoring": self.is_monitoring,
            "limit_reached": self.limit_reached,
        }
