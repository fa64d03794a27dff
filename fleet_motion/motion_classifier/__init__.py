"""Motion classifier: turns raw accelerometer samples into a monotonic movement
total and a single mileage-limit signal."""

from fleet_motion.motion_classifier.classifier import MotionClassifier
from fleet_motion.motion_classifier.config import MotionConfig
from fleet_motion.motion_classifier.types import ClassificationEvent, FinalReading, RawSample

__all__ = [
    "RawSample",
    "ClassificationEvent",
    "FinalReading",
    "MotionConfig",
    "MotionClassifier",
]
