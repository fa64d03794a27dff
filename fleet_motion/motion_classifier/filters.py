"""Gravity low-pass filter: per-sample state for live sessions, vectorized for logs."""

import math

import numpy as np
from scipy.signal import lfilter


def clamp_axis(value: float, fallback: float, limit: float) -> tuple:
    """Return (sanitized value, was_rejected).

    Non-finite readings are replaced by `fallback` (the current gravity estimate
    on that axis, so they contribute no linear acceleration). Finite readings are
    clamped to ±limit.
    """
    if not math.isfinite(value):
        return fallback, True
    if limit > 0:
        value = max(-limit, min(limit, value))
    return value, False


class GravityFilter:
    """Exponential smoothing of the gravity component of an accelerometer.

    gravity' = alpha * gravity + (1 - alpha) * raw
    linear   = raw - gravity'
    """

    def __init__(self, alpha: float = 0.8):
        self.alpha = alpha
        self.gx = 0.0
        self.gy = 0.0
        self.gz = 0.0

    def reset(self):
        self.gx = self.gy = self.gz = 0.0

    @property
    def gravity(self) -> tuple:
        return self.gx, self.gy, self.gz

    def update(self, x: float, y: float, z: float) -> tuple:
        a = self.alpha
        self.gx = a * self.gx + (1.0 - a) * x
        self.gy = a * self.gy + (1.0 - a) * y
        self.gz = a * self.gz + (1.0 - a) * z
        return x - self.gx, y - self.gy, z - self.gz


def gravity_lowpass(samples: np.ndarray, alpha: float = 0.8) -> np.ndarray:
    """Gravity track for an (n, 3) array of raw samples, starting from zero.

    Same recurrence as GravityFilter, expressed as a first-order IIR filter.
    """
    samples = np.asarray(samples, dtype=float)
    if samples.ndim != 2 or samples.shape[1] != 3:
        raise ValueError(f"Expected an (n, 3) array, got shape {samples.shape}")
    if len(samples) == 0:
        return np.zeros((0, 3))
    return lfilter([1.0 - alpha], [1.0, -alpha], samples, axis=0)


def linear_acceleration(samples: np.ndarray, alpha: float = 0.8) -> np.ndarray:
    samples = np.asarray(samples, dtype=float)
    return samples - gravity_lowpass(samples, alpha)


def linear_magnitude(samples: np.ndarray, alpha: float = 0.8) -> np.ndarray:
    """Euclidean norm of the gravity-removed acceleration, one value per sample."""
    return np.linalg.norm(linear_acceleration(samples, alpha), axis=1)


def rolling_mean(values: np.ndarray, window: int = 100) -> np.ndarray:
    """Trailing mean over the last `window` values.

    The first window-1 outputs average over however many values exist so far,
    which is what the classifier's bounded buffer does at session start.
    """
    values = np.asarray(values, dtype=float)
    if len(values) == 0:
        return np.zeros(0)
    csum = np.cumsum(np.insert(values, 0, 0.0))
    idx = np.arange(1, len(values) + 1)
    lo = np.maximum(idx - window, 0)
    return (csum[idx] - csum[lo]) / (idx - lo)
