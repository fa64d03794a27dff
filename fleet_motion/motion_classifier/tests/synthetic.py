"""Synthetic accelerometer streams for unit and integration tests."""

import numpy as np

GRAVITY = 9.81
FS = 10.0  # 100 ms sampling interval


def _time_axis(n: int, fs: float = FS) -> np.ndarray:
    return (np.arange(n) * 1000.0 / fs).astype(np.int64)


def make_stationary(n: int = 1000, noise_std: float = 0.02, seed: int = 0) -> np.ndarray:
    """Phone lying flat: gravity on z plus tiny sensor noise.

    Gravity itself produces a start-up transient while the filter estimate
    climbs from zero, so callers that want pure noise should warm up first.
    """
    rng = np.random.default_rng(seed)
    samples = np.zeros((n, 3))
    samples[:, 2] = GRAVITY
    samples += rng.normal(0, noise_std, size=(n, 3))
    return samples


def make_zero_gravity_noise(n: int = 1000, amp: float = 0.1, seed: int = 0) -> np.ndarray:
    """Small zero-mean jitter with no gravity: magnitudes stay well below 0.5."""
    rng = np.random.default_rng(seed)
    return rng.uniform(-amp, amp, size=(n, 3))


def make_alternating(n: int = 50, amplitude: float = 5.0) -> np.ndarray:
    """x flips sign every sample; settles into a steady linear magnitude.

    With alpha=0.8 the gravity estimate oscillates around ±amplitude/9, so the
    steady-state linear magnitude is amplitude * 8/9. Every magnitude, the
    first included, is at least 0.8 * amplitude.
    """
    samples = np.zeros((n, 3))
    samples[:, 0] = amplitude * np.where(np.arange(n) % 2 == 0, 1.0, -1.0)
    return samples


def make_vehicle_ride(duration_s: float = 120.0, fs: float = FS,
                      vibration_amp: float = 6.0, seed: int = 3) -> np.ndarray:
    """Gravity on z plus strong broadband road vibration on all axes."""
    n = int(duration_s * fs)
    rng = np.random.default_rng(seed)
    samples = np.zeros((n, 3))
    samples[:, 2] = GRAVITY
    samples += rng.normal(0, vibration_amp, size=(n, 3))
    return samples


def make_handheld_walk(duration_s: float = 60.0, fs: float = FS, seed: int = 5) -> np.ndarray:
    """Gravity plus a moderate ~2 Hz step bounce. Above the noise floor, below vehicle."""
    n = int(duration_s * fs)
    t = np.arange(n) / fs
    rng = np.random.default_rng(seed)
    samples = np.zeros((n, 3))
    samples[:, 2] = GRAVITY + 1.0 * np.sin(2 * np.pi * 2.0 * t)
    samples[:, 0] = 0.4 * np.sin(2 * np.pi * 1.0 * t)
    samples += rng.normal(0, 0.05, size=(n, 3))
    return samples


def timestamps(n: int, fs: float = FS) -> np.ndarray:
    return _time_axis(n, fs)
