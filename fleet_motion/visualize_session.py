#!/usr/bin/env python3
"""Plot a recorded accelerometer session as the classifier sees it.

Four panels: raw axes, gravity-removed magnitude against the noise floor,
rolling average against the vehicle threshold, and the cumulative movement
total against the mileage limit.

Usage:
  python -m fleet_motion.visualize_session samples.csv -o session.png
  python -m fleet_motion.visualize_session samples.csv.zst -o session.png --seed 400
"""

import argparse
import sys

import matplotlib.pyplot as plt
import numpy as np

from fleet_motion.errors import SampleLogError
from fleet_motion.motion_classifier.config import MotionConfig
from fleet_motion.motion_classifier.filters import linear_magnitude, rolling_mean


def session_traces(df, cfg: MotionConfig, seed_total: float = 0.0) -> dict:
    """Vectorized per-sample traces mirroring the classifier.

    Non-finite readings are zeroed here rather than held at the gravity
    estimate, so traces around rejected samples can differ slightly.
    """
    raw = df[["x", "y", "z"]].to_numpy(dtype=float)
    raw = np.nan_to_num(raw, nan=0.0, posinf=cfg.max_sample_abs, neginf=-cfg.max_sample_abs)
    raw = np.clip(raw, -cfg.max_sample_abs, cfg.max_sample_abs)

    magnitude = linear_magnitude(raw, cfg.gravity_alpha)
    average = rolling_mean(magnitude, cfg.buffer_size)
    counted = np.where(magnitude > max(cfg.min_movement_threshold, 0.0), magnitude, 0.0)
    total = seed_total + np.cumsum(counted)
    vehicle = average > cfg.vehicle_movement_threshold

    limit_idx = None
    if cfg.limit_enabled:
        hits = np.flatnonzero(vehicle & (total >= cfg.mileage_limit))
        if len(hits):
            limit_idx = int(hits[0])

    return {
        "t_s": (df["timestamp_ms"].to_numpy() - df["timestamp_ms"].iloc[0]) / 1000.0,
        "raw": raw,
        "magnitude": magnitude,
        "average": average,
        "total": total,
        "vehicle": vehicle,
        "limit_idx": limit_idx,
    }


def plot_session(df, output_path, cfg: MotionConfig, seed_total: float = 0.0):
    tr = session_traces(df, cfg, seed_total)
    t = tr["t_s"]

    fig, axes = plt.subplots(4, 1, figsize=(14, 12), sharex=True)
    fig.suptitle("Motion Classifier Session", fontsize=14, fontweight="bold")

    # 1. Raw axes
    ax1 = axes[0]
    for i, (name, color) in enumerate(zip("xyz", ["tab:red", "tab:green", "tab:blue"])):
        ax1.plot(t, tr["raw"][:, i], color=color, linewidth=0.6, label=name)
    ax1.set_ylabel("Accel (m/s²)")
    ax1.set_title("Raw accelerometer")
    ax1.legend(loc="upper right", fontsize=8)

    # 2. Linear magnitude vs noise floor
    ax2 = axes[1]
    ax2.plot(t, tr["magnitude"], color="steelblue", linewidth=0.6)
    ax2.axhline(cfg.min_movement_threshold, color="gray", linestyle="--",
                label=f"noise floor {cfg.min_movement_threshold:g}")
    ax2.set_ylabel("|linear| (m/s²)")
    ax2.set_title("Gravity-removed magnitude")
    ax2.legend(loc="upper right", fontsize=8)

    # 3. Rolling average vs vehicle threshold, vehicle spans shaded
    ax3 = axes[2]
    ax3.plot(t, tr["average"], color="darkorange", linewidth=1.0)
    ax3.axhline(cfg.vehicle_movement_threshold, color="red", linestyle="--",
                label=f"vehicle {cfg.vehicle_movement_threshold:g}")
    ax3.fill_between(t, 0, tr["average"].max() if len(t) else 1.0, where=tr["vehicle"],
                     color="red", alpha=0.08, step="mid")
    ax3.set_ylabel("Rolling avg")
    ax3.set_title(f"Rolling average ({cfg.buffer_size} samples)")
    ax3.legend(loc="upper right", fontsize=8)

    # 4. Cumulative total vs limit
    ax4 = axes[3]
    ax4.plot(t, tr["total"], color="purple", linewidth=1.2)
    if cfg.mileage_limit > 0:
        ax4.axhline(cfg.mileage_limit, color="black", linestyle="--",
                    label=f"limit {cfg.mileage_limit:g}")
    if tr["limit_idx"] is not None:
        ax4.axvline(t[tr["limit_idx"]], color="red", alpha=0.6, label="limit reached")
    ax4.set_xlabel("Time (s)")
    ax4.set_ylabel("Total movement")
    ax4.set_title("Cumulative movement")
    ax4.legend(loc="upper left", fontsize=8)

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    print(f"Saved to {output_path}")
    return tr


def main():
    parser = argparse.ArgumentParser(
        description="Plot an accelerometer sample log as seen by the motion classifier.",
    )
    parser.add_argument("input", help="CSV/CSV.zst/Parquet sample log or directory of logs")
    parser.add_argument("-o", "--output", default="session.png",
                        help="Output image path (default: session.png)")
    parser.add_argument("--seed", type=float, default=0.0,
                        help="Running total at session start (default: 0)")
    parser.add_argument("--limit", type=float, default=None,
                        help="Mileage limit (default: 1000)")
    parser.add_argument("--min-threshold", type=float, default=None)
    parser.add_argument("--vehicle-threshold", type=float, default=None)
    args = parser.parse_args()

    from fleet_motion.data_io import load_samples
    try:
        df = load_samples(args.input)
    except SampleLogError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    cfg = MotionConfig.from_thresholds(
        min_movement_threshold=args.min_threshold,
        vehicle_movement_threshold=args.vehicle_threshold,
        mileage_limit=args.limit,
    )
    tr = plot_session(df, args.output, cfg, seed_total=args.seed)
    if tr["limit_idx"] is not None:
        print(f"Limit reached at sample {tr['limit_idx']} (t={tr['t_s'][tr['limit_idx']]:.1f}s)")


if __name__ == "__main__":
    main()
