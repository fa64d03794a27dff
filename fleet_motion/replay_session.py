#!/usr/bin/env python3
"""Replay a recorded accelerometer log through the motion classifier.

Feeds every sample, in timestamp order, to a fresh MotionClassifier and reports
how much movement accumulated, how much of it was classified as vehicle motion
and whether (and when) the mileage limit would have been reached.

Usage:
  python -m fleet_motion.replay_session samples.csv
  python -m fleet_motion.replay_session samples.csv.zst --seed 850 --limit 1000
  python -m fleet_motion.replay_session logs/ --events-csv events.csv
"""

import argparse
import logging
import sys

import pandas as pd
from tqdm import tqdm

from fleet_motion.errors import SampleLogError
from fleet_motion.motion_classifier.classifier import MotionClassifier
from fleet_motion.motion_classifier.config import MotionConfig
from fleet_motion.motion_classifier.types import RawSample


def replay(df, cfg: MotionConfig = None, seed_total: float = 0.0, progress: bool = False):
    """Run a samples DataFrame through one classifier session.

    Stops at the first limit crossing, as a live session would. Returns
    (events DataFrame, FinalReading, classifier).
    """
    if cfg is None:
        cfg = MotionConfig()

    timestamps = df["timestamp_ms"].to_numpy()
    t0 = int(timestamps[0]) if len(timestamps) else 0
    now = {"t": t0}
    classifier = MotionClassifier(clock=lambda: now["t"])
    classifier.start(seed_total=seed_total, config=cfg)

    rows = []
    it = df.itertuples(index=False)
    if progress:
        it = tqdm(it, total=len(df), desc="Replaying samples")
    for row in it:
        now["t"] = int(row.timestamp_ms)
        event = classifier.ingest(RawSample(row.x, row.y, row.z, int(row.timestamp_ms)))
        if event is None:
            break
        rows.append(event.as_dict())
        if event.limit_reached:
            break

    final = classifier.stop()
    return pd.DataFrame(rows), final, classifier


def print_summary(events, final, classifier, seed_total):
    n = len(events)
    print(f"\n{'='*55}")
    print(f"  Samples processed: {n}")
    print(f"  Duration:          {final.duration_ms / 1000:.1f}s")
    print(f"  Seed total:        {seed_total:.2f}")
    print(f"  Final total:       {final.total_movement:.2f}"
          f"  (+{final.total_movement - seed_total:.2f})")
    print(f"{'='*55}")
    if n:
        vehicle_frac = events["is_vehicle_movement"].mean()
        moving_frac = (events["magnitude"] > classifier.config.min_movement_threshold).mean()
        print(f"  Above noise floor: {moving_frac:.1%}")
        print(f"  Vehicle movement:  {vehicle_frac:.1%}")
        print(f"  Peak magnitude:    {events['magnitude'].max():.3f}")
    if classifier.rejected_samples:
        print(f"  Rejected samples:  {classifier.rejected_samples} (non-finite axes)")
    if final.limit_reached:
        hit = events[events["limit_reached"]].iloc[0]
        print(f"\n  LIMIT REACHED at t={hit['timestamp_ms']}ms"
              f" (limit {classifier.mileage_limit:.1f})")
    else:
        print(f"\n  Limit not reached ({final.total_movement:.1f} / {classifier.mileage_limit:.1f})")
    print()


def main():
    parser = argparse.ArgumentParser(
        description="Replay an accelerometer sample log through the motion classifier.",
    )
    parser.add_argument("input", help="CSV/CSV.zst/Parquet sample log or directory of logs")
    parser.add_argument("--seed", type=float, default=0.0,
                        help="Running total to resume from (default: 0)")
    parser.add_argument("--limit", type=float, default=None,
                        help="Mileage limit (default: 1000)")
    parser.add_argument("--min-threshold", type=float, default=None,
                        help="Noise floor for accumulation (default: 0.5)")
    parser.add_argument("--vehicle-threshold", type=float, default=None,
                        help="Rolling-average threshold for vehicle movement (default: 3.0)")
    parser.add_argument("--events-csv", default=None,
                        help="Write per-sample classification events to this CSV")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    from fleet_motion.data_io import load_samples
    try:
        df = load_samples(args.input)
    except SampleLogError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    print(f"Loaded {len(df)} samples from {args.input}")

    cfg = MotionConfig.from_thresholds(
        min_movement_threshold=args.min_threshold,
        vehicle_movement_threshold=args.vehicle_threshold,
        mileage_limit=args.limit,
    )
    events, final, classifier = replay(df, cfg, seed_total=args.seed, progress=True)
    print_summary(events, final, classifier, args.seed)

    if args.events_csv:
        events.to_csv(args.events_csv, index=False)
        print(f"Saved {len(events)} events to {args.events_csv}")


if __name__ == "__main__":
    main()
