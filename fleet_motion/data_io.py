"""Shared loading of recorded accelerometer sample logs."""

import glob
import io
import os

import pandas as pd
import zstandard as zstd

from fleet_motion.errors import SampleLogError

SAMPLE_COLUMNS = ["timestamp_ms", "x", "y", "z"]

COLUMN_ALIASES = {
    "timestamp": "timestamp_ms",
    "time_ms": "timestamp_ms",
    "ax": "x",
    "ay": "y",
    "az": "z",
    "accel_x": "x",
    "accel_y": "y",
    "accel_z": "z",
}

LOG_PATTERNS = ["**/*.csv", "**/*.csv.zst", "**/*.parquet"]

ZSTD_MAGIC = b"\x28\xB5\x2F\xFD"


def find_sample_logs(input_dir):
    """Find all sample log files in the input directory."""
    files = []
    for pattern in LOG_PATTERNS:
        files.extend(glob.glob(os.path.join(input_dir, pattern), recursive=True))
    return sorted(set(files))


def _read_file(path):
    if path.endswith(".parquet"):
        return pd.read_parquet(path)

    with open(path, "rb") as f:
        dat = f.read()
    if dat[:4] == ZSTD_MAGIC:
        dctx = zstd.ZstdDecompressor()
        reader = dctx.stream_reader(dat)
        dat = reader.read()
    return pd.read_csv(io.BytesIO(dat))


def normalize_columns(df):
    """Rename known aliases and keep the sample columns in canonical order.

    A missing timestamp column is synthesized from row order at 100 ms spacing.
    """
    df = df.rename(columns={c: COLUMN_ALIASES.get(str(c).strip().lower(), str(c).strip().lower())
                            for c in df.columns})
    missing = [c for c in ("x", "y", "z") if c not in df.columns]
    if missing:
        raise SampleLogError(f"Sample log is missing columns: {missing}")
    if "timestamp_ms" not in df.columns:
        df["timestamp_ms"] = range(0, 100 * len(df), 100)
    df = df[SAMPLE_COLUMNS].copy()
    df["timestamp_ms"] = df["timestamp_ms"].astype("int64")
    for col in ("x", "y", "z"):
        df[col] = df[col].astype(float)
    return df


def load_samples(input_path):
    """Load samples from a CSV, zstd-compressed CSV, Parquet file or directory.

    Returns a DataFrame with columns timestamp_ms, x, y, z sorted by timestamp.
    Raises SampleLogError when nothing usable is found.
    """
    if os.path.isdir(input_path):
        paths = find_sample_logs(input_path)
        if not paths:
            raise SampleLogError(f"No sample logs found in {input_path}")
    elif os.path.isfile(input_path):
        paths = [input_path]
    else:
        raise SampleLogError(f"Input not found: {input_path}")

    frames = []
    for path in paths:
        try:
            frames.append(normalize_columns(_read_file(path)))
        except (OSError, ValueError, zstd.ZstdError) as e:
            raise SampleLogError(f"Could not read {path}: {e}") from e

    df = pd.concat(frames, ignore_index=True)
    if df.empty:
        raise SampleLogError(f"No samples in {input_path}")
    return df.sort_values("timestamp_ms", kind="stable").reset_index(drop=True)
