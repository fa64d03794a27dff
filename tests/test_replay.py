import numpy as np
import pandas as pd
from fleet_motion.motion_classifier.config import MotionConfig
from fleet_motion.replay_session import replay
from fleet_motion.visualize_session import session_traces


def _alternating_df(n, amplitude=5.0):
    x = amplitude * np.where(np.arange(n) % 2 == 0, 1.0, -1.0)
    return pd.DataFrame({
        "timestamp_ms": np.arange(n, dtype=np.int64) * 100,
        "x": x,
        "y": np.zeros(n),
        "z": np.zeros(n),
    })


class TestReplay:
    def test_stops_at_limit(self):
        df = _alternating_df(1000)
        events, final, clf = replay(df, MotionConfig())
        assert final.limit_reached
        assert events["limit_reached"].sum() == 1
        assert bool(events["limit_reached"].iloc[-1])
        assert len(events) < len(df)
        assert final.duration_ms == events["timestamp_ms"].iloc[-1]

    def test_seed_carries_through(self):
        df = _alternating_df(10)
        events, final, _ = replay(df, MotionConfig(mileage_limit=1e9), seed_total=250.0)
        assert not final.limit_reached
        assert final.total_movement > 250.0
        assert events["total_movement"].is_monotonic_increasing


class TestSessionTraces:
    def test_traces_agree_with_replay(self):
        df = _alternating_df(600)
        cfg = MotionConfig()
        events, final, _ = replay(df, cfg)
        tr = session_traces(df, cfg)
        assert tr["limit_idx"] == len(events) - 1
        np.testing.assert_allclose(tr["magnitude"][: len(events)], events["magnitude"], atol=1e-9)
        np.testing.assert_allclose(tr["total"][tr["limit_idx"]], final.total_movement, rtol=1e-9)
