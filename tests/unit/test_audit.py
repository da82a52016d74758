"""
Unit tests for audit DataFrames.
"""

from datetime import timedelta

from src.monitor.audit import anomaly_frame, history_frame, severity_counts

REPORTER = "trade-pipeline"


def test_history_frame(monitor, t0):
    for i, value in enumerate([1000, 1010, 990]):
        monitor.report_observation(REPORTER, "pool", value, 0, t0 + timedelta(minutes=i))

    df = history_frame(monitor, "pool")
    assert list(df.columns) == ["sequence", "value"]
    assert df["value"].tolist() == [1000, 1010, 990]
    assert df["sequence"].tolist() == [0, 1, 2]
    assert df.index.is_monotonic_increasing


def test_anomaly_frame_and_counts(monitor, t0):
    monitor.report_observation(REPORTER, "pool", 1000, 0, t0)
    monitor.report_observation(REPORTER, "pool", 1350, 0, t0 + timedelta(minutes=1))

    df = anomaly_frame(monitor, "pool")
    assert len(df) == 1
    assert df.iloc[0]["severity"] == "critical"
    assert df.iloc[0]["deviation_bps"] == 3500

    counts = severity_counts(monitor, "pool")
    assert counts.to_dict() == {"critical": 1}


def test_frames_for_unknown_entity_are_empty(monitor):
    assert history_frame(monitor, "ghost").empty
    assert anomaly_frame(monitor, "ghost").empty
    assert severity_counts(monitor, "ghost").empty
    assert list(anomaly_frame(monitor, "ghost").columns) == ["actual", "expected", "deviation_bps", "severity"]
