"""
Audit frames for offline review of an entity's raw history and anomalies.

Builds pandas DataFrames indexed by timestamp so reviewers can slice, resample,
or export the bounded in-memory history without touching live state.
"""

from __future__ import annotations

from typing import List

import pandas as pd

from .service import RiskMonitor

HISTORY_COLUMNS: List[str] = ["sequence", "value"]
ANOMALY_COLUMNS: List[str] = ["actual", "expected", "deviation_bps", "severity"]


def history_frame(monitor: RiskMonitor, entity_id: str) -> pd.DataFrame:
    """
    Raw observation ring as a DataFrame, oldest first.

    Returns an empty frame with the expected columns for unseen entities.
    """
    rows = [entry.model_dump() for entry in monitor.get_history(entity_id)]
    if not rows:
        return pd.DataFrame(columns=HISTORY_COLUMNS, index=pd.DatetimeIndex([], name="timestamp"))

    df = pd.DataFrame(rows)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    return df.set_index("timestamp")[HISTORY_COLUMNS]


def anomaly_frame(monitor: RiskMonitor, entity_id: str) -> pd.DataFrame:
    """Anomaly log as a DataFrame, oldest first, severity as its string value."""
    rows = []
    for record in monitor.get_recent_anomalies(entity_id):
        row = record.model_dump()
        row["severity"] = record.severity.value
        rows.append(row)

    if not rows:
        return pd.DataFrame(columns=ANOMALY_COLUMNS, index=pd.DatetimeIndex([], name="timestamp"))

    df = pd.DataFrame(rows)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    return df.set_index("timestamp")[ANOMALY_COLUMNS]


def severity_counts(monitor: RiskMonitor, entity_id: str) -> pd.Series:
    """Count of logged anomalies per severity value."""
    frame = anomaly_frame(monitor, entity_id)
    if frame.empty:
        return pd.Series(dtype="int64", name="count")
    return frame["severity"].value_counts().rename("count")
