"""
Monitor module: the observation pipeline facade, audit frames, and replay.

    Observation (trade pipeline / replay file)
        ↓
    RiskMonitor.report_observation
        ↓
    Read-only queries for pricing and policy gating
"""

from .audit import anomaly_frame, history_frame, severity_counts
from .replay import Observation, ReplaySummary, ingest_observations, replay_observations
from .schema import EntitySnapshot
from .service import RiskMonitor

__all__ = [
    "RiskMonitor",
    "EntitySnapshot",
    "Observation",
    "ReplaySummary",
    "ingest_observations",
    "replay_observations",
    "history_frame",
    "anomaly_frame",
    "severity_counts",
]
