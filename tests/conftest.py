"""
Pytest configuration and shared fixtures.

Provides isolated configuration, role grants, a fresh monitor per test, and
sample observation data for unit and integration tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pandas as pd
import pytest

from src.access import AccessControl, Role
from src.core.config import Config
from src.monitor import RiskMonitor

REPORTER = "trade-pipeline"
ADMIN = "risk-admin"
UPDATER = "param-oracle"


@pytest.fixture
def t0() -> datetime:
    """Fixed reference time so every test is deterministic."""
    return datetime(2025, 2, 7, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings(tmp_path) -> Config:
    """
    Fixture providing test configuration with default thresholds.

    Logs go to a temporary directory so tests never write into the repo.
    """
    return Config(log_level="WARNING", logs_dir=tmp_path / "logs")


@pytest.fixture
def access() -> AccessControl:
    return AccessControl(
        {
            Role.REPORTER: [REPORTER],
            Role.ADMIN: [ADMIN],
            Role.PARAMETER_UPDATER: [UPDATER],
        }
    )


@pytest.fixture
def monitor(settings, access) -> RiskMonitor:
    return RiskMonitor(settings, access)


@pytest.fixture
def sample_observations(t0) -> List[Dict[str, Any]]:
    """
    Observations for two pools over one hour.

    pool-a settles close to its history; pool-b has one large miss at the end.
    """
    rows = []
    for i in range(12):
        rows.append(
            {
                "entity_id": "pool-a",
                "actual": 1000 + (i % 3),
                "magnitude": 5000,
                "timestamp": (t0 + timedelta(minutes=5 * i)).isoformat(),
            }
        )
    for i in range(6):
        rows.append(
            {
                "entity_id": "pool-b",
                "actual": 2000,
                "magnitude": 0,
                "timestamp": (t0 + timedelta(minutes=5 * i)).isoformat(),
            }
        )
    rows.append(
        {
            "entity_id": "pool-b",
            "actual": 3000,
            "magnitude": 0,
            "timestamp": (t0 + timedelta(minutes=45)).isoformat(),
        }
    )
    return rows


@pytest.fixture
def sample_observation_frame(sample_observations) -> pd.DataFrame:
    """Sample observations as a DataFrame ordered by timestamp."""
    df = pd.DataFrame(sample_observations)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    return df.sort_values("timestamp", kind="stable").reset_index(drop=True)


def pytest_configure(config):
    """
    Pytest hook for custom configuration.

    Registers custom markers used throughout tests.
    """
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running (deferred CI)"
    )
