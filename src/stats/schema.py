"""
Schema definitions for per-entity statistics.

Snapshots are immutable: every update produces a new object, so a reader never
observes a half-applied change.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EntityStats(BaseModel):
    """
    Incremental statistics for a single entity.

    Fields:
    - entity_id: monitored entity (e.g. a liquidity pool)
    - average_deviation: EMA of observed values, seeded by the first one
    - variance_estimate: EMA of squared distance from the average (>= 0)
    - observation_count: total observations seen
    - last_update_time: timestamp of the latest observation
    """

    model_config = ConfigDict(frozen=True)

    entity_id: str
    average_deviation: int
    variance_estimate: int = Field(ge=0)
    observation_count: int = Field(ge=0)
    last_update_time: Optional[datetime] = None


class HistoryEntry(BaseModel):
    """A single raw observation kept in the history ring."""

    model_config = ConfigDict(frozen=True)

    value: int
    timestamp: datetime
    sequence: int = Field(ge=0)


class ExpectationParameters(BaseModel):
    """
    Per-entity expectation parameters, written by the parameter updater role.

    Fields:
    - base_expected: reference expected value (informational)
    - volatility_factor_bps: multiplier applied to predictions (10000 = 1.0x)
    - liquidity_depth_hint: depth hint for the pool (informational)
    - last_update_time: when the parameters were last written
    """

    model_config = ConfigDict(frozen=True)

    base_expected: int = 0
    volatility_factor_bps: int = Field(10000, ge=0)
    liquidity_depth_hint: int = Field(0, ge=0)
    last_update_time: Optional[datetime] = None
