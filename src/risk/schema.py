"""
Schema definitions for the pool risk state machine.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from src.anomaly.schema import Severity


class RiskLevel(str, Enum):
    """Pool-level risk posture."""

    STABLE = "stable"
    ELEVATED = "elevated"
    HIGH = "high"
    EMERGENCY = "emergency"


class RiskState(BaseModel):
    """
    Current risk state of one entity.

    Fields:
    - level: current risk level
    - risk_multiplier_bps: pricing multiplier derived from the level
    - last_transition_time: time of the last evaluated transition (None if never)
    - anomaly_count_24h: anomalies inside the rolling window at that time
    - max_severity_24h: highest severity inside that window
    """

    model_config = ConfigDict(frozen=True)

    level: RiskLevel = RiskLevel.STABLE
    risk_multiplier_bps: int = Field(10000, gt=0)
    last_transition_time: Optional[datetime] = None
    anomaly_count_24h: int = Field(0, ge=0)
    max_severity_24h: Severity = Severity.NORMAL


class StateChangeEvent(BaseModel):
    """
    Notification emitted when an entity's risk level changes.

    Fields:
    - entity_id: entity whose level changed
    - previous_level / new_level: levels before and after
    - risk_multiplier_bps: multiplier after the change
    - reason: rule or operator reason that produced the change
    - forced: True for administrative overrides
    - timestamp: transition time
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    entity_id: str
    previous_level: RiskLevel
    new_level: RiskLevel
    risk_multiplier_bps: int
    reason: str
    forced: bool = False
    timestamp: datetime
