"""
Read models returned by the monitor facade.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from src.anomaly.schema import AnomalyRecord
from src.risk.schema import RiskState, StateChangeEvent
from src.stats.schema import EntityStats, ExpectationParameters, HistoryEntry


class EntitySnapshot(BaseModel):
    """
    Point-in-time view of everything held for one entity.

    Fields:
    - entity_id: monitored entity
    - stats: incremental statistics (None before the first observation)
    - parameters: expectation parameters (None if never set)
    - risk: current risk state
    - halted: True when the risk level is EMERGENCY
    - circuit_tripped: single-event circuit breaker flag
    - anomalies: anomaly log contents, oldest first
    - history: raw observation ring contents, oldest first
    - transitions: recorded level changes, oldest first
    """

    entity_id: str
    stats: Optional[EntityStats] = None
    parameters: Optional[ExpectationParameters] = None
    risk: RiskState
    halted: bool = False
    circuit_tripped: bool = False
    anomalies: List[AnomalyRecord] = Field(default_factory=list)
    history: List[HistoryEntry] = Field(default_factory=list)
    transitions: List[StateChangeEvent] = Field(default_factory=list)
