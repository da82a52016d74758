"""
Schema definitions for anomaly classification.

Severity carries an explicit rank so comparisons never depend on the order in
which members are declared.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    """Severity levels for classified observations."""

    NORMAL = "normal"
    MINOR = "minor"
    SIGNIFICANT = "significant"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def at_least(self, other: "Severity") -> bool:
        return self.rank >= other.rank


_SEVERITY_RANK = {
    Severity.NORMAL: 0,
    Severity.MINOR: 1,
    Severity.SIGNIFICANT: 2,
    Severity.CRITICAL: 3,
}


def overall_severity(*severities: Severity) -> Severity:
    """
    Return the highest severity among inputs (NORMAL when empty).
    """

    if not severities:
        return Severity.NORMAL
    return max(severities, key=lambda s: s.rank)


class AnomalyRecord(BaseModel):
    """
    Classified observation. Immutable once created.

    Fields:
    - entity_id: monitored entity
    - actual: observed settlement value
    - expected: predicted value it was compared against
    - deviation_bps: |actual - expected| normalized to |expected|, in bps
    - severity: categorical severity
    - timestamp: observation time
    """

    model_config = ConfigDict(frozen=True)

    entity_id: str
    actual: int
    expected: int
    deviation_bps: int = Field(ge=0)
    severity: Severity
    timestamp: datetime
