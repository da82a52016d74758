"""
Anomaly classifier.

Compares actual vs expected values, normalizes the gap to basis points, and
maps it to a severity against the entity's adaptive thresholds.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from src.core.config import ClassifierConfig, StatsConfig

from .detectors import DeviationDetector
from .schema import AnomalyRecord
from .scoring import ScaledThresholds, SeverityMapper

if TYPE_CHECKING:
    from src.store.repository import EntityStore


class AnomalyClassifier:
    """
    Pure classification of one observation.

    Reads the entity's statistics as they were before the observation is
    folded in; never mutates state.
    """

    def __init__(
        self,
        store: "EntityStore",
        thresholds: Optional[ClassifierConfig] = None,
        stats_settings: Optional[StatsConfig] = None,
    ) -> None:
        self.store = store
        self.thresholds = thresholds or ClassifierConfig()
        self._detector = DeviationDetector()
        self._mapper = SeverityMapper(self.thresholds, stats_settings or StatsConfig())

    def classify(
        self,
        entity_id: str,
        actual: int,
        expected: int,
        timestamp: Optional[datetime] = None,
    ) -> AnomalyRecord:
        deviation = self._detector.compute(actual, expected)
        severity = self._mapper.severity(deviation, self._stats(entity_id))
        return AnomalyRecord(
            entity_id=entity_id,
            actual=actual,
            expected=expected,
            deviation_bps=deviation,
            severity=severity,
            timestamp=timestamp or datetime.now(timezone.utc),
        )

    def thresholds_for(self, entity_id: str) -> ScaledThresholds:
        return self._mapper.scaled(self._stats(entity_id))

    def trips_circuit(self, record: AnomalyRecord) -> bool:
        """True when a single observation deviates past the circuit breaker limit."""
        return record.deviation_bps > self.thresholds.circuit_breaker_bps

    def _stats(self, entity_id: str):
        record = self.store.get(entity_id)
        return record.stats if record is not None else None
