"""
Bounded per-entity anomaly log.

Stores MINOR-or-worse records in chronological order. At capacity the oldest
record is shifted out, so front-to-back iteration is always oldest to newest.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Iterator, List, Optional

from .schema import AnomalyRecord, Severity

if TYPE_CHECKING:
    from src.store.repository import EntityStore

logger = logging.getLogger(__name__)


class AnomalyLog:
    """
    Append-only log view over the entity store.

    The backing deque is created with maxlen = capacity by the store.
    """

    def __init__(self, store: "EntityStore", min_severity: Severity = Severity.MINOR) -> None:
        self.store = store
        self.min_severity = min_severity

    @property
    def capacity(self) -> int:
        return self.store.anomaly_capacity

    def record(self, entity_id: str, anomaly: AnomalyRecord) -> None:
        if not anomaly.severity.at_least(self.min_severity):
            raise ValueError(
                f"only {self.min_severity.value} or worse anomalies are logged, "
                f"got {anomaly.severity.value}"
            )
        entry = self.store.get_or_create(entity_id)
        if len(entry.anomalies) == self.capacity:
            logger.debug("Anomaly log full for %s, evicting oldest record", entity_id)
        entry.anomalies.append(anomaly)

    def query(
        self, entity_id: str, since: datetime, until: Optional[datetime] = None
    ) -> Iterator[AnomalyRecord]:
        """
        Lazily yield records with since <= timestamp (<= until when given),
        oldest first.

        Each call returns a fresh generator; the log is never consumed.
        """
        entry = self.store.get(entity_id)
        if entry is None:
            return
        for anomaly in list(entry.anomalies):
            if anomaly.timestamp < since:
                continue
            if until is not None and anomaly.timestamp > until:
                continue
            yield anomaly

    def all(self, entity_id: str) -> List[AnomalyRecord]:
        entry = self.store.get(entity_id)
        return list(entry.anomalies) if entry is not None else []
