"""
Entity-keyed in-memory repository.

Every monitored entity owns one EntityRecord holding its statistics, raw
history, expectation parameters, anomaly log, risk state, and circuit flag.
Records are provisioned lazily and never removed.

Locking:
- Each record carries its own re-entrant lock. Callers hold it for the whole
  read-modify-write of one observation; no operation spans two entities.
- The store lock only guards provisioning of new records.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional

from src.anomaly.schema import AnomalyRecord
from src.risk.schema import RiskState, StateChangeEvent
from src.stats.ring import HistoryRing
from src.stats.schema import EntityStats, ExpectationParameters

logger = logging.getLogger(__name__)


@dataclass
class EntityRecord:
    """
    All mutable state owned by a single entity.
    """

    entity_id: str
    history: HistoryRing
    anomalies: Deque[AnomalyRecord]
    transitions: Deque[StateChangeEvent]
    risk: RiskState
    stats: Optional[EntityStats] = None
    parameters: Optional[ExpectationParameters] = None
    circuit_tripped: bool = False
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)


class EntityStore:
    """
    Repository of EntityRecord objects keyed by entity id.
    """

    def __init__(
        self,
        history_capacity: int,
        anomaly_capacity: int,
        transition_capacity: int,
        default_multiplier_bps: int = 10000,
    ) -> None:
        self.history_capacity = history_capacity
        self.anomaly_capacity = anomaly_capacity
        self.transition_capacity = transition_capacity
        self.default_multiplier_bps = default_multiplier_bps
        self._records: Dict[str, EntityRecord] = {}
        self._lock = threading.Lock()

    def get(self, entity_id: str) -> Optional[EntityRecord]:
        return self._records.get(entity_id)

    def get_or_create(self, entity_id: str) -> EntityRecord:
        record = self._records.get(entity_id)
        if record is not None:
            return record

        with self._lock:
            record = self._records.get(entity_id)
            if record is None:
                record = self._new_record(entity_id)
                self._records[entity_id] = record
                logger.debug("Provisioned entity %s", entity_id)
        return record

    def entity_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._records)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def _new_record(self, entity_id: str) -> EntityRecord:
        return EntityRecord(
            entity_id=entity_id,
            history=HistoryRing(self.history_capacity),
            anomalies=deque(maxlen=self.anomaly_capacity),
            transitions=deque(maxlen=self.transition_capacity),
            risk=RiskState(risk_multiplier_bps=self.default_multiplier_bps),
        )
