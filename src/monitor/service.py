"""
Risk monitor facade.

Wires the statistics, expectation, classification, anomaly log, and risk state
machine into the single observation pipeline:

    observation
        ↓
    ExpectationModel.predict
        ↓
    AnomalyClassifier.classify (against pre-update statistics)
        ↓
    StatEngine.update (always)
        ↓
    AnomalyLog.record (MINOR or worse)
        ↓
    RiskStateMachine.transition (SIGNIFICANT or worse)

Mutating calls pass through the role gate before any entity state is touched.
Each entity is processed under its own lock; different entities never share one.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from src.access.capabilities import AccessControl, Role, requires_role
from src.anomaly.classifier import AnomalyClassifier
from src.anomaly.log import AnomalyLog
from src.anomaly.schema import AnomalyRecord, Severity
from src.core.config import Config, config
from src.core.exceptions import DataValidationError
from src.risk.notifications import StateChangeListener, StateChangeNotifier
from src.risk.schema import RiskLevel, RiskState, StateChangeEvent
from src.risk.state_machine import RiskStateMachine
from src.stats.engine import StatEngine
from src.stats.expectation import ExpectationModel
from src.stats.schema import EntityStats, ExpectationParameters, HistoryEntry
from src.store.repository import EntityStore

from .schema import EntitySnapshot

logger = logging.getLogger(__name__)


def _as_utc(timestamp: Optional[datetime]) -> datetime:
    if timestamp is None:
        return datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def _require_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise DataValidationError(f"{name} must be an integer, got {value!r}")
    return value


class RiskMonitor:
    """
    Facade consumed by the trade pipeline, pricing, policy gating, and admins.

    Notes:
    - Read accessors return documented defaults for unseen entities and never
      provision them.
    - ``settings.risk.cooldown_policy`` controls whether non-triggering
      observations may decay an entity back to STABLE.
    """

    def __init__(
        self,
        settings: Optional[Config] = None,
        access: Optional[AccessControl] = None,
        notifier: Optional[StateChangeNotifier] = None,
    ) -> None:
        self.settings = settings or config
        self.access = access or AccessControl()
        self.notifier = notifier or StateChangeNotifier()

        self.store = EntityStore(
            history_capacity=self.settings.stats.history_capacity,
            anomaly_capacity=self.settings.anomaly_log.capacity,
            transition_capacity=self.settings.risk.transition_history_capacity,
            default_multiplier_bps=self.settings.risk.stable_multiplier_bps,
        )
        self.stat_engine = StatEngine(self.store, self.settings.stats)
        self.expectation = ExpectationModel(self.store)
        self.classifier = AnomalyClassifier(
            self.store, self.settings.classifier, self.settings.stats
        )
        self.anomaly_log = AnomalyLog(self.store)
        self.state_machine = RiskStateMachine(
            self.store, self.anomaly_log, self.notifier, self.settings.risk
        )

    # ------------------------------------------------------------------
    # Trade pipeline
    # ------------------------------------------------------------------

    @requires_role(Role.REPORTER)
    def report_observation(
        self,
        caller: str,
        entity_id: str,
        actual_value: int,
        declared_magnitude: int,
        timestamp: Optional[datetime] = None,
    ) -> AnomalyRecord:
        self._validate_entity_id(entity_id)
        actual_value = _require_int("actual_value", actual_value)
        declared_magnitude = _require_int("declared_magnitude", declared_magnitude)
        if declared_magnitude < 0:
            raise DataValidationError("declared_magnitude must be non-negative")
        now = _as_utc(timestamp)

        entry = self.store.get_or_create(entity_id)
        with entry.lock:
            expected = self.expectation.predict(entity_id, declared_magnitude)
            record = self.classifier.classify(entity_id, actual_value, expected, now)
            self.stat_engine.update(entity_id, actual_value, now)

            if self.classifier.trips_circuit(record) and not entry.circuit_tripped:
                entry.circuit_tripped = True
                logger.error(
                    "Circuit breaker tripped for %s: deviation %d bps (actual=%d expected=%d)",
                    entity_id,
                    record.deviation_bps,
                    actual_value,
                    expected,
                )

            if record.severity.at_least(Severity.MINOR):
                self.anomaly_log.record(entity_id, record)

            if record.severity.at_least(Severity.SIGNIFICANT):
                self.state_machine.transition(entity_id, record)
            elif self.settings.risk.cooldown_policy == "on_observation":
                self.state_machine.evaluate_cooldown(entity_id, now)

        logger.debug(
            "Observation for %s classified %s (%d bps)",
            entity_id,
            record.severity.value,
            record.deviation_bps,
        )
        return record

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def get_risk_multiplier(self, entity_id: str) -> int:
        return self.get_risk_snapshot(entity_id).risk_multiplier_bps

    def get_risk_state(self, entity_id: str) -> RiskLevel:
        return self.get_risk_snapshot(entity_id).level

    def get_risk_snapshot(self, entity_id: str) -> RiskState:
        entry = self.store.get(entity_id)
        if entry is None:
            return self.state_machine.default_state()
        with entry.lock:
            return entry.risk

    def is_halted(self, entity_id: str) -> bool:
        return self.get_risk_state(entity_id) == RiskLevel.EMERGENCY

    def get_recent_anomalies(self, entity_id: str) -> List[AnomalyRecord]:
        entry = self.store.get(entity_id)
        if entry is None:
            return []
        with entry.lock:
            return self.anomaly_log.all(entity_id)

    def is_circuit_tripped(self, entity_id: str) -> bool:
        entry = self.store.get(entity_id)
        return entry.circuit_tripped if entry is not None else False

    def get_stats(self, entity_id: str) -> Optional[EntityStats]:
        return self.stat_engine.get(entity_id)

    def get_expectation_parameters(self, entity_id: str) -> Optional[ExpectationParameters]:
        entry = self.store.get(entity_id)
        return entry.parameters if entry is not None else None

    def get_history(self, entity_id: str) -> List[HistoryEntry]:
        entry = self.store.get(entity_id)
        if entry is None:
            return []
        with entry.lock:
            return entry.history.snapshot()

    def get_transition_history(self, entity_id: str) -> List[StateChangeEvent]:
        entry = self.store.get(entity_id)
        if entry is None:
            return []
        with entry.lock:
            return self.state_machine.history(entity_id)

    def get_entity_snapshot(self, entity_id: str) -> EntitySnapshot:
        entry = self.store.get(entity_id)
        if entry is None:
            return EntitySnapshot(entity_id=entity_id, risk=self.state_machine.default_state())
        with entry.lock:
            return EntitySnapshot(
                entity_id=entity_id,
                stats=entry.stats,
                parameters=entry.parameters,
                risk=entry.risk,
                halted=entry.risk.level == RiskLevel.EMERGENCY,
                circuit_tripped=entry.circuit_tripped,
                anomalies=list(entry.anomalies),
                history=entry.history.snapshot(),
                transitions=list(entry.transitions),
            )

    def list_entities(self) -> List[str]:
        return self.store.entity_ids()

    def subscribe(self, listener: StateChangeListener) -> None:
        self.notifier.subscribe(listener)

    def unsubscribe(self, listener: StateChangeListener) -> None:
        self.notifier.unsubscribe(listener)

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    @requires_role(Role.ADMIN)
    def force_state(
        self,
        caller: str,
        entity_id: str,
        new_state: Union[RiskLevel, str],
        reason: str,
        timestamp: Optional[datetime] = None,
    ) -> RiskState:
        self._validate_entity_id(entity_id)
        try:
            level = RiskLevel(new_state)
        except ValueError as exc:
            raise DataValidationError(f"unknown risk level {new_state!r}") from exc
        now = _as_utc(timestamp)

        entry = self.store.get_or_create(entity_id)
        with entry.lock:
            state = self.state_machine.force(entity_id, level, reason, now)
        logger.warning("Risk level for %s forced to %s by %s: %s", entity_id, level.value, caller, reason)
        return state

    @requires_role(Role.ADMIN)
    def reset_circuit(self, caller: str, entity_id: str) -> None:
        entry = self.store.get(entity_id)
        if entry is None:
            return
        with entry.lock:
            entry.circuit_tripped = False
        logger.info("Circuit breaker for %s reset by %s", entity_id, caller)

    @requires_role(Role.ADMIN)
    def sweep(self, caller: str, now: Optional[datetime] = None) -> List[str]:
        """Apply the cooldown rule to every entity; return the ids that decayed."""
        now = _as_utc(now)
        decayed: List[str] = []
        for entity_id in self.store.entity_ids():
            entry = self.store.get(entity_id)
            if entry is None:
                continue
            with entry.lock:
                if self.state_machine.evaluate_cooldown(entity_id, now) is not None:
                    decayed.append(entity_id)
        if decayed:
            logger.info("Cooldown sweep decayed %d entities to stable", len(decayed))
        return decayed

    @requires_role(Role.PARAMETER_UPDATER)
    def set_expectation_parameters(
        self,
        caller: str,
        entity_id: str,
        parameters: Union[ExpectationParameters, Dict[str, Any]],
        timestamp: Optional[datetime] = None,
    ) -> ExpectationParameters:
        self._validate_entity_id(entity_id)
        if not isinstance(parameters, ExpectationParameters):
            try:
                parameters = ExpectationParameters.model_validate(parameters)
            except ValidationError as exc:
                raise DataValidationError(f"invalid expectation parameters: {exc}") from exc
        parameters = parameters.model_copy(update={"last_update_time": _as_utc(timestamp)})

        entry = self.store.get_or_create(entity_id)
        with entry.lock:
            entry.parameters = parameters
        logger.info(
            "Expectation parameters for %s updated by %s (volatility=%d bps)",
            entity_id,
            caller,
            parameters.volatility_factor_bps,
        )
        return parameters

    @staticmethod
    def _validate_entity_id(entity_id: Any) -> None:
        if not isinstance(entity_id, str) or not entity_id.strip():
            raise DataValidationError("entity_id must be a non-empty string")
