"""
Pool risk state machine.

STATES:

    STABLE <-> ELEVATED <-> HIGH <-> EMERGENCY

Levels move in either direction; every evaluation recomputes the level from
the rolling anomaly window rather than stepping one level at a time.

DECISION TABLE (first match wins):
- newest severity CRITICAL or window count >= emergency_count  -> EMERGENCY
- newest severity SIGNIFICANT or window count >= high_count    -> HIGH
- window count >= elevated_count                                -> ELEVATED
- window count == 0 and cooldown elapsed since last transition  -> STABLE
- otherwise                                                     -> unchanged

INVARIANTS:
- The multiplier is always the table value for the current level
- Every evaluation stamps last_transition_time and the window summary
- A level change is recorded and published exactly once
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, List, Optional, Tuple

from src.anomaly.log import AnomalyLog
from src.anomaly.schema import AnomalyRecord, Severity, overall_severity
from src.core.config import RiskConfig

from .notifications import StateChangeNotifier
from .schema import RiskLevel, RiskState, StateChangeEvent

if TYPE_CHECKING:
    from src.store.repository import EntityRecord, EntityStore

logger = logging.getLogger(__name__)


class RiskStateMachine:
    """
    Transitions per-entity risk state from freshly classified anomalies.

    Callers hold the entity lock; the machine itself does not synchronize.
    """

    def __init__(
        self,
        store: "EntityStore",
        anomaly_log: AnomalyLog,
        notifier: Optional[StateChangeNotifier] = None,
        settings: Optional[RiskConfig] = None,
    ) -> None:
        self.store = store
        self.anomaly_log = anomaly_log
        self.notifier = notifier or StateChangeNotifier()
        self.settings = settings or RiskConfig()

    @property
    def window(self) -> timedelta:
        return timedelta(hours=self.settings.window_hours)

    @property
    def cooldown(self) -> timedelta:
        return timedelta(hours=self.settings.cooldown_hours)

    def multiplier_for(self, level: RiskLevel) -> int:
        return self.settings.multiplier_table()[level.value]

    def default_state(self) -> RiskState:
        return RiskState(risk_multiplier_bps=self.multiplier_for(RiskLevel.STABLE))

    def window_summary(self, entity_id: str, now: datetime) -> Tuple[int, Severity]:
        window = list(self.anomaly_log.query(entity_id, now - self.window, now))
        return len(window), overall_severity(*(a.severity for a in window))

    def transition(self, entity_id: str, new_record: AnomalyRecord) -> RiskState:
        if not new_record.severity.at_least(Severity.SIGNIFICANT):
            raise ValueError(
                f"transition requires a significant or worse anomaly, got {new_record.severity.value}"
            )

        entry = self.store.get_or_create(entity_id)
        now = new_record.timestamp
        recent_count, max_severity = self.window_summary(entity_id, now)

        level, reason = self._decide(entry.risk, new_record.severity, recent_count, now)
        return self._apply(entry, level, recent_count, max_severity, now, reason)

    def evaluate_cooldown(self, entity_id: str, now: datetime) -> Optional[RiskState]:
        """
        Apply only the cooldown rule, outside of an anomaly-triggered transition.

        Returns the new state when the entity decayed to STABLE, else None.
        Never escalates.
        """
        entry = self.store.get(entity_id)
        if entry is None or entry.risk.level == RiskLevel.STABLE:
            return None

        recent_count, max_severity = self.window_summary(entity_id, now)
        if recent_count != 0 or not self._cooldown_elapsed(entry.risk, now):
            return None
        return self._apply(entry, RiskLevel.STABLE, 0, max_severity, now, "cooldown")

    def force(self, entity_id: str, level: RiskLevel, reason: str, now: datetime) -> RiskState:
        """Administrative override, recorded like an organic transition."""
        entry = self.store.get_or_create(entity_id)
        recent_count, max_severity = self.window_summary(entity_id, now)
        return self._apply(
            entry, level, recent_count, max_severity, now, reason or "forced", forced=True
        )

    def history(self, entity_id: str) -> List[StateChangeEvent]:
        entry = self.store.get(entity_id)
        return list(entry.transitions) if entry is not None else []

    def _decide(
        self,
        current: RiskState,
        severity: Severity,
        recent_count: int,
        now: datetime,
    ) -> Tuple[RiskLevel, str]:
        settings = self.settings
        if severity == Severity.CRITICAL:
            return RiskLevel.EMERGENCY, "critical_anomaly"
        if recent_count >= settings.emergency_count:
            return RiskLevel.EMERGENCY, f"{recent_count}_anomalies_in_window"
        if severity == Severity.SIGNIFICANT:
            return RiskLevel.HIGH, "significant_anomaly"
        if recent_count >= settings.high_count:
            return RiskLevel.HIGH, f"{recent_count}_anomalies_in_window"
        if recent_count >= settings.elevated_count:
            return RiskLevel.ELEVATED, f"{recent_count}_anomalies_in_window"
        if recent_count == 0 and self._cooldown_elapsed(current, now):
            return RiskLevel.STABLE, "cooldown"
        return current.level, "unchanged"

    def _cooldown_elapsed(self, current: RiskState, now: datetime) -> bool:
        if current.last_transition_time is None:
            return True
        return now - current.last_transition_time > self.cooldown

    def _apply(
        self,
        entry: "EntityRecord",
        level: RiskLevel,
        recent_count: int,
        max_severity: Severity,
        now: datetime,
        reason: str,
        forced: bool = False,
    ) -> RiskState:
        previous = entry.risk
        state = RiskState(
            level=level,
            risk_multiplier_bps=self.multiplier_for(level),
            last_transition_time=now,
            anomaly_count_24h=recent_count,
            max_severity_24h=max_severity,
        )
        entry.risk = state

        if level != previous.level:
            event = StateChangeEvent(
                entity_id=entry.entity_id,
                previous_level=previous.level,
                new_level=level,
                risk_multiplier_bps=state.risk_multiplier_bps,
                reason=reason,
                forced=forced,
                timestamp=now,
            )
            entry.transitions.append(event)
            logger.warning(
                "Risk level for %s changed %s -> %s (%s)",
                entry.entity_id,
                previous.level.value,
                level.value,
                reason,
            )
            self.notifier.publish(event)

        return state
