"""
Incremental per-entity statistics.

EMA of observed values and an EMA variance estimate, both kept in integer
fixed point. Mirrors an EWMA baseline estimator with alpha = 1 - weight/divisor.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from src.core.config import StatsConfig

from .fixed_point import div_trunc
from .schema import EntityStats

if TYPE_CHECKING:
    from src.store.repository import EntityStore

logger = logging.getLogger(__name__)


class StatEngine:
    """
    Updates EntityStats and the raw history ring for one observation.

    Callers hold the entity lock; the engine itself does not synchronize.
    """

    def __init__(self, store: "EntityStore", settings: Optional[StatsConfig] = None) -> None:
        self.store = store
        self.settings = settings or StatsConfig()

    def get(self, entity_id: str) -> Optional[EntityStats]:
        record = self.store.get(entity_id)
        return record.stats if record is not None else None

    def update(self, entity_id: str, observed_value: int, timestamp: datetime) -> EntityStats:
        record = self.store.get_or_create(entity_id)
        previous = record.stats

        if previous is None:
            stats = EntityStats(
                entity_id=entity_id,
                average_deviation=observed_value,
                variance_estimate=0,
                observation_count=1,
                last_update_time=timestamp,
            )
        else:
            weight = self.settings.ema_weight
            divisor = self.settings.ema_divisor
            average = div_trunc(previous.average_deviation * weight + observed_value, divisor)
            # Variance uses the updated mean
            delta = observed_value - average
            variance = div_trunc(previous.variance_estimate * weight + delta * delta, divisor)
            stats = EntityStats(
                entity_id=entity_id,
                average_deviation=average,
                variance_estimate=variance,
                observation_count=previous.observation_count + 1,
                last_update_time=timestamp,
            )

        record.stats = stats
        record.history.append(observed_value, timestamp)

        logger.debug(
            "Stats updated for %s: avg=%d var=%d n=%d",
            entity_id,
            stats.average_deviation,
            stats.variance_estimate,
            stats.observation_count,
        )
        return stats
