"""
Adaptive thresholds and severity mapping.

Base thresholds widen for historically volatile entities and narrow toward the
baseline for stable ones, once enough observations exist to trust the variance.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from src.core.config import ClassifierConfig, StatsConfig
from src.stats.schema import EntityStats

from .schema import Severity


@dataclass(frozen=True)
class ScaledThresholds:
    """Thresholds in bps after variance scaling."""

    minor: int
    significant: int
    critical: int
    multiplier_bps: int


def variance_multiplier(
    stats: Optional[EntityStats],
    thresholds: ClassifierConfig,
    min_observations: int,
) -> int:
    """
    Multiplier (bps) applied to the base thresholds.

    Falls back to the baseline multiplier until the entity has more than
    ``min_observations`` observations.
    """

    if stats is None or stats.observation_count <= min_observations:
        return thresholds.baseline_multiplier_bps
    return stats.variance_estimate // thresholds.variance_divisor + thresholds.variance_offset_bps


@dataclass
class SeverityMapper:
    """
    Maps a deviation in bps to a severity using variance-scaled thresholds.
    """

    thresholds: ClassifierConfig
    stats_settings: StatsConfig

    def scaled(self, stats: Optional[EntityStats]) -> ScaledThresholds:
        multiplier = variance_multiplier(
            stats, self.thresholds, self.stats_settings.adaptive_min_observations
        )
        base = self.thresholds.baseline_multiplier_bps
        return ScaledThresholds(
            minor=self.thresholds.minor_bps * multiplier // base,
            significant=self.thresholds.significant_bps * multiplier // base,
            critical=self.thresholds.critical_bps * multiplier // base,
            multiplier_bps=multiplier,
        )

    def severity(self, deviation_bps: int, stats: Optional[EntityStats]) -> Severity:
        # Degenerate comparisons carry no signal
        if deviation_bps <= 0:
            return Severity.NORMAL
        scaled = self.scaled(stats)
        if deviation_bps >= scaled.critical:
            return Severity.CRITICAL
        if deviation_bps >= scaled.significant:
            return Severity.SIGNIFICANT
        if deviation_bps >= scaled.minor:
            return Severity.MINOR
        return Severity.NORMAL
