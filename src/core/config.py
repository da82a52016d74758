"""
Application configuration for the Pool Risk Sentinel.

Provides environment-aware settings with conservative defaults. Every
threshold, capacity, and multiplier is configurable to avoid hard-coded
"magic numbers" in the detection path.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StatsConfig(BaseModel):
	"""
	Configuration for per-entity incremental statistics.

	Notes:
	- history_capacity: slots in the raw observation ring.
	- ema_weight / ema_divisor: EMA blend, 9/10 keeps 90% of the old value.
	- adaptive_min_observations: observations required before variance is trusted.
	"""

	history_capacity: int = Field(100, ge=1)
	ema_weight: int = Field(9, ge=0)
	ema_divisor: int = Field(10, ge=1)
	adaptive_min_observations: int = Field(5, ge=0)

	@model_validator(mode="after")
	def _check_blend(self) -> "StatsConfig":
		if self.ema_weight >= self.ema_divisor:
			raise ValueError("ema_weight must be smaller than ema_divisor")
		return self


class ClassifierConfig(BaseModel):
	"""
	Thresholds for deviation classification, all in basis points.

	Rationale:
	- Base thresholds are scaled by a variance multiplier once an entity has
	  enough history, so volatile pools are not over-flagged.
	- circuit_breaker_bps is a single-event halt signal, independent of severity.
	"""

	minor_bps: int = Field(500, ge=0)
	significant_bps: int = Field(1500, ge=0)
	critical_bps: int = Field(3000, ge=0)

	baseline_multiplier_bps: int = Field(10000, gt=0)
	variance_divisor: int = Field(1000, gt=0)
	variance_offset_bps: int = Field(5000, ge=0)

	circuit_breaker_bps: int = Field(5000, ge=0)

	@model_validator(mode="after")
	def _check_ordering(self) -> "ClassifierConfig":
		if not self.minor_bps <= self.significant_bps <= self.critical_bps:
			raise ValueError("thresholds must satisfy minor <= significant <= critical")
		return self


class AnomalyLogConfig(BaseModel):
	"""Bounded per-entity anomaly log."""

	capacity: int = Field(50, ge=1)


class RiskConfig(BaseModel):
	"""
	Risk state machine configuration.

	Notes:
	- window_hours: rolling window used to count recent anomalies.
	- cooldown_hours: quiet time after the last transition before decay to STABLE.
	- cooldown_policy: "on_trigger" evaluates decay only inside a transition;
	  "on_observation" also evaluates it for every non-triggering observation.
	"""

	window_hours: int = Field(24, ge=1)
	cooldown_hours: int = Field(4, ge=0)

	emergency_count: int = Field(5, ge=1)
	high_count: int = Field(3, ge=1)
	elevated_count: int = Field(2, ge=1)

	stable_multiplier_bps: int = Field(10000, gt=0)
	elevated_multiplier_bps: int = Field(15000, gt=0)
	high_multiplier_bps: int = Field(25000, gt=0)
	emergency_multiplier_bps: int = Field(50000, gt=0)

	cooldown_policy: Literal["on_trigger", "on_observation"] = "on_observation"
	transition_history_capacity: int = Field(100, ge=1)

	def multiplier_table(self) -> Dict[str, int]:
		return {
			"stable": self.stable_multiplier_bps,
			"elevated": self.elevated_multiplier_bps,
			"high": self.high_multiplier_bps,
			"emergency": self.emergency_multiplier_bps,
		}


class Config(BaseSettings):
	"""
	Global configuration with environment overrides.
	"""

	model_config = SettingsConfigDict(
		env_prefix="SENTINEL_",
		env_file=".env",
		env_nested_delimiter="__",
		extra="ignore",
	)

	log_level: str = Field("INFO", description="Default logging level")
	logs_dir: Path = Field(Path("logs"), description="Directory for log files")
	log_max_bytes: int = Field(10 * 1024 * 1024, gt=0, description="Rotate log files past this size")
	log_backup_count: int = Field(5, ge=0, description="Rotated log files to keep")

	stats: StatsConfig = StatsConfig()
	classifier: ClassifierConfig = ClassifierConfig()
	anomaly_log: AnomalyLogConfig = AnomalyLogConfig()
	risk: RiskConfig = RiskConfig()

	def model_post_init(self, __context: object) -> None:
		self.logs_dir.mkdir(parents=True, exist_ok=True)


config = Config()
