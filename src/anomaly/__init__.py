"""
Anomaly module: deviation classification and the bounded anomaly log.

Implements deterministic deviation detection, variance-scaled thresholds,
severity mapping, and per-entity anomaly storage.
"""

from .classifier import AnomalyClassifier
from .detectors import DeviationDetector
from .log import AnomalyLog
from .schema import AnomalyRecord, Severity, overall_severity
from .scoring import ScaledThresholds, SeverityMapper, variance_multiplier

__all__ = [
	"AnomalyClassifier",
	"AnomalyLog",
	"AnomalyRecord",
	"Severity",
	"DeviationDetector",
	"ScaledThresholds",
	"SeverityMapper",
	"overall_severity",
	"variance_multiplier",
]
