"""
Stats module: incremental per-entity statistics and expectations.

Implements integer fixed-point EMA baselines, a bounded raw history ring, and
the expectation model built on top of them.
"""

from .engine import StatEngine
from .expectation import ExpectationModel, size_adjustment
from .fixed_point import div_trunc, scale_bps
from .ring import HistoryRing
from .schema import EntityStats, ExpectationParameters, HistoryEntry

__all__ = [
    "StatEngine",
    "ExpectationModel",
    "size_adjustment",
    "div_trunc",
    "scale_bps",
    "HistoryRing",
    "EntityStats",
    "ExpectationParameters",
    "HistoryEntry",
]
