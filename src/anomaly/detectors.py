"""
Deviation detector.

Computes the relative gap between an actual and an expected value,
normalized to basis points of |expected|.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.stats.fixed_point import BPS_SCALE


@dataclass
class DeviationDetector:
    """
    Relative deviation in basis points.

    A zero expectation means there is no history to compare against; the
    deviation is reported as 0 instead of dividing by zero.
    """

    scale: int = BPS_SCALE

    def compute(self, actual: int, expected: int) -> int:
        if expected == 0:
            return 0
        return abs(actual - expected) * self.scale // abs(expected)
