"""
Expectation model: predicts the value an observation is compared against.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .fixed_point import div_trunc, scale_bps

if TYPE_CHECKING:
    from src.store.repository import EntityStore

SIZE_SCALE = 1000
SIZE_SATURATION = 1_000_000


def size_adjustment(declared_magnitude: int) -> int:
    """
    Saturating adjustment in per-mille for the declared event magnitude.

    Approaches SIZE_SCALE as the magnitude grows, so very large trades cannot
    dominate the prediction.
    """
    if declared_magnitude < 0:
        raise ValueError("declared_magnitude must be non-negative")
    return declared_magnitude * SIZE_SCALE // (declared_magnitude + SIZE_SATURATION)


class ExpectationModel:
    """
    Pure prediction from the entity's current average and parameters.

    Returns 0 when the entity has no statistics yet; the classifier treats a
    zero expectation as insufficient history.
    """

    def __init__(self, store: "EntityStore") -> None:
        self.store = store

    def predict(self, entity_id: str, declared_magnitude: int) -> int:
        record = self.store.get(entity_id)
        if record is None or record.stats is None:
            return 0

        baseline = record.stats.average_deviation
        adjustment = size_adjustment(declared_magnitude)
        expected = div_trunc(baseline * (SIZE_SCALE + adjustment), SIZE_SCALE)

        volatility_bps = 10000
        if record.parameters is not None:
            volatility_bps = record.parameters.volatility_factor_bps
        return scale_bps(expected, volatility_bps)
