"""
Unit tests for incremental statistics and the history ring.
"""

from datetime import timedelta

import pytest

from src.core.config import StatsConfig
from src.stats.engine import StatEngine
from src.stats.fixed_point import div_trunc, scale_bps
from src.stats.ring import HistoryRing
from src.store.repository import EntityStore


def _engine(history_capacity: int = 100) -> StatEngine:
    store = EntityStore(history_capacity=history_capacity, anomaly_capacity=50, transition_capacity=10)
    return StatEngine(store, StatsConfig(history_capacity=history_capacity))


def test_div_trunc_rounds_toward_zero():
    assert div_trunc(45, 10) == 4
    assert div_trunc(-45, 10) == -4
    assert div_trunc(45, -10) == -4
    assert div_trunc(-45, -10) == 4
    with pytest.raises(ZeroDivisionError):
        div_trunc(1, 0)


def test_scale_bps():
    assert scale_bps(1000, 10000) == 1000
    assert scale_bps(1000, 5000) == 500
    assert scale_bps(-1001, 5000) == -500


def test_first_observation_seeds_stats(t0):
    engine = _engine()
    stats = engine.update("pool", 1000, t0)

    assert stats.average_deviation == 1000
    assert stats.variance_estimate == 0
    assert stats.observation_count == 1
    assert stats.last_update_time == t0


def test_ema_and_variance_update(t0):
    engine = _engine()
    engine.update("pool", 1000, t0)
    stats = engine.update("pool", 2000, t0 + timedelta(seconds=1))

    # avg = (1000*9 + 2000) / 10, delta = 2000 - 1100
    assert stats.average_deviation == 1100
    assert stats.variance_estimate == 81000
    assert stats.observation_count == 2


def test_negative_values_truncate_toward_zero(t0):
    engine = _engine()
    engine.update("pool", -5, t0)
    stats = engine.update("pool", 0, t0)

    assert stats.average_deviation == -4
    assert stats.variance_estimate == 1


def test_ema_converges_to_repeated_value(t0):
    engine = _engine()
    engine.update("pool", 0, t0)

    for i in range(100):
        stats = engine.update("pool", 1000, t0 + timedelta(seconds=i))

    assert abs(stats.average_deviation - 1000) < 10
    assert stats.variance_estimate >= 0


def test_observation_count_is_monotonic(t0):
    engine = _engine()
    counts = [engine.update("pool", v, t0).observation_count for v in (5, -5, 5, 0)]
    assert counts == [1, 2, 3, 4]


def test_entities_are_independent(t0):
    engine = _engine()
    engine.update("a", 100, t0)
    engine.update("b", 900, t0)

    assert engine.get("a").average_deviation == 100
    assert engine.get("b").average_deviation == 900
    assert engine.get("missing") is None


def test_update_appends_history(t0):
    engine = _engine(history_capacity=3)
    for i, value in enumerate([10, 20, 30, 40]):
        engine.update("pool", value, t0 + timedelta(seconds=i))

    history = engine.store.get("pool").history.snapshot()
    assert [h.value for h in history] == [20, 30, 40]
    assert [h.sequence for h in history] == [1, 2, 3]


def test_history_ring_wraps_in_place(t0):
    ring = HistoryRing(3)
    for i in range(5):
        ring.append(i, t0 + timedelta(seconds=i))

    assert len(ring) == 3
    assert ring.write_index == 2
    assert ring.next_sequence == 5
    assert [e.value for e in ring] == [2, 3, 4]
    assert ring.latest().value == 4


def test_history_ring_partial_and_empty(t0):
    ring = HistoryRing(4)
    assert ring.snapshot() == []
    assert ring.latest() is None

    ring.append(7, t0)
    assert [e.value for e in ring.snapshot()] == [7]

    with pytest.raises(ValueError):
        HistoryRing(0)
