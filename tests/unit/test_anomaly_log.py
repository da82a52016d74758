"""
Unit tests for the bounded anomaly log.
"""

import inspect
from datetime import timedelta

import pytest

from src.anomaly.log import AnomalyLog
from src.anomaly.schema import AnomalyRecord, Severity
from src.store.repository import EntityStore


def _record(ts, severity=Severity.MINOR, entity_id="pool", actual=1100):
    return AnomalyRecord(
        entity_id=entity_id,
        actual=actual,
        expected=1000,
        deviation_bps=abs(actual - 1000) * 10,
        severity=severity,
        timestamp=ts,
    )


@pytest.fixture
def log():
    store = EntityStore(history_capacity=10, anomaly_capacity=50, transition_capacity=10)
    return AnomalyLog(store)


def test_rejects_normal_records(log, t0):
    with pytest.raises(ValueError):
        log.record("pool", _record(t0, Severity.NORMAL))
    assert log.all("pool") == []


def test_log_is_bounded_and_keeps_most_recent(log, t0):
    for i in range(60):
        log.record("pool", _record(t0 + timedelta(minutes=i), actual=1100 + i))

    records = log.all("pool")
    assert len(records) == 50
    assert records[0].actual == 1110
    assert records[-1].actual == 1159
    timestamps = [r.timestamp for r in records]
    assert timestamps == sorted(timestamps)


def test_query_filters_by_time_and_is_restartable(log, t0):
    for i in range(5):
        log.record("pool", _record(t0 + timedelta(hours=i)))

    since = t0 + timedelta(hours=2)
    window = log.query("pool", since)
    assert inspect.isgenerator(window)

    first = list(window)
    second = list(log.query("pool", since))
    assert [r.timestamp for r in first] == [t0 + timedelta(hours=h) for h in (2, 3, 4)]
    assert first == second
    assert len(log.all("pool")) == 5


def test_query_unknown_entity_is_empty(log, t0):
    assert list(log.query("missing", t0)) == []
    assert log.all("missing") == []


def test_logs_are_per_entity(log, t0):
    log.record("a", _record(t0, entity_id="a"))
    log.record("b", _record(t0, entity_id="b"))
    log.record("b", _record(t0, Severity.CRITICAL, entity_id="b"))

    assert len(log.all("a")) == 1
    assert len(log.all("b")) == 2


def test_query_upper_bound_is_inclusive(log, t0):
    for i in range(5):
        log.record("pool", _record(t0 + timedelta(hours=i)))

    window = list(log.query("pool", t0 + timedelta(hours=1), t0 + timedelta(hours=3)))
    assert [r.timestamp for r in window] == [t0 + timedelta(hours=h) for h in (1, 2, 3)]
