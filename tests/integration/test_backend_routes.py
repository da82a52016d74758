"""
Integration tests for the backend request handlers.

Exercises routing, role checks, and JSON payloads without opening a socket.
"""

import io

import pytest

from backend.main import BackendHandler, access_from_env, decode_body, handle_get, handle_post
from src.access import Role

REPORTER = "trade-pipeline"
ADMIN = "risk-admin"
UPDATER = "param-oracle"


def _observe(monitor, actual, timestamp, caller=REPORTER, entity_id="pool-a"):
    return handle_post(
        monitor,
        "/observations",
        caller,
        {"entity_id": entity_id, "actual": actual, "magnitude": 0, "timestamp": timestamp},
    )


@pytest.mark.integration
class TestBackendRoutes:
    def test_health_and_unknown_routes(self, monitor):
        assert handle_get(monitor, "/health") == (200, {"status": "ok"})
        assert handle_get(monitor, "/nope")[0] == 404
        assert handle_get(monitor, "/entities/pool-a/nope")[0] == 404
        assert handle_post(monitor, "/nope", ADMIN, {})[0] == 404

    def test_observation_flow(self, monitor):
        status, body = _observe(monitor, 1000, "2025-02-07T10:00:00Z")
        assert status == 200
        assert body["record"]["severity"] == "normal"

        status, body = _observe(monitor, 1350, "2025-02-07T10:01:00Z")
        assert status == 200
        assert body["record"]["deviation_bps"] == 3500
        assert body["risk"]["level"] == "emergency"
        assert body["risk"]["halted"] is True

        status, body = handle_get(monitor, "/entities/pool-a/risk")
        assert status == 200
        assert body["risk_multiplier_bps"] == 50000
        assert body["max_severity_24h"] == "critical"

        status, body = handle_get(monitor, "/entities/pool-a/anomalies")
        assert body["total_count"] == 1

        status, body = handle_get(monitor, "/entities/pool-a/history")
        assert [h["value"] for h in body["history"]] == [1000, 1350]

        status, body = handle_get(monitor, "/entities/pool-a/transitions")
        assert body["transitions"][0]["new_level"] == "emergency"

        status, body = handle_get(monitor, "/entities")
        assert body == {"entities": ["pool-a"], "total_count": 1}

        status, body = handle_get(monitor, "/entities/pool-a/snapshot")
        assert body["halted"] is True

    def test_role_checks(self, monitor):
        status, body = _observe(monitor, 1000, None, caller=None)
        assert status == 403
        assert "reporter" in body["detail"]

        status, _ = handle_post(monitor, "/entities/pool-a/force", REPORTER, {"state": "high"})
        assert status == 403

        status, _ = handle_post(monitor, "/entities/pool-a/parameters", ADMIN, {"volatility_factor_bps": 5000})
        assert status == 403

        assert monitor.list_entities() == []

    def test_admin_routes(self, monitor):
        _observe(monitor, 1000, "2025-02-07T10:00:00Z")
        _observe(monitor, 1600, "2025-02-07T10:01:00Z")
        assert monitor.is_circuit_tripped("pool-a")

        status, body = handle_post(
            monitor,
            "/entities/pool-a/force",
            ADMIN,
            {"state": "stable", "reason": "reviewed", "timestamp": "2025-02-07T11:00:00Z"},
        )
        assert status == 200
        assert body["level"] == "stable"

        status, body = handle_post(monitor, "/entities/pool-a/circuit/reset", ADMIN, {})
        assert status == 200
        assert body["circuit_tripped"] is False

        status, body = handle_post(monitor, "/sweep", ADMIN, {"timestamp": "2025-02-08T12:00:00Z"})
        assert status == 200
        assert body == {"decayed": []}

        status, body = handle_post(
            monitor, "/entities/pool-a/parameters", UPDATER, {"volatility_factor_bps": 12000}
        )
        assert status == 200
        assert body["volatility_factor_bps"] == 12000

    def test_invalid_payloads(self, monitor):
        assert _observe(monitor, "lots", None)[0] == 400
        assert _observe(monitor, 1000, "yesterday")[0] == 400
        assert handle_post(monitor, "/observations", REPORTER, {"actual": 1})[0] == 400
        assert handle_post(monitor, "/entities/pool-a/force", ADMIN, {"state": "panic"})[0] == 400
        assert (
            handle_post(monitor, "/entities/pool-a/parameters", UPDATER, {"volatility_factor_bps": -5})[0]
            == 400
        )

    def test_undecodable_bodies(self):
        assert decode_body(b"\xff\xfe") is None
        assert decode_body(b"{not json") is None
        assert decode_body(b"[1, 2]") is None
        assert decode_body(b'{"entity_id": "pool-a"}') == {"entity_id": "pool-a"}

        handler = BackendHandler.__new__(BackendHandler)
        handler.headers = {"Content-Length": "lots"}
        handler.rfile = io.BytesIO(b"{}")
        assert handler._read_json() is None

        handler.headers = {"Content-Length": "2"}
        handler.rfile = io.BytesIO(b"\xff\xfe")
        assert handler._read_json() is None

        handler.headers = {}
        assert handler._read_json() == {}

    def test_query_strings_and_encoded_ids(self, monitor):
        assert handle_get(monitor, "/health?verbose=1") == (200, {"status": "ok"})

        status, body = _observe(monitor, 1000, "2025-02-07T10:00:00Z", entity_id="pool a")
        assert status == 200

        status, body = handle_get(monitor, "/entities/pool%20a/history?limit=5")
        assert status == 200
        assert [h["value"] for h in body["history"]] == [1000]

        status, body = handle_post(monitor, "/entities/pool%20a/force?dry=0", ADMIN, {"state": "high"})
        assert status == 200
        assert monitor.get_risk_state("pool a").value == "high"

    def test_access_from_env(self, monkeypatch):
        monkeypatch.setenv("SENTINEL_REPORTERS", "a, b")
        monkeypatch.setenv("SENTINEL_ADMINS", "root")
        monkeypatch.delenv("SENTINEL_PARAMETER_UPDATERS", raising=False)

        access = access_from_env()
        assert access.members(Role.REPORTER) == {"a", "b"}
        assert access.members(Role.ADMIN) == {"root"}
        assert access.members(Role.PARAMETER_UPDATER) == set()
