"""
Minimal backend HTTP server for the Pool Risk Sentinel.

Exposes the monitor facade over JSON without introducing a web framework.
The caller identity is taken from the X-Caller header; roles are bootstrapped
from the environment.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import re
from datetime import datetime
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import unquote, urlsplit

from dotenv import load_dotenv

from src.access import AccessControl, Role
from src.core.config import config
from src.core.exceptions import AuthorizationError, DataValidationError
from src.core.logging_config import setup_logging
from src.monitor import RiskMonitor

load_dotenv()

logger = logging.getLogger("backend")

Response = Tuple[int, Dict[str, Any]]

_ENTITY_ROUTE = re.compile(r"^/entities/(?P<entity_id>[^/]+)(?P<rest>/.*)?$")


def _parse_members(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def access_from_env() -> AccessControl:
    """Build role grants from SENTINEL_REPORTERS / _ADMINS / _PARAMETER_UPDATERS."""
    return AccessControl(
        {
            Role.REPORTER: _parse_members(os.getenv("SENTINEL_REPORTERS")),
            Role.ADMIN: _parse_members(os.getenv("SENTINEL_ADMINS")),
            Role.PARAMETER_UPDATER: _parse_members(os.getenv("SENTINEL_PARAMETER_UPDATERS")),
        }
    )


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise DataValidationError("timestamp must be an ISO-8601 string")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise DataValidationError(f"invalid timestamp {value!r}") from exc


def _dump(model: Any) -> Any:
    return model.model_dump(mode="json")


def _risk_payload(monitor: RiskMonitor, entity_id: str) -> Dict[str, Any]:
    state = monitor.get_risk_snapshot(entity_id)
    return {
        "entity_id": entity_id,
        "level": state.level.value,
        "risk_multiplier_bps": state.risk_multiplier_bps,
        "halted": monitor.is_halted(entity_id),
        "circuit_tripped": monitor.is_circuit_tripped(entity_id),
        "anomaly_count_24h": state.anomaly_count_24h,
        "max_severity_24h": state.max_severity_24h.value,
        "last_transition_time": (
            state.last_transition_time.isoformat() if state.last_transition_time else None
        ),
    }


def handle_get(monitor: RiskMonitor, path: str) -> Response:
    path = urlsplit(path).path

    if path == "/health":
        return 200, {"status": "ok"}

    if path == "/entities":
        entities = monitor.list_entities()
        return 200, {"entities": entities, "total_count": len(entities)}

    match = _ENTITY_ROUTE.match(path)
    if match is None:
        return 404, {"detail": "Not found"}

    entity_id = unquote(match.group("entity_id"))
    rest = match.group("rest") or ""

    if rest in ("", "/risk"):
        return 200, _risk_payload(monitor, entity_id)
    if rest == "/anomalies":
        anomalies = [_dump(a) for a in monitor.get_recent_anomalies(entity_id)]
        return 200, {"anomalies": anomalies, "total_count": len(anomalies)}
    if rest == "/history":
        history = [_dump(h) for h in monitor.get_history(entity_id)]
        return 200, {"history": history, "total_count": len(history)}
    if rest == "/transitions":
        transitions = [_dump(t) for t in monitor.get_transition_history(entity_id)]
        return 200, {"transitions": transitions, "total_count": len(transitions)}
    if rest == "/snapshot":
        return 200, _dump(monitor.get_entity_snapshot(entity_id))

    return 404, {"detail": "Not found"}


def handle_post(
    monitor: RiskMonitor,
    path: str,
    caller: Optional[str],
    payload: Dict[str, Any],
) -> Response:
    try:
        return _dispatch_post(monitor, urlsplit(path).path, caller, payload)
    except AuthorizationError as exc:
        return 403, {"detail": str(exc)}
    except DataValidationError as exc:
        return 400, {"detail": str(exc)}


def _dispatch_post(
    monitor: RiskMonitor,
    path: str,
    caller: Optional[str],
    payload: Dict[str, Any],
) -> Response:
    if path == "/observations":
        record = monitor.report_observation(
            caller,
            payload.get("entity_id"),
            payload.get("actual"),
            payload.get("magnitude", 0),
            _parse_timestamp(payload.get("timestamp")),
        )
        return 200, {
            "record": _dump(record),
            "risk": _risk_payload(monitor, record.entity_id),
        }

    if path == "/sweep":
        decayed = monitor.sweep(caller, _parse_timestamp(payload.get("timestamp")))
        return 200, {"decayed": decayed}

    match = _ENTITY_ROUTE.match(path)
    if match is None:
        return 404, {"detail": "Not found"}

    entity_id = unquote(match.group("entity_id"))
    rest = match.group("rest") or ""

    if rest == "/force":
        monitor.force_state(
            caller,
            entity_id,
            payload.get("state"),
            str(payload.get("reason", "")),
            _parse_timestamp(payload.get("timestamp")),
        )
        return 200, _risk_payload(monitor, entity_id)

    if rest == "/parameters":
        params = {k: v for k, v in payload.items() if k != "timestamp"}
        updated = monitor.set_expectation_parameters(
            caller, entity_id, params, _parse_timestamp(payload.get("timestamp"))
        )
        return 200, _dump(updated)

    if rest == "/circuit/reset":
        monitor.reset_circuit(caller, entity_id)
        return 200, _risk_payload(monitor, entity_id)

    return 404, {"detail": "Not found"}


def decode_body(data: bytes) -> Optional[Dict[str, Any]]:
    """Parse a request body; None when it is not a UTF-8 JSON object."""
    try:
        payload = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


class BackendHandler(BaseHTTPRequestHandler):
    server_version = "PoolRiskSentinel/1.0"

    @property
    def monitor(self) -> RiskMonitor:
        return self.server.monitor  # type: ignore[attr-defined]

    def _send_json(self, status: int, payload: Dict[str, Any]) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _read_json(self) -> Optional[Dict[str, Any]]:
        try:
            length = int(self.headers.get("Content-Length", "0"))
        except ValueError:
            return None
        if length <= 0:
            return {}
        return decode_body(self.rfile.read(length))

    def do_GET(self) -> None:
        status, payload = handle_get(self.monitor, self.path)
        self._send_json(status, payload)

    def do_POST(self) -> None:
        payload = self._read_json()
        if payload is None:
            self._send_json(400, {"detail": "Expected a JSON object body"})
            return
        caller = self.headers.get("X-Caller")
        status, payload = handle_post(self.monitor, self.path, caller, payload)
        self._send_json(status, payload)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


def run(host: str, port: int) -> None:
    setup_logging("src")
    setup_logging("backend")

    access = access_from_env()
    monitor = RiskMonitor(config, access)
    monitor.subscribe(
        lambda event: logger.info(
            "State change %s: %s -> %s", event.entity_id, event.previous_level.value, event.new_level.value
        )
    )

    logger.info("Starting backend server on %s:%s", host, port)
    logger.info(
        "Roles: %d reporters, %d admins, %d parameter updaters",
        len(access.members(Role.REPORTER)),
        len(access.members(Role.ADMIN)),
        len(access.members(Role.PARAMETER_UPDATER)),
    )
    server = ThreadingHTTPServer((host, port), BackendHandler)
    server.monitor = monitor  # type: ignore[attr-defined]
    server.serve_forever()


def main() -> None:
    parser = argparse.ArgumentParser(description="Pool Risk Sentinel backend server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    run(args.host, args.port)


if __name__ == "__main__":
    main()
