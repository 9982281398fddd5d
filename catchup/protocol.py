"""LiveEdge diagnostics wire protocol."""
from __future__ import annotations
import json
import time
from typing import Any


def _now_ms() -> int:
    return int(time.time() * 1000)


def make_envelope(msg_type: str, payload: dict[str, Any]) -> str:
    return json.dumps({"type": msg_type, "ts_utc_ms": _now_ms(), "payload": payload})


def parse_envelope(raw: str) -> tuple[str, int, dict[str, Any]]:
    data = json.loads(raw)
    return data["type"], data.get("ts_utc_ms", 0), data.get("payload", {})


# ---- Player → Monitor ----
MSG_HELLO_ACK = "HELLO_ACK"
MSG_DIAGNOSTICS = "DIAGNOSTICS"

# ---- Monitor → Player ----
MSG_REQUEST_STATUS = "REQUEST_STATUS"
