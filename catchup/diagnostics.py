"""LiveEdge diagnostics snapshots and push-only sinks."""
from __future__ import annotations
import logging
import time
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Callable, Optional

from catchup.logging_utils import log_jsonl

logger = logging.getLogger("liveedge.catchup.diagnostics")


@dataclass(frozen=True)
class DiagnosticsSnapshot:
    session_id: Optional[str]
    indicator: bool
    ready_state: int
    paused: bool
    current: Optional[float]
    edge: Optional[float]
    buffered_end: Optional[float]
    gap_ema: float
    tolerance: float
    offset: Optional[float]
    lag: Optional[float]
    target: Optional[float]
    since_last_seek_ms: Optional[float]
    reason: str

    def as_dict(self) -> dict:
        return asdict(self)


DiagnosticsSink = Callable[[DiagnosticsSnapshot], None]


class DiagnosticsHub:
    """Fans each tick's snapshot out to subscribed sinks. Write-only."""

    def __init__(self) -> None:
        self._sinks: list[DiagnosticsSink] = []
        self.last: Optional[DiagnosticsSnapshot] = None

    def subscribe(self, sink: DiagnosticsSink) -> None:
        if sink not in self._sinks:
            self._sinks.append(sink)

    def unsubscribe(self, sink: DiagnosticsSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    @property
    def sink_count(self) -> int:
        return len(self._sinks)

    def publish(self, snapshot: DiagnosticsSnapshot) -> None:
        self.last = snapshot
        for sink in list(self._sinks):
            try:
                sink(snapshot)
            except Exception as e:
                logger.warning("Diagnostics sink %r failed: %s", sink, e)


def _fmt(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:.2f}"


class LoggingSink:
    """Writes one DEBUG line per tick."""

    def __init__(self, name: str = "liveedge.diagnostics"):
        self._logger = logging.getLogger(name)

    def __call__(self, snap: DiagnosticsSnapshot) -> None:
        self._logger.debug(
            "live=%s ready=%d paused=%s pos=%s edge=%s buf=%s gapEMA=%.2f tol=%.2f "
            "offset=%s lag=%s target=%s since_seek=%s -> %s",
            snap.indicator, snap.ready_state, snap.paused, _fmt(snap.current),
            _fmt(snap.edge), _fmt(snap.buffered_end), snap.gap_ema, snap.tolerance,
            _fmt(snap.offset), _fmt(snap.lag), _fmt(snap.target),
            "never" if snap.since_last_seek_ms is None else f"{snap.since_last_seek_ms:.0f}ms",
            snap.reason,
        )


class JsonlSink:
    """Appends each snapshot to the daily JSONL diagnostics file."""

    def __init__(self, log_dir: Path):
        self.log_dir = log_dir

    def __call__(self, snap: DiagnosticsSnapshot) -> None:
        record = snap.as_dict()
        record["ts_utc_ms"] = int(time.time() * 1000)
        log_jsonl(self.log_dir, record)
