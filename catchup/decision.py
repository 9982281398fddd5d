"""LiveEdge per-tick seek decision."""
from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Optional

from catchup.config import CatchupConfig
from catchup.signals import SignalSnapshot, READY_FUTURE_DATA

# ---- Decision reason tags ----
REASON_UNAVAILABLE = "unavailable"
REASON_INACTIVE = "inactive"
REASON_SCRUBBING = "scrubbing"
REASON_INDICATOR_LIVE = "indicator live"
REASON_WITHIN_TOLERANCE = "within tolerance"
REASON_COOLDOWN = "cooldown"
REASON_SEEK = "seek"
# Set by the seek executor once a permitted decision is acted on
REASON_SEEKED = "seeked"
REASON_INSUFFICIENT_STEP = "skipped: insufficient step"
REASON_SEEK_FAILED = "seek failed"


@dataclass(frozen=True)
class SeekDecision:
    reason: str
    permitted: bool = False
    lag: Optional[float] = None
    offset: Optional[float] = None
    target: Optional[float] = None
    since_last_seek_ms: Optional[float] = None
    buffering: bool = False

    def with_reason(self, reason: str) -> "SeekDecision":
        return replace(self, reason=reason)


def compute_target(edge: float, buffered_end: float, offset: float, config: CatchupConfig) -> float:
    """Furthest safe position: behind the edge by the offset, inside buffered data."""
    return max(0.0, min(edge - offset, buffered_end - config.playable_margin))


def is_buffering(snapshot: SignalSnapshot, config: CatchupConfig) -> bool:
    if snapshot.ready_state < READY_FUTURE_DATA:
        return True
    lag = snapshot.lag
    return snapshot.paused and lag is not None and lag > config.max_allowed_lag + config.buffering_lag_margin


def cooldown_window_ms(buffering: bool, config: CatchupConfig) -> float:
    if buffering:
        return min(config.post_seek_cooldown_ms, config.buffering_grace_ms)
    return config.post_seek_cooldown_ms


def evaluate(
    snapshot: SignalSnapshot,
    offset: float,
    config: CatchupConfig,
    *,
    now: float,
    last_seek_at: Optional[float] = None,
    active: bool = True,
    scrubbing: bool = False,
) -> SeekDecision:
    """
    Run the guards in order; the first failing guard names the reason.
    Pure: the same inputs always produce the same decision.
    now / last_seek_at are monotonic seconds; last_seek_at None means never seeked.
    """
    since_ms = None if last_seek_at is None else (now - last_seek_at) * 1000.0
    if not snapshot.available:
        return SeekDecision(REASON_UNAVAILABLE, offset=offset, since_last_seek_ms=since_ms)

    lag = snapshot.lag
    target = compute_target(snapshot.edge, snapshot.buffered_end, offset, config)
    buffering = is_buffering(snapshot, config)
    base = SeekDecision(
        REASON_SEEK, lag=lag, offset=offset, target=target,
        since_last_seek_ms=since_ms, buffering=buffering,
    )

    if not active:
        return base.with_reason(REASON_INACTIVE)
    if scrubbing:
        return base.with_reason(REASON_SCRUBBING)
    if snapshot.indicator:
        return base.with_reason(REASON_INDICATOR_LIVE)
    if lag <= config.max_allowed_lag:
        return base.with_reason(REASON_WITHIN_TOLERANCE)
    if since_ms is not None and since_ms < cooldown_window_ms(buffering, config):
        return base.with_reason(REASON_COOLDOWN)
    return replace(base, permitted=True)
