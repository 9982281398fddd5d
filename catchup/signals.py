"""LiveEdge signal source contract and per-tick snapshots."""
from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Optional, Protocol


class LiveEdgeError(Exception):
    """Base class for LiveEdge errors."""


class SignalUnavailable(LiveEdgeError):
    """A signal read or a position mutation could not be served by the host."""


# ---- readyState ordinals (data-availability level) ----
READY_NOTHING = 0
READY_METADATA = 1
READY_CURRENT_DATA = 2
READY_FUTURE_DATA = 3
READY_ENOUGH_DATA = 4


class SignalSource(Protocol):
    """What the catch-up core reads from, and mutates on, the host player."""

    def current_position(self) -> float: ...

    def buffered_end(self) -> Optional[float]: ...

    def seekable_end(self) -> Optional[float]: ...

    def live_indicator_asserted(self) -> bool: ...

    def is_paused(self) -> bool: ...

    def ready_state(self) -> int: ...

    def set_position(self, seconds: float) -> None: ...

    def resume(self) -> None: ...


class LiveProbes(Protocol):
    """Independent liveness heuristics. Any of them may raise."""

    def metadata_declares_live(self) -> bool: ...

    def live_indicator_present(self) -> bool: ...

    def media_suggests_live(self) -> bool: ...


def _finite(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


@dataclass(frozen=True)
class SignalSnapshot:
    current: Optional[float]
    edge: Optional[float]
    buffered_end: Optional[float]
    indicator: bool = False
    paused: bool = False
    ready_state: int = READY_NOTHING

    @property
    def available(self) -> bool:
        return self.current is not None and self.edge is not None and self.buffered_end is not None

    @property
    def lag(self) -> Optional[float]:
        """Live edge minus current position."""
        if self.edge is None or self.current is None:
            return None
        return self.edge - self.current

    @property
    def gap(self) -> Optional[float]:
        """How far the live edge runs ahead of buffered data (never negative)."""
        if self.edge is None or self.buffered_end is None:
            return None
        return max(0.0, self.edge - self.buffered_end)


def _ordinal(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return READY_NOTHING


def take_snapshot(source: SignalSource) -> SignalSnapshot:
    """Read every signal exactly once. Raises SignalUnavailable from the source."""
    return SignalSnapshot(
        current=_finite(source.current_position()),
        edge=_finite(source.seekable_end()),
        buffered_end=_finite(source.buffered_end()),
        indicator=bool(source.live_indicator_asserted()),
        paused=bool(source.is_paused()),
        ready_state=_ordinal(source.ready_state()),
    )
