"""LiveEdge playback session and session-change notification."""
from __future__ import annotations
import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional

from catchup.learner import LearnedParameters
from catchup.signals import SignalSnapshot, SignalSource, LiveProbes

logger = logging.getLogger("liveedge.catchup.session")


@dataclass
class PlaybackSession:
    """One attached live media source. Replaced, never merged, on re-attach."""
    source: SignalSource
    params: LearnedParameters
    is_live: bool = False
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    current_position: float = 0.0
    live_edge_position: float = 0.0
    buffered_end_position: float = 0.0
    last_seek_at: Optional[float] = None  # monotonic seconds; None = never
    seek_count: int = 0

    def observe(self, snapshot: SignalSnapshot) -> None:
        if snapshot.current is not None:
            self.current_position = snapshot.current
        if snapshot.edge is not None:
            self.live_edge_position = snapshot.edge
        if snapshot.buffered_end is not None:
            self.buffered_end_position = max(0.0, snapshot.buffered_end)

    def record_seek(self, now: float, target: float) -> None:
        self.last_seek_at = now
        self.current_position = target
        self.seek_count += 1


SessionCallback = Callable[[Optional[SignalSource], Optional[LiveProbes]], None]


class SessionNotifier:
    """
    "Session changed" notification. The host detects new media and calls
    notify(source, probes); notify(None, None) means playback ended.
    """

    def __init__(self) -> None:
        self._subscribers: list[SessionCallback] = []

    def subscribe(self, callback: SessionCallback) -> None:
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: SessionCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def notify(self, source: Optional[SignalSource], probes: Optional[LiveProbes]) -> None:
        for callback in list(self._subscribers):
            try:
                callback(source, probes)
            except Exception:
                logger.exception("Session change handler failed")
