"""LiveEdge signal source backed by the mpv property cache."""
from __future__ import annotations
import logging
import math
import re
from typing import Any, Optional

from catchup.config import ClassifierConfig, PlayerConfig
from catchup.interaction import InteractionGuard
from catchup.session import SessionNotifier
from catchup.signals import (
    SignalUnavailable,
    READY_NOTHING, READY_METADATA, READY_CURRENT_DATA, READY_ENOUGH_DATA,
)
from player.mpv_controller import MpvController

logger = logging.getLogger("liveedge.player.source")

_TRUTHY = {"1", "true", "yes", "live", "is_live"}


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


class MpvSignalSource:
    """
    Reads signals from MpvController.properties (updated by mpv events), so
    every read is a synchronous cache lookup. Mutations are queued as IPC
    commands. Also turns mpv events into session-changed notifications and
    scrub begin/end signals.
    """

    def __init__(
        self,
        mpv: MpvController,
        notifier: SessionNotifier,
        guard: InteractionGuard,
        classifier: Optional[ClassifierConfig] = None,
        player: Optional[PlayerConfig] = None,
    ):
        self.mpv = mpv
        self.notifier = notifier
        self.guard = guard
        self.classifier = classifier or ClassifierConfig()
        self.player = player or PlayerConfig()
        self._patterns = [re.compile(p, re.IGNORECASE) for p in self.classifier.live_url_patterns]
        self._own_seeks = 0
        self._awaiting_start = False
        mpv.on("file-loaded", self._on_file_loaded)
        mpv.on("playback-restart", self._on_playback_restart)
        mpv.on("seek", self._on_seek)
        mpv.on("end-file", self._on_end_file)

    @property
    def _props(self) -> dict[str, Any]:
        return self.mpv.properties

    def _cache_state(self) -> dict:
        state = self._props.get("demuxer-cache-state")
        return state if isinstance(state, dict) else {}

    # ---- SignalSource ----

    def current_position(self) -> float:
        pos = _as_float(self._props.get("time-pos"))
        if pos is None:
            raise SignalUnavailable("time-pos not available")
        return pos

    def buffered_end(self) -> Optional[float]:
        return _as_float(self._cache_state().get("cache-end"))

    def seekable_end(self) -> Optional[float]:
        ends = [
            _as_float(r.get("end"))
            for r in self._cache_state().get("seekable-ranges") or []
            if isinstance(r, dict)
        ]
        ends = [e for e in ends if e is not None]
        return max(ends) if ends else None

    def live_indicator_asserted(self) -> bool:
        # mpv has no live badge; emulate one the way web players show it
        if self.is_paused() or self._props.get("paused-for-cache"):
            return False
        pos = _as_float(self._props.get("time-pos"))
        edge = self.seekable_end()
        if pos is None or edge is None:
            return False
        return edge - pos <= self.player.live_indicator_window

    def is_paused(self) -> bool:
        return bool(self._props.get("pause"))

    def ready_state(self) -> int:
        if self._props.get("idle-active") or not self._props.get("path"):
            return READY_NOTHING
        if _as_float(self._props.get("time-pos")) is None:
            return READY_METADATA
        if self._props.get("paused-for-cache") or self._props.get("seeking"):
            return READY_CURRENT_DATA
        return READY_ENOUGH_DATA

    def set_position(self, seconds: float) -> None:
        self._own_seeks += 1
        if not self.mpv.post("seek", seconds, "absolute", on_failure=self._seek_rejected):
            self._own_seeks -= 1
            raise SignalUnavailable("mpv not connected")
        self._props["time-pos"] = seconds

    def _seek_rejected(self) -> None:
        # no seek event will follow a rejected command
        if self._own_seeks > 0:
            self._own_seeks -= 1

    def resume(self) -> None:
        if not self.mpv.post("set_property", "pause", False):
            raise SignalUnavailable("mpv not connected")

    # ---- LiveProbes ----

    def metadata_declares_live(self) -> bool:
        metadata = self._props.get("metadata") or {}
        lowered = {str(k).lower(): v for k, v in metadata.items()}
        for key in self.classifier.metadata_live_keys:
            value = lowered.get(key.lower())
            if value is not None and str(value).strip().lower() in _TRUTHY:
                return True
        return False

    def live_indicator_present(self) -> bool:
        path = self._props.get("path")
        if not path:
            return False
        return any(p.search(path) for p in self._patterns)

    def media_suggests_live(self) -> bool:
        duration = self._props.get("duration")
        if duration is None or (isinstance(duration, float) and math.isinf(duration)):
            return True
        return bool(self._cache_state().get("seekable-ranges"))

    # ---- mpv events ----

    def _on_file_loaded(self, event: dict) -> None:
        # Properties are not settled until playback actually starts
        self._awaiting_start = True
        self._own_seeks = 0

    def _on_playback_restart(self, event: dict) -> None:
        if self._awaiting_start:
            self._awaiting_start = False
            logger.info("New media: %s", self._props.get("path"))
            self.notifier.notify(self, self)
        elif self.guard.scrubbing:
            self.guard.scrub_end()

    def _on_seek(self, event: dict) -> None:
        if self._awaiting_start:
            return
        if self._own_seeks > 0:
            self._own_seeks -= 1
        else:
            self.guard.scrub_begin()

    def _on_end_file(self, event: dict) -> None:
        self._awaiting_start = False
        logger.info("Media ended (%s)", event.get("reason", "unknown"))
        self.notifier.notify(None, None)
