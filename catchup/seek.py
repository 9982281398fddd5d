"""LiveEdge seek executor."""
from __future__ import annotations
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from catchup.config import CatchupConfig
from catchup.decision import (
    compute_target,
    REASON_INDICATOR_LIVE, REASON_SEEKED, REASON_INSUFFICIENT_STEP, REASON_SEEK_FAILED, REASON_UNAVAILABLE,
)
from catchup.signals import SignalSource, SignalUnavailable, take_snapshot

logger = logging.getLogger("liveedge.catchup.seek")


class ActionOutcome(enum.Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"        # a guard declined the action
    INEFFECTIVE = "ineffective"  # attempted, host did not carry it out


@dataclass(frozen=True)
class SeekResult:
    outcome: ActionOutcome
    reason: str
    target: Optional[float] = None
    from_position: Optional[float] = None
    resume: ActionOutcome = ActionOutcome.SKIPPED

    @property
    def committed(self) -> bool:
        return self.outcome is ActionOutcome.SUCCEEDED


class SeekExecutor:
    """Jumps to a bounded target behind the live edge and resumes playback if paused."""

    def __init__(self, config: CatchupConfig):
        self.config = config

    def execute(self, source: SignalSource, offset: float) -> SeekResult:
        # Re-read bounds right before mutating; buffered data may have moved
        try:
            snap = take_snapshot(source)
        except SignalUnavailable as e:
            logger.debug("Seek read-back unavailable: %s", e)
            return SeekResult(ActionOutcome.SKIPPED, REASON_UNAVAILABLE)
        if not snap.available:
            return SeekResult(ActionOutcome.SKIPPED, REASON_UNAVAILABLE)
        if snap.indicator:
            return SeekResult(ActionOutcome.SKIPPED, REASON_INDICATOR_LIVE)

        current = snap.current
        target = compute_target(snap.edge, snap.buffered_end, offset, self.config)
        if target <= current + self.config.seek_min_step:
            logger.debug("Seek skipped: target %.2f within %.2fs of %.2f",
                         target, self.config.seek_min_step, current)
            return SeekResult(ActionOutcome.SKIPPED, REASON_INSUFFICIENT_STEP,
                              target=target, from_position=current)

        try:
            source.set_position(target)
        except SignalUnavailable as e:
            logger.warning("Seek to %.2f failed: %s", target, e)
            return SeekResult(ActionOutcome.INEFFECTIVE, REASON_SEEK_FAILED,
                              target=target, from_position=current)

        logger.info("Seeking %.2f -> %.2f (lag %.2fs, offset %.2fs)",
                    current, target, snap.lag, offset)
        resume = self._resume_if_paused(source, snap.paused)
        return SeekResult(ActionOutcome.SUCCEEDED, REASON_SEEKED,
                          target=target, from_position=current, resume=resume)

    def _resume_if_paused(self, source: SignalSource, paused: bool) -> ActionOutcome:
        if not paused:
            return ActionOutcome.SKIPPED
        try:
            source.resume()
        except SignalUnavailable as e:
            # Playback usually recovers on a later tick once buffering clears
            logger.debug("Resume after seek failed: %s", e)
            return ActionOutcome.INEFFECTIVE
        return ActionOutcome.SUCCEEDED
