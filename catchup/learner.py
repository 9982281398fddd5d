"""LiveEdge online parameter learning and safety-offset math."""
from __future__ import annotations
import math
from dataclasses import dataclass, replace

from catchup.config import CatchupConfig
from catchup.signals import SignalSnapshot

# Margin added to the observed lag when learning the tolerance
TOLERANCE_MARGIN = 0.05
# Tolerance floor
TOLERANCE_FLOOR = 0.05
# Extra cushion on top of gap EMA + playable margin
BUFFER_CUSHION = 0.05


@dataclass
class LearnedParameters:
    """
    Two values learned online from live signals.

    tolerance: smallest lag the host still calls "live", plus a margin.
      Only ever ratchets down within a session.
    gap_ema: smoothed distance between the live edge and buffered data.
    """
    tolerance: float = 0.20
    gap_ema: float = 0.0

    @classmethod
    def initial(cls, config: CatchupConfig) -> "LearnedParameters":
        prior = min(max(config.tolerance_prior, 0.0), config.max_safety_offset)
        return cls(tolerance=prior, gap_ema=0.0)

    def learn(self, snapshot: SignalSnapshot, config: CatchupConfig) -> None:
        """Fold one tick's signals into both parameters."""
        lag = snapshot.lag
        if snapshot.indicator and lag is not None:
            self.learn_tolerance(lag, config)
        gap = snapshot.gap
        if gap is not None:
            self.learn_gap(gap, config)

    def learn_tolerance(self, lag_raw: float, config: CatchupConfig) -> None:
        if not math.isfinite(lag_raw):
            return
        candidate = min(max(lag_raw + TOLERANCE_MARGIN, 0.0), config.max_safety_offset)
        if candidate < self.tolerance:
            self.tolerance = max(candidate, TOLERANCE_FLOOR)

    def learn_gap(self, gap: float, config: CatchupConfig) -> None:
        if not math.isfinite(gap):
            return
        alpha = config.gap_alpha
        self.gap_ema = (1.0 - alpha) * self.gap_ema + alpha * max(0.0, gap)

    def soft_reset(self, config: CatchupConfig) -> "LearnedParameters":
        """Carry-over for a new session: gap forgotten, tolerance capped at the prior."""
        return replace(self, tolerance=min(self.tolerance, config.tolerance_prior), gap_ema=0.0)


def compute_safety_offset(params: LearnedParameters, config: CatchupConfig) -> float:
    """
    Cushion to keep behind the live edge when seeking.
    At least the learned tolerance (stay "live") and at least the typical
    edge-to-buffer gap plus the playable margin (stay inside buffered data),
    clamped to [min_safety_offset, max_safety_offset].
    """
    tolerance = params.tolerance
    gap_ema = params.gap_ema
    if not (math.isfinite(tolerance) and math.isfinite(gap_ema)):
        offset = config.fallback_offset
    else:
        offset = max(tolerance, config.min_safety_offset)
        needed_for_buffer = gap_ema + config.playable_margin + BUFFER_CUSHION
        offset = max(offset, needed_for_buffer)
    return min(max(offset, config.min_safety_offset), config.max_safety_offset)
