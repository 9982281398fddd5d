"""LiveEdge user interaction guard."""
from __future__ import annotations
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger("liveedge.catchup.interaction")


class InteractionGuard:
    """
    Tracks manual scrubbing so automatic seeks never fight the user.
    Suppression lasts while scrubbing and for grace_ms after it ends.
    """

    def __init__(self, grace_ms: int = 0, clock: Callable[[], float] = time.monotonic):
        self.grace_ms = grace_ms
        self._clock = clock
        self._scrubbing = False
        self._ended_at: Optional[float] = None

    @property
    def scrubbing(self) -> bool:
        return self._scrubbing

    @property
    def suppressing(self) -> bool:
        if self._scrubbing:
            return True
        if self._ended_at is None:
            return False
        return (self._clock() - self._ended_at) * 1000.0 < self.grace_ms

    def scrub_begin(self) -> None:
        if not self._scrubbing:
            logger.debug("Scrub begin")
        self._scrubbing = True

    def scrub_end(self) -> None:
        if self._scrubbing:
            logger.debug("Scrub end, holding off for %dms", self.grace_ms)
            self._ended_at = self._clock()
        self._scrubbing = False

    # pointer events on the progress bar behave like seek begin/end
    pointer_down = scrub_begin
    pointer_up = scrub_end

    def reset(self) -> None:
        self._scrubbing = False
        self._ended_at = None
