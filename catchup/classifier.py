"""LiveEdge live-stream classification."""
from __future__ import annotations
import logging
from dataclasses import dataclass, field

from catchup.signals import LiveProbes

logger = logging.getLogger("liveedge.catchup.classifier")

PROBE_METADATA = "metadata"
PROBE_INDICATOR = "indicator"
PROBE_MEDIA = "media"


@dataclass
class LiveVerdict:
    is_live: bool
    votes: dict[str, bool] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.is_live


def _vote(name: str, probe) -> bool:
    try:
        return bool(probe())
    except Exception as e:
        # A broken probe is a "no", the others still decide
        logger.debug("Live probe %s failed: %s", name, e)
        return False


def classify_live(probes: LiveProbes) -> LiveVerdict:
    """OR of metadata flag, live UI indicator, and media evidence."""
    votes = {
        PROBE_METADATA: _vote(PROBE_METADATA, probes.metadata_declares_live),
        PROBE_INDICATOR: _vote(PROBE_INDICATOR, probes.live_indicator_present),
        PROBE_MEDIA: _vote(PROBE_MEDIA, probes.media_suggests_live),
    }
    verdict = LiveVerdict(is_live=any(votes.values()), votes=votes)
    logger.info("Live classification: %s (%s)", verdict.is_live,
                ", ".join(f"{k}={v}" for k, v in votes.items()))
    return verdict
