"""LiveEdge catch-up controller: session ownership, scheduling, and the per-tick loop."""
from __future__ import annotations
import asyncio
import logging
import time
from dataclasses import replace
from typing import Callable, Optional

from catchup.classifier import classify_live, LiveVerdict
from catchup.config import CatchupConfig
from catchup.decision import SeekDecision, evaluate, REASON_INACTIVE
from catchup.diagnostics import DiagnosticsHub, DiagnosticsSnapshot
from catchup.interaction import InteractionGuard
from catchup.learner import LearnedParameters, compute_safety_offset
from catchup.seek import SeekExecutor, SeekResult
from catchup.session import PlaybackSession, SessionNotifier
from catchup.signals import (
    LiveProbes, SignalSnapshot, SignalSource, SignalUnavailable, take_snapshot,
)

logger = logging.getLogger("liveedge.catchup.controller")


class CatchupController:
    """
    Keeps a live session near the live edge.

    Holds at most one PlaybackSession and at most one scheduler task. The
    task re-arms itself only after each tick returns, so ticks never overlap.
    Attaching a new source always cancels the previous task first.
    """

    def __init__(
        self,
        config: CatchupConfig,
        diagnostics: Optional[DiagnosticsHub] = None,
        guard: Optional[InteractionGuard] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.diagnostics = diagnostics
        self.guard = guard or InteractionGuard(config.scrub_grace_ms, clock)
        self._clock = clock
        self._executor = SeekExecutor(config)
        self._params = LearnedParameters.initial(config)
        self._session: Optional[PlaybackSession] = None
        self._task: Optional[asyncio.Task] = None
        self._notifier: Optional[SessionNotifier] = None
        self.verdict: Optional[LiveVerdict] = None
        self.last_decision: Optional[SeekDecision] = None
        self.last_result: Optional[SeekResult] = None

    @property
    def session(self) -> Optional[PlaybackSession]:
        return self._session

    @property
    def params(self) -> LearnedParameters:
        return self._session.params if self._session else self._params

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ---- session lifecycle ----

    def bind(self, notifier: SessionNotifier) -> None:
        self.unbind()
        self._notifier = notifier
        notifier.subscribe(self.on_session_changed)

    def unbind(self) -> None:
        if self._notifier is not None:
            self._notifier.unsubscribe(self.on_session_changed)
            self._notifier = None

    def on_session_changed(self, source: Optional[SignalSource], probes: Optional[LiveProbes]) -> None:
        if source is None:
            self.detach()
        else:
            self.attach(source, probes)

    def attach(self, source: SignalSource, probes: Optional[LiveProbes] = None,
               start: bool = True) -> PlaybackSession:
        """
        Replace the current session with one for `source`.
        probes defaults to the source itself. Starting the loop needs a
        running event loop; pass start=False to drive tick() by hand.
        """
        self.detach()
        self.verdict = classify_live(probes if probes is not None else source)
        self._params = self._params.soft_reset(self.config)
        session = PlaybackSession(source=source, params=self._params, is_live=self.verdict.is_live)
        self._session = session
        logger.info("Session %s attached (live=%s, tolerance=%.2f)",
                    session.session_id, session.is_live, session.params.tolerance)
        if session.is_live and start:
            self.start()
        return session

    def detach(self) -> None:
        self.stop()
        if self._session is not None:
            logger.info("Session %s detached after %d seek(s)",
                        self._session.session_id, self._session.seek_count)
        self._session = None
        self.guard.reset()

    # ---- scheduling ----

    def start(self) -> None:
        if self._session is None or self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(self._session))

    def stop(self) -> None:
        """Cancel the scheduler. Safe to call any number of times."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def _run(self, session: PlaybackSession) -> None:
        interval = self.config.check_interval_ms / 1000.0
        while self._session is session:
            await asyncio.sleep(interval)
            if self._session is not session:
                break
            try:
                self.tick()
            except Exception:
                logger.exception("Catch-up tick failed")

    # ---- one tick ----

    def tick(self) -> SeekDecision:
        """Sample, learn, decide, and maybe seek. Never suspends."""
        session = self._session
        if session is None or not session.is_live:
            decision = SeekDecision(REASON_INACTIVE)
            self.last_decision = decision
            return decision

        now = self._clock()
        try:
            snap = take_snapshot(session.source)
        except SignalUnavailable as e:
            logger.debug("Signals unavailable: %s", e)
            snap = SignalSnapshot(current=None, edge=None, buffered_end=None)

        if snap.available:
            session.observe(snap)
            session.params.learn(snap, self.config)
        offset = compute_safety_offset(session.params, self.config)
        decision = evaluate(
            snap, offset, self.config,
            now=now,
            last_seek_at=session.last_seek_at,
            active=session.is_live,
            scrubbing=self.guard.suppressing,
        )

        if decision.permitted:
            result = self._executor.execute(session.source, offset)
            self.last_result = result
            if result.committed:
                session.record_seek(now, result.target)
            decision = replace(
                decision,
                reason=result.reason,
                permitted=result.committed,
                target=result.target if result.target is not None else decision.target,
            )

        self.last_decision = decision
        logger.debug("Tick: %s", decision.reason)
        self._publish(session, snap, decision)
        return decision

    def _publish(self, session: PlaybackSession, snap: SignalSnapshot, decision: SeekDecision) -> None:
        if self.diagnostics is None:
            return
        self.diagnostics.publish(DiagnosticsSnapshot(
            session_id=session.session_id,
            indicator=snap.indicator,
            ready_state=snap.ready_state,
            paused=snap.paused,
            current=snap.current,
            edge=snap.edge,
            buffered_end=snap.buffered_end,
            gap_ema=session.params.gap_ema,
            tolerance=session.params.tolerance,
            offset=decision.offset,
            lag=decision.lag,
            target=decision.target,
            since_last_seek_ms=decision.since_last_seek_ms,
            reason=decision.reason,
        ))
