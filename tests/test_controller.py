"""Tests for the catch-up controller loop and session handling."""
import asyncio
import pytest
from fakes import FakeSource, FakeClock, LIVE, NOT_LIVE
from catchup.config import CatchupConfig
from catchup.controller import CatchupController
from catchup.decision import (
    REASON_INACTIVE, REASON_INDICATOR_LIVE, REASON_COOLDOWN, REASON_SEEKED,
    REASON_SCRUBBING, REASON_UNAVAILABLE, REASON_WITHIN_TOLERANCE,
)
from catchup.diagnostics import DiagnosticsHub
from catchup.session import SessionNotifier
from catchup.signals import READY_NOTHING


def make_controller(**cfg):
    clock = FakeClock()
    hub = DiagnosticsHub()
    controller = CatchupController(CatchupConfig(**cfg), diagnostics=hub, clock=clock)
    return controller, clock, hub


def test_tick_without_session_is_inactive():
    controller, _, _ = make_controller()
    assert controller.tick().reason == REASON_INACTIVE


def test_non_live_source_never_runs():
    controller, _, _ = make_controller()
    source = FakeSource()
    session = controller.attach(source, NOT_LIVE, start=False)
    assert not session.is_live
    assert controller.tick().reason == REASON_INACTIVE
    assert source.reads == 0


def test_catch_up_seek_then_cooldown():
    controller, clock, _ = make_controller()
    source = FakeSource(current=95.0, edge=100.0, buffered=100.2)
    session = controller.attach(source, LIVE, start=False)

    decision = controller.tick()
    assert decision.reason == REASON_SEEKED
    assert decision.permitted
    # gap is 0, so offset = 0 + 0.25 + 0.05
    assert source.seeks == [pytest.approx(99.7)]
    assert session.last_seek_at == clock.now
    assert session.seek_count == 1

    # fell behind again right away: cooldown holds
    source.current = 95.0
    clock.advance(5.0)
    assert controller.tick().reason == REASON_COOLDOWN
    clock.advance(10.0)
    assert controller.tick().reason == REASON_SEEKED
    assert len(source.seeks) == 2


def test_no_seek_while_indicator_asserted():
    controller, clock, _ = make_controller()
    source = FakeSource(current=50.0, indicator=True)
    controller.attach(source, LIVE, start=False)
    for _ in range(20):
        assert controller.tick().reason == REASON_INDICATOR_LIVE
        clock.advance(30.0)
    assert source.seeks == []


def test_tolerance_non_increasing_over_ticks():
    controller, clock, _ = make_controller()
    source = FakeSource(indicator=True)
    controller.attach(source, LIVE, start=False)
    seen = []
    for current in (99.95, 99.0, 99.97, 99.5, 99.99, 98.0):
        source.current = current
        controller.tick()
        seen.append(controller.params.tolerance)
        clock.advance(1.0)
    assert all(b <= a for a, b in zip(seen, seen[1:]))
    assert seen[-1] == pytest.approx(0.06)


def test_unavailable_signals_leave_state_untouched():
    controller, _, _ = make_controller()
    source = FakeSource(edge=99.0, buffered=98.0, current=98.5)
    controller.attach(source, LIVE, start=False)
    controller.tick()
    gap_before = controller.params.gap_ema
    source.buffered = None
    assert controller.tick().reason == REASON_UNAVAILABLE
    assert controller.params.gap_ema == gap_before
    source.fail_reads = True
    assert controller.tick().reason == REASON_UNAVAILABLE


def test_scrubbing_suppresses_seek():
    controller, clock, _ = make_controller(scrub_grace_ms=3000)
    source = FakeSource(current=60.0)
    controller.attach(source, LIVE, start=False)
    controller.guard.scrub_begin()
    assert controller.tick().reason == REASON_SCRUBBING
    controller.guard.scrub_end()
    assert controller.tick().reason == REASON_SCRUBBING
    clock.advance(2.5)
    assert controller.tick().reason == REASON_SCRUBBING
    assert source.seeks == []
    clock.advance(0.5)
    assert controller.tick().reason == REASON_SEEKED


def test_diagnostics_snapshot_published():
    controller, _, hub = make_controller()
    received = []
    hub.subscribe(received.append)
    controller.attach(FakeSource(current=99.0), LIVE, start=False)
    controller.tick()
    assert len(received) == 1
    snap = received[0]
    assert snap.reason == REASON_WITHIN_TOLERANCE
    assert snap.lag == pytest.approx(1.0)
    assert snap.since_last_seek_ms is None


def test_broken_sink_does_not_change_decisions():
    controller, _, hub = make_controller()

    def broken(snap):
        raise RuntimeError("overlay gone")

    hub.subscribe(broken)
    source = FakeSource()
    controller.attach(source, LIVE, start=False)
    assert controller.tick().reason == REASON_SEEKED
    assert len(source.seeks) == 1


def test_new_session_soft_resets_parameters():
    controller, _, _ = make_controller()
    first = FakeSource(current=99.97, edge=100.0, buffered=99.0, indicator=True)
    controller.attach(first, LIVE, start=False)
    controller.tick()
    learned = controller.params.tolerance
    assert learned < 0.20
    assert controller.params.gap_ema > 0

    controller.attach(FakeSource(), LIVE, start=False)
    assert controller.params.tolerance == learned
    assert controller.params.gap_ema == 0.0


def test_notifier_attaches_and_detaches():
    async def scenario():
        controller, _, _ = make_controller()
        notifier = SessionNotifier()
        controller.bind(notifier)
        source = FakeSource()
        controller.guard.scrub_begin()
        notifier.notify(source, LIVE)
        assert controller.session is not None
        assert controller.session.source is source
        assert controller.is_running
        assert not controller.guard.scrubbing
        notifier.notify(None, None)
        assert controller.session is None
        assert not controller.is_running
        controller.unbind()
        notifier.notify(source, LIVE)
        assert controller.session is None

    asyncio.run(scenario())


def test_scheduler_replaces_previous_loop():
    async def scenario():
        controller = CatchupController(CatchupConfig(check_interval_ms=5))
        first = FakeSource(current=99.5)
        second = FakeSource(current=99.5)
        controller.attach(first, LIVE)
        assert controller.is_running
        await asyncio.sleep(0.05)
        assert first.reads > 0
        old_task = controller._task

        controller.attach(second, LIVE)
        await asyncio.sleep(0.02)
        assert old_task.done()
        frozen = first.reads
        await asyncio.sleep(0.05)
        assert first.reads == frozen
        assert second.reads > 0

        controller.stop()
        controller.stop()
        assert not controller.is_running
        controller.detach()

    asyncio.run(scenario())


def test_loop_survives_tick_errors():
    class Exploding(FakeSource):
        def ready_state(self):
            raise ZeroDivisionError("host bug")

    async def scenario():
        controller = CatchupController(CatchupConfig(check_interval_ms=5))
        source = Exploding()
        controller.attach(source, LIVE)
        await asyncio.sleep(0.05)
        assert controller.is_running
        assert source.reads > 1
        controller.detach()

    asyncio.run(scenario())


class IndicatorTurnsOn(FakeSource):
    """Indicator reads off during the tick and on by the time the seek re-reads."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.indicator_reads = 0

    def live_indicator_asserted(self) -> bool:
        self.indicator_reads += 1
        return self.indicator_reads > 1


def test_indicator_on_at_seek_time_skips():
    controller, _, _ = make_controller()
    source = IndicatorTurnsOn(current=60.0)
    controller.attach(source, LIVE, start=False)
    decision = controller.tick()
    assert decision.reason == REASON_INDICATOR_LIVE
    assert not decision.permitted
    assert source.seeks == []
    assert controller.session.seek_count == 0


class OddReadyState(FakeSource):
    def __init__(self, ready, **kwargs):
        super().__init__(**kwargs)
        self.ready = ready


@pytest.mark.parametrize("ready", [None, "garbage", object()])
def test_unusable_ready_state_reads_as_nothing(ready):
    controller, _, hub = make_controller()
    received = []
    hub.subscribe(received.append)
    controller.attach(OddReadyState(ready, current=99.0), LIVE, start=False)
    assert controller.tick().reason == REASON_WITHIN_TOLERANCE
    assert received[0].ready_state == READY_NOTHING
