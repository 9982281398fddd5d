"""Tests for the seek executor."""
import pytest
from fakes import FakeSource
from catchup.config import CatchupConfig
from catchup.decision import (
    REASON_SEEKED, REASON_INSUFFICIENT_STEP, REASON_SEEK_FAILED, REASON_UNAVAILABLE,
    REASON_INDICATOR_LIVE,
)
from catchup.seek import SeekExecutor, ActionOutcome

CFG = CatchupConfig()


def test_scenario_a_commits_seek():
    source = FakeSource(current=95.0, edge=100.0, buffered=100.2)
    result = SeekExecutor(CFG).execute(source, 0.40)
    assert result.committed
    assert result.reason == REASON_SEEKED
    assert result.target == pytest.approx(99.6)
    assert source.seeks == [pytest.approx(99.6)]
    assert result.resume is ActionOutcome.SKIPPED


def test_scenario_e_never_beyond_buffer():
    source = FakeSource(current=90.0, edge=100.0, buffered=91.0)
    result = SeekExecutor(CFG).execute(source, 0.40)
    assert result.committed
    assert result.target == pytest.approx(90.75)
    assert result.target <= source.buffered - CFG.playable_margin
    assert result.target <= source.edge - 0.40


def test_insufficient_step_skips():
    source = FakeSource(current=90.0, edge=100.0, buffered=90.5)
    result = SeekExecutor(CFG).execute(source, 0.40)
    assert result.outcome is ActionOutcome.SKIPPED
    assert result.reason == REASON_INSUFFICIENT_STEP
    assert source.seeks == []


def test_backward_target_skips():
    source = FakeSource(current=95.0, edge=100.0, buffered=94.0)
    result = SeekExecutor(CFG).execute(source, 0.40)
    assert result.reason == REASON_INSUFFICIENT_STEP
    assert source.current == 95.0


def test_resumes_when_paused():
    source = FakeSource(paused=True)
    result = SeekExecutor(CFG).execute(source, 0.40)
    assert result.committed
    assert result.resume is ActionOutcome.SUCCEEDED
    assert source.resumes == 1


def test_resume_failure_does_not_undo_seek():
    source = FakeSource(paused=True)
    source.fail_resume = True
    result = SeekExecutor(CFG).execute(source, 0.40)
    assert result.committed
    assert result.resume is ActionOutcome.INEFFECTIVE
    assert len(source.seeks) == 1


def test_seek_failure_is_ineffective():
    source = FakeSource()
    source.fail_seek = True
    result = SeekExecutor(CFG).execute(source, 0.40)
    assert result.outcome is ActionOutcome.INEFFECTIVE
    assert result.reason == REASON_SEEK_FAILED
    assert not result.committed


def test_read_back_unavailable_skips():
    source = FakeSource(edge=None)
    result = SeekExecutor(CFG).execute(source, 0.40)
    assert result.outcome is ActionOutcome.SKIPPED
    assert result.reason == REASON_UNAVAILABLE
    source = FakeSource()
    source.fail_reads = True
    assert SeekExecutor(CFG).execute(source, 0.40).reason == REASON_UNAVAILABLE


def test_indicator_on_at_read_back_skips():
    source = FakeSource(current=60.0, indicator=True)
    result = SeekExecutor(CFG).execute(source, 0.40)
    assert result.outcome is ActionOutcome.SKIPPED
    assert result.reason == REASON_INDICATOR_LIVE
    assert not result.committed
    assert source.seeks == []
