"""Tests for parameter learning and the safety offset."""
import math
import pytest
from catchup.config import CatchupConfig
from catchup.learner import LearnedParameters, compute_safety_offset
from catchup.signals import SignalSnapshot

CFG = CatchupConfig()


def snap(current=99.0, edge=100.0, buffered=100.0, indicator=False):
    return SignalSnapshot(current=current, edge=edge, buffered_end=buffered, indicator=indicator, ready_state=4)


def test_initial_tolerance_is_prior():
    params = LearnedParameters.initial(CFG)
    assert params.tolerance == 0.20
    assert params.gap_ema == 0.0


def test_tolerance_learns_only_while_indicator_asserted():
    params = LearnedParameters.initial(CFG)
    params.learn(snap(current=99.95, indicator=False), CFG)
    assert params.tolerance == 0.20
    params.learn(snap(current=99.95, indicator=True), CFG)
    # lag 0.05 + margin 0.05
    assert params.tolerance == pytest.approx(0.10)


def test_tolerance_never_increases():
    params = LearnedParameters.initial(CFG)
    history = []
    for current in (99.9, 98.0, 99.95, 97.0, 99.99, 90.0):
        params.learn(snap(current=current, indicator=True), CFG)
        history.append(params.tolerance)
    assert all(b <= a for a, b in zip(history, history[1:]))


def test_tolerance_floor():
    params = LearnedParameters.initial(CFG)
    # current ahead of edge: negative lag clamps the candidate to 0
    params.learn(snap(current=100.5, indicator=True), CFG)
    assert params.tolerance == 0.05


def test_tolerance_bounded_by_max_offset():
    params = LearnedParameters(tolerance=10.0)
    params.learn_tolerance(20.0, CFG)
    assert params.tolerance == CFG.max_safety_offset


def test_gap_ema_update():
    params = LearnedParameters.initial(CFG)
    params.learn(snap(edge=100.0, buffered=99.0), CFG)
    assert params.gap_ema == pytest.approx(0.2)
    params.learn(snap(edge=100.0, buffered=99.0), CFG)
    assert params.gap_ema == pytest.approx(0.8 * 0.2 + 0.2 * 1.0)


def test_gap_never_negative():
    params = LearnedParameters.initial(CFG)
    params.learn(snap(edge=100.0, buffered=101.0), CFG)
    assert params.gap_ema == 0.0


def test_soft_reset_caps_tolerance_and_zeroes_gap():
    params = LearnedParameters(tolerance=0.12, gap_ema=0.7)
    reset = params.soft_reset(CFG)
    assert reset.tolerance == 0.12
    assert reset.gap_ema == 0.0
    assert LearnedParameters(tolerance=2.0).soft_reset(CFG).tolerance == 0.20


def test_offset_scenario_a():
    offset = compute_safety_offset(LearnedParameters(tolerance=0.20, gap_ema=0.10), CFG)
    assert offset == pytest.approx(0.40)


def test_offset_follows_tolerance_when_gap_small():
    offset = compute_safety_offset(LearnedParameters(tolerance=1.5, gap_ema=0.0), CFG)
    assert offset == pytest.approx(1.5)


def test_offset_clamped_to_max():
    offset = compute_safety_offset(LearnedParameters(tolerance=0.1, gap_ema=50.0), CFG)
    assert offset == CFG.max_safety_offset


def test_offset_non_finite_uses_fallback():
    assert compute_safety_offset(LearnedParameters(tolerance=math.nan), CFG) == 1.0
    assert compute_safety_offset(LearnedParameters(gap_ema=math.inf), CFG) == 1.0


def test_offset_always_within_bounds():
    for tol in (0.0, 0.05, 0.2, 1.0, 3.0, 7.0):
        for gap in (0.0, 0.01, 0.5, 2.0, 10.0):
            offset = compute_safety_offset(LearnedParameters(tolerance=tol, gap_ema=gap), CFG)
            assert CFG.min_safety_offset <= offset <= CFG.max_safety_offset
