from __future__ import annotations

import pytest

from sediment_watch.core.stats import StatisticsEngine, Trend, classify_trend


def test_trend_rising() -> None:
    assert classify_trend([10, 10, 10, 10, 20, 20, 20, 20]) == Trend.RISING


def test_trend_constant_is_stable() -> None:
    assert classify_trend([42.0] * 10) == Trend.STABLE


def test_trend_falling() -> None:
    assert classify_trend([20, 20, 10, 10]) == Trend.FALLING


def test_trend_needs_two_values() -> None:
    assert classify_trend([]) == Trend.STABLE
    assert classify_trend([5.0]) == Trend.STABLE


def test_trend_first_half_takes_the_middle_value() -> None:
    # first half [10, 10] -> 10, second half [11.5] > 11
    assert classify_trend([10, 10, 11.5]) == Trend.RISING


def test_recompute() -> None:
    engine = StatisticsEngine(trend_lookback=4)
    s = engine.recompute([100, 300, 200, 400])
    assert s.latest == 400
    assert s.average == 250
    assert s.highest == 400
    assert s.trend == Trend.RISING


def test_recompute_empty() -> None:
    s = StatisticsEngine().recompute([])
    assert (s.latest, s.average, s.highest, s.trend) == (0.0, 0.0, 0.0, Trend.STABLE)


def test_incremental_update_without_eviction() -> None:
    engine = StatisticsEngine()
    engine.recompute([10, 20])
    s = engine.update([30, 60], [], [10, 20, 30, 60])
    assert s.average == pytest.approx(30.0)
    assert s.highest == 60
    assert s.latest == 60


def test_incremental_update_tracks_window_after_eviction() -> None:
    engine = StatisticsEngine(trend_lookback=3)
    engine.recompute([900, 20, 30])
    # window capacity 3: 900 and 20 drop out
    s = engine.update([40, 50], [900, 20], [30, 40, 50])
    full = StatisticsEngine(trend_lookback=3).recompute([30, 40, 50])
    assert s.average == pytest.approx(full.average)
    assert s.highest == full.highest == 50
    assert s.trend == full.trend


def test_incremental_update_with_nothing_appended_keeps_state() -> None:
    engine = StatisticsEngine()
    before = engine.recompute([1, 2, 3])
    assert engine.update([], [], [1, 2, 3]) == before
