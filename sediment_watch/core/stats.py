from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Sequence


class Trend(str, Enum):
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


@dataclass(frozen=True)
class StatsSnapshot:
    latest: float = 0.0
    average: float = 0.0
    highest: float = 0.0
    trend: Trend = Trend.STABLE


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def classify_trend(values: Sequence[float]) -> Trend:
    """Compare the mean of the second half against the first half.

    The first half holds ceil(n/2) values. A 10% move either way is needed to
    call the series rising or falling.
    """
    if len(values) < 2:
        return Trend.STABLE
    mid = math.ceil(len(values) / 2)
    first = _mean(values[:mid])
    second = _mean(values[mid:])
    if second > first * 1.1:
        return Trend.RISING
    if second < first * 0.9:
        return Trend.FALLING
    return Trend.STABLE


class StatisticsEngine:
    """Latest/average/highest/trend over the window.

    The running average is kept unrounded; rounding happens only when a
    snapshot is published.
    """

    def __init__(self, trend_lookback: int = 10) -> None:
        self.trend_lookback = trend_lookback
        self._count = 0
        self._average = 0.0
        self._highest = 0.0
        self._latest = 0.0
        self._trend = Trend.STABLE

    def recompute(self, window_values: Sequence[float]) -> StatsSnapshot:
        values = list(window_values)
        self._count = len(values)
        if values:
            self._latest = values[-1]
            self._average = _mean(values)
            self._highest = max(values)
        else:
            self._latest = self._average = self._highest = 0.0
        self._trend = classify_trend(values[-self.trend_lookback:])
        return self.current()

    def update(
        self,
        appended: Iterable[float],
        evicted: Iterable[float],
        window_values: Sequence[float],
    ) -> StatsSnapshot:
        """Fold newly appended values into the running figures.

        Values evicted from the front of the window are backed out of the
        average, so the result tracks the window mean.
        """
        added: List[float] = list(appended)
        if not added:
            return self.current()
        for value in added:
            self._average = (self._average * self._count + value) / (self._count + 1)
            self._count += 1
            self._highest = value if self._count == 1 else max(self._highest, value)
        dropped = list(evicted)
        for value in dropped:
            if self._count <= 1:
                self._count, self._average = 0, 0.0
                continue
            self._average = (self._average * self._count - value) / (self._count - 1)
            self._count -= 1
        # The maximum may have left the window
        if dropped and max(dropped) >= self._highest:
            self._highest = max(window_values) if window_values else 0.0
        self._latest = added[-1]
        self._trend = classify_trend(list(window_values)[-self.trend_lookback:])
        return self.current()

    def current(self) -> StatsSnapshot:
        return StatsSnapshot(
            latest=self._latest,
            average=self._average,
            highest=self._highest,
            trend=self._trend,
        )
