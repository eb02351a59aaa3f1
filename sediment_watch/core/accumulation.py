from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from .window import Reading


SECONDS_PER_HOUR = 3600.0


@dataclass(frozen=True)
class AccumulationMetrics:
    """Sediment build-up figures derived from the newest readings.

    rate is in NTU/hour and may be negative (flushing). days_to_clog is only
    projected while the rate is positive; None means the level is stable or
    falling. stability_index runs from 0 (rate equal to the full critical
    magnitude per hour) to 100 (no measurable change).
    """

    rate: float = 0.0
    days_to_clog: Optional[float] = None
    stability_index: int = 100


def pair_rates(readings: Sequence[Reading], lookback: int) -> list[float]:
    """Finite-difference slopes (value/hour) of the last `lookback` consecutive pairs.

    Pairs whose timestamps do not move forward are skipped.
    """
    n = min(lookback, len(readings) - 1)
    rates: list[float] = []
    for i in range(len(readings) - n, len(readings)):
        prev, cur = readings[i - 1], readings[i]
        dt_hours = (cur.timestamp - prev.timestamp).total_seconds() / SECONDS_PER_HOUR
        if dt_hours <= 0:
            continue
        rates.append((cur.value - prev.value) / dt_hours)
    return rates


def compute_accumulation(
    readings: Sequence[Reading], critical: float, lookback: int = 6
) -> AccumulationMetrics:
    if len(readings) < 2:
        return AccumulationMetrics()

    rates = pair_rates(readings, lookback)
    rate = sum(rates) / len(rates) if rates else 0.0

    days_to_clog: Optional[float] = None
    if rate > 0:
        remaining = critical - readings[-1].value
        days_to_clog = round(remaining / rate / 24, 1) if remaining > 0 else 0.0

    stability = 100 - min(100.0, max(0.0, abs(rate) / critical * 100))
    return AccumulationMetrics(
        rate=rate,
        days_to_clog=days_to_clog,
        stability_index=int(round(stability)),
    )


@dataclass(frozen=True)
class RatePoint:
    timestamp: datetime
    rate: float


def rate_series(readings: Sequence[Reading]) -> list[RatePoint]:
    """Per-reading change rate (value/hour) against the previous reading.

    The first point is 0. Readings sharing a timestamp are treated as one
    second apart. Rates are rounded to 2 decimals.
    """
    points: list[RatePoint] = []
    for i, cur in enumerate(readings):
        if i == 0:
            points.append(RatePoint(cur.timestamp, 0.0))
            continue
        prev = readings[i - 1]
        dt_hours = (cur.timestamp - prev.timestamp).total_seconds() / SECONDS_PER_HOUR
        if dt_hours == 0:
            dt_hours = 1 / SECONDS_PER_HOUR
        points.append(RatePoint(cur.timestamp, round((cur.value - prev.value) / dt_hours, 2)))
    return points
