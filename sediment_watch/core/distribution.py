from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..config import Thresholds


@dataclass(frozen=True)
class DistributionBins:
    """Reading counts per band: [0,normal), [normal,warning), [warning,danger), [danger,inf)."""

    normal: int = 0
    warning: int = 0
    danger: int = 0
    critical: int = 0


def bin_values(values: Iterable[float], thresholds: Thresholds) -> DistributionBins:
    counts = [0, 0, 0, 0]
    for v in values:
        if v < thresholds.normal:
            counts[0] += 1
        elif v < thresholds.warning:
            counts[1] += 1
        elif v < thresholds.danger:
            counts[2] += 1
        else:
            counts[3] += 1
    return DistributionBins(*counts)
