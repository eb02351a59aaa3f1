from __future__ import annotations

from sediment_watch.config import Thresholds
from sediment_watch.core.distribution import DistributionBins, bin_values


def test_bins_over_threshold_bands() -> None:
    bins = bin_values([50, 150, 600, 1200, 1600], Thresholds())
    assert bins == DistributionBins(normal=1, warning=1, danger=1, critical=2)


def test_band_edges_belong_to_upper_band() -> None:
    bins = bin_values([100, 500, 1000], Thresholds())
    assert bins == DistributionBins(normal=0, warning=1, danger=1, critical=1)


def test_empty() -> None:
    assert bin_values([], Thresholds()) == DistributionBins()
