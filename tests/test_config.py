from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from sediment_watch.config import AppConfig, RuntimeConfig, Thresholds


def test_thresholds_must_increase() -> None:
    with pytest.raises(ValidationError):
        Thresholds(normal=100, warning=100, danger=1000, critical=1500)
    with pytest.raises(ValidationError):
        Thresholds(normal=100, warning=500, danger=2000, critical=1500)


def test_accumulation_lookback_bounded_by_capacity() -> None:
    with pytest.raises(ValidationError):
        RuntimeConfig(window_capacity=5, accumulation_lookback=5)
    assert RuntimeConfig(window_capacity=5, accumulation_lookback=4).accumulation_lookback == 4


def test_load_yaml(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "window_capacity: 200\ninvert_values: true\nthresholds:\n"
        "  normal: 10\n  warning: 20\n  danger: 30\n  critical: 40\n",
        encoding="utf-8",
    )
    cfg = AppConfig.load(path)
    assert cfg.runtime.window_capacity == 200
    assert cfg.runtime.invert_values is True
    assert cfg.runtime.thresholds.critical == 40


def test_invalid_yaml_rejected(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("thresholds:\n  normal: 50\n  warning: 40\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid config.yaml"):
        AppConfig.load(path)
