from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Thresholds(BaseModel):
    """Turbidity bands in NTU. Bounds must be strictly increasing."""

    normal: float = Field(100.0, description="Clear water below this value")
    warning: float = Field(500.0, description="Moderate sediment from this value")
    danger: float = Field(1000.0, description="High sediment from this value")
    critical: float = Field(1500.0, description="Extreme sediment from this value")

    @model_validator(mode="after")
    def _check_increasing(self) -> "Thresholds":
        bounds = [self.normal, self.warning, self.danger, self.critical]
        if any(lo >= hi for lo, hi in zip(bounds, bounds[1:])):
            raise ValueError(
                "thresholds must satisfy normal < warning < danger < critical, "
                f"got {bounds}"
            )
        return self


class RuntimeConfig(BaseModel):
    window_capacity: int = Field(1000, ge=2, description="Max readings kept in memory")
    poll_interval_sec: float = Field(10.0, gt=0, description="Live polling cadence")
    trend_lookback: int = Field(10, ge=2, description="Values used for trend detection")
    accumulation_lookback: int = Field(6, ge=1, description="Reading pairs used for rate")
    thresholds: Thresholds = Field(default_factory=Thresholds)
    invert_values: bool = Field(False, description="Apply sensor_max - value at ingestion")
    sensor_max: float = 3000.0
    calibration_limit: float = 2000.0
    default_range: Literal["today", "week", "month"] = "today"
    table: str = "turbidity_readings"
    network_timeout_sec: int = 10
    max_retries: int = 3
    backoff_base_sec: float = 0.5
    backoff_cap_sec: float = 10.0

    @model_validator(mode="after")
    def _check_lookback(self) -> "RuntimeConfig":
        if self.accumulation_lookback > self.window_capacity - 1:
            raise ValueError("accumulation_lookback must be <= window_capacity - 1")
        return self


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    LOG_LEVEL: str = "INFO"

    # PostgREST / Supabase endpoint holding the readings table
    STORE_URL: Optional[str] = None
    STORE_API_KEY: Optional[str] = None


class AppConfig(BaseModel):
    env: EnvSettings
    runtime: RuntimeConfig

    # Allow tests to pass a plain dict for env
    @field_validator("env", mode="before")
    @classmethod
    def _coerce_env(cls, v):  # type: ignore[no-untyped-def]
        if isinstance(v, dict):
            return EnvSettings(**v)
        return v

    @staticmethod
    def load(config_path: Optional[Path] = None) -> "AppConfig":
        env = EnvSettings()  # loads from environment and .env

        runtime = RuntimeConfig()
        if config_path is None:
            default_path = Path("config.yaml")
            config_path = default_path if default_path.exists() else None

        if config_path and Path(config_path).exists():
            with open(config_path, "r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            try:
                runtime = RuntimeConfig(**raw)
            except ValidationError as ve:
                raise ValueError(f"Invalid config.yaml: {ve}")

        return AppConfig(env=env, runtime=runtime)


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load merged configuration from environment and optional YAML."""

    return AppConfig.load(config_path)
