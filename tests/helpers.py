from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from sediment_watch.config import AppConfig, RuntimeConfig
from sediment_watch.core.window import Reading


NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_config(**runtime: Any) -> AppConfig:
    return AppConfig(env={"LOG_LEVEL": "INFO"}, runtime=RuntimeConfig(**runtime))


def readings(values: List[float], start_id: int = 1, step_minutes: float = 10.0) -> List[Reading]:
    t0 = NOW - timedelta(minutes=step_minutes * len(values))
    return [
        Reading(id=start_id + i, value=v, timestamp=t0 + timedelta(minutes=step_minutes * i))
        for i, v in enumerate(values)
    ]


def rows(values: List[Any], start_id: int = 1, step_minutes: float = 10.0) -> List[Dict[str, Any]]:
    t0 = NOW - timedelta(minutes=step_minutes * len(values))
    return [
        {
            "id": start_id + i,
            "value": v,
            "created_at": (t0 + timedelta(minutes=step_minutes * i)).isoformat(),
        }
        for i, v in enumerate(values)
    ]
