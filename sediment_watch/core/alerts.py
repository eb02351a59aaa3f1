"""Alert classification and the qualitative risk text shown with it.

A rising trend escalates the tier implied by the raw value by exactly one
level, capped at CRITICAL. The lowest tier only looks at the latest value,
unlike the three above it which also consider the window average.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict

from ..config import Thresholds
from .stats import Trend

if TYPE_CHECKING:  # pragma: no cover
    from .ingest import Snapshot


class AlertLevel(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    DANGER = "danger"
    CRITICAL = "critical"


@dataclass(frozen=True)
class RiskAssessment:
    level: AlertLevel
    risk: str
    timeframe: str
    action: str
    probability_range: str
    consequences: str


def classify_alert(latest: float, average: float, trend: Trend, th: Thresholds) -> AlertLevel:
    rising = trend == Trend.RISING
    if latest >= th.critical or average >= th.critical:
        return AlertLevel.CRITICAL
    if latest >= th.danger or average >= th.danger:
        return AlertLevel.CRITICAL if rising else AlertLevel.DANGER
    if latest >= th.warning or average >= th.warning:
        return AlertLevel.DANGER if rising else AlertLevel.WARNING
    if latest >= th.normal:
        return AlertLevel.WARNING if rising else AlertLevel.NORMAL
    return AlertLevel.NORMAL


_RISKS: Dict[AlertLevel, RiskAssessment] = {
    AlertLevel.CRITICAL: RiskAssessment(
        level=AlertLevel.CRITICAL,
        risk="EXTREME",
        timeframe="IMMEDIATE (1-3 hours)",
        action="CLEAR DRAINS: Extreme sediment levels - Immediate clogging risk",
        probability_range="80-95%",
        consequences="Drainage system will clog rapidly",
    ),
    AlertLevel.DANGER: RiskAssessment(
        level=AlertLevel.DANGER,
        risk="HIGH",
        timeframe="6-24 hours",
        action="PREPARE CLEANING: High sediment - Schedule drain cleaning",
        probability_range="60-80%",
        consequences="Significant sediment accumulation occurring",
    ),
    AlertLevel.WARNING: RiskAssessment(
        level=AlertLevel.WARNING,
        risk="MODERATE",
        timeframe="2-7 days if trend continues",
        action="INCREASE MONITORING: Moderate sediment levels",
        probability_range="30-60%",
        consequences="Sediment buildup starting",
    ),
    AlertLevel.NORMAL: RiskAssessment(
        level=AlertLevel.NORMAL,
        risk="LOW",
        timeframe="No immediate threat",
        action="NORMAL: Continue routine monitoring",
        probability_range="5-15%",
        consequences="Normal drainage flow",
    ),
}

_ORDER = [AlertLevel.NORMAL, AlertLevel.WARNING, AlertLevel.DANGER, AlertLevel.CRITICAL]


def _nominal_level(value: float, th: Thresholds) -> AlertLevel:
    if value >= th.critical:
        return AlertLevel.CRITICAL
    if value >= th.danger:
        return AlertLevel.DANGER
    if value >= th.warning:
        return AlertLevel.WARNING
    return AlertLevel.NORMAL


def assess_risk(level: AlertLevel, latest: float, th: Thresholds) -> RiskAssessment:
    """Static lookup keyed by alert level.

    The raw latest value only breaks ties upward: a reading already inside a
    higher band than the alert level selects that band's text.
    """
    by_value = _nominal_level(latest, th)
    if _ORDER.index(by_value) > _ORDER.index(level):
        return _RISKS[by_value]
    return _RISKS[level]


ALERT_MESSAGES: Dict[AlertLevel, str] = {
    AlertLevel.NORMAL: "Clear water - Normal conditions",
    AlertLevel.WARNING: "Slight turbidity - Monitor closely",
    AlertLevel.DANGER: "Moderate turbidity - Flood risk increasing",
    AlertLevel.CRITICAL: "High turbidity - Immediate action required",
}


def status_label(value: float, th: Thresholds) -> str:
    if value >= th.critical:
        return "Critical Turbidity"
    if value >= th.danger:
        return "High Turbidity"
    if value >= th.warning:
        return "Moderate Turbidity"
    return "Clear Water"


def build_insight(snapshot: "Snapshot", th: Thresholds) -> str:
    if len(snapshot.window) < 2:
        return "Waiting for more data to generate insights."
    acc = snapshot.accumulation
    rate = acc.rate
    if rate >= th.critical * 0.1:
        eta = f" Estimated clogging in {acc.days_to_clog} days." if acc.days_to_clog else ""
        return (
            f"Sediment accumulation is rising quickly (~{rate} NTU/hr). "
            f"High clogging risk - {snapshot.risk.probability_range}.{eta}"
        )
    if rate > 0:
        return (
            f"Sediment slowly increasing (~{rate} NTU/hr). "
            f"Monitor the drains; stability index {acc.stability_index}%."
        )
    if rate < 0:
        return (
            "Sediment levels decreasing (cleaning/flush effect). "
            f"Stability index {acc.stability_index}%."
        )
    return f"Stable sediment levels. Stability index {acc.stability_index}%."
