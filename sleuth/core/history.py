"""
Pool history trend derivation.

Turns stored snapshots of earlier analyses of the same pool (TVL,
transaction count, risk score) into the `HistoryTrend` consumed by the
risk scorer. Callers that already have a trend snapshot can pass it
straight through `coerce_history`.
"""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from .amount_utils import to_optional_float
from .models import HistoryTrend
from .normalizer import ContractViolationError, parse_timestamp


logger = logging.getLogger(__name__)

MS_PER_DAY = 24 * 60 * 60 * 1000

TVL_TREND_PERCENT = 10.0
VOLUME_TREND_PERCENT = 20.0
RISK_TREND_DELTA = 5.0
STABILITY_MIN_POINTS = 3


@dataclass
class HistoryPoint:
    """One stored analysis of the pool."""
    timestamp: int  # milliseconds since epoch
    tvl_usd: float = 0.0
    transaction_count: int = 0
    risk_score: float = 0.0


def _tvl_trend(points: Sequence[HistoryPoint]):
    oldest, current = points[0].tvl_usd, points[-1].tvl_usd
    if not oldest:
        return "unknown", None
    change = (current - oldest) / oldest * 100
    if change > TVL_TREND_PERCENT:
        return "up", change
    if change < -TVL_TREND_PERCENT:
        return "down", change
    return "stable", change


def _volume_trend(points: Sequence[HistoryPoint]) -> str:
    """Average transaction count of the last quarter against the first quarter."""
    window = max(1, len(points) // 4)
    older = sum(p.transaction_count for p in points[:window]) / window
    recent = sum(p.transaction_count for p in points[-window:]) / window
    if older <= 0:
        return "unknown"
    change = (recent - older) / older * 100
    if change > VOLUME_TREND_PERCENT:
        return "increasing"
    if change < -VOLUME_TREND_PERCENT:
        return "decreasing"
    return "stable"


def _stability_level(points: Sequence[HistoryPoint]) -> str:
    """Coefficient of variation of the positive TVL readings."""
    if len(points) < STABILITY_MIN_POINTS:
        return "unknown"
    tvls = [p.tvl_usd for p in points if p.tvl_usd > 0]
    if len(tvls) < 2:
        return "unknown"

    mean = sum(tvls) / len(tvls)
    variance = sum((t - mean) ** 2 for t in tvls) / len(tvls)
    cv = math.sqrt(variance) / mean * 100

    if cv < 10:
        return "highly_stable"
    if cv < 25:
        return "stable"
    if cv < 50:
        return "moderate"
    return "volatile"


def _risk_trend(points: Sequence[HistoryPoint]) -> str:
    mean = sum(p.risk_score for p in points) / len(points)
    diff = points[-1].risk_score - mean
    if diff < -RISK_TREND_DELTA:
        return "improving"
    if diff > RISK_TREND_DELTA:
        return "worsening"
    return "stable"


def derive_history_trend(points: Sequence[HistoryPoint]) -> HistoryTrend:
    """
    Derive TVL, volume, stability and risk trends from stored snapshots.

    Args:
        points: Snapshots in any order (sorted oldest first here)

    Returns:
        HistoryTrend; an empty trend (data_points=0) without points
    """
    if not points:
        return HistoryTrend()

    ordered = sorted(points, key=lambda p: p.timestamp)
    tvl_trend, tvl_change = _tvl_trend(ordered)
    trend = HistoryTrend(
        data_points=len(ordered),
        days_tracked=(ordered[-1].timestamp - ordered[0].timestamp) // MS_PER_DAY,
        tvl_trend=tvl_trend,
        tvl_change_percent=round(tvl_change, 2) if tvl_change is not None else None,
        volume_trend=_volume_trend(ordered),
        stability_level=_stability_level(ordered),
        risk_trend=_risk_trend(ordered),
    )
    logger.debug(
        f"History trend over {trend.days_tracked} days: TVL {trend.tvl_trend}, "
        f"volume {trend.volume_trend}, stability {trend.stability_level}, "
        f"risk {trend.risk_trend}"
    )
    return trend


def _field(raw: Mapping, *names: str) -> Any:
    for name in names:
        if raw.get(name) is not None:
            return raw[name]
    return None


def _coerce_point(raw: Any) -> Optional[HistoryPoint]:
    if isinstance(raw, HistoryPoint):
        return raw
    if not isinstance(raw, Mapping):
        return None
    timestamp = parse_timestamp(_field(raw, "timestamp", "analyzed_at", "generatedAt"))
    if timestamp is None:
        return None
    tx_count = to_optional_float(_field(raw, "transaction_count", "transactionCount"))
    return HistoryPoint(
        timestamp=timestamp,
        tvl_usd=to_optional_float(_field(raw, "tvl_usd", "tvlUSD", "tvlUsd")) or 0.0,
        transaction_count=int(tx_count or 0),
        risk_score=to_optional_float(_field(raw, "risk_score", "riskScore")) or 0.0,
    )


def _coerce_snapshot(raw: Mapping) -> HistoryTrend:
    data_points = to_optional_float(_field(raw, "data_points", "dataPoints"))
    days = to_optional_float(_field(raw, "days_tracked", "daysTracked"))
    change = _field(raw, "tvl_change_percent", "tvlChangePercent")
    try:
        change = float(change) if change is not None else None
    except (TypeError, ValueError):
        change = None
    return HistoryTrend(
        # a supplied snapshot stands for at least one observation
        data_points=int(data_points) if data_points is not None else 1,
        days_tracked=int(days or 0),
        tvl_trend=str(_field(raw, "tvl_trend", "tvlTrend") or "unknown"),
        tvl_change_percent=change,
        volume_trend=str(_field(raw, "volume_trend", "volumeTrend") or "unknown"),
        stability_level=str(_field(raw, "stability_level", "stabilityLevel") or "unknown"),
        risk_trend=str(_field(raw, "risk_trend", "riskTrend") or "unknown"),
    )


def coerce_history(value: Any) -> Optional[HistoryTrend]:
    """
    Accept whatever history the caller has.

    Args:
        value: None, a HistoryTrend, a trend snapshot mapping
            ({tvlTrend, volumeTrend, stabilityLevel, riskTrend, ...}) or a
            sequence of stored snapshot points

    Returns:
        HistoryTrend or None when no history was supplied

    Raises:
        ContractViolationError: if value is none of the above
    """
    if value is None or isinstance(value, HistoryTrend):
        return value
    if isinstance(value, Mapping):
        return _coerce_snapshot(value)
    if isinstance(value, (list, tuple)):
        points: List[HistoryPoint] = []
        for raw in value:
            point = _coerce_point(raw)
            if point is None:
                logger.warning(f"Skipping malformed history point: {raw!r}")
                continue
            points.append(point)
        return derive_history_trend(points)
    raise ContractViolationError(f"history must be a mapping or a list, got {type(value).__name__}")
