"""
JSON-compatible output contract.

`result_to_dict` produces plain dicts/lists/strings/numbers that
`json.dumps` accepts as-is:
- raw token amounts (arbitrary-precision ints) become decimal strings
- datetimes become ISO-8601 strings
- enums become their string values

`result_from_dict` reverses it exactly, so
`result_from_dict(result_to_dict(r)) == r` for every result.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional, TypeVar

from .models import (
    AnalysisResult,
    Finding,
    FindingKind,
    HolderBehavior,
    PriceLevel,
    ProfitLossDistribution,
    RiskFactor,
    RiskScoreBreakdown,
    RiskTier,
    Severity,
    SmartMoneyAnalysis,
    SupportResistanceLevels,
    TimeRange,
    TopTrader,
    TransactionSummary,
    WalletActivity,
    WalletStats,
)

T = TypeVar("T")


def _opt(value: Optional[Any], fn: Callable[[Any], T]) -> Optional[T]:
    return None if value is None else fn(value)


def _iso(value: datetime) -> str:
    return value.isoformat()


def _parse_iso(value: str) -> datetime:
    return datetime.fromisoformat(value)


# ---------------------------------------------------------------------------
# Findings and risk
# ---------------------------------------------------------------------------

def finding_to_dict(finding: Finding) -> Dict[str, Any]:
    return {
        "kind": finding.kind.value,
        "severity": finding.severity.value,
        "detector": finding.detector,
        "description": finding.description,
        "metrics": dict(finding.metrics),
    }


def finding_from_dict(data: Dict[str, Any]) -> Finding:
    return Finding(
        kind=FindingKind(data["kind"]),
        severity=Severity(data["severity"]),
        metrics=dict(data["metrics"]),
        description=data["description"],
        detector=data.get("detector", ""),
    )


def risk_to_dict(risk: RiskScoreBreakdown) -> Dict[str, Any]:
    return {
        "total_score": risk.total_score,
        "risk_level": risk.risk_level.value,
        "factors": [
            {"name": f.name, "score": f.score, "weight": f.weight, "reason": f.reason}
            for f in risk.factors
        ],
        "summary": risk.summary,
    }


def risk_from_dict(data: Dict[str, Any]) -> RiskScoreBreakdown:
    return RiskScoreBreakdown(
        total_score=data["total_score"],
        risk_level=RiskTier(data["risk_level"]),
        factors=[RiskFactor(**f) for f in data["factors"]],
        summary=data["summary"],
    )


# ---------------------------------------------------------------------------
# Wallet rankings
# ---------------------------------------------------------------------------

def wallet_activity_to_dict(w: WalletActivity) -> Dict[str, Any]:
    return {
        "address": w.address,
        "tx_count": w.tx_count,
        "buy_count": w.buy_count,
        "sell_count": w.sell_count,
        "total_volume": str(w.total_volume),
        "volume_usd": w.volume_usd,
        "volume_share": w.volume_share,
        "first_seen": _iso(w.first_seen),
        "last_seen": _iso(w.last_seen),
    }


def wallet_activity_from_dict(data: Dict[str, Any]) -> WalletActivity:
    return WalletActivity(
        address=data["address"],
        tx_count=data["tx_count"],
        buy_count=data["buy_count"],
        sell_count=data["sell_count"],
        total_volume=int(data["total_volume"]),
        volume_usd=data["volume_usd"],
        volume_share=data["volume_share"],
        first_seen=_parse_iso(data["first_seen"]),
        last_seen=_parse_iso(data["last_seen"]),
    )


def top_trader_to_dict(t: TopTrader) -> Dict[str, Any]:
    return {
        "wallet": t.wallet,
        "buy_count": t.buy_count,
        "sell_count": t.sell_count,
        "volume": str(t.volume),
        "volume_usd": t.volume_usd,
    }


def top_trader_from_dict(data: Dict[str, Any]) -> TopTrader:
    return TopTrader(
        wallet=data["wallet"],
        buy_count=data["buy_count"],
        sell_count=data["sell_count"],
        volume=int(data["volume"]),
        volume_usd=data["volume_usd"],
    )


# ---------------------------------------------------------------------------
# Market structure
# ---------------------------------------------------------------------------

def _level_to_dict(level: PriceLevel) -> Dict[str, Any]:
    return {
        "price": level.price,
        "transaction_count": level.transaction_count,
        "volume": level.volume,
        "strength": level.strength,
    }


def _levels_to_dict(sr: SupportResistanceLevels) -> Dict[str, Any]:
    return {
        "support_levels": [_level_to_dict(lv) for lv in sr.support_levels],
        "resistance_levels": [_level_to_dict(lv) for lv in sr.resistance_levels],
        "current_price": sr.current_price,
        "nearest_support": sr.nearest_support,
        "nearest_resistance": sr.nearest_resistance,
    }


def _levels_from_dict(data: Dict[str, Any]) -> SupportResistanceLevels:
    return SupportResistanceLevels(
        support_levels=[PriceLevel(**lv) for lv in data["support_levels"]],
        resistance_levels=[PriceLevel(**lv) for lv in data["resistance_levels"]],
        current_price=data["current_price"],
        nearest_support=data.get("nearest_support"),
        nearest_resistance=data.get("nearest_resistance"),
    )


def wallet_stats_to_dict(stats: WalletStats) -> Dict[str, Any]:
    # the three flat analyses only hold JSON-native scalars
    return {
        "holder_behavior": _opt(stats.holder_behavior, lambda hb: dict(vars(hb))),
        "smart_money": _opt(stats.smart_money, lambda sm: dict(vars(sm))),
        "profit_loss_distribution": _opt(stats.profit_loss_distribution, lambda pl: dict(vars(pl))),
        "support_resistance": _opt(stats.support_resistance, _levels_to_dict),
    }


def wallet_stats_from_dict(data: Dict[str, Any]) -> WalletStats:
    return WalletStats(
        holder_behavior=_opt(data.get("holder_behavior"), lambda d: HolderBehavior(**d)),
        smart_money=_opt(data.get("smart_money"), lambda d: SmartMoneyAnalysis(**d)),
        profit_loss_distribution=_opt(
            data.get("profit_loss_distribution"), lambda d: ProfitLossDistribution(**d)
        ),
        support_resistance=_opt(data.get("support_resistance"), _levels_from_dict),
    )


# ---------------------------------------------------------------------------
# Summary and result
# ---------------------------------------------------------------------------

def summary_to_dict(summary: TransactionSummary) -> Dict[str, Any]:
    return {
        "total_count": summary.total_count,
        "buy_count": summary.buy_count,
        "sell_count": summary.sell_count,
        "unique_wallets": summary.unique_wallets,
        "avg_volume_usd": summary.avg_volume_usd,
        "total_volume_usd": summary.total_volume_usd,
        "buy_volume_usd": summary.buy_volume_usd,
        "sell_volume_usd": summary.sell_volume_usd,
        "top_wallets": [wallet_activity_to_dict(w) for w in summary.top_wallets],
        "top_traders": [top_trader_to_dict(t) for t in summary.top_traders],
        "findings": [finding_to_dict(f) for f in summary.findings],
        "suspicious_patterns": summary.suspicious_patterns,
        "summary": summary.summary,
        "time_range": _opt(summary.time_range, lambda tr: {
            "earliest": _iso(tr.earliest),
            "latest": _iso(tr.latest),
        }),
        "large_buy_ratio": summary.large_buy_ratio,
        "large_sell_ratio": summary.large_sell_ratio,
        "wallet_stats": _opt(summary.wallet_stats, wallet_stats_to_dict),
        "dropped_records": summary.dropped_records,
        "skipped_detectors": list(summary.skipped_detectors),
    }


def summary_from_dict(data: Dict[str, Any]) -> TransactionSummary:
    # suspicious_patterns is derived from findings and not read back
    return TransactionSummary(
        total_count=data["total_count"],
        buy_count=data["buy_count"],
        sell_count=data["sell_count"],
        unique_wallets=data["unique_wallets"],
        avg_volume_usd=data["avg_volume_usd"],
        total_volume_usd=data["total_volume_usd"],
        buy_volume_usd=data["buy_volume_usd"],
        sell_volume_usd=data["sell_volume_usd"],
        top_wallets=[wallet_activity_from_dict(w) for w in data.get("top_wallets", [])],
        top_traders=[top_trader_from_dict(t) for t in data.get("top_traders", [])],
        findings=[finding_from_dict(f) for f in data.get("findings", [])],
        summary=data.get("summary", ""),
        time_range=_opt(data.get("time_range"), lambda tr: TimeRange(
            earliest=_parse_iso(tr["earliest"]),
            latest=_parse_iso(tr["latest"]),
        )),
        large_buy_ratio=data.get("large_buy_ratio"),
        large_sell_ratio=data.get("large_sell_ratio"),
        wallet_stats=_opt(data.get("wallet_stats"), wallet_stats_from_dict),
        dropped_records=data.get("dropped_records", 0),
        skipped_detectors=list(data.get("skipped_detectors", [])),
    )


def result_to_dict(result: AnalysisResult) -> Dict[str, Any]:
    """Serialize a full analysis result to JSON-compatible data."""
    return {
        "summary": summary_to_dict(result.summary),
        "risk": risk_to_dict(result.risk),
        "security_score": result.security_score,
        "security_level": result.security_level,
        "generated_at": _iso(result.generated_at),
    }


def result_from_dict(data: Dict[str, Any]) -> AnalysisResult:
    """Inverse of `result_to_dict`."""
    return AnalysisResult(
        summary=summary_from_dict(data["summary"]),
        risk=risk_from_dict(data["risk"]),
        security_score=data["security_score"],
        security_level=data["security_level"],
        generated_at=_parse_iso(data["generated_at"]),
    )
