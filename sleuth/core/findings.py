"""
Finding construction and text rendering.

Detectors only produce a kind, a severity and a metrics dict. The
human-readable description is rendered here from the metrics so callers
can re-render (other languages, other formats) or ignore it entirely.
"""

from typing import Any, Callable, Dict

from .models import Finding, FindingKind, Severity


def short_address(address: str) -> str:
    return f"{address[:8]}..." if len(address) > 8 else address


def grade(value: float, threshold: float) -> Severity:
    """
    Grade a metric against the threshold it crossed.

    >= 2x the threshold is strong, >= 1.5x moderate, anything else weak.
    """
    if threshold <= 0:
        return Severity.MODERATE
    ratio = value / threshold
    if ratio >= 2.0:
        return Severity.STRONG
    if ratio >= 1.5:
        return Severity.MODERATE
    return Severity.WEAK


def _fmt_impact(value: Any) -> str:
    return "n/a" if value is None else f"{value:.2f}%"


_RENDERERS: Dict[FindingKind, Callable[[Dict[str, Any]], str]] = {
    FindingKind.WASH_TRADING: lambda m: (
        f"Possible wash trading: {short_address(m['wallet'])} made "
        f"{m['round_trips']} round-trip trades"
    ),
    FindingKind.WHALE_CONCENTRATION: lambda m: (
        f"Whale activity: {short_address(m['wallet'])} controls "
        f"{m['share_percent']:.1f}% of volume"
    ),
    FindingKind.BUY_SELL_IMBALANCE: lambda m: (
        "Extremely high buy ratio (>85%) - potential pump scheme"
        if m["direction"] == "pump"
        else "Extremely high sell ratio (>85%) - potential dump or panic selling"
    ),
    FindingKind.RAPID_CYCLE: lambda m: (
        f"Rapid buy/sell cycling: {short_address(m['wallet'])} completed "
        f"{m['round_trips']} round trips in only {m['tx_count']} trades"
    ),
    FindingKind.LARGE_TRANSACTION: lambda m: (
        f"{m['count']} unusually large transactions (>10x average of "
        f"${m['avg_usd']:,.2f}) make up {m['share_percent']:.1f}% of trades"
    ),
    FindingKind.TIME_CLUSTERING: lambda m: (
        f"Trading concentrated at {m['peak_hour']:02d}:00 UTC: "
        f"{m['trade_count']} trades ({m['share_percent']:.1f}%) in one hour"
    ),
    FindingKind.NEW_WALLET_DOMINANCE: lambda m: (
        f"{m['share_percent']:.1f}% of wallets ({m['new_wallets']}/{m['total_wallets']}) "
        f"made 2 or fewer trades - possible fresh-wallet farming"
    ),
    FindingKind.VOLUME_SPIKE: lambda m: (
        f"Volume spike: window {m['window_index'] + 1}/10 traded "
        f"{m['multiplier']:.1f}x the average window volume"
    ),
    FindingKind.BOT_SIGNATURE: lambda m: (
        f"Bot signature: {m['share_percent']:.1f}% of sized trades are "
        f"~${m['bucket_usd']:,.0f} ({m['trade_count']} trades)"
    ),
    FindingKind.PRICE_VOLATILITY: lambda m: (
        f"High price volatility: {m['share_percent']:.1f}% of consecutive trades "
        f"moved price by more than 10%"
    ),
    FindingKind.SYNCHRONIZED_CLUSTER: lambda m: (
        f"Synchronized trading: {m['wallet_count']} wallets traded in the same second "
        f"across {m['cluster_seconds']} clusters ({m['volume_share_percent']:.1f}% of volume)"
    ),
    FindingKind.PROFIT_PRESSURE: lambda m: (
        f"Profit-taking pressure: {m['wallet_share_percent']:.1f}% of tracked holders "
        f"sit on 1.5x+ unrealized gains ({m['volume_share_percent']:.1f}% of volume)"
        if m["pressure"] == "profit"
        else f"Loss pressure: {m['wallet_share_percent']:.1f}% of tracked holders "
        f"are more than 10% under their entry price"
    ),
    FindingKind.BAIT_PATTERN: lambda m: (
        f"Bait pattern: {m['bait_windows']}/{m['total_windows']} minutes show many "
        f"tiny trades with a flat price ({m['share_percent']:.1f}%)"
    ),
    FindingKind.DIAMOND_HANDS: lambda m: (
        f"Diamond hands: {m['holding_ratio_percent']:.1f}% of early buyers never sold "
        f"({m['volume_share_percent']:.1f}% of early volume)"
        if m["outcome"] == "holding"
        else f"Early exit: only {m['holding_ratio_percent']:.1f}% of early buyers still hold"
    ),
    FindingKind.PANIC_SELL: lambda m: (
        f"Panic selling: trade velocity {m['velocity_ratio']:.1f}x with price "
        f"down {abs(m['price_change_percent']):.1f}%"
    ),
    FindingKind.FOMO_BUY: lambda m: (
        f"FOMO buying: trade velocity {m['velocity_ratio']:.1f}x with price "
        f"up {m['price_change_percent']:.1f}%"
    ),
    FindingKind.NEW_WALLET_FLOW: lambda m: (
        f"Organic growth: new wallets bring {m['volume_share_percent']:.1f}% of recent "
        f"volume and {m['trade_share_percent']:.1f}% of recent trades"
        if m["flow"] == "organic_growth"
        else f"Closed loop: new wallets bring only {m['volume_share_percent']:.1f}% of "
        f"volume and {m['trade_share_percent']:.1f}% of trades"
    ),
    FindingKind.MANIPULATION_WALLET: lambda m: (
        f"{m['wallet_count']} manipulation wallet(s) paired large buys and sells within "
        f"5 minutes: ${m['buy_volume_usd']:,.0f} bought, ${m['sell_volume_usd']:,.0f} sold "
        f"(est. price impact {_fmt_impact(m['price_impact_percent'])}: "
        f"buy {_fmt_impact(m['buy_price_impact_percent'])}, "
        f"sell {_fmt_impact(m['sell_price_impact_percent'])})"
    ),
}


def render_finding(kind: FindingKind, metrics: Dict[str, Any]) -> str:
    """Render the description of a finding from its metrics."""
    return _RENDERERS[kind](metrics)


def make_finding(
    kind: FindingKind,
    severity: Severity,
    detector: str = "",
    **metrics: Any,
) -> Finding:
    """Build a Finding, rendering its description."""
    return Finding(
        kind=kind,
        severity=severity,
        metrics=metrics,
        description=render_finding(kind, metrics),
        detector=detector,
    )
