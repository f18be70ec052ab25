"""
Algorithmic Risk Scorer

Combines six independently computed factors into one composite score
(0-100, higher = riskier):
- Liquidity depth (pool TVL)
- Token authorities (freeze/mint)
- Trading activity (buy/sell imbalance)
- Wallet concentration (top wallet volume share)
- Bot activity (share of profiled wallets flagged as bots)
- Historical trend (TVL, volume, stability and risk trends)

Missing context never raises: each factor falls back to its documented
default score with a reason explaining why.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .amount_utils import round_half_up
from .models import (
    HistoryTrend,
    PoolContext,
    RiskFactor,
    RiskScoreBreakdown,
    RiskTier,
    TransactionSummary,
    WalletProfile,
)


logger = logging.getLogger(__name__)

FACTOR_WEIGHTS: Dict[str, float] = {
    "liquidity": 0.25,
    "token_authorities": 0.20,
    "trading_activity": 0.15,
    "wallet_concentration": 0.15,
    "bot_activity": 0.10,
    "historical_trend": 0.15,
}

CONCERN_THRESHOLD = 50
MAX_CONCERNS = 3

FactorResult = Tuple[int, str]


def assess_liquidity(context: Optional[PoolContext]) -> FactorResult:
    """Step function of pool TVL."""
    tvl = context.tvl_usd if context is not None else None
    if tvl is None:
        return 90, "Pool liquidity data unavailable - treating as very low liquidity"

    if tvl >= 1_000_000:
        return 0, f"Deep liquidity (${tvl / 1_000_000:.1f}M TVL) - very low slippage risk"
    if tvl >= 500_000:
        return 10, f"Good liquidity (${tvl / 1_000:.0f}K TVL) - low slippage risk"
    if tvl >= 100_000:
        return 30, f"Moderate liquidity (${tvl / 1_000:.0f}K TVL) - some slippage risk"
    if tvl >= 10_000:
        return 60, f"Shallow liquidity (${tvl / 1_000:.0f}K TVL) - high slippage risk"
    return 90, f"Very low liquidity (${tvl:.0f} TVL) - CRITICAL slippage risk"


def assess_token_authorities(context: Optional[PoolContext]) -> FactorResult:
    has_freeze = context is not None and context.has_freeze_authority
    has_mint = context is not None and context.has_mint_authority

    if has_freeze and has_mint:
        return 90, "CRITICAL: Both freeze and mint authority enabled - high rug pull risk"
    if has_freeze:
        return 70, "HIGH: Freeze authority enabled - tokens can be frozen"
    if has_mint:
        return 50, "MEDIUM: Mint authority enabled - supply can be inflated"
    return 0, "No dangerous authorities detected"


def assess_trading_activity(summary: TransactionSummary) -> FactorResult:
    """Deviation of the buy ratio from an even 50/50 split."""
    if summary.total_count == 0:
        return 80, "No trading activity detected - dead pool"

    buy_ratio = summary.buy_count / summary.total_count
    imbalance = abs(buy_ratio - 0.5) * 2
    buys = f"{buy_ratio * 100:.1f}% buys"

    if imbalance < 0.2:
        return 0, f"Healthy buy/sell balance ({buys})"
    if imbalance < 0.4:
        return 30, f"Slight buy/sell imbalance ({buys})"
    if imbalance < 0.6:
        return 60, f"Significant buy/sell imbalance ({buys}) - possible manipulation"
    return 90, f"Extreme buy/sell imbalance ({buys}) - HIGH manipulation risk"


def assess_wallet_concentration(summary: TransactionSummary) -> FactorResult:
    if not summary.top_wallets:
        return 50, "Unable to assess wallet concentration"

    share = summary.top_wallets[0].volume_share
    label = f"top wallet: {share:.1f}%"

    if share < 10:
        return 0, f"Low concentration ({label})"
    if share < 20:
        return 20, f"Moderate concentration ({label})"
    if share < 30:
        return 50, f"High concentration ({label})"
    if share < 50:
        return 70, f"Very high concentration ({label}) - possible manipulation"
    return 90, f"CRITICAL concentration ({label}) - HIGH manipulation risk"


def assess_bot_activity(profiles: Optional[Sequence[WalletProfile]]) -> FactorResult:
    """Share of profiled wallets flagged as bots; no profiles means no evidence."""
    if not profiles:
        return 0, "No wallet profiling data available"

    bots = sum(1 for p in profiles if p.is_likely_bot)
    total = len(profiles)
    percentage = bots / total * 100

    if percentage == 0:
        return 0, "No bot activity detected among top traders"
    if percentage < 25:
        return 20, f"Low bot activity ({bots}/{total} bots detected)"
    if percentage < 50:
        return 50, f"Moderate bot activity ({bots}/{total} bots detected)"
    return 80, f"HIGH bot activity ({bots}/{total} bots detected) - possible automated manipulation"


def assess_historical_trend(history: Optional[HistoryTrend]) -> FactorResult:
    """Additive trend penalties, capped at 100."""
    if history is None or history.data_points == 0:
        return 50, "No historical data (new pool - exercise caution)"

    score = 0
    concerns: List[str] = []

    if (
        history.tvl_trend == "down"
        and history.tvl_change_percent is not None
        and history.tvl_change_percent < -30
    ):
        score += 30
        concerns.append("TVL declining sharply")
    elif history.tvl_trend == "down":
        score += 15
        concerns.append("TVL declining")

    if history.volume_trend == "decreasing":
        score += 10
        concerns.append("volume declining")

    if history.stability_level == "volatile":
        score += 20
        concerns.append("high volatility")
    elif history.stability_level == "moderate":
        score += 10
        concerns.append("moderate volatility")

    if history.risk_trend == "worsening":
        score += 20
        concerns.append("risk increasing")

    if concerns:
        reason = f"Historical concerns: {', '.join(concerns)}"
    else:
        reason = f"Stable history over {history.days_tracked} days"
    return min(score, 100), reason


def risk_tier(total_score: int) -> RiskTier:
    if total_score < 20:
        return RiskTier.VERY_LOW
    if total_score < 40:
        return RiskTier.LOW
    if total_score < 60:
        return RiskTier.MEDIUM
    if total_score < 80:
        return RiskTier.HIGH
    return RiskTier.CRITICAL


def combine_factors(factors: Sequence[RiskFactor]) -> int:
    """Round half up of the weighted sum."""
    return round_half_up(sum(f.score * f.weight for f in factors))


def summarize_risk(total_score: int, tier: RiskTier, factors: Sequence[RiskFactor]) -> str:
    """Name the top three factors scoring 50 or more, highest first."""
    concerns = sorted(
        (f for f in factors if f.score >= CONCERN_THRESHOLD),
        key=lambda f: -f.score,
    )[:MAX_CONCERNS]

    head = f"Overall {tier.value} risk ({total_score}/100)."
    if not concerns:
        return f"{head} Pool shows healthy metrics."
    return f"{head} Key concerns: {'; '.join(f'{f.name}: {f.reason}' for f in concerns)}."


def calculate_risk_score(
    summary: TransactionSummary,
    context: Optional[PoolContext] = None,
    profiles: Optional[Sequence[WalletProfile]] = None,
    history: Optional[HistoryTrend] = None,
) -> RiskScoreBreakdown:
    """
    Calculate the composite risk score for one analysis run.

    Args:
        summary: Assembled transaction summary of the batch
        context: Pool liquidity and token-authority context
        profiles: Optional wallet profiles (bot verdicts)
        history: Optional historical trend snapshot

    Returns:
        RiskScoreBreakdown with all six factors in fixed order
    """
    assessed = {
        "liquidity": assess_liquidity(context),
        "token_authorities": assess_token_authorities(context),
        "trading_activity": assess_trading_activity(summary),
        "wallet_concentration": assess_wallet_concentration(summary),
        "bot_activity": assess_bot_activity(profiles),
        "historical_trend": assess_historical_trend(history),
    }

    factors = [
        RiskFactor(name=name, score=score, weight=FACTOR_WEIGHTS[name], reason=reason)
        for name, (score, reason) in assessed.items()
    ]
    total = combine_factors(factors)
    tier = risk_tier(total)

    logger.info(f"Risk score: {total}/100 ({tier.value})")
    return RiskScoreBreakdown(
        total_score=total,
        risk_level=tier,
        factors=factors,
        summary=summarize_risk(total, tier, factors),
    )
