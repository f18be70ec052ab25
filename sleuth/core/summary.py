"""
Summary Assembler - packages aggregates, findings and rankings into the
`TransactionSummary` output contract.
"""

import logging
from datetime import datetime, timezone
from typing import List, Mapping, Optional, Sequence, Tuple

from .aggregator import rank_by_volume, uses_usd_basis, wallet_volume
from .amount_utils import safe_divide
from .models import (
    Finding,
    Swap,
    TimeRange,
    TopTrader,
    TransactionSummary,
    WalletActivity,
    WalletAggregate,
    WalletStats,
)


logger = logging.getLogger(__name__)

DEFAULT_TOP_WALLETS = 10
DEFAULT_TOP_TRADERS = 5
LARGE_TRADE_MULTIPLIER = 10


def ms_to_datetime(timestamp_ms: int) -> datetime:
    """Epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)


def build_top_wallets(
    wallets: Mapping[str, WalletAggregate],
    limit: int = DEFAULT_TOP_WALLETS,
) -> List[WalletActivity]:
    usd_basis = uses_usd_basis(wallets)
    total = sum(wallet_volume(w, usd_basis) for w in wallets.values())

    top = []
    for w in rank_by_volume(wallets)[:limit]:
        share = safe_divide(wallet_volume(w, usd_basis), total) * 100
        top.append(WalletActivity(
            address=w.address,
            tx_count=w.tx_count,
            buy_count=w.buy_count,
            sell_count=w.sell_count,
            total_volume=w.total_volume,
            volume_usd=round(w.total_volume_usd, 2),
            volume_share=round(share, 2),
            first_seen=ms_to_datetime(w.first_seen),
            last_seen=ms_to_datetime(w.last_seen),
        ))
    return top


def build_top_traders(
    wallets: Mapping[str, WalletAggregate],
    limit: int = DEFAULT_TOP_TRADERS,
) -> List[TopTrader]:
    return [
        TopTrader(
            wallet=w.address,
            buy_count=w.buy_count,
            sell_count=w.sell_count,
            volume=w.total_volume,
            volume_usd=round(w.total_volume_usd, 2),
        )
        for w in rank_by_volume(wallets)[:limit]
    ]


def large_trade_ratios(
    swaps: Sequence[Swap],
    tvl_usd: Optional[float],
) -> Tuple[Optional[float], Optional[float]]:
    """
    USD volume of buys and of sells above 10x the average trade size,
    each as a percentage of pool TVL.

    Returns:
        (large_buy_ratio, large_sell_ratio), both None without a positive TVL
    """
    if tvl_usd is None or tvl_usd <= 0:
        return None, None

    sized = [(s, s.usd_value) for s in swaps if s.usd_value is not None]
    if not sized:
        return 0.0, 0.0
    threshold = sum(v for _, v in sized) / len(sized) * LARGE_TRADE_MULTIPLIER

    large_buys = sum(v for s, v in sized if s.is_buy and v > threshold)
    large_sells = sum(v for s, v in sized if not s.is_buy and v > threshold)
    return round(large_buys / tvl_usd * 100, 2), round(large_sells / tvl_usd * 100, 2)


def narrative(total: int, buys: int, sells: int, unique_wallets: int, pattern_count: int) -> str:
    if total == 0:
        return "No transactions to analyze."
    return (
        f"Analyzed {total} transactions: {buys} buys ({buys / total * 100:.1f}%), "
        f"{sells} sells ({sells / total * 100:.1f}%). {unique_wallets} unique wallets. "
        f"{pattern_count} suspicious patterns detected."
    )


def assemble_summary(
    swaps: Sequence[Swap],
    wallets: Mapping[str, WalletAggregate],
    findings: Sequence[Finding],
    tvl_usd: Optional[float] = None,
    wallet_stats: Optional[WalletStats] = None,
    top_wallets: int = DEFAULT_TOP_WALLETS,
    top_traders: int = DEFAULT_TOP_TRADERS,
    dropped_records: int = 0,
    skipped_detectors: Sequence[str] = (),
) -> TransactionSummary:
    """
    Build the TransactionSummary for one batch.

    Args:
        swaps: Normalized swaps of the batch
        wallets: Wallet aggregates of the batch
        findings: Ordered findings from the detection engine
        tvl_usd: Pool TVL for the large-trade ratios
        wallet_stats: Optional market-structure analyses
        top_wallets: Number of top wallets to include
        top_traders: Number of top traders to include
        dropped_records: Malformed records dropped by the normalizer
        skipped_detectors: Names of detectors that failed

    Returns:
        TransactionSummary
    """
    total = len(swaps)
    buys = sum(1 for s in swaps if s.is_buy)
    sells = total - buys

    sized = [s.usd_value for s in swaps if s.usd_value is not None]
    total_usd = sum(sized)
    buy_usd = sum(s.usd_value or 0.0 for s in swaps if s.is_buy)
    sell_usd = sum(s.usd_value or 0.0 for s in swaps if not s.is_buy)

    time_range = None
    if swaps:
        timestamps = [s.timestamp for s in swaps]
        time_range = TimeRange(
            earliest=ms_to_datetime(min(timestamps)),
            latest=ms_to_datetime(max(timestamps)),
        )

    large_buy, large_sell = large_trade_ratios(swaps, tvl_usd)

    summary = TransactionSummary(
        total_count=total,
        buy_count=buys,
        sell_count=sells,
        unique_wallets=len(wallets),
        avg_volume_usd=round(safe_divide(total_usd, len(sized)), 2),
        total_volume_usd=round(total_usd, 2),
        buy_volume_usd=round(buy_usd, 2),
        sell_volume_usd=round(sell_usd, 2),
        top_wallets=build_top_wallets(wallets, top_wallets),
        top_traders=build_top_traders(wallets, top_traders),
        findings=list(findings),
        summary=narrative(total, buys, sells, len(wallets), len(findings)),
        time_range=time_range,
        large_buy_ratio=large_buy,
        large_sell_ratio=large_sell,
        wallet_stats=wallet_stats,
        dropped_records=dropped_records,
        skipped_detectors=list(skipped_detectors),
    )
    logger.debug(f"Summary assembled: {summary.summary}")
    return summary
