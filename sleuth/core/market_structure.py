"""
Market-structure analyses attached to the summary as `WalletStats`.

Unlike detectors these always describe the batch (when their sample-size
gates pass) instead of flagging something suspicious:

- holder behavior: who never sold, who sold and bought back
- smart money: entry price and P/L of the earliest buyers (> 50 swaps)
- profit/loss distribution across cost-basis wallets (> 50 swaps)
- support/resistance price levels from 2%-wide bins (> 100 swaps)
"""

import logging
import math
from collections import defaultdict
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .cost_basis import chronological, early_window, latest_known_price, weighted_entry_prices
from .models import (
    HolderBehavior,
    PriceLevel,
    ProfitLossDistribution,
    SmartMoneyAnalysis,
    SupportResistanceLevels,
    Swap,
    WalletAggregate,
    WalletStats,
)


logger = logging.getLogger(__name__)

SMART_MONEY_MIN_SAMPLE = 50
PNL_MIN_SAMPLE = 50
LEVELS_MIN_SAMPLE = 100

BREAK_EVEN_BAND_PERCENT = 1.0
LEVEL_BIN_WIDTH = 0.02
LEVELS_PER_SIDE = 3


def analyze_holder_behavior(
    ordered: Sequence[Swap],
    wallets: Mapping[str, WalletAggregate],
) -> Optional[HolderBehavior]:
    if not wallets:
        return None

    buyers = [w for w in wallets.values() if w.buy_count > 0]
    sellers = [w for w in wallets.values() if w.sell_count > 0]
    diamond = [w for w in buyers if w.sell_count == 0]

    sold: set = set()
    re_entered: set = set()
    for swap in ordered:
        if not swap.is_buy:
            sold.add(swap.wallet)
        elif swap.wallet in sold:
            re_entered.add(swap.wallet)

    fresh = sum(1 for w in wallets.values() if w.tx_count <= 2)
    return HolderBehavior(
        diamond_hands_count=len(diamond),
        diamond_hands_ratio=round(len(diamond) / len(buyers) * 100, 2) if buyers else 0.0,
        re_entry_count=len(re_entered),
        re_entry_ratio=round(len(re_entered) / len(sellers) * 100, 2) if sellers else 0.0,
        new_wallet_ratio=round(fresh / len(wallets) * 100, 2),
    )


def analyze_smart_money(
    ordered: Sequence[Swap],
    wallets: Mapping[str, WalletAggregate],
    current_price: Optional[float],
) -> Optional[SmartMoneyAnalysis]:
    if len(ordered) <= SMART_MONEY_MIN_SAMPLE or current_price is None:
        return None

    early_buys = [s for s in early_window(ordered) if s.is_buy]
    if not early_buys:
        return None

    positions = weighted_entry_prices(early_buys)
    if not positions:
        return None
    total_weight = sum(p.buy_weight for p in positions.values())
    avg_entry = sum(p.entry_price * p.buy_weight for p in positions.values()) / total_weight

    buyers = {s.wallet for s in early_buys}
    holding = sum(1 for w in buyers if wallets[w].sell_count == 0)
    return SmartMoneyAnalysis(
        early_buyers_count=len(buyers),
        early_buyers_avg_entry_price=avg_entry,
        early_buyers_current_profit_loss=round((current_price - avg_entry) / avg_entry * 100, 2),
        early_buyers_total_volume=round(sum(s.usd_value or 0.0 for s in early_buys), 2),
        early_buyers_still_holding=holding,
        early_buyers_still_holding_ratio=round(holding / len(buyers) * 100, 2),
    )


def _profit_taking_risk(profit_ratio: float, avg_profit: float) -> str:
    if profit_ratio > 60 and avg_profit > 50:
        return "high"
    if profit_ratio > 40 or avg_profit > 20:
        return "medium"
    return "low"


def analyze_profit_loss(
    ordered: Sequence[Swap],
    wallets: Mapping[str, WalletAggregate],
    current_price: Optional[float],
) -> Optional[ProfitLossDistribution]:
    if len(ordered) <= PNL_MIN_SAMPLE or current_price is None:
        return None
    entries = weighted_entry_prices(ordered)
    if not entries:
        return None

    profits: List[float] = []
    losses: List[float] = []
    profit_volume = 0.0
    loss_volume = 0.0
    break_even = 0
    for wallet, entry in entries.items():
        change = (current_price - entry.entry_price) / entry.entry_price * 100
        if change > BREAK_EVEN_BAND_PERCENT:
            profits.append(change)
            profit_volume += wallets[wallet].total_volume_usd
        elif change < -BREAK_EVEN_BAND_PERCENT:
            losses.append(change)
            loss_volume += wallets[wallet].total_volume_usd
        else:
            break_even += 1

    profit_ratio = len(profits) / len(entries) * 100
    avg_profit = sum(profits) / len(profits) if profits else 0.0
    avg_loss = sum(losses) / len(losses) if losses else 0.0
    return ProfitLossDistribution(
        wallets_in_profit=len(profits),
        wallets_in_loss=len(losses),
        wallets_at_break_even=break_even,
        profit_loss_ratio=round(profit_ratio, 2),
        avg_profit_percent=round(avg_profit, 2),
        avg_loss_percent=round(avg_loss, 2),
        total_profit_volume=round(profit_volume, 2),
        total_loss_volume=round(loss_volume, 2),
        profit_taking_risk=_profit_taking_risk(profit_ratio, avg_profit),
    )


def _level_strength(share: float) -> str:
    if share >= 0.15:
        return "strong"
    if share >= 0.07:
        return "moderate"
    return "weak"


def analyze_support_resistance(
    ordered: Sequence[Swap],
    current_price: Optional[float],
) -> Optional[SupportResistanceLevels]:
    """Bucket known trade prices into 2%-of-current-price bins."""
    if len(ordered) <= LEVELS_MIN_SAMPLE or current_price is None:
        return None

    priced = [s for s in ordered if s.price_token is not None and s.price_token > 0]
    if not priced:
        return None

    width = current_price * LEVEL_BIN_WIDTH
    if width <= 0:
        return None
    counts: Dict[int, int] = defaultdict(int)
    volumes: Dict[int, float] = defaultdict(float)
    for swap in priced:
        position = swap.price_token / width
        if not math.isfinite(position):
            continue
        idx = int(math.floor(position))
        counts[idx] += 1
        volumes[idx] += swap.usd_value or 0.0

    levels = []
    for idx in counts:
        levels.append(PriceLevel(
            price=(idx + 0.5) * width,
            transaction_count=counts[idx],
            volume=round(volumes[idx], 2),
            strength=_level_strength(counts[idx] / len(priced)),
        ))
    levels.sort(key=lambda lv: (-lv.transaction_count, -lv.volume, lv.price))

    support = [lv for lv in levels if lv.price < current_price][:LEVELS_PER_SIDE]
    resistance = [lv for lv in levels if lv.price > current_price][:LEVELS_PER_SIDE]
    return SupportResistanceLevels(
        support_levels=support,
        resistance_levels=resistance,
        current_price=current_price,
        nearest_support=max((lv.price for lv in support), default=None),
        nearest_resistance=min((lv.price for lv in resistance), default=None),
    )


def _guarded(name: str, analysis: Callable, *args, skipped: List[str]):
    try:
        return analysis(*args)
    except Exception as e:
        logger.warning(f"Wallet stats {name} failed and was skipped: {type(e).__name__}: {e}")
        skipped.append(name)
        return None


def build_wallet_stats(
    swaps: Sequence[Swap],
    wallets: Mapping[str, WalletAggregate],
) -> Tuple[Optional[WalletStats], List[str]]:
    """
    Run every market-structure analysis whose gate passes.

    A failing analysis leaves its field as None and is reported like a
    skipped detector.

    Returns:
        Tuple of (stats or None for an empty batch, names of skipped
        analyses)
    """
    skipped: List[str] = []
    if not swaps:
        return None, skipped
    ordered = chronological(swaps)
    current = latest_known_price(ordered)
    stats = WalletStats(
        holder_behavior=_guarded(
            "holder_behavior", analyze_holder_behavior, ordered, wallets, skipped=skipped
        ),
        smart_money=_guarded(
            "smart_money", analyze_smart_money, ordered, wallets, current, skipped=skipped
        ),
        profit_loss_distribution=_guarded(
            "profit_loss_distribution", analyze_profit_loss, ordered, wallets, current, skipped=skipped
        ),
        support_resistance=_guarded(
            "support_resistance", analyze_support_resistance, ordered, current, skipped=skipped
        ),
    )
    logger.debug(
        f"Wallet stats: smart_money={stats.smart_money is not None}, "
        f"pnl={stats.profit_loss_distribution is not None}, "
        f"levels={stats.support_resistance is not None}"
    )
    return stats, skipped
