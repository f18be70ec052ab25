"""
Market detectors - price, cost-basis and momentum patterns.

These need time order and, for most of them, known prices. They sort
their own copy of the batch and stay silent when prices are missing.
"""

from typing import List, Optional, Sequence, Set

from ..cost_basis import (
    chronological,
    early_window,
    latest_known_price,
    price_series,
    time_windows,
    weighted_entry_prices,
)
from ..findings import grade, make_finding
from ..models import Finding, FindingKind, Severity, Swap
from .context import DetectionContext


# Price volatility
VOLATILITY_MIN_SAMPLE = 10
VOLATILITY_MOVE = 0.10
VOLATILITY_SHARE = 0.20

# Profit / loss pressure
PROFIT_MULTIPLE = 1.5
LOSS_MULTIPLE = 0.9
PROFIT_WALLET_SHARE = 0.70
PROFIT_VOLUME_SHARE = 0.30
LOSS_WALLET_SHARE = 0.60

# Diamond hands / early exit
DIAMOND_HOLD_SHARE = 0.50
DIAMOND_VOLUME_SHARE = 0.30
EARLY_EXIT_HOLD_SHARE = 0.20

# Panic sell / FOMO
MOMENTUM_WINDOW = 0.20
MOMENTUM_VELOCITY = 3.0
PANIC_PRICE_DROP = -0.05
FOMO_PRICE_RISE = 0.10

# New-wallet flow
FLOW_WINDOW = 0.20
ORGANIC_VOLUME_SHARE = 0.50
ORGANIC_TRADE_SHARE = 0.60
CLOSED_LOOP_VOLUME_SHARE = 0.20
CLOSED_LOOP_TRADE_SHARE = 0.30


def _last_price(series) -> Optional[float]:
    return series[-1][1] if series else None


def _usd(swaps: Sequence[Swap]) -> float:
    return sum(s.usd_value or 0.0 for s in swaps)


def detect_price_volatility(ctx: DetectionContext) -> List[Finding]:
    """More than 20% of consecutive trades moving price by over 10%."""
    prices = [p for _, p in price_series(chronological(ctx.swaps))]
    deltas = [abs(cur - prev) / prev for prev, cur in zip(prices, prices[1:])]
    if len(deltas) <= VOLATILITY_MIN_SAMPLE:
        return []

    volatile = sum(1 for d in deltas if d > VOLATILITY_MOVE)
    share = volatile / len(deltas)
    if share <= VOLATILITY_SHARE:
        return []

    return [make_finding(
        FindingKind.PRICE_VOLATILITY,
        grade(share, VOLATILITY_SHARE),
        volatile_moves=volatile,
        total_moves=len(deltas),
        share_percent=round(share * 100, 2),
        max_move_percent=round(max(deltas) * 100, 2),
    )]


def detect_profit_pressure(ctx: DetectionContext) -> List[Finding]:
    """
    Compare each wallet's cost basis with the latest price.

    Most holders sitting on 1.5x gains (and carrying real volume) is
    selling pressure waiting to happen; most holders under water is the
    opposite kind of pressure.
    """
    entries = weighted_entry_prices(ctx.swaps)
    if not entries:
        return []
    current = latest_known_price(chronological(ctx.swaps))
    if current is None:
        return []

    in_profit = [w for w, e in entries.items() if current / e.entry_price >= PROFIT_MULTIPLE]
    in_loss = [w for w, e in entries.items() if current / e.entry_price < LOSS_MULTIPLE]

    total_usd = ctx.total_volume_usd()

    def volume_share(wallets: List[str]) -> float:
        if total_usd <= 0:
            return 0.0
        return sum(ctx.wallets[w].total_volume_usd for w in wallets) / total_usd

    profit_share = len(in_profit) / len(entries)
    profit_volume = volume_share(in_profit)
    if profit_share > PROFIT_WALLET_SHARE and profit_volume > PROFIT_VOLUME_SHARE:
        return [make_finding(
            FindingKind.PROFIT_PRESSURE,
            grade(profit_share, PROFIT_WALLET_SHARE),
            pressure="profit",
            wallets=len(in_profit),
            total_wallets=len(entries),
            wallet_share_percent=round(profit_share * 100, 2),
            volume_share_percent=round(profit_volume * 100, 2),
            current_price=current,
        )]

    loss_share = len(in_loss) / len(entries)
    if loss_share > LOSS_WALLET_SHARE:
        return [make_finding(
            FindingKind.PROFIT_PRESSURE,
            grade(loss_share, LOSS_WALLET_SHARE),
            pressure="loss",
            wallets=len(in_loss),
            total_wallets=len(entries),
            wallet_share_percent=round(loss_share * 100, 2),
            volume_share_percent=round(volume_share(in_loss) * 100, 2),
            current_price=current,
        )]
    return []


def detect_diamond_hands(ctx: DetectionContext) -> List[Finding]:
    """Do the buyers of the earliest 10% of trades still hold?"""
    early = early_window(chronological(ctx.swaps))
    early_buys = [s for s in early if s.is_buy]
    early_buyers: Set[str] = {s.wallet for s in early_buys}
    if not early_buyers:
        return []

    holders = {w for w in early_buyers if ctx.wallets[w].sell_count == 0}
    hold_share = len(holders) / len(early_buyers)

    early_volume = _usd(early)
    holder_volume = _usd([s for s in early_buys if s.wallet in holders])
    volume_share = holder_volume / early_volume if early_volume > 0 else 0.0

    metrics = dict(
        early_buyers=len(early_buyers),
        holders=len(holders),
        holding_ratio_percent=round(hold_share * 100, 2),
        volume_share_percent=round(volume_share * 100, 2),
    )
    if hold_share > DIAMOND_HOLD_SHARE and volume_share > DIAMOND_VOLUME_SHARE:
        return [make_finding(
            FindingKind.DIAMOND_HANDS,
            grade(hold_share, DIAMOND_HOLD_SHARE),
            outcome="holding",
            **metrics,
        )]
    if hold_share < EARLY_EXIT_HOLD_SHARE:
        severity = Severity.STRONG if not holders else Severity.MODERATE
        return [make_finding(FindingKind.DIAMOND_HANDS, severity, outcome="early_exit", **metrics)]
    return []


def detect_panic_and_fomo(ctx: DetectionContext) -> List[Finding]:
    """
    Compare the last 20% of the batch's time span with the 20% before it.

    Trade velocity tripling while price falls >5% is panic selling; while
    price rises >10% it is FOMO buying.
    """
    windows = time_windows(chronological(ctx.swaps), MOMENTUM_WINDOW)
    if windows is None:
        return []
    previous, recent = windows
    if not previous or not recent:
        return []

    # windows have equal duration, so the count ratio is the velocity ratio
    velocity_ratio = len(recent) / len(previous)
    if velocity_ratio <= MOMENTUM_VELOCITY:
        return []

    # one series over both windows keeps the price unit consistent
    series = price_series(previous + recent)
    recent_signatures = {s.signature for s in recent}
    previous_price = _last_price([item for item in series if item[0].signature not in recent_signatures])
    recent_price = _last_price([item for item in series if item[0].signature in recent_signatures])
    if previous_price is None or recent_price is None:
        return []
    change = (recent_price - previous_price) / previous_price

    if change < PANIC_PRICE_DROP:
        previous_sells = _usd([s for s in previous if not s.is_buy])
        recent_sells = _usd([s for s in recent if not s.is_buy])
        return [make_finding(
            FindingKind.PANIC_SELL,
            grade(velocity_ratio, MOMENTUM_VELOCITY),
            velocity_ratio=round(velocity_ratio, 2),
            price_change_percent=round(change * 100, 2),
            sell_volume_spike=round(recent_sells / previous_sells, 2) if previous_sells > 0 else None,
        )]
    if change > FOMO_PRICE_RISE:
        previous_buys = _usd([s for s in previous if s.is_buy])
        recent_buys = _usd([s for s in recent if s.is_buy])
        return [make_finding(
            FindingKind.FOMO_BUY,
            grade(velocity_ratio, MOMENTUM_VELOCITY),
            velocity_ratio=round(velocity_ratio, 2),
            price_change_percent=round(change * 100, 2),
            buy_volume_spike=round(recent_buys / previous_buys, 2) if previous_buys > 0 else None,
        )]
    return []


def detect_new_wallet_flow(ctx: DetectionContext) -> List[Finding]:
    """
    Is fresh money arriving, or is the same set of wallets trading in a loop?

    A trade is "new" when it is the wallet's first appearance in the batch.
    """
    ordered = chronological(ctx.swaps)
    if not ordered:
        return []

    seen: Set[str] = set()
    new_signatures: Set[str] = set()
    for swap in ordered:
        if swap.wallet not in seen:
            seen.add(swap.wallet)
            new_signatures.add(swap.signature)

    windows = time_windows(ordered, FLOW_WINDOW)
    if windows is not None:
        recent = windows[1]
        recent_new = [s for s in recent if s.signature in new_signatures]
        recent_usd = _usd(recent)
        if recent_usd > 0:
            volume_share = _usd(recent_new) / recent_usd
            trade_share = len(recent_new) / len(recent)
            if volume_share > ORGANIC_VOLUME_SHARE and trade_share > ORGANIC_TRADE_SHARE:
                return [make_finding(
                    FindingKind.NEW_WALLET_FLOW,
                    grade(volume_share, ORGANIC_VOLUME_SHARE),
                    flow="organic_growth",
                    scope="recent",
                    new_wallets=len(recent_new),
                    volume_share_percent=round(volume_share * 100, 2),
                    trade_share_percent=round(trade_share * 100, 2),
                )]

    total_usd = _usd(ordered)
    if total_usd <= 0:
        return []
    new_trades = [s for s in ordered if s.signature in new_signatures]
    volume_share = _usd(new_trades) / total_usd
    trade_share = len(new_trades) / len(ordered)
    if volume_share < CLOSED_LOOP_VOLUME_SHARE and trade_share < CLOSED_LOOP_TRADE_SHARE:
        severity = Severity.STRONG if trade_share < CLOSED_LOOP_TRADE_SHARE / 2 else Severity.MODERATE
        return [make_finding(
            FindingKind.NEW_WALLET_FLOW,
            severity,
            flow="closed_loop",
            scope="overall",
            new_wallets=len(new_trades),
            volume_share_percent=round(volume_share * 100, 2),
            trade_share_percent=round(trade_share * 100, 2),
        )]
    return []
