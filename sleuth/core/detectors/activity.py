"""
Activity detectors - wallet, volume and timing patterns.

Each detector is a pure function `DetectionContext -> List[Finding]`.
Thresholds are policy: they are reproduced exactly and only changed
together with the tests that pin them.
"""

import math
from collections import Counter, defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Set

from ..aggregator import rank_by_volume, uses_usd_basis, wallet_volume
from ..cost_basis import chronological, price_series
from ..findings import grade, make_finding
from ..models import Finding, FindingKind, Severity, Swap
from .context import DetectionContext


# Wash trading / rapid cycles
WASH_MIN_ROUND_TRIPS = 10
RAPID_MIN_ROUND_TRIPS = 5
RAPID_MAX_TX_COUNT = 20

# Concentration / imbalance
WHALE_SHARE = 0.30
PUMP_BUY_RATIO = 0.85
DUMP_BUY_RATIO = 0.15

# Large transactions
LARGE_TX_MULTIPLIER = 10

# Time clustering
TIME_CLUSTER_MIN_SAMPLE = 10
TIME_CLUSTER_SHARE = 0.20

# New-wallet dominance
NEW_WALLET_MAX_TXS = 2
NEW_WALLET_MIN_WALLETS = 10
NEW_WALLET_SHARE = 0.50

# Volume spike
SPIKE_MIN_SAMPLE = 100
SPIKE_WINDOWS = 10
SPIKE_MULTIPLIER = 3.0

# Bot signature
BOT_BUCKET_USD = 10
BOT_MIN_SAMPLE = 20
BOT_BUCKET_SHARE = 0.30

# Synchronized clusters
SYNC_MIN_WALLETS = 3
SYNC_VOLUME_SHARE = 0.20

# Bait pattern
BAIT_MIN_SAMPLE = 100
BAIT_MIN_TRADES = 20
BAIT_MAX_AVG_USD = 10.0
BAIT_MAX_PRICE_MOVE = 0.02
BAIT_WINDOW_SHARE = 0.20

# Manipulation wallets
MANIPULATION_SIZE_MULTIPLIER = 3
MANIPULATION_WINDOW_MS = 5 * 60 * 1000


def detect_wash_trading(ctx: DetectionContext) -> List[Finding]:
    """A wallet with at least 10 buys and 10 sells is round-tripping."""
    findings = []
    for address in sorted(ctx.wallets):
        wallet = ctx.wallets[address]
        if wallet.round_trips >= WASH_MIN_ROUND_TRIPS:
            severity = Severity.STRONG if wallet.round_trips >= 2 * WASH_MIN_ROUND_TRIPS else Severity.MODERATE
            findings.append(make_finding(
                FindingKind.WASH_TRADING,
                severity,
                wallet=address,
                round_trips=wallet.round_trips,
                buy_count=wallet.buy_count,
                sell_count=wallet.sell_count,
            ))
    return findings


def detect_whale_concentration(ctx: DetectionContext) -> List[Finding]:
    """A wallet holding more than 30% of batch volume."""
    usd_basis = uses_usd_basis(ctx.wallets)
    total = sum(wallet_volume(w, usd_basis) for w in ctx.wallets.values())
    if total <= 0:
        return []

    findings = []
    for wallet in rank_by_volume(ctx.wallets):
        share = wallet_volume(wallet, usd_basis) / total
        if share <= WHALE_SHARE:
            break
        findings.append(make_finding(
            FindingKind.WHALE_CONCENTRATION,
            grade(share, WHALE_SHARE),
            wallet=wallet.address,
            share_percent=round(share * 100, 2),
            basis="usd" if usd_basis else "raw",
        ))
    return findings


def detect_buy_sell_imbalance(ctx: DetectionContext) -> List[Finding]:
    total = ctx.total_count
    if total == 0:
        return []
    buys = sum(1 for s in ctx.swaps if s.is_buy)
    buy_ratio = buys / total

    if buy_ratio > PUMP_BUY_RATIO:
        direction = "pump"
        severity = Severity.STRONG if buy_ratio >= 0.95 else Severity.MODERATE
    elif buy_ratio < DUMP_BUY_RATIO:
        direction = "dump"
        severity = Severity.STRONG if buy_ratio <= 0.05 else Severity.MODERATE
    else:
        return []

    return [make_finding(
        FindingKind.BUY_SELL_IMBALANCE,
        severity,
        direction=direction,
        buy_ratio_percent=round(buy_ratio * 100, 2),
        buy_count=buys,
        sell_count=total - buys,
    )]


def detect_rapid_cycles(ctx: DetectionContext) -> List[Finding]:
    """Low-activity wallets that still manage several round trips."""
    findings = []
    for address in sorted(ctx.wallets):
        wallet = ctx.wallets[address]
        if wallet.round_trips >= RAPID_MIN_ROUND_TRIPS and wallet.tx_count < RAPID_MAX_TX_COUNT:
            findings.append(make_finding(
                FindingKind.RAPID_CYCLE,
                grade(wallet.round_trips, RAPID_MIN_ROUND_TRIPS),
                wallet=address,
                round_trips=wallet.round_trips,
                tx_count=wallet.tx_count,
            ))
    return findings


def detect_large_transactions(ctx: DetectionContext) -> List[Finding]:
    avg = ctx.average_trade_usd()
    if avg <= 0:
        return []
    threshold = avg * LARGE_TX_MULTIPLIER
    large = [v for v in ctx.sized_values() if v > threshold]
    if not large:
        return []

    return [make_finding(
        FindingKind.LARGE_TRANSACTION,
        grade(max(large) / avg, LARGE_TX_MULTIPLIER),
        count=len(large),
        share_percent=round(len(large) / ctx.total_count * 100, 2),
        avg_usd=round(avg, 2),
        threshold_usd=round(threshold, 2),
        volume_usd=round(sum(large), 2),
    )]


def detect_time_clustering(ctx: DetectionContext) -> List[Finding]:
    """Busiest UTC hour-of-day holding more than 20% of all trades."""
    total = ctx.total_count
    if total <= TIME_CLUSTER_MIN_SAMPLE:
        return []

    hours: Counter = Counter(
        datetime.fromtimestamp(s.timestamp / 1000, tz=timezone.utc).hour for s in ctx.swaps
    )
    peak_hour, peak_count = min(hours.items(), key=lambda kv: (-kv[1], kv[0]))
    share = peak_count / total
    if share <= TIME_CLUSTER_SHARE:
        return []

    return [make_finding(
        FindingKind.TIME_CLUSTERING,
        grade(share, TIME_CLUSTER_SHARE),
        peak_hour=peak_hour,
        trade_count=peak_count,
        share_percent=round(share * 100, 2),
    )]


def detect_new_wallet_dominance(ctx: DetectionContext) -> List[Finding]:
    """Most wallets trading at most twice suggests freshly farmed wallets."""
    total_wallets = len(ctx.wallets)
    if total_wallets <= NEW_WALLET_MIN_WALLETS:
        return []
    new_wallets = sum(1 for w in ctx.wallets.values() if w.tx_count <= NEW_WALLET_MAX_TXS)
    share = new_wallets / total_wallets
    if share <= NEW_WALLET_SHARE:
        return []

    return [make_finding(
        FindingKind.NEW_WALLET_DOMINANCE,
        grade(share, NEW_WALLET_SHARE),
        new_wallets=new_wallets,
        total_wallets=total_wallets,
        share_percent=round(share * 100, 2),
    )]


def detect_volume_spike(ctx: DetectionContext) -> List[Finding]:
    """Peak window of ten equal-count windows above 3x the mean window volume."""
    if ctx.total_count <= SPIKE_MIN_SAMPLE:
        return []

    ordered = chronological(ctx.swaps)
    # remainder spread so window sizes differ by at most one
    bounds = [i * len(ordered) // SPIKE_WINDOWS for i in range(SPIKE_WINDOWS + 1)]
    volumes = [
        sum(s.usd_value or 0.0 for s in ordered[start:end])
        for start, end in zip(bounds, bounds[1:])
    ]

    mean = sum(volumes) / SPIKE_WINDOWS
    if mean <= 0:
        return []
    peak = max(volumes)
    if peak <= mean * SPIKE_MULTIPLIER:
        return []

    multiplier = peak / mean
    return [make_finding(
        FindingKind.VOLUME_SPIKE,
        grade(multiplier, SPIKE_MULTIPLIER),
        multiplier=round(multiplier, 2),
        window_index=volumes.index(peak),
        peak_volume_usd=round(peak, 2),
        mean_volume_usd=round(mean, 2),
    )]


def detect_bot_signature(ctx: DetectionContext) -> List[Finding]:
    """One $10-rounded trade size dominating the batch."""
    sized = [v for v in ctx.sized_values() if v > 0]
    if len(sized) <= BOT_MIN_SAMPLE:
        return []

    buckets: Counter = Counter(
        int(math.floor(v / BOT_BUCKET_USD + 0.5)) * BOT_BUCKET_USD for v in sized
    )
    bucket, count = min(buckets.items(), key=lambda kv: (-kv[1], kv[0]))
    share = count / len(sized)
    if share <= BOT_BUCKET_SHARE:
        return []

    return [make_finding(
        FindingKind.BOT_SIGNATURE,
        grade(share, BOT_BUCKET_SHARE),
        bucket_usd=bucket,
        trade_count=count,
        share_percent=round(share * 100, 2),
    )]


def detect_synchronized_clusters(ctx: DetectionContext) -> List[Finding]:
    """Seconds in which three or more distinct wallets traded together."""
    total_usd = ctx.total_volume_usd()
    if total_usd <= 0:
        return []

    wallets_by_second: Dict[int, Set[str]] = defaultdict(set)
    volume_by_second: Dict[int, float] = defaultdict(float)
    for swap in ctx.swaps:
        second = swap.timestamp // 1000
        wallets_by_second[second].add(swap.wallet)
        volume_by_second[second] += swap.usd_value or 0.0

    cluster_seconds = [
        sec for sec, wallets in wallets_by_second.items() if len(wallets) >= SYNC_MIN_WALLETS
    ]
    if not cluster_seconds:
        return []

    cluster_volume = sum(volume_by_second[sec] for sec in cluster_seconds)
    share = cluster_volume / total_usd
    if share <= SYNC_VOLUME_SHARE:
        return []

    clustered_wallets: Set[str] = set()
    for sec in cluster_seconds:
        clustered_wallets |= wallets_by_second[sec]

    return [make_finding(
        FindingKind.SYNCHRONIZED_CLUSTER,
        grade(share, SYNC_VOLUME_SHARE),
        cluster_seconds=len(cluster_seconds),
        wallet_count=len(clustered_wallets),
        volume_usd=round(cluster_volume, 2),
        volume_share_percent=round(share * 100, 2),
    )]


def _is_bait_window(window: List[Swap]) -> bool:
    if len(window) <= BAIT_MIN_TRADES:
        return False
    sized = [s.usd_value for s in window if s.usd_value is not None]
    if not sized or sum(sized) / len(sized) >= BAIT_MAX_AVG_USD:
        return False
    prices = [p for _, p in price_series(window)]
    if len(prices) < 2:
        return True
    low = min(prices)
    return (max(prices) - low) / low < BAIT_MAX_PRICE_MOVE


def detect_bait_pattern(ctx: DetectionContext) -> List[Finding]:
    """Minutes full of tiny trades that do not move price - fake activity."""
    if ctx.total_count <= BAIT_MIN_SAMPLE:
        return []

    windows: Dict[int, List[Swap]] = defaultdict(list)
    for swap in chronological(ctx.swaps):
        windows[swap.timestamp // 60_000].append(swap)

    bait = sum(1 for w in windows.values() if _is_bait_window(w))
    share = bait / len(windows)
    if share <= BAIT_WINDOW_SHARE:
        return []

    return [make_finding(
        FindingKind.BAIT_PATTERN,
        grade(share, BAIT_WINDOW_SHARE),
        bait_windows=bait,
        total_windows=len(windows),
        share_percent=round(share * 100, 2),
    )]


def _pairs_large_buy_and_sell(trades: List[Swap], threshold: float) -> bool:
    for i, buy in enumerate(trades):
        if not buy.is_buy or (buy.usd_value or 0.0) <= threshold:
            continue
        for sell in trades[i + 1:]:
            if sell.timestamp - buy.timestamp > MANIPULATION_WINDOW_MS:
                break
            if not sell.is_buy and (sell.usd_value or 0.0) > threshold:
                return True
    return False


def detect_manipulation_wallets(ctx: DetectionContext) -> List[Finding]:
    """Wallets that dump a 3x-average buy within five minutes."""
    avg = ctx.average_trade_usd()
    if avg <= 0:
        return []
    threshold = avg * MANIPULATION_SIZE_MULTIPLIER

    by_wallet: Dict[str, List[Swap]] = defaultdict(list)
    for swap in chronological(ctx.swaps):
        by_wallet[swap.wallet].append(swap)

    flagged = sorted(
        wallet for wallet, trades in by_wallet.items()
        if _pairs_large_buy_and_sell(trades, threshold)
    )
    if not flagged:
        return []

    buy_volume = sum(ctx.wallets[w].buy_volume_usd for w in flagged)
    sell_volume = sum(ctx.wallets[w].sell_volume_usd for w in flagged)
    total_usd = ctx.total_volume_usd()
    share = (buy_volume + sell_volume) / total_usd if total_usd > 0 else 0.0

    tvl = ctx.pool_liquidity_usd
    buy_impact = round(buy_volume / tvl * 100, 2) if tvl else None
    sell_impact = round(sell_volume / tvl * 100, 2) if tvl else None
    impact = round((buy_volume + sell_volume) / tvl * 100, 2) if tvl else None

    return [make_finding(
        FindingKind.MANIPULATION_WALLET,
        grade(share, 0.10),
        wallets=flagged,
        wallet_count=len(flagged),
        buy_volume_usd=round(buy_volume, 2),
        sell_volume_usd=round(sell_volume, 2),
        volume_share_percent=round(share * 100, 2),
        price_impact_percent=impact,
        buy_price_impact_percent=buy_impact,
        sell_price_impact_percent=sell_impact,
    )]
