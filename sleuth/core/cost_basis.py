"""
Cost-basis reconstruction helpers shared by price-aware detectors.

Every helper is a pure function of the swap sequence. Callers sort
chronologically themselves (via `chronological`) since upstream batches
may arrive newest-first.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import Swap


@dataclass
class EntryPosition:
    """Volume-weighted average buy price of one wallet."""
    wallet: str
    entry_price: float
    buy_weight: float
    buy_count: int


def chronological(swaps: Iterable[Swap]) -> List[Swap]:
    """Oldest first; ties keep their input order."""
    return sorted(swaps, key=lambda s: s.timestamp)


def implied_price(swap: Swap) -> Optional[float]:
    """USD per raw unit of the tracked token, derived from the USD estimate."""
    usd = swap.usd_value
    token_amount = swap.amount_out if swap.is_buy else swap.amount_in
    if usd is None or usd <= 0 or token_amount <= 0:
        return None
    return usd / token_amount


def latest_known_price(ordered: Sequence[Swap]) -> Optional[float]:
    """Most recent `price_token` of a chronologically ordered sequence."""
    for swap in reversed(ordered):
        if swap.price_token is not None and swap.price_token > 0:
            return swap.price_token
    return None


def weighted_entry_prices(swaps: Iterable[Swap]) -> Dict[str, EntryPosition]:
    """
    Reconstruct each wallet's volume-weighted average buy price.

    Only buys with a known `price_token` count. Each buy is weighted by
    its USD size; buys without a USD estimate get unit weight so they
    still contribute to the average.

    Returns:
        Dict mapping wallet -> EntryPosition (wallets without priced buys
        are absent)
    """
    weighted: Dict[str, float] = {}
    weights: Dict[str, float] = {}
    counts: Dict[str, int] = {}

    for swap in swaps:
        if not swap.is_buy or swap.price_token is None or swap.price_token <= 0:
            continue
        usd = swap.usd_value
        weight = usd if usd is not None and usd > 0 else 1.0
        weighted[swap.wallet] = weighted.get(swap.wallet, 0.0) + swap.price_token * weight
        weights[swap.wallet] = weights.get(swap.wallet, 0.0) + weight
        counts[swap.wallet] = counts.get(swap.wallet, 0) + 1

    return {
        wallet: EntryPosition(
            wallet=wallet,
            entry_price=weighted[wallet] / weights[wallet],
            buy_weight=weights[wallet],
            buy_count=counts[wallet],
        )
        for wallet in weights
    }


def early_window(ordered: Sequence[Swap]) -> List[Swap]:
    """The earliest 10% of a chronologically ordered sequence."""
    return list(ordered[: len(ordered) // 10])


def time_windows(ordered: Sequence[Swap], fraction: float):
    """
    Split by time into (previous, recent) windows of equal duration.

    The recent window covers the last `fraction` of the batch's time span,
    the previous window the `fraction` before it.

    Returns:
        Tuple (previous, recent) of swap lists, or None if the span is zero
    """
    if len(ordered) < 2:
        return None
    start, end = ordered[0].timestamp, ordered[-1].timestamp
    span = end - start
    if span <= 0:
        return None
    recent_start = end - span * fraction
    previous_start = end - span * 2 * fraction
    recent = [s for s in ordered if s.timestamp >= recent_start]
    previous = [s for s in ordered if previous_start <= s.timestamp < recent_start]
    return previous, recent


def price_series(ordered: Sequence[Swap]) -> List[Tuple[Swap, float]]:
    """
    Per-trade prices in the given order.

    Uses `price_token` when the sequence carries any; only a sequence with
    no token prices at all falls back to implied prices, so the two units
    are never mixed in one series.
    """
    if any(s.price_token is not None and s.price_token > 0 for s in ordered):
        return [(s, s.price_token) for s in ordered if s.price_token is not None and s.price_token > 0]
    series = []
    for swap in ordered:
        price = implied_price(swap)
        if price is not None:
            series.append((swap, price))
    return series
