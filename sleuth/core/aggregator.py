"""
Wallet Aggregator - one activity record per distinct wallet.

Single pass over the normalized swaps. The resulting mapping is built
fresh for every run and handed to detectors as a read-only view.
"""

import logging
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping

from .models import Swap, WalletAggregate


logger = logging.getLogger(__name__)


def aggregate_wallets(swaps: Iterable[Swap]) -> Dict[str, WalletAggregate]:
    """
    Build per-wallet aggregates.

    Args:
        swaps: Normalized swaps in any order

    Returns:
        Dict mapping wallet address -> WalletAggregate
    """
    wallets: Dict[str, WalletAggregate] = {}

    for swap in swaps:
        agg = wallets.get(swap.wallet)
        if agg is None:
            agg = WalletAggregate(
                address=swap.wallet,
                first_seen=swap.timestamp,
                last_seen=swap.timestamp,
            )
            wallets[swap.wallet] = agg

        agg.tx_count += 1
        usd = swap.usd_value or 0.0
        if swap.is_buy:
            agg.buy_count += 1
            agg.buy_volume_usd += usd
        else:
            agg.sell_count += 1
            agg.sell_volume_usd += usd
        agg.total_volume += swap.amount_in
        agg.total_volume_usd += usd
        agg.first_seen = min(agg.first_seen, swap.timestamp)
        agg.last_seen = max(agg.last_seen, swap.timestamp)

    logger.debug(f"Aggregated {len(wallets)} wallets")
    return wallets


def read_only(wallets: Dict[str, WalletAggregate]) -> Mapping[str, WalletAggregate]:
    """Read-only view handed to detectors."""
    return MappingProxyType(wallets)


def uses_usd_basis(wallets: Mapping[str, WalletAggregate]) -> bool:
    """True when the batch carries any USD volume (rank by USD, else raw units)."""
    return any(w.total_volume_usd > 0 for w in wallets.values())


def wallet_volume(wallet: WalletAggregate, usd_basis: bool) -> float:
    return wallet.total_volume_usd if usd_basis else wallet.total_volume


def rank_by_volume(wallets: Mapping[str, WalletAggregate]) -> List[WalletAggregate]:
    """Wallets sorted by volume descending, ties broken by address."""
    usd_basis = uses_usd_basis(wallets)
    return sorted(
        wallets.values(),
        key=lambda w: (-wallet_volume(w, usd_basis), w.address),
    )
