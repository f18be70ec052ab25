"""
Pattern detectors.

`DEFAULT_DETECTORS` fixes the registration order, which is also the order
findings appear in the output regardless of how the detectors were run.
"""

from typing import Callable, List, Tuple

from ..models import Finding
from .activity import (
    detect_bait_pattern,
    detect_bot_signature,
    detect_buy_sell_imbalance,
    detect_large_transactions,
    detect_manipulation_wallets,
    detect_new_wallet_dominance,
    detect_rapid_cycles,
    detect_synchronized_clusters,
    detect_time_clustering,
    detect_volume_spike,
    detect_wash_trading,
    detect_whale_concentration,
)
from .context import DetectionContext
from .market import (
    detect_diamond_hands,
    detect_new_wallet_flow,
    detect_panic_and_fomo,
    detect_price_volatility,
    detect_profit_pressure,
)

Detector = Callable[[DetectionContext], List[Finding]]

DEFAULT_DETECTORS: Tuple[Tuple[str, Detector], ...] = (
    ("wash_trading", detect_wash_trading),
    ("whale_concentration", detect_whale_concentration),
    ("buy_sell_imbalance", detect_buy_sell_imbalance),
    ("rapid_cycles", detect_rapid_cycles),
    ("large_transactions", detect_large_transactions),
    ("time_clustering", detect_time_clustering),
    ("new_wallet_dominance", detect_new_wallet_dominance),
    ("volume_spike", detect_volume_spike),
    ("bot_signature", detect_bot_signature),
    ("price_volatility", detect_price_volatility),
    ("synchronized_clusters", detect_synchronized_clusters),
    ("profit_pressure", detect_profit_pressure),
    ("bait_pattern", detect_bait_pattern),
    ("diamond_hands", detect_diamond_hands),
    ("panic_and_fomo", detect_panic_and_fomo),
    ("new_wallet_flow", detect_new_wallet_flow),
    ("manipulation_wallets", detect_manipulation_wallets),
)

__all__ = [
    "DEFAULT_DETECTORS",
    "DetectionContext",
    "Detector",
]
