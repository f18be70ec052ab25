"""
Holder-behavior security score (0-100, higher = safer).

Weights:
- Re-entry ratio (sellers that bought back): 25%
- Diamond hands ratio (buyers that never sold): 50%
- Early buyers still holding: 25%

Diamond hands above 70% earn a bonus of up to 10 points; freeze and mint
authorities cost 20 and 10 points.
"""

import logging
from typing import Optional, Tuple

from .amount_utils import round_half_up
from .models import PoolContext, WalletStats


logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 50

RE_ENTRY_WEIGHT = 0.25
DIAMOND_HANDS_WEIGHT = 0.50
EARLY_BUYERS_WEIGHT = 0.25

DIAMOND_BONUS_FLOOR = 70.0
DIAMOND_BONUS_RATE = 0.2
DIAMOND_BONUS_CAP = 10.0

FREEZE_AUTHORITY_PENALTY = 20
MINT_AUTHORITY_PENALTY = 10


def calculate_security_score(
    wallet_stats: Optional[WalletStats],
    context: Optional[PoolContext] = None,
) -> int:
    """
    Calculate the security score from holder behavior.

    Args:
        wallet_stats: Market-structure analyses of the batch
        context: Pool context for the authority penalties

    Returns:
        Integer score 0-100 (50 when no wallet stats are available)
    """
    if wallet_stats is None or wallet_stats.holder_behavior is None:
        logger.debug("No wallet stats available, returning neutral security score")
        return NEUTRAL_SCORE

    behavior = wallet_stats.holder_behavior
    early_holding = 0.0
    if wallet_stats.smart_money is not None:
        early_holding = wallet_stats.smart_money.early_buyers_still_holding_ratio

    score = (
        behavior.re_entry_ratio * RE_ENTRY_WEIGHT
        + behavior.diamond_hands_ratio * DIAMOND_HANDS_WEIGHT
        + early_holding * EARLY_BUYERS_WEIGHT
    )

    if behavior.diamond_hands_ratio > DIAMOND_BONUS_FLOOR:
        score += min(DIAMOND_BONUS_CAP, (behavior.diamond_hands_ratio - DIAMOND_BONUS_FLOOR) * DIAMOND_BONUS_RATE)

    if context is not None:
        if context.has_freeze_authority:
            score -= FREEZE_AUTHORITY_PENALTY
        if context.has_mint_authority:
            score -= MINT_AUTHORITY_PENALTY

    return round_half_up(max(0.0, min(100.0, score)))


_LEVELS: Tuple[Tuple[int, str], ...] = (
    (80, "Very High"),
    (60, "High"),
    (40, "Medium"),
    (20, "Low"),
)


def security_level(score: int) -> str:
    for floor, level in _LEVELS:
        if score >= floor:
            return level
    return "Very Low"
