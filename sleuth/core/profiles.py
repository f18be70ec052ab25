"""
Wallet profile coercion and bot/risk heuristics.

Profiles come from an external profiler (wallet age, lifetime activity).
When a profile arrives without a bot verdict or risk level, the same
heuristics the profiler uses fill them in here so the risk scorer always
sees a complete profile.
"""

import logging
from collections.abc import Mapping
from typing import Any, List, Optional

from .amount_utils import to_optional_float
from .models import WalletProfile
from .normalizer import ContractViolationError


logger = logging.getLogger(__name__)

BOT_TX_PER_DAY = 100
BOT_NEW_WALLET_RECENT_TX = 50
HIGH_RISK_TX_PER_DAY = 200


def detect_bot(avg_tx_per_day: float, recent_transactions: int, age_in_days: Optional[float]) -> bool:
    """Very high daily activity, or a brand-new wallet that is immediately busy."""
    if avg_tx_per_day > BOT_TX_PER_DAY:
        return True
    return age_in_days is not None and age_in_days < 1 and recent_transactions > BOT_NEW_WALLET_RECENT_TX


def assess_wallet_risk(
    is_bot: bool,
    is_whale: bool,
    age_in_days: Optional[float],
    avg_tx_per_day: float,
) -> str:
    """
    Classify a wallet as low, medium or high risk.

    Unknown age counts as established; only known-young wallets are
    penalized for their age.
    """
    young = age_in_days is not None and age_in_days < 7
    new = age_in_days is not None and age_in_days < 30

    if is_bot and is_whale:
        return "high"
    if young and is_whale:
        return "high"
    if avg_tx_per_day > HIGH_RISK_TX_PER_DAY:
        return "high"
    if is_whale or is_bot:
        return "medium"
    if new:
        return "medium"
    return "low"


def describe_profile(profile: WalletProfile) -> str:
    parts: List[str] = []

    age = profile.age_in_days
    if age is None:
        parts.append("unknown age")
    elif age < 1:
        parts.append("Brand new wallet")
    elif age < 7:
        parts.append(f"{int(age)} days old")
    elif age < 30:
        parts.append(f"{int(age // 7)} weeks old")
    elif age < 365:
        parts.append(f"{int(age // 30)} months old")
    else:
        parts.append(f"{int(age // 365)} years old")

    rate = profile.avg_tx_per_day
    if rate < 1:
        parts.append("low activity")
    elif rate < 10:
        parts.append("moderate activity")
    elif rate < 50:
        parts.append("high activity")
    else:
        parts.append("very high activity")

    if profile.is_likely_bot:
        parts.append("LIKELY BOT")
    if profile.is_whale:
        parts.append("WHALE")
    return ", ".join(parts)


def _get(raw: Mapping, *names: str) -> Any:
    for name in names:
        if raw.get(name) is not None:
            return raw[name]
    return None


def coerce_profile(raw: Any) -> Optional[WalletProfile]:
    """
    Build a complete WalletProfile from a profiler record.

    Returns:
        WalletProfile, or None if the record has no address
    """
    if isinstance(raw, WalletProfile):
        return raw
    if not isinstance(raw, Mapping):
        return None
    address = _get(raw, "address", "wallet")
    if not address:
        return None

    age = to_optional_float(_get(raw, "age_in_days", "ageInDays"))
    total = int(to_optional_float(_get(raw, "total_transactions", "totalTransactions")) or 0)
    recent = int(to_optional_float(_get(raw, "recent_transactions", "recentTransactions")) or 0)
    avg = to_optional_float(_get(raw, "avg_tx_per_day", "avgTxPerDay"))
    if avg is None:
        avg = total / age if age else float(total)
    is_whale = bool(_get(raw, "is_whale", "isWhale") or False)

    is_bot = _get(raw, "is_likely_bot", "isLikelyBot")
    is_bot = detect_bot(avg, recent, age) if is_bot is None else bool(is_bot)

    risk = _get(raw, "risk_level", "riskLevel")
    if risk not in ("low", "medium", "high"):
        risk = assess_wallet_risk(is_bot, is_whale, age, avg)

    profile = WalletProfile(
        address=str(address),
        is_likely_bot=is_bot,
        age_in_days=age,
        total_transactions=total,
        recent_transactions=recent,
        avg_tx_per_day=avg,
        is_whale=is_whale,
        risk_level=risk,
    )
    profile.summary = str(_get(raw, "summary") or describe_profile(profile))
    return profile


def coerce_profiles(value: Any) -> Optional[List[WalletProfile]]:
    """
    Coerce a list of profiler records; malformed entries are skipped.

    Raises:
        ContractViolationError: if value is neither None nor a list
    """
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        raise ContractViolationError(f"wallet profiles must be a list, got {type(value).__name__}")

    profiles: List[WalletProfile] = []
    for raw in value:
        profile = coerce_profile(raw)
        if profile is None:
            logger.warning(f"Skipping wallet profile without an address: {raw!r}")
            continue
        profiles.append(profile)

    bots = sum(1 for p in profiles if p.is_likely_bot)
    logger.debug(f"Loaded {len(profiles)} wallet profiles ({bots} likely bots)")
    return profiles
