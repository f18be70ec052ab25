"""
Swap Normalizer - validates and canonicalizes upstream swap records.

Chain-specific parsers hand us dictionaries in slightly different shapes
(camelCase from the JS side, snake_case from ours, Solana `blockTime` in
seconds, EVM `txHash`). This module maps all of them onto the `Swap`
record and drops anything that cannot be trusted.

A malformed record never fails the batch: it is dropped and counted.
Only a caller handing us something that is not a sequence at all is an
error.
"""

import logging
import math
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .amount_utils import to_optional_float, to_raw_amount
from .models import Swap, SwapDirection


logger = logging.getLogger(__name__)

# Anything below this is a seconds timestamp (1e11 ms is March 1973)
SECONDS_CUTOFF = 100_000_000_000

# datetime.max in ms; anything above cannot be rendered as a date
MAX_TIMESTAMP_MS = 253_402_300_799_999

_KEY_ALIASES: Dict[str, Tuple[str, ...]] = {
    "signature": ("signature", "txHash", "tx_hash", "tx_signature"),
    "timestamp": ("timestamp", "blockTime", "block_time"),
    "wallet": ("wallet", "signer", "wallet_address"),
    "direction": ("direction", "side"),
    "amount_in": ("amount_in", "amountIn"),
    "amount_out": ("amount_out", "amountOut"),
    "amount_in_usd": ("amount_in_usd", "amountInUsd"),
    "amount_out_usd": ("amount_out_usd", "amountOutUsd"),
    "price_token": ("price_token", "priceToken"),
    "source": ("source", "network"),
}


class ContractViolationError(TypeError):
    """The caller passed something that is not a batch of swap records."""


@dataclass
class NormalizedBatch:
    """Valid swaps in input order plus drop accounting."""
    swaps: List[Swap] = field(default_factory=list)
    dropped: int = 0
    drop_reasons: Dict[str, int] = field(default_factory=dict)


def _pick(record: Mapping, name: str) -> Any:
    for key in _KEY_ALIASES[name]:
        if key in record and record[key] is not None:
            return record[key]
    return None


def parse_timestamp(value: Any) -> Optional[int]:
    """
    Return milliseconds since epoch, or None if unusable.

    Accepts datetimes, ISO-8601 strings and numbers in seconds or ms.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        ms = int(value.timestamp() * 1000)
        return ms if 0 < ms <= MAX_TIMESTAMP_MS else None
    try:
        ts = float(value)
    except (ValueError, TypeError):
        if isinstance(value, str):
            try:
                return parse_timestamp(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
            except ValueError:
                return None
        return None
    if not math.isfinite(ts) or ts <= 0:
        return None
    if ts < SECONDS_CUTOFF:
        ts *= 1000
    if ts > MAX_TIMESTAMP_MS:
        return None
    return int(ts)


def _parse_direction(value: Any) -> Optional[SwapDirection]:
    if isinstance(value, SwapDirection):
        return value
    if not isinstance(value, str):
        return None
    try:
        return SwapDirection(value.strip().lower())
    except ValueError:
        return None


def normalize_record(record: Any) -> Tuple[Optional[Swap], Optional[str]]:
    """
    Normalize one upstream record.

    Args:
        record: A `Swap` or a mapping produced by a chain parser

    Returns:
        Tuple of (swap, None) on success or (None, drop_reason)
    """
    if isinstance(record, Swap):
        if not record.signature or not record.wallet:
            return None, "missing_field"
        if not 0 < record.timestamp <= MAX_TIMESTAMP_MS:
            return None, "bad_timestamp"
        if record.amount_in < 0 or record.amount_out < 0:
            return None, "bad_amount"
        return record, None

    if not isinstance(record, Mapping):
        return None, "not_a_record"

    signature = _pick(record, "signature")
    wallet = _pick(record, "wallet")
    if not signature or not wallet:
        return None, "missing_field"

    timestamp = parse_timestamp(_pick(record, "timestamp"))
    if timestamp is None:
        return None, "bad_timestamp"

    direction = _parse_direction(_pick(record, "direction"))
    if direction is None:
        return None, "bad_direction"

    amount_in = to_raw_amount(_pick(record, "amount_in"))
    amount_out = to_raw_amount(_pick(record, "amount_out"))
    if amount_in is None or amount_out is None:
        return None, "bad_amount"

    price = to_optional_float(_pick(record, "price_token"))
    if price == 0:
        price = None

    source = _pick(record, "source")

    swap = Swap(
        signature=str(signature),
        timestamp=timestamp,
        wallet=str(wallet),
        direction=direction,
        amount_in=amount_in,
        amount_out=amount_out,
        amount_in_usd=to_optional_float(_pick(record, "amount_in_usd")),
        amount_out_usd=to_optional_float(_pick(record, "amount_out_usd")),
        price_token=price,
        source=str(source) if source is not None else None,
    )
    return swap, None


def normalize_swaps(records: Any) -> NormalizedBatch:
    """
    Normalize a batch of upstream swap records.

    Order is preserved as given; duplicate signatures keep the first
    occurrence.

    Args:
        records: Sequence of mappings and/or `Swap` objects

    Returns:
        NormalizedBatch with the valid swaps and drop counts

    Raises:
        ContractViolationError: if `records` is None or not a sequence
    """
    if records is None:
        raise ContractViolationError("swap batch is required, got None")
    if isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Iterable):
        raise ContractViolationError(
            f"swap batch must be a sequence of records, got {type(records).__name__}"
        )

    batch = NormalizedBatch()
    reasons: Counter = Counter()
    seen = set()

    for record in records:
        swap, reason = normalize_record(record)
        if swap is not None and swap.signature in seen:
            swap, reason = None, "duplicate_signature"
        if swap is None:
            reasons[reason] += 1
            continue
        seen.add(swap.signature)
        batch.swaps.append(swap)

    batch.dropped = sum(reasons.values())
    batch.drop_reasons = dict(sorted(reasons.items()))
    if batch.dropped:
        logger.warning(
            f"Dropped {batch.dropped} malformed swap record(s): {batch.drop_reasons}"
        )
    logger.debug(f"Normalized {len(batch.swaps)} swaps")
    return batch
