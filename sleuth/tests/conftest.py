"""
Pytest configuration and fixtures for Sleuth tests.
"""

import itertools
from datetime import datetime, timezone

import pytest

from sleuth.core.aggregator import aggregate_wallets, read_only
from sleuth.core.detectors import DetectionContext
from sleuth.core.models import Swap, SwapDirection


# 2023-11-14 22:13:20 UTC
BASE_TS = 1_700_000_000_000

FIXED_NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def sample_wallet_address():
    """Sample Solana wallet address for testing."""
    return "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


@pytest.fixture
def make_swap():
    """
    Factory for Swap records.

    Signatures are unique per test; timestamps default to one trade per
    minute starting at BASE_TS.
    """
    counter = itertools.count()

    def _make(
        wallet: str = "wallet_a",
        direction: str = "buy",
        usd=100.0,
        ts=None,
        amount_in: int = 1_000,
        amount_out: int = 1_000,
        price=None,
        signature=None,
    ) -> Swap:
        n = next(counter)
        return Swap(
            signature=signature or f"sig_{n}",
            timestamp=ts if ts is not None else BASE_TS + n * 60_000,
            wallet=wallet,
            direction=SwapDirection(direction),
            amount_in=amount_in,
            amount_out=amount_out,
            amount_in_usd=usd,
            price_token=price,
        )

    return _make


@pytest.fixture
def make_context():
    """Build a DetectionContext the way the analyzer does."""
    def _make(swaps, tvl=None) -> DetectionContext:
        return DetectionContext(
            swaps=tuple(swaps),
            wallets=read_only(aggregate_wallets(swaps)),
            pool_liquidity_usd=tvl,
        )

    return _make


@pytest.fixture
def raw_record():
    """Factory for upstream (camelCase) swap records."""
    counter = itertools.count()

    def _make(**overrides) -> dict:
        n = next(counter)
        record = {
            "signature": f"raw_sig_{n}",
            "timestamp": BASE_TS + n * 1_000,
            "wallet": "wallet_a",
            "direction": "buy",
            "amountIn": "1000",
            "amountOut": "2000",
            "amountInUsd": 100.0,
        }
        record.update(overrides)
        return record

    return _make


@pytest.fixture
def healthy_batch(raw_record):
    """20 wallets, each one $100 buy and one $100 sell (5% share apiece)."""
    records = []
    for i in range(20):
        records.append(raw_record(wallet=f"wallet_{i:02d}", direction="buy"))
        records.append(raw_record(wallet=f"wallet_{i:02d}", direction="sell"))
    return records


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW
