"""
Tests for the wallet aggregator, including property-based invariants.
"""

import pytest
from hypothesis import given, strategies as st

from sleuth.core.aggregator import aggregate_wallets, rank_by_volume, read_only, uses_usd_basis
from sleuth.core.models import Swap, SwapDirection

from conftest import BASE_TS


swap_strategy = st.builds(
    Swap,
    signature=st.uuids().map(str),
    timestamp=st.integers(min_value=1, max_value=4_000_000_000_000),
    wallet=st.sampled_from(["alice", "bob", "carol", "dave"]),
    direction=st.sampled_from(list(SwapDirection)),
    amount_in=st.integers(min_value=0, max_value=10**30),
    amount_out=st.integers(min_value=0, max_value=10**30),
    amount_in_usd=st.one_of(st.none(), st.floats(min_value=0, max_value=1e9, allow_nan=False)),
    amount_out_usd=st.none(),
)


class TestAggregationProperties:
    """Property-based tests for aggregation invariants."""

    @given(swaps=st.lists(swap_strategy, max_size=60))
    def test_raw_volume_conserved(self, swaps):
        """Property: Σ wallet.total_volume == Σ swap.amount_in, exactly."""
        wallets = aggregate_wallets(swaps)
        assert sum(w.total_volume for w in wallets.values()) == sum(s.amount_in for s in swaps)

    @given(swaps=st.lists(swap_strategy, max_size=60))
    def test_counts_conserved(self, swaps):
        """Property: buy + sell counts add up per wallet and in aggregate."""
        wallets = aggregate_wallets(swaps)
        for w in wallets.values():
            assert w.buy_count + w.sell_count == w.tx_count
        assert sum(w.buy_count + w.sell_count for w in wallets.values()) == len(swaps)

    @given(swaps=st.lists(swap_strategy, min_size=1, max_size=60))
    def test_seen_window_covers_trades(self, swaps):
        """Property: every trade lies inside its wallet's first/last-seen window."""
        wallets = aggregate_wallets(swaps)
        for s in swaps:
            w = wallets[s.wallet]
            assert w.first_seen <= s.timestamp <= w.last_seen


class TestAggregateWallets:

    def test_per_wallet_counters(self, make_swap):
        swaps = [
            make_swap(wallet="a", direction="buy", usd=10.0, amount_in=5),
            make_swap(wallet="a", direction="sell", usd=30.0, amount_in=7),
            make_swap(wallet="b", direction="buy", usd=None, amount_in=11),
        ]
        wallets = aggregate_wallets(swaps)

        a = wallets["a"]
        assert (a.tx_count, a.buy_count, a.sell_count) == (2, 1, 1)
        assert a.total_volume == 12
        assert a.total_volume_usd == 40.0
        assert a.buy_volume_usd == 10.0
        assert a.sell_volume_usd == 30.0
        assert a.round_trips == 1

        # unknown USD contributes nothing rather than failing
        assert wallets["b"].total_volume_usd == 0.0
        assert wallets["b"].total_volume == 11

    def test_first_and_last_seen_any_order(self, make_swap):
        swaps = [
            make_swap(wallet="a", ts=BASE_TS + 5_000),
            make_swap(wallet="a", ts=BASE_TS),
            make_swap(wallet="a", ts=BASE_TS + 2_000),
        ]
        a = aggregate_wallets(swaps)["a"]

        assert a.first_seen == BASE_TS
        assert a.last_seen == BASE_TS + 5_000

    def test_empty(self):
        assert aggregate_wallets([]) == {}

    def test_read_only_view(self, make_swap):
        view = read_only(aggregate_wallets([make_swap()]))
        with pytest.raises(TypeError):
            view["x"] = None


class TestRanking:

    def test_usd_basis_when_any_usd(self, make_swap):
        wallets = aggregate_wallets([
            make_swap(wallet="a", usd=10.0, amount_in=1_000_000),
            make_swap(wallet="b", usd=50.0, amount_in=1),
        ])

        assert uses_usd_basis(wallets)
        assert [w.address for w in rank_by_volume(wallets)] == ["b", "a"]

    def test_raw_basis_without_usd(self, make_swap):
        wallets = aggregate_wallets([
            make_swap(wallet="a", usd=None, amount_in=1_000_000),
            make_swap(wallet="b", usd=None, amount_in=1),
        ])

        assert not uses_usd_basis(wallets)
        assert [w.address for w in rank_by_volume(wallets)] == ["a", "b"]

    def test_ties_broken_by_address(self, make_swap):
        wallets = aggregate_wallets([
            make_swap(wallet="zed", usd=10.0),
            make_swap(wallet="amy", usd=10.0),
            make_swap(wallet="kim", usd=10.0),
        ])
        assert [w.address for w in rank_by_volume(wallets)] == ["amy", "kim", "zed"]
