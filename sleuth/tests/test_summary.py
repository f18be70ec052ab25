"""
Tests for summary assembly: rankings, large-trade ratios and narrative.
"""

from sleuth.core.aggregator import aggregate_wallets
from sleuth.core.summary import (
    assemble_summary,
    build_top_traders,
    build_top_wallets,
    large_trade_ratios,
    ms_to_datetime,
    narrative,
)

from conftest import BASE_TS


class TestTopWallets:

    def test_shares_and_limit(self, make_swap):
        swaps = [make_swap(wallet="big", usd=600.0), make_swap(wallet="mid", usd=300.0)]
        swaps += [make_swap(wallet=f"small_{i}", usd=10.0) for i in range(10)]

        top = build_top_wallets(aggregate_wallets(swaps), limit=3)

        assert [w.address for w in top] == ["big", "mid", "small_0"]
        assert top[0].volume_share == 60.0
        assert top[1].volume_share == 30.0
        assert top[0].first_seen == ms_to_datetime(swaps[0].timestamp)

    def test_raw_share_without_usd(self, make_swap):
        swaps = [make_swap(wallet="a", usd=None, amount_in=3), make_swap(wallet="b", usd=None, amount_in=1)]
        top = build_top_wallets(aggregate_wallets(swaps))
        assert [w.volume_share for w in top] == [75.0, 25.0]

    def test_top_traders(self, make_swap):
        swaps = [
            make_swap(wallet="a", direction="buy", usd=50.0, amount_in=10**25),
            make_swap(wallet="a", direction="sell", usd=50.0, amount_in=10**25),
            make_swap(wallet="b", usd=20.0),
        ]
        traders = build_top_traders(aggregate_wallets(swaps), limit=1)

        assert len(traders) == 1
        assert traders[0].wallet == "a"
        assert (traders[0].buy_count, traders[0].sell_count) == (1, 1)
        assert traders[0].volume == 2 * 10**25


class TestLargeTradeRatios:

    def test_without_tvl(self, make_swap):
        assert large_trade_ratios([make_swap()], None) == (None, None)
        assert large_trade_ratios([make_swap()], 0) == (None, None)

    def test_no_sized_trades(self, make_swap):
        assert large_trade_ratios([make_swap(usd=None)], 1000.0) == (0.0, 0.0)

    def test_large_buy_and_sell(self, make_swap):
        swaps = [make_swap(usd=10.0) for _ in range(20)]
        swaps.append(make_swap(direction="buy", usd=2000.0))
        swaps.append(make_swap(direction="sell", usd=1000.0))

        # threshold is 10x the ~145 average: only the 2000 buy is large
        assert large_trade_ratios(swaps, 100_000.0) == (2.0, 0.0)


class TestNarrative:

    def test_empty(self):
        assert narrative(0, 0, 0, 0, 0) == "No transactions to analyze."

    def test_counts(self):
        assert narrative(4, 3, 1, 2, 1) == (
            "Analyzed 4 transactions: 3 buys (75.0%), 1 sells (25.0%). "
            "2 unique wallets. 1 suspicious patterns detected."
        )


class TestAssembleSummary:

    def test_totals(self, make_swap):
        swaps = [
            make_swap(wallet="a", direction="buy", usd=100.0, ts=BASE_TS + 5_000),
            make_swap(wallet="b", direction="sell", usd=50.0, ts=BASE_TS),
            make_swap(wallet="c", direction="buy", usd=None, ts=BASE_TS + 9_000),
        ]
        summary = assemble_summary(swaps, aggregate_wallets(swaps), [], dropped_records=2)

        assert (summary.total_count, summary.buy_count, summary.sell_count) == (3, 2, 1)
        assert summary.total_volume_usd == 150.0
        assert summary.buy_volume_usd == 100.0
        assert summary.sell_volume_usd == 50.0
        # unknown USD is excluded from the average, not counted as zero
        assert summary.avg_volume_usd == 75.0
        assert summary.time_range.earliest == ms_to_datetime(BASE_TS)
        assert summary.time_range.latest == ms_to_datetime(BASE_TS + 9_000)
        assert summary.dropped_records == 2
        assert summary.large_buy_ratio is None

    def test_empty(self):
        summary = assemble_summary([], {}, [])

        assert summary.total_count == 0
        assert summary.avg_volume_usd == 0.0
        assert summary.time_range is None
        assert summary.top_wallets == []
