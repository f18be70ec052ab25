"""Tests for wallet, volume and timing detectors"""

import pytest

from sleuth.core.detectors.activity import (
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
from sleuth.core.models import FindingKind, Severity

from conftest import BASE_TS


def round_trips(make_swap, wallet, n, usd=100.0):
    swaps = []
    for _ in range(n):
        swaps.append(make_swap(wallet=wallet, direction="buy", usd=usd))
        swaps.append(make_swap(wallet=wallet, direction="sell", usd=usd))
    return swaps


class TestWashTrading:

    def test_nine_round_trips_do_not_trigger(self, make_swap, make_context):
        ctx = make_context(round_trips(make_swap, "W", 9))
        assert detect_wash_trading(ctx) == []

    def test_ten_round_trips_trigger(self, make_swap, make_context):
        findings = detect_wash_trading(make_context(round_trips(make_swap, "W", 10)))

        assert len(findings) == 1
        assert findings[0].kind == FindingKind.WASH_TRADING
        assert findings[0].metrics["round_trips"] == 10

    def test_scenario_twelve_equal_round_trips(self, make_swap, make_context):
        """Wallet W makes 12 buys and 12 sells of equal size."""
        swaps = round_trips(make_swap, "W", 12) + [make_swap(wallet="other")]
        findings = detect_wash_trading(make_context(swaps))

        assert len(findings) == 1
        assert findings[0].metrics["wallet"] == "W"
        assert findings[0].metrics["round_trips"] == 12
        assert findings[0].description == "Possible wash trading: W made 12 round-trip trades"

    def test_uneven_sides_use_the_smaller_count(self, make_swap, make_context):
        swaps = [make_swap(wallet="W", direction="buy") for _ in range(30)]
        swaps += [make_swap(wallet="W", direction="sell") for _ in range(9)]
        assert detect_wash_trading(make_context(swaps)) == []

    def test_twenty_round_trips_are_strong(self, make_swap, make_context):
        findings = detect_wash_trading(make_context(round_trips(make_swap, "W", 20)))
        assert findings[0].severity == Severity.STRONG


class TestWhaleConcentration:

    def test_exactly_thirty_percent_does_not_trigger(self, make_swap, make_context):
        swaps = [make_swap(wallet="whale", usd=3000.0)]
        swaps += [make_swap(wallet=f"w{i}", usd=1000.0) for i in range(7)]

        assert detect_whale_concentration(make_context(swaps)) == []

    def test_just_above_thirty_percent_triggers(self, make_swap, make_context):
        swaps = [make_swap(wallet="whale", usd=3001.0)]
        swaps += [make_swap(wallet=f"w{i}", usd=1000.0) for i in range(6)]
        swaps.append(make_swap(wallet="w6", usd=999.0))

        findings = detect_whale_concentration(make_context(swaps))

        assert len(findings) == 1
        assert findings[0].metrics["wallet"] == "whale"
        assert findings[0].metrics["share_percent"] == 30.01

    def test_scenario_thirty_five_percent_of_100k(self, make_swap, make_context):
        """One wallet contributes 35% of a 100-swap, $100,000 batch."""
        swaps = [make_swap(wallet="whale_wallet_1", usd=1000.0) for _ in range(35)]
        swaps += [make_swap(wallet=f"retail_{i}", usd=1000.0) for i in range(65)]

        ctx = make_context(swaps)
        assert len(ctx.swaps) == 100
        assert ctx.total_volume_usd() == 100_000.0

        findings = detect_whale_concentration(ctx)

        assert len(findings) == 1
        assert findings[0].metrics["share_percent"] == 35.0
        assert "35.0%" in findings[0].description

    def test_raw_basis_without_usd(self, make_swap, make_context):
        swaps = [make_swap(wallet="whale", usd=None, amount_in=900)]
        swaps += [make_swap(wallet=f"w{i}", usd=None, amount_in=100) for i in range(1)]

        findings = detect_whale_concentration(make_context(swaps))

        assert findings[0].metrics["basis"] == "raw"
        assert findings[0].metrics["share_percent"] == 90.0

    def test_no_volume(self, make_context):
        assert detect_whale_concentration(make_context([])) == []


class TestBuySellImbalance:

    def test_pump(self, make_swap, make_context):
        swaps = [make_swap(direction="buy") for _ in range(9)] + [make_swap(direction="sell")]
        findings = detect_buy_sell_imbalance(make_context(swaps))

        assert findings[0].metrics["direction"] == "pump"
        assert findings[0].description == "Extremely high buy ratio (>85%) - potential pump scheme"

    def test_dump(self, make_swap, make_context):
        swaps = [make_swap(direction="buy")] + [make_swap(direction="sell") for _ in range(9)]
        findings = detect_buy_sell_imbalance(make_context(swaps))

        assert findings[0].metrics["direction"] == "dump"

    def test_exactly_85_percent_does_not_trigger(self, make_swap, make_context):
        swaps = [make_swap(direction="buy") for _ in range(17)]
        swaps += [make_swap(direction="sell") for _ in range(3)]
        assert detect_buy_sell_imbalance(make_context(swaps)) == []

    def test_empty(self, make_context):
        assert detect_buy_sell_imbalance(make_context([])) == []


class TestRapidCycles:

    def test_few_trades_many_round_trips(self, make_swap, make_context):
        findings = detect_rapid_cycles(make_context(round_trips(make_swap, "R", 5)))

        assert findings[0].metrics == {"wallet": "R", "round_trips": 5, "tx_count": 10}

    def test_twenty_trades_not_rapid(self, make_swap, make_context):
        assert detect_rapid_cycles(make_context(round_trips(make_swap, "R", 10))) == []

    def test_four_round_trips_not_rapid(self, make_swap, make_context):
        assert detect_rapid_cycles(make_context(round_trips(make_swap, "R", 4))) == []


class TestLargeTransactions:

    def test_outlier_counted(self, make_swap, make_context):
        swaps = [make_swap(wallet=f"w{i}", usd=10.0) for i in range(20)]
        swaps.append(make_swap(wallet="big", usd=1000.0))

        findings = detect_large_transactions(make_context(swaps))

        assert findings[0].metrics["count"] == 1
        assert findings[0].metrics["share_percent"] == round(1 / 21 * 100, 2)

    def test_uniform_sizes(self, make_swap, make_context):
        swaps = [make_swap(usd=10.0) for _ in range(20)]
        assert detect_large_transactions(make_context(swaps)) == []

    def test_unknown_usd(self, make_swap, make_context):
        swaps = [make_swap(usd=None) for _ in range(5)]
        assert detect_large_transactions(make_context(swaps)) == []


class TestTimeClustering:

    def test_busy_hour(self, make_swap, make_context):
        # BASE_TS is 22:13 UTC; eleven trades a second apart stay in hour 22
        swaps = [make_swap(ts=BASE_TS + i * 1000) for i in range(11)]
        findings = detect_time_clustering(make_context(swaps))

        assert findings[0].metrics["peak_hour"] == 22
        assert findings[0].metrics["trade_count"] == 11

    def test_needs_more_than_ten_trades(self, make_swap, make_context):
        swaps = [make_swap(ts=BASE_TS + i * 1000) for i in range(10)]
        assert detect_time_clustering(make_context(swaps)) == []

    def test_spread_over_day(self, make_swap, make_context):
        swaps = [make_swap(ts=BASE_TS + h * 3_600_000) for h in range(24)]
        assert detect_time_clustering(make_context(swaps)) == []


class TestNewWalletDominance:

    def test_single_trade_wallets(self, make_swap, make_context):
        swaps = [make_swap(wallet=f"fresh_{i}") for i in range(11)]
        findings = detect_new_wallet_dominance(make_context(swaps))

        assert findings[0].metrics["new_wallets"] == 11
        assert findings[0].metrics["total_wallets"] == 11

    def test_needs_more_than_ten_wallets(self, make_swap, make_context):
        swaps = [make_swap(wallet=f"fresh_{i}") for i in range(10)]
        assert detect_new_wallet_dominance(make_context(swaps)) == []


class TestVolumeSpike:

    def test_front_loaded_volume(self, make_swap, make_context):
        swaps = [make_swap(usd=1000.0) for _ in range(10)]
        swaps += [make_swap(usd=10.0) for _ in range(91)]

        findings = detect_volume_spike(make_context(swaps))

        assert findings[0].metrics["window_index"] == 0
        assert findings[0].metrics["peak_volume_usd"] == 10_000.0
        assert findings[0].metrics["multiplier"] > 3

    def test_remainder_spread_across_windows(self, make_swap, make_context):
        # 199 swaps: one window of 19, nine of 20; the last 20 carry the spike
        swaps = [make_swap(usd=10.0) for _ in range(179)]
        swaps += [make_swap(usd=100.0) for _ in range(20)]

        metrics = detect_volume_spike(make_context(swaps))[0].metrics

        assert metrics["window_index"] == 9
        assert metrics["peak_volume_usd"] == 2000.0
        assert metrics["mean_volume_usd"] == 379.0
        assert metrics["multiplier"] == 5.28

    def test_needs_more_than_100_swaps(self, make_swap, make_context):
        swaps = [make_swap(usd=1000.0) for _ in range(10)]
        swaps += [make_swap(usd=10.0) for _ in range(90)]
        assert detect_volume_spike(make_context(swaps)) == []

    def test_flat_volume(self, make_swap, make_context):
        swaps = [make_swap(usd=50.0) for _ in range(150)]
        assert detect_volume_spike(make_context(swaps)) == []


class TestBotSignature:

    def test_repeated_size(self, make_swap, make_context):
        swaps = [make_swap(wallet=f"w{i}", usd=50.0 + (i % 3)) for i in range(21)]
        findings = detect_bot_signature(make_context(swaps))

        assert findings[0].metrics["bucket_usd"] == 50
        assert findings[0].metrics["trade_count"] == 21

    def test_needs_more_than_twenty_sized_trades(self, make_swap, make_context):
        swaps = [make_swap(usd=50.0) for _ in range(20)]
        assert detect_bot_signature(make_context(swaps)) == []

    def test_varied_sizes(self, make_swap, make_context):
        swaps = [make_swap(usd=100.0 * (i + 1)) for i in range(30)]
        assert detect_bot_signature(make_context(swaps)) == []


class TestSynchronizedClusters:

    def test_three_wallets_same_second(self, make_swap, make_context):
        swaps = [make_swap(wallet=w, ts=BASE_TS + 500) for w in ("a", "b", "c")]
        swaps += [make_swap(wallet="d", ts=BASE_TS + 60_000 * (i + 1)) for i in range(3)]

        findings = detect_synchronized_clusters(make_context(swaps))

        assert findings[0].metrics["wallet_count"] == 3
        assert findings[0].metrics["cluster_seconds"] == 1
        assert findings[0].metrics["volume_share_percent"] == 50.0

    def test_two_wallets_not_a_cluster(self, make_swap, make_context):
        swaps = [make_swap(wallet=w, ts=BASE_TS) for w in ("a", "b")]
        assert detect_synchronized_clusters(make_context(swaps)) == []

    def test_small_cluster_volume(self, make_swap, make_context):
        swaps = [make_swap(wallet=w, ts=BASE_TS, usd=1.0) for w in ("a", "b", "c")]
        swaps += [make_swap(wallet="d", usd=1000.0)]
        assert detect_synchronized_clusters(make_context(swaps)) == []


class TestBaitPattern:

    def test_tiny_flat_trades(self, make_swap, make_context):
        swaps = []
        for minute in range(5):
            for i in range(25):
                ts = BASE_TS + minute * 60_000 + i * 1000
                swaps.append(make_swap(wallet=f"w{i}", ts=ts, usd=1.0, price=1.0))

        findings = detect_bait_pattern(make_context(swaps))

        assert findings[0].metrics["bait_windows"] == 5
        assert findings[0].metrics["total_windows"] == 5

    def test_needs_more_than_100_swaps(self, make_swap, make_context):
        swaps = [
            make_swap(ts=BASE_TS + m * 60_000 + i * 1000, usd=1.0, price=1.0)
            for m in range(4) for i in range(25)
        ]
        assert detect_bait_pattern(make_context(swaps)) == []

    def test_real_sized_trades(self, make_swap, make_context):
        swaps = [
            make_swap(ts=BASE_TS + m * 60_000 + i * 1000, usd=500.0, price=1.0)
            for m in range(5) for i in range(25)
        ]
        assert detect_bait_pattern(make_context(swaps)) == []


class TestManipulationWallets:

    def test_large_buy_then_large_sell(self, make_swap, make_context):
        swaps = [make_swap(wallet=f"w{i}", usd=10.0, ts=BASE_TS + i * 1000) for i in range(20)]
        swaps.append(make_swap(wallet="m", direction="buy", usd=1000.0, ts=BASE_TS + 100_000))
        swaps.append(make_swap(wallet="m", direction="sell", usd=1000.0, ts=BASE_TS + 160_000))

        findings = detect_manipulation_wallets(make_context(swaps, tvl=100_000.0))

        assert len(findings) == 1
        metrics = findings[0].metrics
        assert metrics["wallets"] == ["m"]
        assert metrics["buy_volume_usd"] == 1000.0
        assert metrics["sell_volume_usd"] == 1000.0
        assert metrics["price_impact_percent"] == 2.0
        assert metrics["buy_price_impact_percent"] == 1.0
        assert "est. price impact 2.00%: buy 1.00%, sell 1.00%" in findings[0].description

    def test_sell_outside_five_minutes(self, make_swap, make_context):
        swaps = [make_swap(wallet=f"w{i}", usd=10.0, ts=BASE_TS + i * 1000) for i in range(20)]
        swaps.append(make_swap(wallet="m", direction="buy", usd=1000.0, ts=BASE_TS + 100_000))
        swaps.append(make_swap(wallet="m", direction="sell", usd=1000.0, ts=BASE_TS + 100_000 + 301_000))

        assert detect_manipulation_wallets(make_context(swaps)) == []

    def test_no_liquidity_context(self, make_swap, make_context):
        swaps = [make_swap(wallet=f"w{i}", usd=10.0, ts=BASE_TS + i * 1000) for i in range(20)]
        swaps.append(make_swap(wallet="m", direction="buy", usd=1000.0, ts=BASE_TS + 100_000))
        swaps.append(make_swap(wallet="m", direction="sell", usd=1000.0, ts=BASE_TS + 110_000))

        findings = detect_manipulation_wallets(make_context(swaps))

        assert findings[0].metrics["price_impact_percent"] is None
        assert findings[0].metrics["buy_price_impact_percent"] is None
        assert "n/a" in findings[0].description


@pytest.mark.parametrize("detector", [
    detect_wash_trading,
    detect_whale_concentration,
    detect_buy_sell_imbalance,
    detect_rapid_cycles,
    detect_large_transactions,
    detect_time_clustering,
    detect_new_wallet_dominance,
    detect_volume_spike,
    detect_bot_signature,
    detect_synchronized_clusters,
    detect_bait_pattern,
    detect_manipulation_wallets,
])
def test_empty_batch_yields_nothing(detector, make_context):
    assert detector(make_context([])) == []
