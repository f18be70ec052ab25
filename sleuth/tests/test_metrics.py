"""Tests for the Prometheus metrics exporter"""

import pytest
from prometheus_client import CollectorRegistry

import sleuth.core.metrics as metrics_module
from sleuth.core.findings import make_finding
from sleuth.core.metrics import EngineMetrics, get_metrics
from sleuth.core.models import FindingKind, RiskScoreBreakdown, RiskTier, Severity


@pytest.fixture
def registry():
    return CollectorRegistry()


@pytest.fixture
def metrics(registry):
    return EngineMetrics(port=0, registry=registry)


class TestEngineMetrics:

    def test_batch_counters(self, metrics, registry):
        metrics.record_batch(swaps=25, dropped=0)
        metrics.record_batch(swaps=5, dropped=3)

        assert registry.get_sample_value("sleuth_swaps_analyzed_total") == 30
        assert registry.get_sample_value("sleuth_records_dropped_total") == 3

    def test_findings_by_kind(self, metrics, registry):
        finding = make_finding(
            FindingKind.BUY_SELL_IMBALANCE, Severity.WEAK,
            direction="dump", buy_ratio_percent=10.0, buy_count=1, sell_count=9,
        )
        metrics.record_findings([finding, finding])

        assert registry.get_sample_value("sleuth_findings_total", {"kind": "buy-sell-imbalance"}) == 2

    def test_detector_failures(self, metrics, registry):
        metrics.record_detector_failure("bait_pattern")
        assert registry.get_sample_value("sleuth_detector_failures_total", {"detector": "bait_pattern"}) == 1

    def test_analysis_histograms(self, metrics, registry):
        risk = RiskScoreBreakdown(total_score=45, risk_level=RiskTier.MEDIUM, factors=[], summary="")
        metrics.record_analysis(risk, 0.02)

        assert registry.get_sample_value("sleuth_analyses_total") == 1
        assert registry.get_sample_value("sleuth_risk_score_bucket", {"le": "40.0"}) == 0
        assert registry.get_sample_value("sleuth_risk_score_bucket", {"le": "60.0"}) == 1
        assert registry.get_sample_value("sleuth_analysis_duration_seconds_sum") == pytest.approx(0.02)

    def test_server_failure_is_logged(self, metrics, monkeypatch, caplog):
        def refuse(port, registry):
            raise OSError("address in use")

        monkeypatch.setattr(metrics_module, "start_http_server", refuse)
        metrics.start_server()

        assert not metrics.metrics_started
        assert "address in use" in caplog.text

    def test_server_started_once(self, metrics, monkeypatch):
        calls = []
        monkeypatch.setattr(metrics_module, "start_http_server", lambda port, registry: calls.append(port))

        metrics.start_server()
        metrics.start_server()

        assert calls == [0]
        assert metrics.metrics_started


class TestGetMetrics:

    def test_singleton_from_env(self, monkeypatch):
        monkeypatch.setattr(metrics_module, "_metrics_instance", None)
        monkeypatch.setattr(metrics_module, "REGISTRY", CollectorRegistry())
        monkeypatch.setenv("SLEUTH_METRICS_PORT", "9999")
        monkeypatch.setenv("SLEUTH_METRICS_ENABLED", "false")

        first = get_metrics()

        assert first is get_metrics()
        assert first.port == 9999
        assert not first.metrics_started
