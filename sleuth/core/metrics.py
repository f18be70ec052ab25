"""
Prometheus Metrics Export for Sleuth

Exports analysis-engine metrics for monitoring:
- Analyses run and swaps analyzed
- Malformed records dropped
- Findings by kind
- Detector failures by detector
- Risk score distribution
- Analysis duration
"""

import logging
import os
from typing import Iterable, Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram, start_http_server

from .models import Finding, RiskScoreBreakdown

logger = logging.getLogger(__name__)


class EngineMetrics:
    """
    Prometheus metrics exporter for the analysis engine.

    Metrics exported:
    - sleuth_analyses_total: Analyses completed (Counter)
    - sleuth_swaps_analyzed_total: Valid swaps analyzed (Counter)
    - sleuth_records_dropped_total: Malformed records dropped (Counter)
    - sleuth_findings_total: Findings emitted, by kind (Counter with label)
    - sleuth_detector_failures_total: Detectors skipped after an error (Counter with label)
    - sleuth_risk_score: Composite risk score distribution (Histogram)
    - sleuth_analysis_duration_seconds: Time taken per analysis (Histogram)
    """

    def __init__(self, port: int = 8082, registry: Optional[CollectorRegistry] = None):
        """
        Initialize metrics exporter.

        Args:
            port: Port to expose metrics on (default 8082)
            registry: Registry to register with (default: the global registry)
        """
        self.port = port
        self.registry = registry if registry is not None else REGISTRY
        self.metrics_started = False

        self.analyses = Counter(
            'sleuth_analyses_total',
            'Total number of pool analyses completed',
            registry=self.registry,
        )

        self.swaps_analyzed = Counter(
            'sleuth_swaps_analyzed_total',
            'Total number of valid swaps analyzed',
            registry=self.registry,
        )

        self.records_dropped = Counter(
            'sleuth_records_dropped_total',
            'Total number of malformed swap records dropped',
            registry=self.registry,
        )

        self.findings = Counter(
            'sleuth_findings_total',
            'Total number of findings emitted',
            ['kind'],
            registry=self.registry,
        )

        self.detector_failures = Counter(
            'sleuth_detector_failures_total',
            'Total number of detector runs skipped after an error',
            ['detector'],
            registry=self.registry,
        )

        self.risk_score = Histogram(
            'sleuth_risk_score',
            'Distribution of composite risk scores',
            buckets=[0, 20, 40, 60, 80, 100],
            registry=self.registry,
        )

        self.analysis_duration = Histogram(
            'sleuth_analysis_duration_seconds',
            'Time taken to analyze one batch',
            buckets=[0.01, 0.05, 0.1, 0.5, 1, 5, 30],
            registry=self.registry,
        )

    def start_server(self):
        """Start Prometheus metrics HTTP server."""
        if self.metrics_started:
            return

        try:
            start_http_server(self.port, registry=self.registry)
            self.metrics_started = True
            logger.info(f"Prometheus metrics server started on port {self.port}")
        except OSError as e:
            logger.warning(f"Failed to start Prometheus metrics server: {e}")

    def record_batch(self, swaps: int, dropped: int):
        self.swaps_analyzed.inc(swaps)
        if dropped:
            self.records_dropped.inc(dropped)

    def record_findings(self, findings: Iterable[Finding]):
        for finding in findings:
            self.findings.labels(kind=finding.kind.value).inc()

    def record_detector_failure(self, detector: str):
        self.detector_failures.labels(detector=detector).inc()

    def record_analysis(self, risk: RiskScoreBreakdown, duration_seconds: float):
        """
        Record a completed analysis.

        Args:
            risk: Risk breakdown of the run
            duration_seconds: Wall-clock duration in seconds
        """
        self.analyses.inc()
        self.risk_score.observe(risk.total_score)
        self.analysis_duration.observe(duration_seconds)


# Global metrics instance
_metrics_instance: Optional[EngineMetrics] = None


def get_metrics() -> EngineMetrics:
    """Get or create global metrics instance."""
    global _metrics_instance

    if _metrics_instance is None:
        port = int(os.getenv("SLEUTH_METRICS_PORT", "8082"))
        _metrics_instance = EngineMetrics(port=port)

        # Auto-start if enabled
        if os.getenv("SLEUTH_METRICS_ENABLED", "false").lower() == "true":
            _metrics_instance.start_server()

    return _metrics_instance
