"""
Detection engine and pool analyzer.

`DetectionEngine` runs the registered detectors over one batch, either
one after another or on a thread pool, and always returns findings in the
same order for the same input. A detector that raises is logged and
reported as skipped; it never aborts the run.

`PoolAnalyzer` wires the whole pipeline:
Normalizer -> Aggregator -> Detection -> Summary -> Risk -> Security.
"""

import logging
import time
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .aggregator import aggregate_wallets, read_only
from .amount_utils import to_optional_float
from .detectors import DEFAULT_DETECTORS, DetectionContext, Detector
from .history import coerce_history
from .market_structure import build_wallet_stats
from .metrics import EngineMetrics
from .models import FINDING_KIND_ORDER, AnalysisResult, Finding, PoolContext
from .normalizer import ContractViolationError, normalize_swaps
from .profiles import coerce_profiles
from .risk import calculate_risk_score
from .security import calculate_security_score, security_level
from .summary import DEFAULT_TOP_TRADERS, DEFAULT_TOP_WALLETS, assemble_summary


logger = logging.getLogger(__name__)

DetectorOutcome = Tuple[Optional[List[Finding]], Optional[str]]


class DetectionEngine:
    """Runs a fixed, ordered set of detectors over one batch."""

    def __init__(
        self,
        detectors: Sequence[Tuple[str, Detector]] = DEFAULT_DETECTORS,
        parallel: bool = False,
        max_workers: int = 4,
    ):
        self.detectors = tuple(detectors)
        self.parallel = parallel
        self.max_workers = max(1, max_workers)

    def _run_one(self, name: str, detector: Detector, ctx: DetectionContext) -> DetectorOutcome:
        try:
            findings = detector(ctx)
        except Exception as e:
            logger.warning(f"Detector {name} failed and was skipped: {type(e).__name__}: {e}")
            return None, name
        return [replace(f, detector=name) for f in findings], None

    def run(self, ctx: DetectionContext) -> Tuple[List[Finding], List[str]]:
        """
        Run every detector.

        Args:
            ctx: Detection context of the batch

        Returns:
            Tuple of (ordered findings, names of skipped detectors in
            registration order)
        """
        if self.parallel and len(self.detectors) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [
                    executor.submit(self._run_one, name, detector, ctx)
                    for name, detector in self.detectors
                ]
                outcomes = [future.result() for future in futures]
        else:
            outcomes = [self._run_one(name, detector, ctx) for name, detector in self.detectors]

        keyed = []
        skipped: List[str] = []
        for index, (findings, failed) in enumerate(outcomes):
            if failed is not None:
                skipped.append(failed)
                continue
            for emitted, finding in enumerate(findings):
                keyed.append(((index, FINDING_KIND_ORDER[finding.kind], emitted), finding))

        keyed.sort(key=lambda item: item[0])
        findings = [finding for _, finding in keyed]
        logger.debug(f"Detection finished: {len(findings)} findings, {len(skipped)} skipped")
        return findings, skipped


@dataclass
class AnalyzerConfig:
    """Knobs of one PoolAnalyzer (see SleuthConfig for the env-driven values)."""
    top_wallets: int = DEFAULT_TOP_WALLETS
    top_traders: int = DEFAULT_TOP_TRADERS
    parallel_detectors: bool = False
    max_workers: int = 4


_CONTEXT_KEYS: Dict[str, Tuple[str, ...]] = {
    "tvl_usd": ("tvl_usd", "tvlUSD", "tvlUsd"),
    "token_a_freeze_authority": ("token_a_freeze_authority", "tokenAFreezeAuthority"),
    "token_a_mint_authority": ("token_a_mint_authority", "tokenAMintAuthority"),
    "token_b_freeze_authority": ("token_b_freeze_authority", "tokenBFreezeAuthority"),
    "token_b_mint_authority": ("token_b_mint_authority", "tokenBMintAuthority"),
}


def coerce_pool_context(value: Any) -> PoolContext:
    """
    Build a PoolContext from a PoolContext, a mapping or None.

    Raises:
        ContractViolationError: for any other type
    """
    if value is None:
        return PoolContext()
    if isinstance(value, PoolContext):
        return value
    if not isinstance(value, Mapping):
        raise ContractViolationError(f"pool context must be a mapping, got {type(value).__name__}")

    found: Dict[str, Any] = {}
    for name, keys in _CONTEXT_KEYS.items():
        for key in keys:
            if value.get(key) is not None:
                found[name] = value[key]
                break

    return PoolContext(
        tvl_usd=to_optional_float(found.get("tvl_usd")),
        token_a_freeze_authority=bool(found.get("token_a_freeze_authority", False)),
        token_a_mint_authority=bool(found.get("token_a_mint_authority", False)),
        token_b_freeze_authority=bool(found.get("token_b_freeze_authority", False)),
        token_b_mint_authority=bool(found.get("token_b_mint_authority", False)),
    )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PoolAnalyzer:
    """
    End-to-end analysis of one batch of swaps for one pool.

    The analyzer holds no per-run state; one instance can serve any number
    of runs, including concurrent ones.
    """

    def __init__(
        self,
        config: Optional[AnalyzerConfig] = None,
        metrics: Optional[EngineMetrics] = None,
        clock: Callable[[], datetime] = _utc_now,
        detectors: Sequence[Tuple[str, Detector]] = DEFAULT_DETECTORS,
    ):
        """
        Initialize analyzer.

        Args:
            config: Analyzer configuration (defaults if None)
            metrics: Metrics exporter; no metrics are recorded if None
            clock: Source of the result's `generated_at` timestamp
            detectors: Ordered (name, detector) registrations
        """
        self.config = config or AnalyzerConfig()
        self.metrics = metrics
        self.clock = clock
        self.engine = DetectionEngine(
            detectors=detectors,
            parallel=self.config.parallel_detectors,
            max_workers=self.config.max_workers,
        )

    def analyze(
        self,
        records: Any,
        context: Any = None,
        profiles: Any = None,
        history: Any = None,
    ) -> AnalysisResult:
        """
        Analyze one batch.

        Args:
            records: Sequence of raw swap records (mappings or Swaps)
            context: PoolContext or mapping with TVL and authority flags
            profiles: Optional list of wallet profiles
            history: Optional trend snapshot mapping or list of history points

        Returns:
            AnalysisResult with summary, risk breakdown and security score

        Raises:
            ContractViolationError: if `records` is not a sequence, or a
                context argument has the wrong type
        """
        started = time.perf_counter()

        pool = coerce_pool_context(context)
        wallet_profiles = coerce_profiles(profiles)
        trend = coerce_history(history)

        batch = normalize_swaps(records)
        swaps = batch.swaps
        wallets = aggregate_wallets(swaps)

        ctx = DetectionContext(
            swaps=tuple(swaps),
            wallets=read_only(wallets),
            pool_liquidity_usd=pool.tvl_usd,
        )
        findings, skipped = self.engine.run(ctx)
        wallet_stats, skipped_stats = build_wallet_stats(swaps, ctx.wallets)
        skipped = skipped + skipped_stats

        summary = assemble_summary(
            swaps,
            ctx.wallets,
            findings,
            tvl_usd=pool.tvl_usd,
            wallet_stats=wallet_stats,
            top_wallets=self.config.top_wallets,
            top_traders=self.config.top_traders,
            dropped_records=batch.dropped,
            skipped_detectors=skipped,
        )
        risk = calculate_risk_score(summary, pool, wallet_profiles, trend)
        security = calculate_security_score(wallet_stats, pool)

        result = AnalysisResult(
            summary=summary,
            risk=risk,
            security_score=security,
            security_level=security_level(security),
            generated_at=self.clock(),
        )

        duration = time.perf_counter() - started
        if self.metrics is not None:
            self.metrics.record_batch(len(swaps), batch.dropped)
            self.metrics.record_findings(findings)
            for name in skipped:
                self.metrics.record_detector_failure(name)
            self.metrics.record_analysis(risk, duration)

        logger.info(
            f"Analyzed {len(swaps)} swaps from {len(wallets)} wallets in {duration:.3f}s: "
            f"{len(findings)} findings, risk {risk.total_score}/100 ({risk.risk_level.value})"
        )
        return result
