"""
Sleuth Core Module

Provides swap normalization, wallet aggregation, pattern detection,
risk scoring and summary assembly for one batch of pool swaps.
"""

from .aggregator import aggregate_wallets
from .engine import AnalyzerConfig, DetectionEngine, PoolAnalyzer, coerce_pool_context
from .history import HistoryPoint, coerce_history, derive_history_trend
from .metrics import EngineMetrics, get_metrics
from .models import (
    AnalysisResult,
    Finding,
    FindingKind,
    HistoryTrend,
    PoolContext,
    RiskFactor,
    RiskScoreBreakdown,
    RiskTier,
    Severity,
    Swap,
    SwapDirection,
    TransactionSummary,
    WalletAggregate,
    WalletProfile,
)
from .normalizer import ContractViolationError, normalize_swaps
from .profiles import coerce_profiles
from .risk import calculate_risk_score
from .security import calculate_security_score, security_level
from .serialization import result_from_dict, result_to_dict
from .summary import assemble_summary

__all__ = [
    # Pipeline
    "PoolAnalyzer",
    "AnalyzerConfig",
    "DetectionEngine",
    "normalize_swaps",
    "aggregate_wallets",
    "assemble_summary",
    "calculate_risk_score",
    "calculate_security_score",
    "security_level",
    # Context coercion
    "coerce_pool_context",
    "coerce_profiles",
    "coerce_history",
    "derive_history_trend",
    "HistoryPoint",
    # Serialization
    "result_to_dict",
    "result_from_dict",
    # Metrics
    "EngineMetrics",
    "get_metrics",
    # Models
    "AnalysisResult",
    "ContractViolationError",
    "Finding",
    "FindingKind",
    "HistoryTrend",
    "PoolContext",
    "RiskFactor",
    "RiskScoreBreakdown",
    "RiskTier",
    "Severity",
    "Swap",
    "SwapDirection",
    "TransactionSummary",
    "WalletAggregate",
    "WalletProfile",
]
