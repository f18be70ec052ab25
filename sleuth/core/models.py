"""
Data models for Sleuth pool analysis.

This module defines the core data structures used throughout Sleuth
for representing normalized swaps, per-wallet aggregates, findings,
risk factors and the final analysis output.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class SwapDirection(Enum):
    """Trade direction relative to the pool's tracked token."""
    BUY = "buy"
    SELL = "sell"


class Severity(Enum):
    """Strength of a finding."""
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"


class FindingKind(Enum):
    """Closed set of finding tags. Declaration order is the tie-break order."""
    WASH_TRADING = "wash-trading"
    WHALE_CONCENTRATION = "whale-concentration"
    BUY_SELL_IMBALANCE = "buy-sell-imbalance"
    RAPID_CYCLE = "rapid-cycle"
    LARGE_TRANSACTION = "large-transaction"
    TIME_CLUSTERING = "time-clustering"
    NEW_WALLET_DOMINANCE = "new-wallet-dominance"
    VOLUME_SPIKE = "volume-spike"
    BOT_SIGNATURE = "bot-signature"
    PRICE_VOLATILITY = "price-volatility"
    SYNCHRONIZED_CLUSTER = "synchronized-cluster"
    PROFIT_PRESSURE = "profit-pressure"
    BAIT_PATTERN = "bait-pattern"
    DIAMOND_HANDS = "diamond-hands"
    PANIC_SELL = "panic-sell"
    FOMO_BUY = "fomo-buy"
    NEW_WALLET_FLOW = "new-wallet-flow"
    MANIPULATION_WALLET = "manipulation-wallet"


FINDING_KIND_ORDER: Dict[FindingKind, int] = {kind: i for i, kind in enumerate(FindingKind)}


class RiskTier(Enum):
    """Composite risk tier (breakpoints at 20/40/60/80)."""
    VERY_LOW = "very_low"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Swap:
    """
    A single normalized trade.

    Raw token amounts are Python ints so they never lose precision; the
    USD figures are estimates and stay floats.
    """
    signature: str
    timestamp: int  # milliseconds since epoch
    wallet: str
    direction: SwapDirection
    amount_in: int
    amount_out: int
    amount_in_usd: Optional[float] = None
    amount_out_usd: Optional[float] = None
    price_token: Optional[float] = None
    source: Optional[str] = None

    @property
    def is_buy(self) -> bool:
        return self.direction == SwapDirection.BUY

    @property
    def usd_value(self) -> Optional[float]:
        """USD size of the trade, or None when no estimate is available."""
        if self.amount_in_usd is not None:
            return self.amount_in_usd
        return self.amount_out_usd


@dataclass
class WalletAggregate:
    """Per-wallet activity within one batch."""
    address: str
    tx_count: int = 0
    buy_count: int = 0
    sell_count: int = 0
    total_volume: int = 0  # sum of raw amount_in
    total_volume_usd: float = 0.0
    buy_volume_usd: float = 0.0
    sell_volume_usd: float = 0.0
    first_seen: int = 0
    last_seen: int = 0

    @property
    def round_trips(self) -> int:
        return min(self.buy_count, self.sell_count)


@dataclass(frozen=True)
class Finding:
    """
    A single suspicious-pattern finding.

    `metrics` holds the machine-readable evidence; `description` is the
    rendered text and can always be regenerated from `kind` and `metrics`.
    """
    kind: FindingKind
    severity: Severity
    metrics: Dict[str, Any]
    description: str
    detector: str = ""


@dataclass
class PoolContext:
    """Liquidity and token-authority context supplied by the market-data layer."""
    tvl_usd: Optional[float] = None
    token_a_freeze_authority: bool = False
    token_a_mint_authority: bool = False
    token_b_freeze_authority: bool = False
    token_b_mint_authority: bool = False

    @property
    def has_freeze_authority(self) -> bool:
        return self.token_a_freeze_authority or self.token_b_freeze_authority

    @property
    def has_mint_authority(self) -> bool:
        return self.token_a_mint_authority or self.token_b_mint_authority


@dataclass
class WalletProfile:
    """Off-batch wallet profile (age, activity, bot verdict)."""
    address: str
    is_likely_bot: bool = False
    age_in_days: Optional[float] = None
    total_transactions: int = 0
    recent_transactions: int = 0
    avg_tx_per_day: float = 0.0
    is_whale: bool = False
    risk_level: str = "medium"  # low, medium, high
    summary: str = ""


@dataclass
class HistoryTrend:
    """Historical pool trend snapshot."""
    data_points: int = 0
    days_tracked: int = 0
    tvl_trend: str = "unknown"  # up, down, stable, unknown
    tvl_change_percent: Optional[float] = None
    volume_trend: str = "unknown"  # increasing, decreasing, stable, unknown
    stability_level: str = "unknown"  # highly_stable, stable, moderate, volatile, unknown
    risk_trend: str = "unknown"  # improving, worsening, stable, unknown


@dataclass
class RiskFactor:
    """One weighted risk factor (score 0-100, higher = riskier)."""
    name: str
    score: int
    weight: float
    reason: str


@dataclass
class RiskScoreBreakdown:
    """Composite risk score with its six factors."""
    total_score: int
    risk_level: RiskTier
    factors: List[RiskFactor]
    summary: str

    def factor(self, name: str) -> Optional[RiskFactor]:
        for f in self.factors:
            if f.name == name:
                return f
        return None


@dataclass
class WalletActivity:
    """Top wallet entry ranked by volume."""
    address: str
    tx_count: int
    buy_count: int
    sell_count: int
    total_volume: int
    volume_usd: float
    volume_share: float  # percentage
    first_seen: datetime
    last_seen: datetime


@dataclass
class TopTrader:
    """Top trader entry with buy/sell split."""
    wallet: str
    buy_count: int
    sell_count: int
    volume: int
    volume_usd: float


@dataclass
class TimeRange:
    earliest: datetime
    latest: datetime


@dataclass
class SmartMoneyAnalysis:
    """Entry-price analysis of buyers active in the earliest 10% of trades."""
    early_buyers_count: int
    early_buyers_avg_entry_price: float
    early_buyers_current_profit_loss: float  # percentage
    early_buyers_total_volume: float
    early_buyers_still_holding: int
    early_buyers_still_holding_ratio: float  # percentage


@dataclass
class ProfitLossDistribution:
    """How many cost-basis wallets sit in profit, loss or at break-even."""
    wallets_in_profit: int
    wallets_in_loss: int
    wallets_at_break_even: int
    profit_loss_ratio: float  # percentage of wallets in profit
    avg_profit_percent: float
    avg_loss_percent: float
    total_profit_volume: float
    total_loss_volume: float
    profit_taking_risk: str  # low, medium, high


@dataclass
class PriceLevel:
    price: float
    transaction_count: int
    volume: float
    strength: str  # weak, moderate, strong


@dataclass
class SupportResistanceLevels:
    support_levels: List[PriceLevel]
    resistance_levels: List[PriceLevel]
    current_price: float
    nearest_support: Optional[float] = None
    nearest_resistance: Optional[float] = None


@dataclass
class HolderBehavior:
    """Holding versus re-entry behavior of the batch's wallets."""
    diamond_hands_count: int
    diamond_hands_ratio: float  # percentage of buyers that never sold
    re_entry_count: int
    re_entry_ratio: float  # percentage of sellers that bought back later
    new_wallet_ratio: float  # percentage of wallets with <= 2 trades


@dataclass
class WalletStats:
    """Optional market-structure analyses attached to the summary."""
    holder_behavior: Optional[HolderBehavior] = None
    smart_money: Optional[SmartMoneyAnalysis] = None
    profit_loss_distribution: Optional[ProfitLossDistribution] = None
    support_resistance: Optional[SupportResistanceLevels] = None


@dataclass
class TransactionSummary:
    """Primary output of one analysis run."""
    total_count: int
    buy_count: int
    sell_count: int
    unique_wallets: int
    avg_volume_usd: float
    total_volume_usd: float
    buy_volume_usd: float
    sell_volume_usd: float
    top_wallets: List[WalletActivity] = field(default_factory=list)
    top_traders: List[TopTrader] = field(default_factory=list)
    findings: List[Finding] = field(default_factory=list)
    summary: str = ""
    time_range: Optional[TimeRange] = None
    large_buy_ratio: Optional[float] = None
    large_sell_ratio: Optional[float] = None
    wallet_stats: Optional[WalletStats] = None
    dropped_records: int = 0
    skipped_detectors: List[str] = field(default_factory=list)

    @property
    def suspicious_patterns(self) -> List[str]:
        """Rendered finding descriptions, in finding order."""
        return [f.description for f in self.findings]


@dataclass
class AnalysisResult:
    """Summary, risk breakdown and security score of one analysis run."""
    summary: TransactionSummary
    risk: RiskScoreBreakdown
    security_score: int
    security_level: str
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
