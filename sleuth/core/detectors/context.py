"""Shared input handed to every detector."""

from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

from ..models import Swap, WalletAggregate


@dataclass(frozen=True)
class DetectionContext:
    """
    Read-only view of one batch.

    `swaps` keeps the caller's order; detectors that need time order sort
    a copy. `wallets` is a MappingProxyType over the aggregator output.
    """
    swaps: Tuple[Swap, ...]
    wallets: Mapping[str, WalletAggregate]
    pool_liquidity_usd: Optional[float] = None

    @property
    def total_count(self) -> int:
        return len(self.swaps)

    def sized_values(self) -> List[float]:
        """USD sizes of trades that have one."""
        return [s.usd_value for s in self.swaps if s.usd_value is not None]

    def total_volume_usd(self) -> float:
        return sum(self.sized_values())

    def average_trade_usd(self) -> float:
        sized = self.sized_values()
        return sum(sized) / len(sized) if sized else 0.0
