"""
Per-request price data handed to the settlement service.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from .rules import PricingRatioMap


@dataclass
class PriceData:
    """Base unit price plus the ratio multipliers for one request."""
    model_price: float = 0.0
    use_price: bool = False
    other_ratios: PricingRatioMap = field(default_factory=dict)

    def adjust_for_count(self, actual: int, requested: Optional[int]) -> None:
        """
        Scale a flat per-call price down when fewer results were produced.

        No change for token-priced calls, an unknown requested count, or
        when at least the requested count was produced.
        """
        if not self.use_price:
            return
        if not requested or requested <= 0 or actual >= requested:
            return
        self.model_price = self.model_price / float(requested) * float(actual)

    def ratio_product(self) -> float:
        product = 1.0
        for value in self.other_ratios.values():
            product *= value
        return product

    def to_dict(self) -> Dict[str, object]:
        return {
            "model_price": self.model_price,
            "use_price": self.use_price,
            "other_ratios": dict(self.other_ratios),
        }
