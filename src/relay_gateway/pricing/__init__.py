"""
Pricing rule engine.
"""

from .rules import PricingFunc, PricingRatioMap, FAMILIES
from .registry import (
    DEFAULT_RULES,
    PricingRegistry,
    get_pricing_registry,
    get_pricing_func,
    compute_ratios,
)
from .price import PriceData

__all__ = [
    "PricingFunc",
    "PricingRatioMap",
    "FAMILIES",
    "DEFAULT_RULES",
    "PricingRegistry",
    "get_pricing_registry",
    "get_pricing_func",
    "compute_ratios",
    "PriceData",
]
