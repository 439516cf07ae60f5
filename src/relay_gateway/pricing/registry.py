"""
Pricing rule registry.

Resolves a model name to its pricing rule by exact match, then by the
longest registered prefix. Prefixes of equal length are tried in
lexicographic order so resolution never depends on insertion order.
"""

import logging
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from ..core.errors import PricingError
from ..models.request import TaskSubmitRequest
from .rules import (
    FAMILIES,
    PricingFunc,
    PricingRatioMap,
    make_pricing_hailuo,
    make_pricing_kling,
    make_pricing_veo,
    pricing_kling_master,
    pricing_per_second,
    pricing_seedance,
    pricing_sora,
)

logger = logging.getLogger(__name__)


DEFAULT_RULES: Dict[str, PricingFunc] = {
    # CogVideoX: per second
    "cogvideox": pricing_per_second,

    # Sora: per second + resolution tier
    "sora-2-pro": pricing_sora,
    "sora-2": pricing_sora,

    # Veo generate: audio doubles the rate
    "veo-3.0-generate": make_pricing_veo(2.0),
    "veo-3.1-generate": make_pricing_veo(2.0),

    # Veo fast: audio is 1.5x
    "veo-3.0-fast-generate": make_pricing_veo(1.5),
    "veo-3.1-fast-generate": make_pricing_veo(1.5),

    # Kling standard: per 5s, pro = 1.75x
    "kling-v1-6": make_pricing_kling(1.75),
    "kling-multi-v1-6": make_pricing_kling(1.75),
    "kling-v2-1": make_pricing_kling(1.75),

    # Kling master: per 5s, no mode
    "kling-v2-master": pricing_kling_master,
    "kling-v2-1-master": pricing_kling_master,

    # Kling turbo: per 5s, pro = 5/3x
    "kling-v2-5-turbo": make_pricing_kling(5.0 / 3.0),

    # Seedance: token-billed with tier and audio multipliers
    "doubao-seedance": pricing_seedance,

    # Minimax Hailuo: ModelPrice = 768P/6s price
    "minimax-hailuo-2.3-Fast": make_pricing_hailuo({
        "768P:6": 1.0,
        "768P:10": 32.0 / 19.0,
        "1080P:6": 33.0 / 19.0,
    }),
    "minimax-hailuo-2.3": make_pricing_hailuo({
        "768P:6": 1.0,
        "768P:10": 2.0,
        "1080P:6": 1.75,
    }),
    "minimax-hailuo-02": make_pricing_hailuo({
        "512P:6": 10.0 / 28.0,
        "512P:10": 15.0 / 28.0,
        "768P:6": 1.0,
        "768P:10": 2.0,
        "1080P:6": 1.75,
    }),
}


class PricingRegistry:
    """
    Read-only mapping of model names and prefixes to pricing rules.

    Build a new registry to change rules; an existing one is never mutated.
    """

    def __init__(
        self,
        rules: Mapping[str, PricingFunc],
        default: PricingFunc = pricing_per_second,
    ):
        self._rules = MappingProxyType(dict(rules))
        self._default = default
        # Longest first, ties broken lexicographically
        self._prefixes: Tuple[str, ...] = tuple(
            sorted(self._rules, key=lambda k: (-len(k), k))
        )

    @property
    def rules(self) -> Mapping[str, PricingFunc]:
        return self._rules

    def resolve_key(self, model: str) -> Optional[str]:
        """
        Registry key that governs a model.

        Args:
            model: Requested model name

        Returns:
            The exact key, else the longest matching prefix, else None
        """
        if model in self._rules:
            return model
        for prefix in self._prefixes:
            if model.startswith(prefix):
                return prefix
        return None

    def get_pricing_func(self, model: str) -> PricingFunc:
        key = self.resolve_key(model)
        if key is None:
            return self._default
        return self._rules[key]

    def compute(self, req: TaskSubmitRequest) -> PricingRatioMap:
        """
        Evaluate the ratio map for a request.

        Raises:
            PricingError: If the rule produced a zero or negative ratio
        """
        ratios = self.get_pricing_func(req.model)(req)
        for name, value in ratios.items():
            if not value > 0:
                raise PricingError(
                    f"pricing rule for {req.model!r} produced non-positive ratio {name}={value}",
                    model=req.model,
                )
        return ratios

    def with_overrides(self, overrides: Mapping[str, Dict[str, Any]]) -> "PricingRegistry":
        """
        Build a registry with configured rules layered over this one.

        Args:
            overrides: Model prefix -> {"family": name, **factory params}

        Returns:
            New registry
        """
        rules = dict(self._rules)
        for prefix, rule_def in overrides.items():
            params = dict(rule_def)
            family = params.pop("family", None)
            if family not in FAMILIES:
                raise PricingError(f"unknown pricing family {family!r} for {prefix!r}", model=prefix)
            rules[prefix] = FAMILIES[family](**params)
            logger.info(f"Registered pricing rule: {prefix} ({family})")
        return PricingRegistry(rules, default=self._default)


_default_registry = PricingRegistry(DEFAULT_RULES)


def get_pricing_registry() -> PricingRegistry:
    """Get the built-in pricing registry."""
    return _default_registry


def get_pricing_func(model: str) -> PricingFunc:
    return _default_registry.get_pricing_func(model)


def compute_ratios(req: TaskSubmitRequest) -> PricingRatioMap:
    return _default_registry.compute(req)
