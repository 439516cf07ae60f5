"""
Per-family pricing rules.

A rule maps a video submit request to the ratio multipliers the settlement
service applies to the model's configured base price. Rules never see the
base price itself.
"""

from typing import Callable, Dict, Mapping

from ..models.request import TaskSubmitRequest

PricingRatioMap = Dict[str, float]
PricingFunc = Callable[[TaskSubmitRequest], PricingRatioMap]

# Sizes billed at the higher resolution tier
SORA_HIGH_RES_SIZES = ("1792x1024", "1024x1792")
SORA_HIGH_RES_RATIO = 1.666667

SEEDANCE_ONLINE_RATIO = 2.0
SEEDANCE_AUDIO_RATIO = 2.0

HAILUO_DEFAULT_RESOLUTION = "768P"


def _duration(req: TaskSubmitRequest, default: int) -> int:
    if req.duration and req.duration > 0:
        return req.duration
    return default


def pricing_per_second(req: TaskSubmitRequest) -> PricingRatioMap:
    """Duration only. ModelPrice is the per-second rate."""
    return {"seconds": float(_duration(req, 5))}


def pricing_sora(req: TaskSubmitRequest) -> PricingRatioMap:
    """Duration plus a resolution tier for the wide and tall high-res sizes."""
    size_ratio = SORA_HIGH_RES_RATIO if req.size in SORA_HIGH_RES_SIZES else 1.0
    return {
        "seconds": float(_duration(req, 4)),
        "size": size_ratio,
    }


def make_pricing_veo(audio_ratio: float) -> PricingFunc:
    """
    Duration, audio and sample count.

    ModelPrice is the per-second rate without audio; ``audio_ratio`` applies
    when ``with_audio`` is set.
    """
    def pricing(req: TaskSubmitRequest) -> PricingRatioMap:
        return {
            "seconds": float(_duration(req, 5)),
            "audio": audio_ratio if req.with_audio else 1.0,
            "sample_count": float(max(1, req.sample_count)),
        }
    return pricing


def make_pricing_kling(pro_ratio: float) -> PricingFunc:
    """
    Billed per 5 seconds with a std/pro mode multiplier.

    ModelPrice is the std price for 5 seconds.
    """
    def pricing(req: TaskSubmitRequest) -> PricingRatioMap:
        return {
            "seconds": _duration(req, 5) / 5.0,
            "mode": pro_ratio if req.mode == "pro" else 1.0,
        }
    return pricing


def pricing_kling_master(req: TaskSubmitRequest) -> PricingRatioMap:
    """Billed per 5 seconds, no mode distinction."""
    return {"seconds": _duration(req, 5) / 5.0}


def pricing_seedance(req: TaskSubmitRequest) -> PricingRatioMap:
    """
    Token-billed; ModelPrice is the offline rate without audio.

    The final charge is reconciled against reported token usage when the
    task completes.
    """
    return {
        "service_tier": 1.0 if req.service_tier == "flex" else SEEDANCE_ONLINE_RATIO,
        "audio": SEEDANCE_AUDIO_RATIO if req.generate_audio else 1.0,
    }


def make_pricing_hailuo(ratio_table: Mapping[str, float]) -> PricingFunc:
    """
    Resolution x duration lookup, relative to the 768P/6s price.

    Unknown combinations bill at the base price.
    """
    table = dict(ratio_table)

    def pricing(req: TaskSubmitRequest) -> PricingRatioMap:
        resolution = req.resolution or HAILUO_DEFAULT_RESOLUTION
        key = f"{resolution}:{_duration(req, 6)}"
        return {"price": table.get(key, 1.0)}
    return pricing


# Factories addressable from configuration
FAMILIES: Dict[str, Callable[..., PricingFunc]] = {
    "per_second": lambda: pricing_per_second,
    "sora": lambda: pricing_sora,
    "veo": lambda audio_ratio=2.0: make_pricing_veo(float(audio_ratio)),
    "kling": lambda pro_ratio=1.75: make_pricing_kling(float(pro_ratio)),
    "kling_master": lambda: pricing_kling_master,
    "seedance": lambda: pricing_seedance,
    "hailuo": lambda table=None: make_pricing_hailuo(table or {}),
}
