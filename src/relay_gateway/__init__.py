"""
Relay Gateway

Provider adaptation layer for a multi-provider generative AI gateway:
- Channel adaptors translating canonical requests to provider wire formats
- Pricing rule engine producing per-request billing ratios
- Asynchronous task lifecycle for long-running generation jobs
"""

from .core.constants import RelayFormat, RelayMode
from .core.config import ChannelConfig, ChannelType, GatewayConfig, load_config
from .core.context import RelayInfo
from .core.interface import AbstractChannelAdaptor, AbstractTaskAdaptor, SubmitResult
from .core.registry import AdaptorRegistry, get_registry
from .models.request import (
    ChatRequest,
    ImageRequest,
    AudioRequest,
    EmbeddingRequest,
    TaskSubmitRequest,
    ElementRequest,
    IdentifyFaceRequest,
    parse_request,
)
from .models.response import ImageResponse, OpenAIVideo, RelayResponse, Usage
from .models.task import Task, TaskInfo, TaskStatus
from .pricing import PriceData, PricingRegistry, compute_ratios, get_pricing_registry
from .relay import relay, relay_passthrough, submit_task, poll_task

__all__ = [
    "RelayFormat",
    "RelayMode",
    "ChannelConfig",
    "ChannelType",
    "GatewayConfig",
    "load_config",
    "RelayInfo",
    "AbstractChannelAdaptor",
    "AbstractTaskAdaptor",
    "SubmitResult",
    "AdaptorRegistry",
    "get_registry",
    "ChatRequest",
    "ImageRequest",
    "AudioRequest",
    "EmbeddingRequest",
    "TaskSubmitRequest",
    "ElementRequest",
    "IdentifyFaceRequest",
    "parse_request",
    "ImageResponse",
    "OpenAIVideo",
    "RelayResponse",
    "Usage",
    "Task",
    "TaskInfo",
    "TaskStatus",
    "PriceData",
    "PricingRegistry",
    "compute_ratios",
    "get_pricing_registry",
    "relay",
    "relay_passthrough",
    "submit_task",
    "poll_task",
]
