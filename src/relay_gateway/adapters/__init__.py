"""
Channel adaptors for upstream providers.
"""

from ..core.config import ChannelType
from .zhipu import ZhipuAdaptor
from .zhipu_video import ZhipuVideoTaskAdaptor
from .openai import openai_response_handler
from .claude import claude_response_handler


def register_builtin_adaptors(registry) -> None:
    registry.register_adaptor(ChannelType.ZHIPU_V4, ZhipuAdaptor)
    registry.register_task_adaptor(ChannelType.ZHIPU_V4, ZhipuVideoTaskAdaptor)
    registry.register_task_adaptor(ChannelType.ZHIPU_VIDEO, ZhipuVideoTaskAdaptor)


__all__ = [
    "ZhipuAdaptor",
    "ZhipuVideoTaskAdaptor",
    "openai_response_handler",
    "claude_response_handler",
    "register_builtin_adaptors",
]
