"""
Relay gateway data models.
"""

from .request import (
    ChatRequest,
    Message,
    ToolCall,
    Tool,
    FunctionDefinition,
    ImageRequest,
    AudioRequest,
    EmbeddingRequest,
    TaskSubmitRequest,
    ElementRequest,
    IdentifyFaceRequest,
    CanonicalRequest,
    parse_request,
)
from .response import (
    ChatResponse,
    Choice,
    Usage,
    ImageData,
    ImageResponse,
    OpenAIVideo,
    RelayResponse,
)
from .task import Task, TaskInfo, TaskResult, TaskStatus

__all__ = [
    "ChatRequest",
    "Message",
    "ToolCall",
    "Tool",
    "FunctionDefinition",
    "ImageRequest",
    "AudioRequest",
    "EmbeddingRequest",
    "TaskSubmitRequest",
    "ElementRequest",
    "IdentifyFaceRequest",
    "CanonicalRequest",
    "parse_request",
    "ChatResponse",
    "Choice",
    "Usage",
    "ImageData",
    "ImageResponse",
    "OpenAIVideo",
    "RelayResponse",
    "Task",
    "TaskInfo",
    "TaskResult",
    "TaskStatus",
]
