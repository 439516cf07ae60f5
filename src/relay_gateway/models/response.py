"""
Canonical response models for the relay gateway.
"""

import json
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime
from pydantic import BaseModel, Field


class Usage(BaseModel):
    """Token usage information."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    # Alternate names some providers report instead
    input_tokens: int = 0
    output_tokens: int = 0

    cached_tokens: Optional[int] = None
    reasoning_tokens: Optional[int] = None

    class Config:
        extra = "ignore"

    def normalized(self) -> "Usage":
        """
        Copy alternate counters into empty primary ones and derive the total.

        Returns:
            A new Usage; the receiver is left untouched
        """
        usage = self.model_copy()
        if usage.prompt_tokens == 0 and usage.input_tokens != 0:
            usage.prompt_tokens = usage.input_tokens
        if usage.completion_tokens == 0 and usage.output_tokens != 0:
            usage.completion_tokens = usage.output_tokens
        if usage.total_tokens == 0:
            usage.total_tokens = usage.prompt_tokens + usage.completion_tokens
        return usage


class ToolCallResponse(BaseModel):
    """Tool call in response."""
    id: str
    type: Literal["function"] = "function"
    function: Dict[str, Any]


class ResponseMessage(BaseModel):
    """Message in response."""
    role: Literal["assistant"] = "assistant"
    content: Optional[str] = None
    tool_calls: Optional[List[ToolCallResponse]] = None


class Choice(BaseModel):
    """A single completion choice."""
    index: int = 0
    message: ResponseMessage
    finish_reason: Optional[str] = None


class ChatResponse(BaseModel):
    """
    Unified chat completion response.

    Compatible with OpenAI API format.
    """
    id: str = Field(default="")
    object: str = Field(default="chat.completion")
    created: int = Field(default_factory=lambda: int(datetime.now().timestamp()))
    model: str = Field(default="")
    choices: List[Choice] = Field(default_factory=list)
    usage: Optional[Usage] = None

    provider: Optional[str] = None
    gateway: Optional[str] = None

    @classmethod
    def from_openai(cls, data: Dict[str, Any], gateway: str = None) -> "ChatResponse":
        """Create from OpenAI API response."""
        choices = []
        for c in data.get("choices", []):
            message = c.get("message", {})
            choices.append(Choice(
                index=c.get("index", 0),
                message=ResponseMessage(
                    role="assistant",
                    content=message.get("content"),
                    tool_calls=[
                        ToolCallResponse(**tc) for tc in message.get("tool_calls", [])
                    ] if message.get("tool_calls") else None,
                ),
                finish_reason=c.get("finish_reason"),
            ))

        usage_data = data.get("usage")
        usage = Usage(**usage_data).normalized() if usage_data else None

        return cls(
            id=data.get("id", ""),
            object=data.get("object", "chat.completion"),
            created=data.get("created", int(datetime.now().timestamp())),
            model=data.get("model", ""),
            choices=choices,
            usage=usage,
            provider="openai",
            gateway=gateway,
        )

    @classmethod
    def from_anthropic(cls, data: Dict[str, Any], gateway: str = None) -> "ChatResponse":
        """Create from Anthropic API response."""
        content = ""
        tool_calls = []

        for block in data.get("content", []):
            if block.get("type") == "text":
                content += block.get("text", "")
            elif block.get("type") == "tool_use":
                tool_calls.append(ToolCallResponse(
                    id=block.get("id", ""),
                    type="function",
                    function={
                        "name": block.get("name", ""),
                        "arguments": json.dumps(block.get("input", {})),
                    }
                ))

        choices = [Choice(
            index=0,
            message=ResponseMessage(
                role="assistant",
                content=content if content else None,
                tool_calls=tool_calls if tool_calls else None,
            ),
            finish_reason=data.get("stop_reason", "stop"),
        )]

        usage_data = data.get("usage", {})
        usage = Usage(
            input_tokens=usage_data.get("input_tokens", 0),
            output_tokens=usage_data.get("output_tokens", 0),
        ).normalized()

        return cls(
            id=data.get("id", ""),
            object="chat.completion",
            created=int(datetime.now().timestamp()),
            model=data.get("model", ""),
            choices=choices,
            usage=usage,
            provider="anthropic",
            gateway=gateway,
        )


class ImageData(BaseModel):
    """One generated image, either a remote URL or inline base64."""
    url: Optional[str] = None
    b64_json: Optional[str] = None


class ImageResponse(BaseModel):
    """Canonical image generation output."""
    created: int
    data: List[ImageData] = Field(default_factory=list)
    usage: Optional[Usage] = None

    def to_wire(self) -> bytes:
        """Serialize without HTML escaping so URLs and base64 round-trip byte for byte."""
        payload: Dict[str, Any] = {
            "created": self.created,
            "data": [d.model_dump(exclude_none=True) for d in self.data],
        }
        if self.usage is not None:
            payload["usage"] = self.usage.model_dump(
                include={"prompt_tokens", "completion_tokens", "total_tokens"}
            )
        return json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


class OpenAIVideo(BaseModel):
    """Canonical video job object returned to callers."""
    id: str = ""
    task_id: str = ""
    object: str = "video"
    created_at: int = 0
    model: str = ""
    status: str = ""
    progress: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def set_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = value


class RelayResponse(BaseModel):
    """
    Result of a synchronous relay call.

    ``body`` is what the orchestrator writes back to its own caller.
    """
    status_code: int = 200
    body: bytes = b""
    content_type: str = "application/json"
    usage: Usage = Field(default_factory=Usage)
