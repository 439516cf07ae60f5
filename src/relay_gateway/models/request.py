"""
Canonical request models for the relay gateway.

Every request variant carries a ``modality`` tag; exactly one variant is
populated per call.
"""

from typing import Optional, List, Dict, Any, Union, Literal, Annotated
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from ..core.errors import RequestValidationError


class FunctionDefinition(BaseModel):
    """Function definition for tool use."""
    name: str
    description: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None


class Tool(BaseModel):
    """Tool definition."""
    type: Literal["function"] = "function"
    function: FunctionDefinition


class ToolCall(BaseModel):
    """Tool call in a message."""
    id: str
    type: Literal["function"] = "function"
    function: Dict[str, Any]  # {"name": str, "arguments": str}


class Message(BaseModel):
    """Unified message format."""
    role: Literal["system", "user", "assistant", "tool"]
    content: Optional[Union[str, List[Dict[str, Any]]]] = None
    name: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None
    tool_call_id: Optional[str] = None

    class Config:
        extra = "allow"


class ChatRequest(BaseModel):
    """
    Unified chat completion request.

    Compatible with OpenAI API format with extensions for
    other providers.
    """
    modality: Literal["chat"] = "chat"

    # Required
    model: str = Field(..., description="Model identifier")
    messages: List[Message] = Field(..., description="Conversation messages")

    # Optional parameters
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    top_p: Optional[float] = Field(default=None, ge=0, le=1)
    n: Optional[int] = Field(default=None, ge=1)
    stream: bool = Field(default=False)
    stop: Optional[Union[str, List[str]]] = None
    max_tokens: Optional[int] = Field(default=None, ge=1)
    presence_penalty: Optional[float] = Field(default=None, ge=-2, le=2)
    frequency_penalty: Optional[float] = Field(default=None, ge=-2, le=2)
    user: Optional[str] = None

    # Tool use
    tools: Optional[List[Tool]] = None
    tool_choice: Optional[Union[str, Dict[str, Any]]] = None

    # Response format
    response_format: Optional[Dict[str, str]] = None

    # Provider-specific extensions
    metadata: Optional[Dict[str, Any]] = None

    class Config:
        extra = "allow"

    def token_count_text(self) -> str:
        parts = []
        for m in self.messages:
            if isinstance(m.content, str):
                parts.append(m.content)
            elif m.content:
                parts.extend(
                    p.get("text", "") for p in m.content if isinstance(p, dict)
                )
        return "\n".join(parts)

    def to_openai_format(self) -> Dict[str, Any]:
        """Convert to OpenAI API format."""
        data = {
            "model": self.model,
            "messages": [
                {k: v for k, v in m.model_dump().items() if v is not None}
                for m in self.messages
            ],
        }

        optional_fields = [
            "temperature", "top_p", "n", "stream", "stop", "max_tokens",
            "presence_penalty", "frequency_penalty", "user",
            "tools", "tool_choice", "response_format"
        ]

        for field in optional_fields:
            value = getattr(self, field, None)
            if value is not None:
                if isinstance(value, list):
                    value = [v.model_dump() if isinstance(v, BaseModel) else v for v in value]
                data[field] = value

        return data

    def to_anthropic_format(self) -> Dict[str, Any]:
        """Convert to Anthropic API format."""
        system = None
        messages = []

        for m in self.messages:
            if m.role == "system":
                system = m.content
            else:
                msg = {"role": m.role, "content": m.content}
                messages.append(msg)

        data = {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens or 4096,
        }

        if system:
            data["system"] = system

        if self.temperature is not None:
            data["temperature"] = self.temperature

        if self.top_p is not None:
            data["top_p"] = self.top_p

        if self.stop:
            data["stop_sequences"] = self.stop if isinstance(self.stop, list) else [self.stop]

        if self.stream:
            data["stream"] = True

        return data


class ImageRequest(BaseModel):
    """
    Unified image generation request.

    ``watermark_enabled`` and ``user_id`` arrive as raw JSON scalars and are
    decoded by the adaptor only when present. Unknown fields are kept in
    ``extra`` for an allow-list merge into the provider's typed request.
    """
    modality: Literal["image"] = "image"

    model: str
    prompt: str = ""
    n: Optional[int] = Field(default=None, ge=0)
    quality: Optional[str] = None
    size: Optional[str] = None
    response_format: Optional[str] = None
    watermark_enabled: Optional[Any] = None
    user_id: Optional[Any] = None

    class Config:
        extra = "allow"

    @property
    def extra(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})

    def token_count_text(self) -> str:
        return self.prompt


class AudioRequest(BaseModel):
    """
    Text-to-speech request.

    Accepts both the OpenAI-compatible names (``input``, ``voice``, ``speed``)
    and the provider-native ones (``text``, ``voice_id``, ``voice_speed``).
    """
    modality: Literal["audio"] = "audio"

    model: str
    input: str = ""
    voice: str = ""
    speed: float = 0
    response_format: Optional[str] = None

    text: str = ""
    voice_id: str = ""
    voice_language: str = ""
    voice_speed: float = 0

    def token_count_text(self) -> str:
        return self.text or self.input


class EmbeddingRequest(BaseModel):
    """Embedding request, forwarded unchanged."""
    modality: Literal["embedding"] = "embedding"

    model: str
    input: Union[str, List[str]]
    encoding_format: Optional[str] = None
    dimensions: Optional[int] = None

    def token_count_text(self) -> str:
        if isinstance(self.input, list):
            return "\n".join(self.input)
        return self.input


class TaskSubmitRequest(BaseModel):
    """
    Video generation job request.

    ``metadata`` is a fallback bag read only for fields left unset.
    """
    modality: Literal["video"] = "video"

    model: str = ""
    prompt: str = ""
    content: Optional[Any] = None
    image: str = ""
    images: List[str] = Field(default_factory=list)
    image_url: Optional[Any] = None
    size: str = ""
    duration: Optional[int] = Field(default=None, ge=0)
    mode: str = ""
    quality: str = ""
    fps: int = 0
    resolution: str = ""
    aspect_ratio: str = ""
    negative_prompt: str = ""
    person_generation: str = ""
    sample_count: int = 0
    seed: int = 0
    resize_mode: str = ""
    compression_quality: str = ""
    service_tier: str = ""
    request_id: str = ""
    first_frame_image: str = ""
    last_frame_image: str = ""

    with_audio: Optional[bool] = None
    generate_audio: Optional[bool] = None
    watermark_enabled: Optional[bool] = None
    prompt_optimizer: Optional[bool] = None
    fast_pretreatment: Optional[bool] = None

    metadata: Optional[Dict[str, Any]] = None

    def token_count_text(self) -> str:
        return self.prompt


class ElementRequest(BaseModel):
    """Custom element creation request."""
    modality: Literal["element"] = "element"

    model: str
    element_name: str
    element_description: Optional[str] = None
    element_frontal_image: Optional[str] = None
    element_refer_list: Optional[Any] = None

    def token_count_text(self) -> str:
        return self.element_name


class IdentifyFaceRequest(BaseModel):
    """Face identification request for a generated video."""
    modality: Literal["identify_face"] = "identify_face"

    model: str
    video_id: Optional[str] = None
    video_url: Optional[str] = None

    def token_count_text(self) -> str:
        return self.model


CanonicalRequest = Annotated[
    Union[
        ChatRequest,
        ImageRequest,
        AudioRequest,
        EmbeddingRequest,
        TaskSubmitRequest,
        ElementRequest,
        IdentifyFaceRequest,
    ],
    Field(discriminator="modality"),
]

_canonical_adapter = TypeAdapter(CanonicalRequest)


def parse_request(data: Dict[str, Any]) -> BaseModel:
    """Validate a tagged request dict into its canonical variant."""
    try:
        return _canonical_adapter.validate_python(data)
    except ValidationError as e:
        raise RequestValidationError(f"invalid request: {e}")
