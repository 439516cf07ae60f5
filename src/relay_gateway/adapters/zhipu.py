"""
Zhipu (BigModel) v4 channel adaptor.

Serves chat, embeddings, image generation, text-to-speech, custom element
creation and face identification. Requests arriving in Claude format are
routed to the provider's Anthropic-compatible surface.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ValidationError

from ..core.context import RelayInfo
from ..core.constants import RelayFormat, RelayMode
from ..core.errors import ConversionError, RequestValidationError
from ..core.interface import AbstractChannelAdaptor
from ..models.request import (
    AudioRequest,
    ChatRequest,
    ElementRequest,
    EmbeddingRequest,
    IdentifyFaceRequest,
    ImageRequest,
)
from ..models.response import RelayResponse, Usage
from ..normalizers.image import normalize_image_response
from .claude import claude_response_handler
from .openai import openai_response_handler

logger = logging.getLogger(__name__)

MODEL_LIST = [
    "glm-4", "glm-4v", "glm-4-plus", "glm-4-air", "glm-4-flash",
    "glm-4.5", "glm-4.5-air", "glm-4.6",
    "cogview-3", "cogview-4", "glm-tts",
    "embedding-2", "embedding-3",
]
CHANNEL_NAME = "zhipu_4v"

# Paths below the channel base URL, by operation mode
MODE_PATHS: Dict[RelayMode, str] = {
    RelayMode.AUDIO_SPEECH: "/api/paas/v4/audio/tts",
    RelayMode.ELEMENT_CREATE: "/api/paas/v4/images/custom-elements",
    RelayMode.IDENTIFY_FACE: "/api/paas/v4/videos/identify-face",
    RelayMode.EMBEDDINGS: "/api/paas/v4/embeddings",
    RelayMode.IMAGES_GENERATIONS: "/api/paas/v4/images/generations",
    RelayMode.CHAT_COMPLETIONS: "/api/paas/v4/chat/completions",
}
# Paths below an OpenAI-compatible override root
OVERRIDE_PATHS: Dict[RelayMode, str] = {
    RelayMode.EMBEDDINGS: "/embeddings",
    RelayMode.CHAT_COMPLETIONS: "/chat/completions",
}
CLAUDE_PATH = "/api/anthropic/v1/messages"
CLAUDE_OVERRIDE_PATH = "/v1/messages"

# Modes whose upstream body is returned to the caller unchanged
PASSTHROUGH_MODES = (
    RelayMode.AUDIO_SPEECH,
    RelayMode.ELEMENT_CREATE,
    RelayMode.IDENTIFY_FACE,
)


class SequentialImageGenerationOptions(BaseModel):
    max_images: Optional[int] = None
    response_format: Optional[str] = None
    watermark: Optional[bool] = None


class ZhipuImageRequest(BaseModel):
    """Wire shape of an image generation call. Only these fields reach upstream."""
    model: str
    prompt: str
    n: Optional[int] = None
    quality: Optional[str] = None
    size: Optional[str] = None
    ratio: Optional[str] = None
    watermark_enabled: Optional[bool] = None
    user_id: Optional[str] = None
    seed: Optional[int] = None
    sequential_image_generation: Optional[str] = None
    sequential_image_generation_options: Optional[SequentialImageGenerationOptions] = None

    class Config:
        extra = "ignore"


def decode_json_scalar(raw: Any, expected: type) -> Any:
    """
    Decode a caller-supplied scalar that may still be JSON-encoded.

    Returns None when absent or not of the expected type.
    """
    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    if isinstance(raw, expected) and not (expected is str and raw.startswith('"')):
        return raw
    if not isinstance(raw, str):
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        return None
    return value if isinstance(value, expected) else None


def merge_allowed_fields(target: BaseModel, extra: Dict[str, Any]) -> BaseModel:
    """
    Copy the entries of ``extra`` that name a field of ``target``'s model.

    Unknown keys are dropped; a value that fails validation leaves the
    field as it was.
    """
    model_cls = type(target)
    data = target.model_dump(exclude_none=True)
    for key, value in extra.items():
        if key not in model_cls.model_fields:
            continue
        candidate = {**data, key: value}
        try:
            model_cls.model_validate(candidate)
        except ValidationError as e:
            logger.debug(f"Dropping extra field {key}: {e.errors()[0].get('msg')}")
            continue
        data = candidate
    return model_cls.model_validate(data)


def convert_image_request(request: ImageRequest) -> ZhipuImageRequest:
    zhipu_req = ZhipuImageRequest(
        model=request.model,
        prompt=request.prompt,
        n=request.n or None,
        quality=request.quality or None,
        size=request.size or None,
    )
    watermark = decode_json_scalar(request.watermark_enabled, bool)
    if watermark is not None:
        zhipu_req.watermark_enabled = watermark
    user_id = decode_json_scalar(request.user_id, str)
    if user_id is not None:
        zhipu_req.user_id = user_id

    if request.extra:
        zhipu_req = merge_allowed_fields(zhipu_req, request.extra)
    return zhipu_req


def convert_audio_request(request: AudioRequest) -> Dict[str, Any]:
    """Map OpenAI-compatible TTS fields onto provider-native names."""
    tts_req: Dict[str, Any] = {"model": request.model}
    tts_req["text"] = request.text if request.text else request.input
    if request.voice_id:
        tts_req["voice_id"] = request.voice_id
    elif request.voice:
        tts_req["voice_id"] = request.voice
    if request.voice_language:
        tts_req["voice_language"] = request.voice_language
    if request.voice_speed > 0:
        tts_req["voice_speed"] = request.voice_speed
    elif request.speed > 0:
        tts_req["voice_speed"] = request.speed
    return tts_req


def convert_openai_request(request: ChatRequest) -> Dict[str, Any]:
    data = request.to_openai_format()
    # Upstream rejects top_p == 1
    if request.top_p is not None and request.top_p >= 1:
        data["top_p"] = 0.99
    return data


def _dumps(data: Any) -> bytes:
    return json.dumps(data, ensure_ascii=False).encode("utf-8")


class ZhipuAdaptor(AbstractChannelAdaptor):
    """
    Zhipu v4 adaptor.

    Dispatches on protocol family first, then operation mode.
    """

    def get_request_url(self, info: RelayInfo) -> str:
        special = self.config.special_base()

        if info.relay_format == RelayFormat.CLAUDE:
            if special and special.claude_base_url:
                return f"{special.claude_base_url}{CLAUDE_OVERRIDE_PATH}"
            return f"{self.base_url}{CLAUDE_PATH}"

        mode = info.relay_mode if info.relay_mode in MODE_PATHS else RelayMode.CHAT_COMPLETIONS
        if special and special.openai_base_url and mode in OVERRIDE_PATHS:
            return f"{special.openai_base_url}{OVERRIDE_PATHS[mode]}"
        return f"{self.base_url}{MODE_PATHS[mode]}"

    def convert_request(self, info: RelayInfo) -> bytes:
        request = info.request
        if request is None:
            raise RequestValidationError("request is missing", gateway=self.name)

        if info.relay_format in (RelayFormat.GEMINI, RelayFormat.OPENAI_RESPONSES):
            raise ConversionError(f"{info.relay_format.value} requests not implemented", gateway=self.name)

        if isinstance(request, ChatRequest):
            if info.relay_format == RelayFormat.CLAUDE:
                return _dumps(request.to_anthropic_format())
            return _dumps(convert_openai_request(request))
        if isinstance(request, ImageRequest):
            zhipu_req = convert_image_request(request)
            body = zhipu_req.model_dump(exclude_none=True)
            logger.debug(f"zhipu image request body: {body}")
            return _dumps(body)
        if isinstance(request, AudioRequest):
            return _dumps(convert_audio_request(request))
        if isinstance(request, (EmbeddingRequest, ElementRequest, IdentifyFaceRequest)):
            return _dumps(request.model_dump(exclude_none=True, exclude={"modality"}))

        raise ConversionError(
            f"{getattr(request, 'modality', type(request).__name__)} requests are not supported by {CHANNEL_NAME}",
            gateway=self.name,
        )

    async def do_response(
        self,
        info: RelayInfo,
        response: httpx.Response,
        client: Optional[httpx.AsyncClient] = None,
    ) -> RelayResponse:
        if info.relay_format == RelayFormat.CLAUDE:
            return claude_response_handler(info, response, gateway=self.name)
        if info.relay_mode in PASSTHROUGH_MODES:
            return self._passthrough_handler(info, response)
        if info.relay_mode == RelayMode.IMAGES_GENERATIONS:
            return await self._image_handler(info, response, client)
        return openai_response_handler(info, response, gateway=self.name)

    def _passthrough_handler(self, info: RelayInfo, response: httpx.Response) -> RelayResponse:
        """Forward the upstream body as-is; usage is the prompt estimate."""
        prompt_tokens = info.get_estimate_prompt_tokens()
        return RelayResponse(
            status_code=response.status_code,
            body=response.content,
            content_type="application/json",
            usage=Usage(prompt_tokens=prompt_tokens, total_tokens=prompt_tokens),
        )

    async def _image_handler(
        self,
        info: RelayInfo,
        response: httpx.Response,
        client: Optional[httpx.AsyncClient],
    ) -> RelayResponse:
        request = info.request if isinstance(info.request, ImageRequest) else None
        payload, usage = await normalize_image_response(
            response.content,
            request,
            price_data=info.price_data,
            status_code=response.status_code,
            start_time=info.start_time,
            client=client,
        )
        return RelayResponse(
            status_code=response.status_code,
            body=payload.to_wire(),
            usage=usage,
        )

    def get_model_list(self) -> List[str]:
        return MODEL_LIST

    def get_channel_name(self) -> str:
        return CHANNEL_NAME
