"""
Zhipu video job adaptor.

Submits generation jobs for the video model families hosted behind the
provider's ``videos/generations`` endpoint and polls ``async-result``.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ValidationError

from ..core.constants import TASK_ACTION_GENERATE
from ..core.context import RelayInfo
from ..core.errors import (
    ConversionError,
    RequestValidationError,
    UpstreamProtocolError,
)
from ..core.interface import AbstractTaskAdaptor, SubmitResult, send_request
from ..models.request import TaskSubmitRequest
from ..models.response import OpenAIVideo
from ..models.task import Task, TaskInfo
from ..pricing.registry import PricingRegistry, get_pricing_registry
from ..task.state import SubmitResponse, parse_stored_payload, parse_task_result

logger = logging.getLogger(__name__)

MODEL_LIST = [
    "cogvideox", "cogvideox-2", "cogvideox-3",
    "sora-2", "sora-2-pro",
    "veo-3.0-generate-001", "veo-3.0-fast-generate-001",
    "veo-3.1-generate-preview", "veo-3.1-fast-generate-preview",
    "doubao-seedance",
    "minimax-hailuo",
]
CHANNEL_NAME = "zhipu_video"
DEFAULT_MODEL = "cogvideox-3"

SUBMIT_ENDPOINT = "/api/paas/v4/videos/generations"
FETCH_ENDPOINT = "/api/paas/v4/async-result"


class ZhipuVideoRequest(BaseModel):
    """Wire shape of a video submit call. Unset fields are omitted."""
    model: str
    prompt: Optional[str] = None
    content: Optional[Any] = None
    image_url: Optional[Any] = None
    quality: Optional[str] = None
    with_audio: Optional[bool] = None
    watermark_enabled: Optional[bool] = None
    size: Optional[str] = None
    fps: Optional[int] = None
    duration: Optional[int] = None
    request_id: Optional[str] = None
    user_id: Optional[str] = None
    first_frame_image: Optional[str] = None
    last_frame_image: Optional[str] = None
    aspect_ratio: Optional[str] = None
    negative_prompt: Optional[str] = None
    person_generation: Optional[str] = None
    sample_count: Optional[int] = None
    seed: Optional[int] = None
    resize_mode: Optional[str] = None
    compression_quality: Optional[str] = None
    generate_audio: Optional[bool] = None
    service_tier: Optional[str] = None
    resolution: Optional[str] = None
    prompt_optimizer: Optional[bool] = None
    fast_pretreatment: Optional[bool] = None


def _metadata_int(value: Any) -> Optional[int]:
    # JSON numbers may arrive as float or int; bool is not a number here
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


def convert_to_request_payload(req: TaskSubmitRequest) -> ZhipuVideoRequest:
    """
    Build the submit body.

    A ``content`` array is sent as-is; otherwise ``prompt`` and ``image_url``
    are sent separately. Metadata fills only fields that are still unset.
    """
    body = ZhipuVideoRequest(
        model=req.model or DEFAULT_MODEL,
        with_audio=req.with_audio,
        generate_audio=req.generate_audio,
        watermark_enabled=req.watermark_enabled,
        service_tier=req.service_tier or None,
        request_id=req.request_id or None,
        aspect_ratio=req.aspect_ratio or None,
        negative_prompt=req.negative_prompt or None,
        person_generation=req.person_generation or None,
        sample_count=req.sample_count or None,
        seed=req.seed or None,
        resize_mode=req.resize_mode or None,
        compression_quality=req.compression_quality or None,
        first_frame_image=req.first_frame_image or None,
        last_frame_image=req.last_frame_image or None,
        resolution=req.resolution or None,
        prompt_optimizer=req.prompt_optimizer,
        fast_pretreatment=req.fast_pretreatment,
        quality=req.quality or None,
        fps=req.fps or None,
        size=req.size or None,
        duration=req.duration or None,
    )

    if req.content is not None:
        body.content = req.content
    else:
        body.prompt = req.prompt or None
        if req.image_url is not None:
            body.image_url = req.image_url
        elif len(req.images) > 1:
            body.image_url = list(req.images)
        elif len(req.images) == 1:
            body.image_url = req.images[0]
        elif req.image:
            body.image_url = req.image

    metadata = req.metadata or {}
    if metadata:
        if body.quality is None and isinstance(metadata.get("quality"), str):
            body.quality = metadata["quality"]
        if body.watermark_enabled is None and isinstance(metadata.get("watermark_enabled"), bool):
            body.watermark_enabled = metadata["watermark_enabled"]
        if body.fps is None:
            body.fps = _metadata_int(metadata.get("fps")) or None
        if body.user_id is None and isinstance(metadata.get("user_id"), str):
            body.user_id = metadata["user_id"]
        if body.first_frame_image is None and isinstance(metadata.get("first_frame_image"), str):
            body.first_frame_image = metadata["first_frame_image"]
        if body.last_frame_image is None and isinstance(metadata.get("last_frame_image"), str):
            body.last_frame_image = metadata["last_frame_image"]

    return body


class ZhipuVideoTaskAdaptor(AbstractTaskAdaptor):
    """
    Video job adaptor.

    The pricing registry is injectable so configured rules can replace the
    built-in ones for a deployment.
    """

    def __init__(self, config, pricing: Optional[PricingRegistry] = None):
        super().__init__(config)
        self.pricing = pricing or get_pricing_registry()

    def _submit_request(self, info: RelayInfo) -> TaskSubmitRequest:
        if not isinstance(info.request, TaskSubmitRequest):
            raise RequestValidationError("invalid request type in context", gateway=self.name)
        return info.request

    def validate_request_and_set_action(self, info: RelayInfo) -> None:
        req = self._submit_request(info)
        if not req.prompt and req.content is None:
            raise RequestValidationError("prompt is required", gateway=self.name)

        info.action = TASK_ACTION_GENERATE
        info.price_data.other_ratios = self.pricing.compute(req)

    def build_request_url(self, info: RelayInfo) -> str:
        return f"{self.base_url}{SUBMIT_ENDPOINT}"

    def build_request_body(self, info: RelayInfo) -> bytes:
        body = convert_to_request_payload(self._submit_request(info))
        data = body.model_dump_json(exclude_none=True).encode("utf-8")
        logger.debug(f"zhipu video request body: {data!r}")
        return data

    def do_response(self, info: RelayInfo, response: httpx.Response) -> SubmitResult:
        body = response.content
        logger.debug(f"zhipu video response body: {body!r}")

        try:
            submit = SubmitResponse.model_validate_json(body)
        except ValidationError as e:
            raise UpstreamProtocolError(
                f"unmarshal response body failed: {e}",
                gateway=self.name,
                raw_body=body,
            )

        if not submit.id:
            raise UpstreamProtocolError(
                "zhipu video api error: empty task id",
                gateway=self.name,
                raw_body=body,
                status_code=400,
            )

        video = OpenAIVideo(
            id=submit.id,
            task_id=submit.id,
            created_at=int(time.time()),
            model=info.origin_model_name,
            status="submitted",
        )
        logger.info(f"Submitted video task {submit.id} for {info.origin_model_name}")
        return SubmitResult(task_id=submit.id, task_data=body, video=video)

    async def fetch_task(
        self,
        base_url: str,
        key: str,
        body: Dict[str, Any],
        client: Optional[httpx.AsyncClient] = None,
    ) -> httpx.Response:
        task_id = body.get("task_id")
        if not isinstance(task_id, str) or not task_id:
            raise RequestValidationError("invalid task_id", gateway=self.name)

        url = f"{(base_url or self.base_url).rstrip('/')}{FETCH_ENDPOINT}/{task_id}"
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {key or self.api_key}",
        }
        return await send_request(
            "GET",
            url,
            headers,
            client=client,
            timeout=self.config.timeout,
            gateway=self.name,
        )

    def parse_task_result(self, body: bytes) -> TaskInfo:
        return parse_task_result(body)

    def convert_to_openai_video(self, task: Task) -> bytes:
        """
        Render a stored task as the canonical video object.

        The stored body may be a fetch or a submit response.
        """
        fetched = parse_stored_payload(task.raw_payload)

        video = task.to_openai_video()
        if fetched is not None and fetched.video_result:
            first = fetched.video_result[0]
            if first.url:
                video.set_metadata("url", first.url)
            if first.cover_image_url:
                video.set_metadata("cover_image_url", first.cover_image_url)

        try:
            return json.dumps(video.model_dump(), ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise ConversionError(f"marshal openai video failed: {e}", gateway=self.name)

    def get_model_list(self) -> List[str]:
        return MODEL_LIST

    def get_channel_name(self) -> str:
        return CHANNEL_NAME
