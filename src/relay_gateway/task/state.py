"""
Task state machine.

Maps the provider's task status token onto the canonical lifecycle. Pure
function of the fetch payload; safe to call from any number of pollers.
"""

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

from ..core.errors import UpstreamProtocolError
from ..models.task import TaskInfo, TaskStatus

STATUS_PROCESSING = "PROCESSING"
STATUS_SUCCESS = "SUCCESS"
STATUS_FAIL = "FAIL"

FAILURE_REASON = "video generation failed"


class _WireModel(BaseModel):
    """Provider body where a JSON null means the field's zero value."""

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class VideoResultItem(_WireModel):
    url: str = ""
    cover_image_url: str = ""


class FetchUsage(_WireModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class SubmitResponse(_WireModel):
    """Body returned when a job is accepted."""
    model: str = ""
    id: str = ""
    request_id: str = ""
    task_status: str = ""


class FetchResponse(_WireModel):
    """Body returned when polling a job."""
    id: str = ""
    request_id: str = ""
    created: int = 0
    model: str = ""
    task_status: str = ""
    video_result: List[VideoResultItem] = Field(default_factory=list)
    usage: FetchUsage = Field(default_factory=FetchUsage)


def _load(body: bytes) -> Dict[str, Any]:
    try:
        data = json.loads(body)
    except (TypeError, ValueError) as e:
        raise UpstreamProtocolError(f"invalid task body: {e}", raw_body=body)
    if not isinstance(data, dict):
        raise UpstreamProtocolError("task body is not an object", raw_body=body)
    return data


def parse_fetch_response(body: bytes) -> FetchResponse:
    try:
        return FetchResponse.model_validate(_load(body))
    except ValidationError as e:
        raise UpstreamProtocolError(f"unmarshal task result failed: {e}", raw_body=body)


def parse_stored_payload(body: bytes) -> Optional[FetchResponse]:
    """
    Read back a persisted task body of either shape.

    The fetch shape is tried first; a body that only fits the submit shape
    yields None, since it carries no results yet.

    Raises:
        UpstreamProtocolError: If the body fits neither shape
    """
    data = _load(body)
    try:
        return FetchResponse.model_validate(data)
    except ValidationError as fetch_err:
        try:
            SubmitResponse.model_validate(data)
        except ValidationError:
            raise UpstreamProtocolError(
                f"unmarshal task data failed: {fetch_err}", raw_body=body
            )
    return None


def task_info_from_fetch(resp: FetchResponse) -> TaskInfo:
    """Translate a fetch response into canonical task info."""
    info = TaskInfo(task_id=resp.id)

    if resp.task_status == STATUS_PROCESSING:
        info.status = TaskStatus.IN_PROGRESS
        info.progress = "50%"
    elif resp.task_status == STATUS_SUCCESS:
        info.status = TaskStatus.SUCCESS
        info.progress = "100%"
        if resp.video_result:
            info.url = resp.video_result[0].url
        # Token-billed families reconcile against reported usage
        if resp.usage.total_tokens > 0:
            info.completion_tokens = resp.usage.completion_tokens
            info.total_tokens = resp.usage.total_tokens
    elif resp.task_status == STATUS_FAIL:
        info.status = TaskStatus.FAILURE
        info.progress = "100%"
        info.reason = FAILURE_REASON
    else:
        # Unknown but not terminal; keep polling
        info.status = TaskStatus.IN_PROGRESS
        info.progress = "30%"

    return info


def parse_task_result(body: bytes) -> TaskInfo:
    return task_info_from_fetch(parse_fetch_response(body))
