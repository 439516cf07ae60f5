"""
OpenAI-compatible response handling.

Used for chat completions and embeddings by any channel whose upstream
speaks the OpenAI wire format.
"""

import json
import logging
from typing import Dict

import httpx

from ..core.context import RelayInfo
from ..core.errors import UpstreamProtocolError, error_from_response
from ..models.response import ChatResponse, RelayResponse, Usage

logger = logging.getLogger(__name__)


def check_response_errors(response: httpx.Response, gateway: str = None) -> None:
    """Raise a ProviderReportedError for any non-200 upstream status."""
    if response.status_code == 200:
        return
    raise error_from_response(response, gateway=gateway)


def _load_json(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise UpstreamProtocolError(
            f"bad response body: {e}",
            raw_body=response.content,
        )
    if not isinstance(data, dict):
        raise UpstreamProtocolError("response body is not an object", raw_body=response.content)
    return data


def is_stream_response(info: RelayInfo, response: httpx.Response) -> bool:
    if response.headers.get("content-type", "").startswith("text/event-stream"):
        return True
    return bool(getattr(info.request, "stream", False))


def stream_usage(body: bytes) -> Usage:
    """
    Usage reported inside an SSE body.

    OpenAI-style streams put it on the last chunk; Claude-style streams split
    it between ``message_start`` and ``message_delta``. Later non-zero
    counters overwrite earlier ones.
    """
    counters: Dict[str, int] = {}
    for line in body.decode("utf-8", errors="replace").splitlines():
        if not line.startswith("data:"):
            continue
        data = line[5:].strip()
        if data == "[DONE]":
            break
        try:
            chunk = json.loads(data)
        except json.JSONDecodeError:
            continue
        if not isinstance(chunk, dict):
            continue
        usage = chunk.get("usage")
        if not isinstance(usage, dict) and isinstance(chunk.get("message"), dict):
            usage = chunk["message"].get("usage")
        if isinstance(usage, dict):
            counters.update(
                (k, v) for k, v in usage.items()
                if isinstance(v, int) and not isinstance(v, bool) and v
            )
    return Usage(**counters).normalized()


def stream_response_handler(
    info: RelayInfo,
    response: httpx.Response,
    gateway: str = None,
) -> RelayResponse:
    """Forward an SSE body unchanged and read usage from its chunks."""
    check_response_errors(response, gateway)
    usage = stream_usage(response.content)
    if usage.total_tokens == 0:
        usage.prompt_tokens = info.get_estimate_prompt_tokens()
        usage.total_tokens = usage.prompt_tokens

    return RelayResponse(
        status_code=response.status_code,
        body=response.content,
        content_type=response.headers.get("content-type", "text/event-stream"),
        usage=usage,
    )


def openai_response_handler(
    info: RelayInfo,
    response: httpx.Response,
    gateway: str = None,
) -> RelayResponse:
    """
    Forward an OpenAI-format body and extract usage.

    Falls back to the estimated prompt tokens when the upstream reports no
    usage at all.
    """
    check_response_errors(response, gateway)
    if is_stream_response(info, response):
        return stream_response_handler(info, response, gateway)
    data = _load_json(response)

    error = data.get("error")
    if isinstance(error, dict) and error.get("message"):
        raise error_from_response(response, gateway=gateway)

    usage = None
    if "choices" in data:
        usage = ChatResponse.from_openai(data, gateway=gateway).usage
    elif isinstance(data.get("usage"), dict):
        usage = Usage(**data["usage"]).normalized()
    if usage is None:
        usage = Usage()

    if usage.total_tokens == 0:
        usage.prompt_tokens = info.get_estimate_prompt_tokens()
        usage.total_tokens = usage.prompt_tokens

    return RelayResponse(
        status_code=response.status_code,
        body=response.content,
        content_type=response.headers.get("content-type", "application/json"),
        usage=usage,
    )
