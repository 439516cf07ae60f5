"""
Claude-compatible response handling.

Providers exposing an Anthropic-shaped ``/messages`` surface return bodies
the caller can consume directly; only usage is extracted.
"""

import logging

import httpx

from ..core.context import RelayInfo
from ..core.errors import error_from_response
from ..models.response import ChatResponse, RelayResponse, Usage
from .openai import (
    _load_json,
    check_response_errors,
    is_stream_response,
    stream_response_handler,
)

logger = logging.getLogger(__name__)


def claude_response_handler(
    info: RelayInfo,
    response: httpx.Response,
    gateway: str = None,
) -> RelayResponse:
    """Forward a Claude-format body and extract usage."""
    check_response_errors(response, gateway)
    if is_stream_response(info, response):
        return stream_response_handler(info, response, gateway)
    data = _load_json(response)

    if data.get("type") == "error":
        raise error_from_response(response, gateway=gateway)

    parsed = ChatResponse.from_anthropic(data, gateway=gateway)
    usage = parsed.usage or Usage()
    if usage.total_tokens == 0:
        usage.prompt_tokens = info.get_estimate_prompt_tokens()
        usage.total_tokens = usage.prompt_tokens

    return RelayResponse(
        status_code=response.status_code,
        body=response.content,
        content_type=response.headers.get("content-type", "application/json"),
        usage=usage,
    )
