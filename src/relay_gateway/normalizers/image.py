"""
Image response normalizer.

Converts a provider image payload into the canonical OpenAI-style image
response. Items that cannot be resolved are skipped rather than failing the
batch; the caller's flat price is scaled down to match.
"""

import asyncio
import base64
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pydantic import BaseModel, ValidationError

from ..core.errors import ProviderReportedError, UpstreamProtocolError, UpstreamTransportError
from ..core.interface import send_request
from ..models.request import ImageRequest
from ..models.response import ImageData, ImageResponse, Usage
from ..pricing.price import PriceData

logger = logging.getLogger(__name__)

RESPONSE_FORMAT_URL = "url"
RESPONSE_FORMAT_B64 = "b64_json"


class ProviderImageError(BaseModel):
    code: str = ""
    message: str = ""


class ProviderImageItem(BaseModel):
    url: str = ""
    image_url: str = ""
    b64_json: str = ""
    b64_image: str = ""


class ProviderImageResponse(BaseModel):
    created: Optional[int] = None
    data: Optional[List[ProviderImageItem]] = None
    content_filter: Optional[Any] = None
    usage: Optional[Usage] = None
    error: Optional[ProviderImageError] = None
    request_id: str = ""


def is_remote_url(url: str) -> bool:
    return url.startswith("http://") or url.startswith("https://")


def resolve_response_format(request: Optional[ImageRequest]) -> str:
    """
    Requested output encoding.

    Top-level ``response_format`` first, then
    ``sequential_image_generation_options.response_format``, else inline.
    """
    if request is None:
        return RESPONSE_FORMAT_B64
    if request.response_format:
        return request.response_format
    options = request.extra.get("sequential_image_generation_options")
    if isinstance(options, str):
        try:
            options = json.loads(options)
        except ValueError:
            options = None
    if isinstance(options, dict) and options.get("response_format"):
        return options["response_format"]
    return RESPONSE_FORMAT_B64


async def fetch_image_b64(url: str, client: Optional[httpx.AsyncClient] = None) -> str:
    """Download an image and return it base64-encoded."""
    response = await send_request("GET", url, {}, client=client)
    response.raise_for_status()
    return base64.b64encode(response.content).decode("ascii")


async def _resolve_item(
    item: ProviderImageItem,
    response_format: str,
    client: Optional[httpx.AsyncClient],
) -> Optional[ImageData]:
    url = item.url or item.image_url

    if response_format == RESPONSE_FORMAT_URL and url and is_remote_url(url):
        return ImageData(url=url)

    if item.b64_json:
        b64 = item.b64_json
    elif item.b64_image:
        b64 = item.b64_image
    elif url and is_remote_url(url):
        try:
            b64 = await fetch_image_b64(url, client=client)
        except (httpx.HTTPError, UpstreamTransportError) as e:
            logger.error(f"image_get_b64_failed: {e}")
            return None
    elif url:
        # url field already holds base64 data
        b64 = url
    else:
        logger.warning("image_missing_url")
        return None

    if not b64:
        logger.warning("image_empty_b64")
        return None
    return ImageData(b64_json=b64)


def parse_image_payload(body: bytes, status_code: int = 200) -> ProviderImageResponse:
    """
    Parse the provider body, surfacing an embedded error object.

    Raises:
        UpstreamProtocolError: If the body is not a valid image payload
        ProviderReportedError: If the payload carries an error message
    """
    try:
        payload = ProviderImageResponse.model_validate_json(body)
    except ValidationError as e:
        raise UpstreamProtocolError(f"bad image response body: {e}", raw_body=body)

    if payload.error is not None and payload.error.message:
        raise ProviderReportedError(
            payload.error.message,
            code=payload.error.code,
            status_code=status_code,
            error_type="zhipu_image_error",
        )
    return payload


async def normalize_image_response(
    body: bytes,
    request: Optional[ImageRequest],
    price_data: Optional[PriceData] = None,
    status_code: int = 200,
    start_time: Optional[float] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Tuple[ImageResponse, Usage]:
    """
    Build the canonical image response from a provider body.

    Args:
        body: Raw upstream body
        request: Original canonical request, for format and count
        price_data: Price data to adjust for a short batch
        status_code: Upstream HTTP status, kept on provider errors
        start_time: Fallback creation time when the payload has none
        client: Client for downloading URL-only items

    Returns:
        Canonical response and normalized usage
    """
    payload = parse_image_payload(body, status_code)

    created = payload.created
    if not created:
        created = int(start_time) if start_time else 0

    response_format = resolve_response_format(request)
    items = await asyncio.gather(
        *(_resolve_item(item, response_format, client) for item in payload.data or [])
    )
    data = [item for item in items if item is not None]

    usage = payload.usage.normalized() if payload.usage is not None else Usage()

    if price_data is not None:
        requested = request.n if request is not None else None
        price_data.adjust_for_count(len(data), requested)

    return ImageResponse(created=created, data=data, usage=usage), usage

