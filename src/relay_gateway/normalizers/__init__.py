"""
Provider response normalizers.
"""

from .image import (
    normalize_image_response,
    parse_image_payload,
    resolve_response_format,
    fetch_image_b64,
)

__all__ = [
    "normalize_image_response",
    "parse_image_payload",
    "resolve_response_format",
    "fetch_image_b64",
]
