"""
Asynchronous task lifecycle.
"""

from .state import (
    FetchResponse,
    SubmitResponse,
    VideoResultItem,
    parse_fetch_response,
    parse_stored_payload,
    parse_task_result,
    task_info_from_fetch,
)

__all__ = [
    "FetchResponse",
    "SubmitResponse",
    "VideoResultItem",
    "parse_fetch_response",
    "parse_stored_payload",
    "parse_task_result",
    "task_info_from_fetch",
]
