"""
Relay call flows.

Thin helpers that drive an adaptor through one call: build, send, check the
upstream status, translate. Retries, timeouts and settlement stay with the
caller.
"""

import json
import logging
from typing import Dict, Optional, Tuple

import httpx

from .core.context import RelayInfo
from .core.errors import error_from_response
from .core.interface import AbstractChannelAdaptor, AbstractTaskAdaptor, SubmitResult
from .models.response import RelayResponse
from .models.task import Task

logger = logging.getLogger(__name__)


def _check_status(response: httpx.Response, gateway: str) -> None:
    if response.status_code != 200:
        raise error_from_response(response, gateway=gateway)


async def relay(
    adaptor: AbstractChannelAdaptor,
    info: RelayInfo,
    client: Optional[httpx.AsyncClient] = None,
) -> RelayResponse:
    """Run one synchronous call through ``adaptor``."""
    body = adaptor.convert_request(info)
    response = await adaptor.do_request(info, body, client=client)
    _check_status(response, adaptor.name)
    return await adaptor.do_response(info, response, client=client)


async def relay_passthrough(
    adaptor: AbstractChannelAdaptor,
    info: RelayInfo,
    client: Optional[httpx.AsyncClient] = None,
    model_mapping: Optional[Dict[str, str]] = None,
) -> RelayResponse:
    """
    Forward a request body unchanged apart from model mapping.

    Used for element creation and face identification, whose bodies the
    provider accepts as-is.
    """
    request = info.request.model_copy(deep=True)
    mapped = (model_mapping or {}).get(request.model)
    if mapped:
        request.model = mapped
        info.upstream_model_name = mapped

    body = json.dumps(
        request.model_dump(exclude_none=True, exclude={"modality"}),
        ensure_ascii=False,
    ).encode("utf-8")

    response = await adaptor.do_request(info, body, client=client)
    _check_status(response, adaptor.name)
    return await adaptor.do_response(info, response, client=client)


async def submit_task(
    adaptor: AbstractTaskAdaptor,
    info: RelayInfo,
    client: Optional[httpx.AsyncClient] = None,
) -> Tuple[SubmitResult, Task]:
    """
    Validate, price and submit a job.

    Returns:
        Submit result for the caller and a new Task in SUBMITTED state
    """
    adaptor.validate_request_and_set_action(info)
    body = adaptor.build_request_body(info)
    response = await adaptor.do_request(info, body, client=client)
    _check_status(response, adaptor.name)

    result = adaptor.do_response(info, response)
    task = Task(
        id=result.task_id,
        model=info.origin_model_name,
        raw_payload=result.task_data,
        created_at=result.video.created_at,
    )
    return result, task


async def poll_task(
    adaptor: AbstractTaskAdaptor,
    task: Task,
    client: Optional[httpx.AsyncClient] = None,
) -> Task:
    """
    Fetch a job's status once and fold it into ``task``.

    Terminal tasks are returned without a request.
    """
    if task.status.is_terminal:
        return task

    response = await adaptor.fetch_task(
        adaptor.base_url,
        adaptor.api_key,
        {"task_id": task.id},
        client=client,
    )
    _check_status(response, adaptor.name)

    info = adaptor.parse_task_result(response.content)
    if task.apply(info, raw_payload=response.content):
        logger.info(f"Task {task.id} is {task.status.value} ({task.progress})")
    return task
