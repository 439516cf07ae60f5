"""
Abstract channel adaptor interfaces.

Defines the contract that every provider adaptor implements. Adaptors hold
per-call state (resolved base URL, API key) and must be constructed fresh for
each logical request or poll.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from .config import ChannelConfig
from .context import RelayInfo
from .errors import UpstreamTransportError
from ..models.response import OpenAIVideo, RelayResponse
from ..models.task import Task, TaskInfo

logger = logging.getLogger(__name__)


async def send_request(
    method: str,
    url: str,
    headers: Dict[str, str],
    body: Optional[bytes] = None,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 60.0,
    gateway: str = None,
) -> httpx.Response:
    """
    Issue one outbound call.

    Uses the caller's client when given so pooling stays with the
    orchestrator. Network failures surface as UpstreamTransportError.
    """
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                return await own_client.request(method, url, content=body, headers=headers)
        return await client.request(method, url, content=body, headers=headers)
    except httpx.RequestError as e:
        raise UpstreamTransportError(f"{method} {url} failed: {e}", gateway=gateway)


class AbstractChannelAdaptor(ABC):
    """
    Adaptor for synchronous relay modes (chat, image, audio, embeddings...).
    """

    def __init__(self, config: ChannelConfig):
        self.config = config
        self.base_url = config.resolved_base_url()
        self.api_key = config.api_key

    @property
    def name(self) -> str:
        return self.config.name or self.get_channel_name()

    @abstractmethod
    def get_request_url(self, info: RelayInfo) -> str:
        """
        Resolve the upstream endpoint for this call.

        Args:
            info: Relay context carrying mode and protocol family

        Returns:
            Absolute URL
        """
        pass

    def build_request_header(self, info: RelayInfo) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    @abstractmethod
    def convert_request(self, info: RelayInfo) -> bytes:
        """
        Translate the canonical request into the provider's wire body.

        Raises:
            ConversionError: If the modality is not supported
        """
        pass

    async def do_request(
        self,
        info: RelayInfo,
        body: bytes,
        client: Optional[httpx.AsyncClient] = None,
    ) -> httpx.Response:
        return await send_request(
            "POST",
            self.get_request_url(info),
            self.build_request_header(info),
            body=body,
            client=client,
            timeout=self.config.timeout,
            gateway=self.name,
        )

    @abstractmethod
    async def do_response(
        self,
        info: RelayInfo,
        response: httpx.Response,
        client: Optional[httpx.AsyncClient] = None,
    ) -> RelayResponse:
        """
        Translate the provider response into the caller's format.

        Args:
            info: Relay context
            response: Upstream response
            client: Client for follow-up downloads

        Returns:
            Body for the caller plus usage for settlement
        """
        pass

    @abstractmethod
    def get_model_list(self) -> List[str]:
        pass

    @abstractmethod
    def get_channel_name(self) -> str:
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, base_url={self.base_url!r})"


@dataclass
class SubmitResult:
    """Outcome of a successful job submission."""
    task_id: str
    task_data: bytes
    video: OpenAIVideo


class AbstractTaskAdaptor(ABC):
    """
    Adaptor for asynchronous jobs: submit, poll, convert.
    """

    def __init__(self, config: ChannelConfig):
        self.config = config
        self.channel_type = config.channel_type
        self.base_url = config.resolved_base_url()
        self.api_key = config.api_key

    @property
    def name(self) -> str:
        return self.config.name or self.get_channel_name()

    @abstractmethod
    def validate_request_and_set_action(self, info: RelayInfo) -> None:
        """
        Validate the submit request and record action and pricing ratios.

        Raises:
            RequestValidationError: If required fields are missing
        """
        pass

    @abstractmethod
    def build_request_url(self, info: RelayInfo) -> str:
        pass

    def build_request_header(self, info: RelayInfo) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    @abstractmethod
    def build_request_body(self, info: RelayInfo) -> bytes:
        pass

    async def do_request(
        self,
        info: RelayInfo,
        body: bytes,
        client: Optional[httpx.AsyncClient] = None,
    ) -> httpx.Response:
        return await send_request(
            "POST",
            self.build_request_url(info),
            self.build_request_header(info),
            body=body,
            client=client,
            timeout=self.config.timeout,
            gateway=self.name,
        )

    @abstractmethod
    def do_response(self, info: RelayInfo, response: httpx.Response) -> SubmitResult:
        """
        Read the submit response.

        Raises:
            UpstreamProtocolError: If the body is unreadable or has no task id
        """
        pass

    @abstractmethod
    async def fetch_task(
        self,
        base_url: str,
        key: str,
        body: Dict[str, Any],
        client: Optional[httpx.AsyncClient] = None,
    ) -> httpx.Response:
        pass

    @abstractmethod
    def parse_task_result(self, body: bytes) -> TaskInfo:
        pass

    @abstractmethod
    def convert_to_openai_video(self, task: Task) -> bytes:
        pass

    @abstractmethod
    def get_model_list(self) -> List[str]:
        pass

    @abstractmethod
    def get_channel_name(self) -> str:
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, base_url={self.base_url!r})"
