"""
Asynchronous task models.
"""

import logging
from enum import Enum
from typing import Optional
from datetime import datetime

from pydantic import BaseModel, Field

from .response import OpenAIVideo, Usage

logger = logging.getLogger(__name__)


class TaskStatus(str, Enum):
    """Canonical task lifecycle states."""
    SUBMITTED = "SUBMITTED"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.SUCCESS, TaskStatus.FAILURE)


_STATUS_ORDER = {
    TaskStatus.SUBMITTED: 0,
    TaskStatus.IN_PROGRESS: 1,
    TaskStatus.SUCCESS: 2,
    TaskStatus.FAILURE: 2,
}


class TaskInfo(BaseModel):
    """Result of interpreting one fetch payload."""
    task_id: str = ""
    status: TaskStatus = TaskStatus.IN_PROGRESS
    progress: str = ""
    url: str = ""
    reason: str = ""
    completion_tokens: int = 0
    total_tokens: int = 0


class TaskResult(BaseModel):
    """Final output of a task."""
    url: str = ""
    usage: Optional[Usage] = None


class Task(BaseModel):
    """
    Handle to a provider-side job.

    ``id`` is assigned by the provider at submit time. ``raw_payload`` holds
    the last body received, which may be a submit or a fetch response.
    """
    id: str
    model: str = ""
    status: TaskStatus = TaskStatus.SUBMITTED
    progress: str = ""
    raw_payload: bytes = b""
    result: Optional[TaskResult] = None
    reason: str = ""
    created_at: int = Field(default_factory=lambda: int(datetime.now().timestamp()))

    def apply(self, info: TaskInfo, raw_payload: bytes = None) -> bool:
        """
        Fold a parsed fetch result into this task.

        Terminal tasks are left untouched and a status that would move the
        task backwards is ignored.

        Args:
            info: Parsed fetch result
            raw_payload: Body the result was parsed from

        Returns:
            True if the task was updated
        """
        if self.status.is_terminal:
            logger.debug(f"Task {self.id} already {self.status.value}, ignoring {info.status.value}")
            return False

        if _STATUS_ORDER[info.status] < _STATUS_ORDER[self.status]:
            logger.warning(
                f"Task {self.id} refused backward transition "
                f"{self.status.value} -> {info.status.value}"
            )
            return False

        self.status = info.status
        self.progress = info.progress
        if raw_payload is not None:
            self.raw_payload = raw_payload

        if info.status == TaskStatus.SUCCESS:
            usage = None
            if info.total_tokens > 0:
                usage = Usage(
                    completion_tokens=info.completion_tokens,
                    total_tokens=info.total_tokens,
                )
            self.result = TaskResult(url=info.url, usage=usage)
        elif info.status == TaskStatus.FAILURE:
            self.reason = info.reason

        return True

    def to_openai_video(self) -> OpenAIVideo:
        video = OpenAIVideo(
            id=self.id,
            task_id=self.id,
            created_at=self.created_at,
            model=self.model,
            status=self.status.value.lower(),
            progress=self.progress,
        )
        if self.status == TaskStatus.FAILURE and self.reason:
            video.set_metadata("error", self.reason)
        return video
