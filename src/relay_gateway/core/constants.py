"""
Relay dispatch constants.
"""

from enum import Enum


class RelayFormat(str, Enum):
    """Wire-level request/response shape the caller speaks."""
    OPENAI = "openai"
    CLAUDE = "claude"
    GEMINI = "gemini"
    OPENAI_RESPONSES = "openai_responses"


class RelayMode(str, Enum):
    """Kind of capability being invoked."""
    CHAT_COMPLETIONS = "chat_completions"
    EMBEDDINGS = "embeddings"
    IMAGES_GENERATIONS = "images_generations"
    AUDIO_SPEECH = "audio_speech"
    ELEMENT_CREATE = "element_create"
    IDENTIFY_FACE = "identify_face"
    TASK_SUBMIT = "task_submit"
    TASK_FETCH = "task_fetch"


TASK_ACTION_GENERATE = "generate"
