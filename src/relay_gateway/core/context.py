"""
Per-call relay context.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Optional

from .config import ChannelConfig
from .constants import RelayFormat, RelayMode
from .tokens import count_tokens
from ..pricing.price import PriceData


@dataclass
class RelayInfo:
    """
    Everything one relay call needs besides the adaptor itself.

    Built by the orchestrator after authentication and channel selection.
    Never shared between calls.
    """
    channel: ChannelConfig
    relay_mode: RelayMode = RelayMode.CHAT_COMPLETIONS
    relay_format: RelayFormat = RelayFormat.OPENAI
    request: Any = None
    origin_model_name: str = ""
    upstream_model_name: str = ""
    price_data: PriceData = field(default_factory=PriceData)
    start_time: float = field(default_factory=time.time)
    estimate_prompt_tokens: Optional[int] = None
    action: str = ""

    def __post_init__(self):
        model = getattr(self.request, "model", "") or ""
        if not self.origin_model_name:
            self.origin_model_name = model
        if not self.upstream_model_name:
            self.upstream_model_name = self.origin_model_name

    def get_estimate_prompt_tokens(self) -> int:
        """Estimated prompt tokens, counted from the request when not supplied."""
        if self.estimate_prompt_tokens is None:
            text = ""
            if hasattr(self.request, "token_count_text"):
                text = self.request.token_count_text()
            self.estimate_prompt_tokens = count_tokens(text, self.upstream_model_name)
        return self.estimate_prompt_tokens
