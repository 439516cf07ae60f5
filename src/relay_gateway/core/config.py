"""
Configuration loading for the relay gateway.
"""

import os
import logging
from enum import IntEnum
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .constants import RelayFormat

logger = logging.getLogger(__name__)


class ChannelType(IntEnum):
    """Upstream provider types."""
    OPENAI = 1
    ANTHROPIC = 14
    ZHIPU_V4 = 26
    ZHIPU_VIDEO = 56


DEFAULT_BASE_URLS: Dict[ChannelType, str] = {
    ChannelType.OPENAI: "https://api.openai.com",
    ChannelType.ANTHROPIC: "https://api.anthropic.com",
    ChannelType.ZHIPU_V4: "https://open.bigmodel.cn",
    ChannelType.ZHIPU_VIDEO: "https://open.bigmodel.cn",
}


@dataclass(frozen=True)
class SpecialBase:
    """Alternate roots served by a plan under one configured base URL."""
    claude_base_url: str = ""
    openai_base_url: str = ""


SPECIAL_BASES: Dict[str, SpecialBase] = {
    "glm-coding-plan": SpecialBase(
        claude_base_url="https://open.bigmodel.cn/api/anthropic",
        openai_base_url="https://open.bigmodel.cn/api/coding/paas/v4",
    ),
    "glm-coding-plan-international": SpecialBase(
        claude_base_url="https://api.z.ai/api/anthropic",
        openai_base_url="https://api.z.ai/api/coding/paas/v4",
    ),
}


@dataclass
class ChannelConfig:
    """Configuration for a single upstream channel."""
    channel_type: ChannelType
    base_url: str = ""
    api_key: str = ""
    name: str = ""
    timeout: float = 60.0
    base_overrides: Dict[RelayFormat, str] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    def resolved_base_url(self) -> str:
        """Configured base URL, else the channel type's default."""
        if self.base_url:
            return self.base_url.rstrip("/")
        return DEFAULT_BASE_URLS.get(self.channel_type, "")

    def special_base(self) -> Optional[SpecialBase]:
        """
        Per-format override roots for this channel.

        Explicit ``base_overrides`` win over the shared ``SPECIAL_BASES``
        table, which is keyed by the resolved base URL.
        """
        if self.base_overrides:
            return SpecialBase(
                claude_base_url=self.base_overrides.get(RelayFormat.CLAUDE, ""),
                openai_base_url=self.base_overrides.get(RelayFormat.OPENAI, ""),
            )
        return SPECIAL_BASES.get(self.resolved_base_url())


@dataclass
class GatewayConfig:
    """Complete relay configuration."""
    channels: List[ChannelConfig] = field(default_factory=list)
    pricing: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def get_channel(self, name: str) -> Optional[ChannelConfig]:
        for channel in self.channels:
            if channel.name == name:
                return channel
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GatewayConfig":
        return _parse_config(data or {})


def load_config(config_path: Optional[str] = None) -> GatewayConfig:
    """
    Load relay configuration from YAML file.

    Args:
        config_path: Path to config file. If None, uses default location.

    Returns:
        Loaded configuration
    """
    if config_path is None:
        paths = [
            Path("config/relay-gateway/channels.yaml"),
            Path("/etc/relay-gateway/channels.yaml"),
            Path.home() / ".config/relay-gateway/channels.yaml",
        ]
        for p in paths:
            if p.exists():
                config_path = str(p)
                break

    if config_path is None or not Path(config_path).exists():
        logger.warning("No relay config file found, using defaults")
        return GatewayConfig()

    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)

        return _parse_config(data or {})

    except (OSError, yaml.YAMLError, ValueError, TypeError, KeyError) as e:
        logger.error(f"Failed to load config from {config_path}: {e}")
        return GatewayConfig()


def _expand_env(value: str) -> str:
    if value and value.startswith("${") and value.endswith("}"):
        return os.environ.get(value[2:-1], "")
    return value


def _channel_type(value: Any) -> ChannelType:
    if isinstance(value, str) and not value.isdigit():
        return ChannelType[value.upper()]
    return ChannelType(int(value))


def _parse_config(data: Dict[str, Any]) -> GatewayConfig:
    """Parse configuration dictionary."""
    channels = []

    for ch_data in data.get("channels", []):
        overrides = {
            RelayFormat(fmt): url
            for fmt, url in (ch_data.get("base_overrides") or {}).items()
        }
        channels.append(ChannelConfig(
            channel_type=_channel_type(ch_data.get("type", ChannelType.ZHIPU_V4)),
            base_url=ch_data.get("base_url", ""),
            api_key=_expand_env(ch_data.get("api_key", "")),
            name=ch_data.get("name", ""),
            timeout=ch_data.get("timeout", 60.0),
            base_overrides=overrides,
            extra=ch_data.get("extra", {}),
        ))

    return GatewayConfig(
        channels=channels,
        pricing=data.get("pricing", {}) or {},
    )
