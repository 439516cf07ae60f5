"""
Core relay gateway components.
"""

from .constants import RelayFormat, RelayMode
from .config import ChannelConfig, ChannelType, GatewayConfig, load_config
from .errors import (
    GatewayError,
    AdaptorNotFoundError,
    RequestValidationError,
    ConversionError,
    UpstreamTransportError,
    UpstreamProtocolError,
    ProviderReportedError,
    PricingError,
)

__all__ = [
    "RelayFormat",
    "RelayMode",
    "ChannelConfig",
    "ChannelType",
    "GatewayConfig",
    "load_config",
    "GatewayError",
    "AdaptorNotFoundError",
    "RequestValidationError",
    "ConversionError",
    "UpstreamTransportError",
    "UpstreamProtocolError",
    "ProviderReportedError",
    "PricingError",
]
