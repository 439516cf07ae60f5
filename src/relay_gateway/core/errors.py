"""
Relay gateway error types.
"""

from typing import Any, Optional

import httpx


class GatewayError(Exception):
    """Base exception for gateway errors."""

    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str, gateway: str = None):
        self.message = message
        self.gateway = gateway
        super().__init__(message)


class AdaptorNotFoundError(GatewayError):
    """Raised when no adaptor is registered for a channel type."""
    status_code = 400


class RequestValidationError(GatewayError):
    """Raised when a required canonical field is missing or has the wrong variant."""
    status_code = 400


class ConversionError(GatewayError):
    """Raised when a request or response cannot be translated."""
    status_code = 500


class UpstreamTransportError(GatewayError):
    """Raised when talking to the provider fails at the network level."""
    status_code = 502
    retryable = True


class UpstreamProtocolError(GatewayError):
    """Raised when the provider body cannot be parsed or lacks a required field."""

    def __init__(
        self,
        message: str,
        gateway: str = None,
        raw_body: bytes = b"",
        status_code: int = 500,
    ):
        super().__init__(message, gateway)
        self.raw_body = raw_body
        self.status_code = status_code

    def __str__(self) -> str:
        if self.raw_body:
            return f"{self.message}, body: {self.raw_body.decode('utf-8', errors='replace')}"
        return self.message


class ProviderReportedError(GatewayError):
    """Raised when the provider payload carries an explicit error object."""

    def __init__(
        self,
        message: str,
        gateway: str = None,
        code: Optional[str] = None,
        status_code: int = 500,
        error_type: str = "upstream_error",
    ):
        super().__init__(message, gateway)
        self.code = code
        self.status_code = status_code
        self.error_type = error_type

    def to_dict(self) -> dict:
        """OpenAI-style error body."""
        return {
            "error": {
                "message": self.message,
                "type": self.error_type,
                "code": self.code,
            }
        }


class PricingError(GatewayError):
    """Raised when a pricing rule produces a non-positive ratio."""

    def __init__(self, message: str, model: str = None):
        super().__init__(message)
        self.model = model


def error_from_response(response: httpx.Response, gateway: str = None) -> ProviderReportedError:
    """
    Build a ProviderReportedError from a non-200 upstream response.

    Args:
        response: Upstream response with a failing status
        gateway: Channel name for diagnostics

    Returns:
        Error carrying the upstream status code and, when present,
        the provider's error code and message
    """
    message = f"Request failed: {response.status_code}"
    code = None
    error_type = "upstream_error"

    data: Any = None
    try:
        data = response.json()
    except ValueError:
        pass

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            message = error.get("message") or message
            code = error.get("code")
            error_type = error.get("type") or error_type
        elif isinstance(data.get("message"), str):
            message = data["message"]
            code = data.get("code")
    elif response.content:
        message = f"{message} - {response.text}"

    if code is not None:
        code = str(code)

    return ProviderReportedError(
        message,
        gateway=gateway,
        code=code,
        status_code=response.status_code,
        error_type=error_type,
    )
