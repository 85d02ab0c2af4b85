"""Graceful error handling for provider failures with user-friendly messages."""
from __future__ import annotations

import sys
from typing import Optional

import anthropic
import httpx
import structlog

logger = structlog.get_logger(__name__)

MAX_DETAIL_CHARS = 200


class APIError(Exception):
    """Base class for API-related errors with user-friendly messaging."""

    def __init__(self, error_type: str, message: str, details: str = "", is_retryable: bool = False):
        self.error_type = error_type
        self.message = message
        self.details = details
        self.is_retryable = is_retryable
        super().__init__(self.message)

    def get_user_message(self) -> str:
        """Return a user-friendly error message."""
        msg = f"\nError: {self.message}"
        if self.details:
            msg += f"\n   Details: {self.details}"
        if self.is_retryable:
            msg += "\n   Tip: This is a temporary issue. Please retry in a few moments."
        return msg


class ProviderError(APIError):
    """A text generation provider call failed."""

    def __init__(self, provider: str, error_type: str, message: str, details: str = "", is_retryable: bool = True):
        self.provider = provider
        super().__init__(error_type, message, details, is_retryable)


class ProviderConnectionError(ProviderError):
    """Provider host unreachable or name resolution failed."""

    def __init__(self, provider: str, url: str, reason: str = ""):
        super().__init__(
            provider,
            error_type="CONNECTION_FAILED",
            message=(
                f"{provider} provider not reachable at {url}. Please ensure: "
                "1. the inference service is running, "
                "2. the service is reachable from this host (same network, no proxy in the way), "
                f"3. the configured URL is correct (current: {url})"
            ),
            details=reason[:MAX_DETAIL_CHARS],
        )
        self.url = url


class ProviderTimeoutError(ProviderError):
    """Provider did not answer within the per-call timeout."""

    def __init__(self, provider: str, timeout: float):
        super().__init__(
            provider,
            error_type="TIMEOUT",
            message=f"{provider} request timed out after {timeout:g}s",
            details="The service may be overloaded or the model may still be loading",
        )
        self.timeout = timeout


class ProviderResponseError(ProviderError):
    """Provider answered with a non-2xx status."""

    def __init__(self, provider: str, status_code: int, body: str = ""):
        super().__init__(
            provider,
            error_type="REMOTE_ERROR",
            message=f"{provider} returned error {status_code}",
            details=f"Response: {body[:MAX_DETAIL_CHARS]}" if body else "",
        )
        self.status_code = status_code
        self.body = body


class InvalidResponseError(ProviderError):
    """Provider returned a malformed or unusable response."""

    def __init__(self, provider: str, response_type: str = ""):
        super().__init__(
            provider,
            error_type="INVALID_RESPONSE",
            message=f"{provider} returned invalid response{f' ({response_type})' if response_type else ''}",
            details="The response could not be used. This may be a temporary issue.",
        )


class ProviderConfigurationError(ProviderError):
    """Provider cannot be used as configured; retrying will not help."""

    def __init__(self, provider: str, message: str, details: str = ""):
        super().__init__(
            provider,
            error_type="CONFIGURATION",
            message=message,
            details=details,
            is_retryable=False,
        )


def handle_provider_error(error: Exception, provider: str, url: str = "", timeout: float = 0.0) -> ProviderError:
    """Convert httpx and Anthropic SDK exceptions to the provider error taxonomy."""
    if isinstance(error, ProviderError):
        return error

    # APITimeoutError subclasses APIConnectionError
    if isinstance(error, anthropic.APITimeoutError):
        return ProviderTimeoutError(provider, timeout)
    if isinstance(error, anthropic.APIConnectionError):
        return ProviderConnectionError(provider, url, str(error))
    if isinstance(error, anthropic.APIStatusError):
        return ProviderResponseError(provider, error.status_code, str(error.message))

    if isinstance(error, httpx.TimeoutException):
        return ProviderTimeoutError(provider, timeout)
    if isinstance(error, httpx.ConnectError):
        return ProviderConnectionError(provider, url, str(error))
    if isinstance(error, httpx.HTTPStatusError):
        return ProviderResponseError(provider, error.response.status_code, error.response.text)
    if isinstance(error, (ValueError, KeyError, IndexError, TypeError)):
        return InvalidResponseError(provider, type(error).__name__)

    return ProviderError(
        provider,
        error_type=type(error).__name__,
        message=f"{provider} request failed",
        details=str(error)[:MAX_DETAIL_CHARS],
    )


def exit_with_error(error: APIError, context: str = "") -> int:
    """Log error and exit gracefully with user-friendly message."""
    logger.error(
        "command_failed",
        error_type=error.error_type,
        message=error.message,
        details=error.details,
        context=context,
    )

    print(error.get_user_message(), file=sys.stderr)

    print("\nNext steps:", file=sys.stderr)
    if error.is_retryable:
        print("   1. Wait a moment for the service to recover", file=sys.stderr)
        print("   2. Run the same command again", file=sys.stderr)
    else:
        print("   1. Check the provider section of your configuration file", file=sys.stderr)
        print("   2. Run 'control-advisor check-provider' to verify connectivity", file=sys.stderr)

    print("", file=sys.stderr)
    return 1


def describe_error(error: Optional[BaseException]) -> str:
    if error is None:
        return ""
    if isinstance(error, APIError):
        return error.message
    return str(error)
