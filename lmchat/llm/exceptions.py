"""
Error hierarchy for language-model operations.

Every failure surfaces to the caller as a typed error carrying whatever
context was available:
- Unknown provider keys
- Decoded provider error bodies
- Malformed success responses
- Rejected API keys
- Caller-triggered cancellation
"""

from __future__ import annotations

from typing import Any


class LLMError(Exception):
    """Base LLM error with provider context."""

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        model: str = "unknown",
        status_code: int | None = None,
        response_data: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.model = model
        self.status_code = status_code
        self.response_data = response_data or {}


class UnknownServiceError(LLMError):
    """Provider key is not present in the service registry."""

    def __init__(self, service: str, available: list[str] | None = None):
        available = available or []
        super().__init__(
            f"Unknown language model service '{service}'"
            f" (available: {', '.join(available) or 'none'})",
            provider=service,
        )
        self.service = service
        self.available = available


class ProviderError(LLMError):
    """The provider rejected a request; ``cause`` holds the decoded error body."""

    def __init__(
        self,
        message: str,
        cause: dict[str, Any] | None = None,
        **kwargs,
    ):
        super().__init__(message, response_data=cause, **kwargs)
        self.cause = cause or {}

    @property
    def error_message(self) -> str | None:
        """The provider's own ``error.message`` if the body carried one."""
        error = self.cause.get("error")
        if isinstance(error, dict):
            return error.get("message")
        return None


class MalformedResponseError(LLMError):
    """Successful transport response without the expected fields."""
    pass


class InvalidAPIKeyError(LLMError):
    """The validation endpoint answered 401."""
    pass


class RequestCancelledError(LLMError):
    """The caller's cancellation signal fired while a request was in flight."""
    pass


class StreamingError(LLMError):
    """Streaming-specific errors."""
    pass
