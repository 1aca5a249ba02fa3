"""
Chat-completion client for OpenAI-compatible providers.

This package provides:
- Service profiles and a registry keyed by provider name
- Typed request and result models
- A streaming-capable async client
- A typed error hierarchy
"""

from __future__ import annotations

from .client import StreamingChatClient
from .exceptions import (
    InvalidAPIKeyError,
    LLMError,
    MalformedResponseError,
    ProviderError,
    RequestCancelledError,
    StreamingError,
    UnknownServiceError,
)
from .models import (
    AccumulatedResult,
    ChatMessage,
    ChatRequest,
    CompletionDefaults,
    CompletionParams,
    MessageRole,
    ServiceProfile,
)
from .registry import ServiceRegistry

__all__ = [
    # Models
    "AccumulatedResult",
    "ChatMessage",
    "ChatRequest",
    "CompletionDefaults",
    "CompletionParams",
    # Exceptions
    "InvalidAPIKeyError",
    "LLMError",
    "MalformedResponseError",
    "MessageRole",
    "ProviderError",
    "RequestCancelledError",
    "ServiceProfile",
    # Registry and client
    "ServiceRegistry",
    "StreamingChatClient",
    "StreamingError",
    "UnknownServiceError",
]
