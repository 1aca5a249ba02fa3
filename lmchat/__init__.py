"""
lmchat: async chat-completion client for OpenAI-compatible APIs.

Single-shot completions, streamed replies accumulated chunk by chunk
with a progress callback, and API key validation.
"""

from __future__ import annotations

from .config import Configuration
from .factory import create_client
from .llm import (
    AccumulatedResult,
    ChatRequest,
    CompletionParams,
    InvalidAPIKeyError,
    LLMError,
    MalformedResponseError,
    ProviderError,
    RequestCancelledError,
    ServiceProfile,
    ServiceRegistry,
    StreamingChatClient,
    UnknownServiceError,
)
from .logging_utils import configure_logging

__all__ = [
    "AccumulatedResult",
    "ChatRequest",
    "CompletionParams",
    "Configuration",
    "InvalidAPIKeyError",
    "LLMError",
    "MalformedResponseError",
    "ProviderError",
    "RequestCancelledError",
    "ServiceProfile",
    "ServiceRegistry",
    "StreamingChatClient",
    "UnknownServiceError",
    "configure_logging",
    "create_client",
]

__version__ = "0.1.0"
