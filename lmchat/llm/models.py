"""
Core dataclasses for chat-completion requests and results.

This module provides:
- Provider profiles
- Completion parameters and their defaults
- Message structures
- The wire-level request body for ``send_message``
- The mutable result accumulated across stream chunks
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

OPENAI_VALIDATION_ENDPOINT = "https://api.openai.com/v1/engines"

DEFAULT_SYSTEM_MESSAGE = (
    "This is a conversation with an AI assistant. The assistant is helpful, "
    "creative, clever, and very friendly."
)


class MessageRole(Enum):
    """OpenAI-compatible message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ServiceProfile:
    """Static description of one OpenAI-compatible provider."""
    name: str
    base_path: str
    model: str
    completion_endpoint: str
    requires_key_validation: bool = True
    validation_endpoint: str = OPENAI_VALIDATION_ENDPOINT

    @classmethod
    def from_base_path(
        cls,
        name: str,
        base_path: str,
        model: str,
        **kwargs: Any,
    ) -> ServiceProfile:
        """Build a profile whose completion endpoint is ``{base_path}/chat/completions``."""
        base_path = base_path.rstrip("/")
        return cls(
            name=name,
            base_path=base_path,
            model=model,
            completion_endpoint=f"{base_path}/chat/completions",
            **kwargs,
        )


def builtin_profiles() -> dict[str, ServiceProfile]:
    """Profiles available without any configuration file."""
    mlc_base = os.getenv("MLC_AI_API_BASE", "")
    return {
        "openai": ServiceProfile(
            name="openai",
            base_path="https://api.openai.com/v1",
            model="gpt-3.5-turbo",
            completion_endpoint="https://api.openai.com/v1/chat/completions",
        ),
        "mlc": ServiceProfile(
            name="mlc",
            base_path=mlc_base,
            model="vicuna-v1-7b",
            completion_endpoint=f"{mlc_base}/chat/completions",
            requires_key_validation=False,
        ),
    }


@dataclass(frozen=True)
class CompletionDefaults:
    """Fallback values for ``complete`` when params leave a field unset."""
    temperature: float = 0.8
    max_tokens: int = 256
    system_message: str = DEFAULT_SYSTEM_MESSAGE


@dataclass(frozen=True)
class CompletionParams:
    """Optional per-call tuning for ``complete``."""
    temperature: float | None = None
    max_tokens: int | None = None
    stop: str | None = None
    system_message: str | None = None


@dataclass(frozen=True)
class ChatMessage:
    """OpenAI-compatible message structure."""
    role: MessageRole
    content: str

    def to_wire(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class ChatRequest(BaseModel):
    """Request body for ``send_message``.

    Unknown fields are kept and forwarded to the provider verbatim.
    """

    model_config = ConfigDict(extra="allow")

    model: str
    messages: list[dict[str, Any]] = Field(default_factory=list)
    stream: bool = False
    temperature: float | None = None
    max_tokens: int | None = None
    stop: str | list[str] | None = None

    def to_payload(self) -> dict[str, Any]:
        """JSON body holding exactly the fields the caller set, plus ``stream``."""
        payload = self.model_dump(exclude_unset=True)
        payload["stream"] = self.stream
        return payload


@dataclass
class AccumulatedResult:
    """Result of ``send_message``, mutated in place while a stream is consumed."""
    id: str
    role: str = MessageRole.ASSISTANT.value
    text: str = ""
    delta: str | None = None
    detail: dict[str, Any] | None = None
    parent_message_id: str = ""
