"""Wiring of configuration, registry and client."""

from __future__ import annotations

import httpx
import structlog

from lmchat.config import Configuration
from lmchat.llm.client import StreamingChatClient
from lmchat.llm.registry import ServiceRegistry
from lmchat.logging_utils import configure_logging

logger = structlog.get_logger(__name__)


def create_client(
    service: str | None = None,
    configuration: Configuration | None = None,
    *,
    registry: ServiceRegistry | None = None,
    api_key: str | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> StreamingChatClient:
    """Create a client for ``service`` (default: the configured active one).

    Logging is configured from the ``logging`` section. The registry is
    built from configuration unless one is passed in.
    Services that skip key validation may run without an API key.

    Raises:
        UnknownServiceError: If ``service`` is not in the registry.
        ValueError: If a required API key is missing.
    """
    configuration = configuration or Configuration()
    configure_logging(**configuration.get_logging_config())
    registry = registry or configuration.get_service_registry()
    service = service or configuration.active_service

    profile = registry.get(service)
    if api_key is None:
        api_key = configuration.api_key_for(
            service, required=profile.requires_key_validation
        )

    logger.info("Creating chat client", service=profile.name, model=profile.model)
    return StreamingChatClient(
        profile,
        api_key,
        defaults=configuration.get_completion_defaults(),
        http_client=http_client,
        timeout=configuration.get_http_timeout(),
    )
