"""Shared fixtures: a stub provider profile and clients over httpx.MockTransport."""

import json

import httpx
import pytest
import pytest_asyncio

from lmchat.llm.client import StreamingChatClient
from lmchat.llm.models import ServiceProfile

FALLBACK_ID = "fallback-id"


def sse_body(*events) -> bytes:
    """Encode events as an SSE stream; strings are sent as raw data."""
    lines = []
    for event in events:
        data = event if isinstance(event, str) else json.dumps(event)
        lines.append(f"data: {data}\n\n")
    return "".join(lines).encode()


@pytest.fixture
def profile():
    return ServiceProfile.from_base_path(
        "stub", "https://llm.test/v1", "stub-model"
    )


@pytest.fixture
def local_profile():
    return ServiceProfile.from_base_path(
        "mlc", "http://localhost:8000/v1", "vicuna-v1-7b",
        requires_key_validation=False,
    )


@pytest_asyncio.fixture
async def make_client(profile):
    """Build clients whose HTTP calls are answered by ``handler``; closed on teardown."""
    created = []

    def factory(handler, client_profile=None, api_key="sk-test"):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = StreamingChatClient(
            client_profile or profile,
            api_key,
            http_client=http_client,
            id_factory=lambda: FALLBACK_ID,
        )
        created.append(http_client)
        return client

    yield factory

    for http_client in created:
        await http_client.aclose()
