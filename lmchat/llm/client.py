"""
Async client for OpenAI-compatible chat-completion APIs.

Supports single-shot completions, single-shot or streamed message
sending with a per-chunk progress callback, and an API key check.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import json
import uuid
from collections.abc import Awaitable, Callable, Coroutine, Mapping
from typing import Any

import httpx
import structlog

from lmchat.logging_utils import log_operation, operation_context

from .exceptions import (
    InvalidAPIKeyError,
    MalformedResponseError,
    ProviderError,
    RequestCancelledError,
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
from .streaming.parser import SSEEventParser

HTTP_UNAUTHORIZED = 401
SEND_FAILURE_MESSAGE = "Failed to send message"

ProgressCallback = Callable[[AccumulatedResult], Awaitable[None] | None]

logger = structlog.get_logger(__name__)


def default_id_factory() -> str:
    """Fallback result id used until the provider supplies one."""
    return uuid.uuid4().hex


class StreamingChatClient:
    """Chat-completion client bound to one service profile.

    Usage::

        async with StreamingChatClient(profile, api_key) as client:
            text = await client.complete("Hello")

            result = await client.send_message(
                {"model": profile.model, "messages": [...], "stream": True},
                on_progress=render,
            )
    """

    def __init__(
        self,
        profile: ServiceProfile,
        api_key: str,
        *,
        defaults: CompletionDefaults | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: httpx.Timeout | float | None = 60.0,
        event_parser: SSEEventParser | None = None,
        id_factory: Callable[[], str] = default_id_factory,
    ) -> None:
        self.profile = profile
        self.api_key = api_key
        self.defaults = defaults or CompletionDefaults()
        self._owns_http_client = http_client is None
        self.http_client: httpx.AsyncClient = http_client or httpx.AsyncClient(
            timeout=timeout
        )
        self.event_parser = event_parser or SSEEventParser()
        self.id_factory = id_factory
        self._log = logger.bind(service=profile.name, model=profile.model)

    def _auth_headers(self, api_key: str | None = None) -> dict[str, str]:
        return {"Authorization": f"Bearer {api_key or self.api_key}"}

    # ------------------------------------------------------------------ #
    # complete                                                           #
    # ------------------------------------------------------------------ #

    def build_completion_payload(
        self, prompt: str, params: CompletionParams | None = None
    ) -> dict[str, Any]:
        """Shape the system + user chat request sent by ``complete``."""
        params = params or CompletionParams()
        messages = [
            ChatMessage(
                MessageRole.SYSTEM,
                params.system_message or self.defaults.system_message,
            ),
            ChatMessage(MessageRole.USER, prompt),
        ]
        payload: dict[str, Any] = {
            "model": self.profile.model,
            "messages": [message.to_wire() for message in messages],
            "temperature": params.temperature or self.defaults.temperature,
            "max_tokens": params.max_tokens or self.defaults.max_tokens,
        }
        if params.stop:
            payload["stop"] = params.stop
        return payload

    @log_operation("complete")
    async def complete(
        self, prompt: str, params: CompletionParams | None = None
    ) -> str | None:
        """Single-shot completion of ``prompt``.

        Returns ``choices[0].message.content`` or None when the response
        carries no message content. Transport failures and non-2xx
        statuses propagate as raised by httpx.
        """
        if not isinstance(prompt, str) or not prompt:
            raise ValueError("prompt must be a non-empty string")

        response = await self.http_client.post(
            f"{self.profile.base_path}/chat/completions",
            json=self.build_completion_payload(prompt, params),
            headers=self._auth_headers(),
        )
        response.raise_for_status()
        body = response.json()

        if not isinstance(body, dict):
            return None
        choices = body.get("choices")
        if (
            not isinstance(choices, list)
            or not choices
            or not isinstance(choices[0], dict)
        ):
            return None
        message = choices[0].get("message")
        if not isinstance(message, dict):
            return None
        return message.get("content")

    # ------------------------------------------------------------------ #
    # send_message                                                       #
    # ------------------------------------------------------------------ #

    async def send_message(
        self,
        request: ChatRequest | Mapping[str, Any],
        *,
        on_progress: ProgressCallback | None = None,
        signal: asyncio.Event | None = None,
    ) -> AccumulatedResult:
        """Send a chat request, streamed or not according to ``request.stream``.

        Args:
            request: Request body; extra fields are forwarded verbatim.
            on_progress: Called with the accumulated result after every
                streamed chunk that carries choices. Awaited if it returns
                an awaitable; its exceptions abort the stream.
            signal: Cancellation token. Setting it aborts the in-flight
                request and raises RequestCancelledError.

        Raises:
            ProviderError: Non-2xx status or network failure.
            MalformedResponseError: Non-streamed body without a message.
            RequestCancelledError: ``signal`` was set.
        """
        if not isinstance(request, ChatRequest):
            request = ChatRequest.model_validate(dict(request))

        async with operation_context(
            "send_message",
            context={
                "service": self.profile.name,
                "model": request.model,
                "stream": request.stream,
            },
        ):
            return await self._run_cancellable(
                self._send(request, on_progress), signal
            )

    async def _run_cancellable(
        self,
        coro: Coroutine[Any, Any, AccumulatedResult],
        signal: asyncio.Event | None,
    ) -> AccumulatedResult:
        """Race ``coro`` against ``signal``; the loser is cancelled."""
        if signal is None:
            return await coro
        if signal.is_set():
            coro.close()
            raise RequestCancelledError(
                "Request cancelled before it was sent",
                provider=self.profile.name,
                model=self.profile.model,
            )

        task = asyncio.ensure_future(coro)
        waiter = asyncio.ensure_future(signal.wait())
        try:
            await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

        if task.cancelled():
            raise RequestCancelledError(
                "Request cancelled while in flight",
                provider=self.profile.name,
                model=self.profile.model,
            )
        return task.result()

    async def _send(
        self,
        request: ChatRequest,
        on_progress: ProgressCallback | None,
    ) -> AccumulatedResult:
        http_request = self.http_client.build_request(
            "POST",
            self.profile.completion_endpoint,
            json=request.to_payload(),
            headers=self._auth_headers(),
        )
        try:
            response = await self.http_client.send(
                http_request, stream=request.stream
            )
        except httpx.TransportError as e:
            raise ProviderError(
                SEND_FAILURE_MESSAGE,
                cause={"error": {"message": str(e), "type": type(e).__name__}},
                provider=self.profile.name,
                model=request.model,
            ) from e

        try:
            if response.is_error:
                raise await self._decode_error(response)

            result = AccumulatedResult(id=self.id_factory())
            if not request.stream:
                return self._read_single(response, result)
            return await self._accumulate_stream(response, result, on_progress)
        finally:
            await response.aclose()

    async def _decode_error(self, response: httpx.Response) -> ProviderError:
        """Decode a failed response body into a ProviderError.

        Bodies that are not a UTF-8 JSON object produce a fixed
        ``undecodable_error_body`` cause holding the raw text.
        """
        raw = await response.aread()
        text = ""
        cause: dict[str, Any] | None = None
        try:
            text = raw.decode("utf-8")
            decoded = json.loads(text)
            if isinstance(decoded, dict):
                cause = decoded
        except (UnicodeDecodeError, json.JSONDecodeError):
            pass

        if cause is None:
            cause = {
                "error": {
                    "message": text.strip() or response.reason_phrase,
                    "type": "undecodable_error_body",
                }
            }

        return ProviderError(
            SEND_FAILURE_MESSAGE,
            cause=cause,
            provider=self.profile.name,
            model=self.profile.model,
            status_code=response.status_code,
        )

    def _read_single(
        self, response: httpx.Response, result: AccumulatedResult
    ) -> AccumulatedResult:
        try:
            body = response.json()
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedResponseError(
                f"Response body is not valid JSON: {e}",
                provider=self.profile.name,
                model=self.profile.model,
                status_code=response.status_code,
            ) from e

        choices = body.get("choices") if isinstance(body, dict) else None
        message = None
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
        if not isinstance(message, dict) or not message:
            raise MalformedResponseError(
                "No message in response",
                provider=self.profile.name,
                model=self.profile.model,
                status_code=response.status_code,
                response_data=body if isinstance(body, dict) else None,
            )

        if body.get("id"):
            result.id = body["id"]
        result.text = message.get("content") or ""
        if message.get("role"):
            result.role = message["role"]
        result.detail = body

        self._log.debug("Received completion", id=result.id, text=result.text)
        return result

    async def _accumulate_stream(
        self,
        response: httpx.Response,
        result: AccumulatedResult,
        on_progress: ProgressCallback | None,
    ) -> AccumulatedResult:
        provider_id_seen = False
        async for event in self.event_parser.iter_events(response):
            # The first non-empty id wins
            if not provider_id_seen and event.get("id"):
                result.id = event["id"]
                provider_id_seen = True

            choices = event.get("choices")
            if not choices or not isinstance(choices, list):
                continue

            choice = choices[0] if isinstance(choices[0], dict) else {}
            delta = choice.get("delta")
            if not isinstance(delta, dict):
                delta = {}
            content = delta.get("content")
            result.delta = content
            if content:
                result.text += content
            result.detail = event
            if delta.get("role"):
                result.role = delta["role"]

            if on_progress is not None:
                outcome = on_progress(result)
                if inspect.isawaitable(outcome):
                    await outcome

        return result

    # ------------------------------------------------------------------ #
    # API key check                                                      #
    # ------------------------------------------------------------------ #

    @log_operation("check_if_api_key_is_valid")
    async def check_if_api_key_is_valid(self, candidate_key: str | None = None) -> bool:
        """Return True unless the validation endpoint rejects the key.

        Profiles that do not require validation succeed without a request.

        Raises:
            InvalidAPIKeyError: The endpoint answered 401.
        """
        if not self.profile.requires_key_validation:
            return True

        response = await self.http_client.get(
            self.profile.validation_endpoint,
            headers=self._auth_headers(candidate_key),
        )
        if response.status_code == HTTP_UNAUTHORIZED:
            raise InvalidAPIKeyError(
                "Invalid API key",
                provider=self.profile.name,
                model=self.profile.model,
                status_code=response.status_code,
            )
        return True

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http_client:
            await self.http_client.aclose()

    async def __aenter__(self) -> StreamingChatClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
