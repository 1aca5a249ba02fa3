"""
Centralized logging utilities for lmchat.

This module provides decorators and helpers that standardize how
operations are logged across the client:

- Structured logging with contextual information
- Error classification for failure logs
- Operation timing
"""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, ParamSpec, TypeVar

import httpx
import structlog

from lmchat.llm.exceptions import (
    InvalidAPIKeyError,
    LLMError,
    MalformedResponseError,
    ProviderError,
    RequestCancelledError,
    StreamingError,
    UnknownServiceError,
)

# Type variables for generic decorators
P = ParamSpec("P")
T = TypeVar("T")
AsyncCallable = Callable[P, Awaitable[T]]


def _configure_structlog(colors: bool = True) -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=colors),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Configure structured logging
_configure_structlog()

logger = structlog.get_logger(__name__)


def configure_logging(level: str | int = "INFO", *, colors: bool = True) -> None:
    """Route structlog output through the standard library at ``level``."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger().setLevel(level)
    _configure_structlog(colors)


def classify_error(error: BaseException) -> str:
    """Return a short category name used in failure logs."""
    if isinstance(error, RequestCancelledError):
        return "cancelled"
    if isinstance(error, InvalidAPIKeyError):
        return "invalid_api_key"
    if isinstance(error, ProviderError):
        return "provider_error"
    if isinstance(error, MalformedResponseError):
        return "malformed_response"
    if isinstance(error, StreamingError):
        return "streaming_error"
    if isinstance(error, UnknownServiceError):
        return "unknown_service"
    if isinstance(error, LLMError):
        return "llm_error"
    if isinstance(error, httpx.HTTPStatusError):
        return "http_status_error"
    if isinstance(error, httpx.TransportError):
        return "transport_error"
    if isinstance(error, ValueError | TypeError):
        return "parameter_error"
    return "unknown_error"


def _failure_data(error: BaseException, start_time: float | None) -> dict[str, Any]:
    data: dict[str, Any] = {
        "error_type": type(error).__name__,
        "error_category": classify_error(error),
        "error_message": str(error),
    }
    if start_time is not None:
        data["duration_ms"] = round((time.perf_counter() - start_time) * 1000, 2)
    return data


def log_operation(
    operation: str,
    *,
    log_args: bool = False,
    log_result: bool = False,
    log_timing: bool = True,
    context: dict[str, Any] | None = None,
) -> Callable[[AsyncCallable[P, T]], AsyncCallable[P, T]]:
    """
    Decorator for logging async operations with structured context.

    Args:
        operation: Description of the operation being performed
        log_args: Whether to log function arguments
        log_result: Whether to log function result
        log_timing: Whether to log execution timing
        context: Additional context to include in logs

    Returns:
        Decorated function with logging
    """
    def decorator(func: AsyncCallable[P, T]) -> AsyncCallable[P, T]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            operation_logger = logger.bind(
                operation=operation,
                function=func.__name__,
                **(context or {}),
            )

            log_data = {}
            if log_args:
                log_data.update({
                    "args": args[1:] if args else [],  # Skip 'self' if present
                    "kwargs": kwargs,
                })

            operation_logger.debug("Operation started", **log_data)

            start_time = time.perf_counter() if log_timing else None

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                operation_logger.error(
                    "Operation failed", **_failure_data(e, start_time)
                )
                raise

            end_log_data: dict[str, Any] = {}
            if start_time is not None:
                duration = round((time.perf_counter() - start_time) * 1000, 2)
                end_log_data["duration_ms"] = duration
            if log_result:
                end_log_data["result"] = result

            operation_logger.debug("Operation completed successfully", **end_log_data)
            return result

        return wrapper
    return decorator


@asynccontextmanager
async def operation_context(
    operation: str,
    *,
    context: dict[str, Any] | None = None,
    log_timing: bool = True,
):
    """
    Async context manager for operation logging.

    Args:
        operation: Description of the operation
        context: Additional context for logging
        log_timing: Whether to log operation timing

    Yields:
        Bound logger for the operation
    """
    operation_logger = logger.bind(
        operation=operation,
        **(context or {}),
    )

    operation_logger.debug("Operation started")
    start_time = time.perf_counter() if log_timing else None

    try:
        yield operation_logger
    except Exception as e:
        operation_logger.error("Operation failed", **_failure_data(e, start_time))
        raise

    log_data: dict[str, Any] = {}
    if start_time is not None:
        duration = round((time.perf_counter() - start_time) * 1000, 2)
        log_data["duration_ms"] = duration

    operation_logger.debug("Operation completed successfully", **log_data)
