"""
Streaming support for chat completions.

This package contains the SSE parser that turns a raw streaming response
into a lazy sequence of parsed JSON events.
"""

from .parser import DONE_SENTINEL, SSEEventParser

__all__ = ["DONE_SENTINEL", "SSEEventParser"]
