# llm_rotator/providers/base.py
"""
BaseProvider: abstract contract every provider adapter must implement,
plus the ChatStream returned by a call.

An adapter wraps a provider SDK client. Given an admitted ModelConfig and
the messages it performs the remote call and hands back two things:

  - the raw response headers, from which the tracker builds an
    authoritative RateSnapshot;
  - a ChatStream of text chunks whose ``usage`` future resolves with the
    final token counts once the stream has been fully drained.

The router never calls provider SDKs directly.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from typing import Any, Callable

from ..models import CompletionUsage, ModelConfig
from ..state.budget import RateSnapshot
from .headers import parse_snapshot

logger = logging.getLogger(__name__)


class ChatStream:
    """
    A once-only async iterator of text chunks plus a completion signal.

    The underlying event source yields text (``str``) and, at most once,
    a CompletionUsage. Iterating the stream yields only the text. When the
    source is exhausted, *on_complete* is called and then ``usage``
    resolves; neither happens before the last chunk has been consumed.
    If iteration stops early the future is cancelled; if the source fails
    the future carries the exception.
    """

    def __init__(
        self,
        events: AsyncIterator[str | CompletionUsage],
        on_complete: Callable[[CompletionUsage], None] | None = None,
    ) -> None:
        self._events = events
        self._on_complete = on_complete
        self._started = False
        self._usage: asyncio.Future[CompletionUsage] = asyncio.get_running_loop().create_future()

    @property
    def usage(self) -> asyncio.Future[CompletionUsage]:
        """Future with the final token counts; ``await stream.usage``."""
        return self._usage

    @property
    def done(self) -> bool:
        return self._usage.done()

    def add_completion_callback(self, callback: Callable[[CompletionUsage], None]) -> None:
        """Chain *callback* after any existing completion callback. Must precede iteration."""
        if self._started:
            raise RuntimeError("ChatStream already started")
        previous = self._on_complete

        def _both(usage: CompletionUsage) -> None:
            if previous is not None:
                previous(usage)
            callback(usage)

        self._on_complete = _both

    def __aiter__(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("ChatStream can only be iterated once")
        self._started = True
        return self._drain()

    async def _drain(self) -> AsyncIterator[str]:
        usage = CompletionUsage()
        try:
            async for event in self._events:
                if isinstance(event, CompletionUsage):
                    usage = event
                    continue
                yield event

            if self._on_complete is not None:
                try:
                    self._on_complete(usage)
                except Exception as exc:
                    logger.warning("Completion callback failed: %s", exc)
            self._usage.set_result(usage)
        except Exception as exc:
            if not self._usage.done():
                self._usage.set_exception(exc)
            raise
        finally:
            if not self._usage.done():
                self._usage.cancel()

    async def collect(self) -> str:
        """Drain the stream and return the concatenated text."""
        return "".join([chunk async for chunk in self])


@dataclass
class ProviderResponse:
    """What a provider call hands back to the caller."""

    headers: Mapping[str, str]
    stream: ChatStream


def error_headers(exc: BaseException) -> Mapping[str, str] | None:
    """Response headers attached to an SDK/httpx error (e.g. a 429), if any."""
    resp = getattr(exc, "response", None)
    if resp is None:
        return None
    headers = getattr(resp, "headers", None)
    return headers or None


class BaseProvider(ABC):
    """
    Abstract base class for all provider adapters.

    Attributes
    ----------
    name:
        Provider identifier matching ModelConfig.provider, e.g. "groq".
    """

    name: str = ""

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: ModelConfig,
        **kwargs: Any,
    ) -> ProviderResponse:
        """
        Start a streaming chat completion on *model*.

        Returns once response headers are available; text arrives through
        the returned ChatStream.

        Raises
        ------
        Any exception from the underlying SDK. Errors carrying a response
        (e.g. 429) expose their headers through error_headers().
        """

    def parse_snapshot(self, headers: Mapping[str, str], now: float) -> RateSnapshot | None:
        """Normalize this provider's rate-limit headers."""
        return parse_snapshot(self.name, headers, now)

    async def close(self) -> None:
        """Release any resources held by this adapter (HTTP clients, etc.)."""

    def __repr__(self) -> str:  # pragma: no cover
        return f"{self.__class__.__name__}(name={self.name!r})"
