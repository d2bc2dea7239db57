# llm_rotator/providers/groq.py
"""
Groq provider adapter.

Wraps the groq AsyncGroq client. The raw-response variant of the create
call is used so the rate-limit headers are available alongside the stream.
Groq reports token usage in the ``x_groq.usage`` extension of the final
chunk. Supports BYOC.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import httpx

from .base import BaseProvider, ChatStream, ProviderResponse
from ..models import CompletionUsage, ModelConfig


class GroqProvider(BaseProvider):
    """Adapter wrapping groq.AsyncGroq."""

    name = "groq"

    def __init__(self, api_key: str | None = None, client: Any = None) -> None:
        if client is not None:
            self._client = client
        else:
            try:
                from groq import AsyncGroq  # type: ignore[import]
            except ImportError as exc:
                raise ImportError(
                    "groq package is required for GroqProvider. "
                    "Install it with: pip install groq"
                ) from exc
            self._client = AsyncGroq(
                api_key=api_key,
                http_client=httpx.AsyncClient(
                    limits=httpx.Limits(max_connections=100, max_keepalive_connections=20)
                ),
            )

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: ModelConfig,
        **kwargs: Any,
    ) -> ProviderResponse:
        params = {**model.generation_params(), **kwargs}
        raw = await self._client.chat.completions.with_raw_response.create(
            model=model.id,
            messages=messages,
            stream=True,
            **params,
        )
        stream = await raw.parse()
        return ProviderResponse(headers=raw.headers, stream=ChatStream(self._events(stream)))

    @staticmethod
    async def _events(stream: Any) -> AsyncIterator[str | CompletionUsage]:
        input_tokens = 0
        output_tokens = 0
        async for chunk in stream:
            x_groq = getattr(chunk, "x_groq", None)
            usage = getattr(x_groq, "usage", None) if x_groq is not None else None
            if usage is not None:
                input_tokens = usage.prompt_tokens or 0
                output_tokens = usage.completion_tokens or 0

            if chunk.choices:
                content = chunk.choices[0].delta.content
                if content:
                    yield content

        yield CompletionUsage(input_tokens=input_tokens, output_tokens=output_tokens)

    async def close(self) -> None:
        await self._client.close()
