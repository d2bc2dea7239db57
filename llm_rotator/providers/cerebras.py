# llm_rotator/providers/cerebras.py
"""
Cerebras provider adapter.

Cerebras serves an OpenAI-compatible API, so the adapter drives an
openai.AsyncOpenAI client pointed at the Cerebras base URL. Messages are
reduced to plain role/content pairs; token usage arrives on the final
chunk. Supports BYOC.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import httpx

from .base import BaseProvider, ChatStream, ProviderResponse
from ..constants import CEREBRAS_BASE_URL
from ..models import CompletionUsage, ModelConfig


class CerebrasProvider(BaseProvider):
    """Adapter wrapping openai.AsyncOpenAI against the Cerebras endpoint."""

    name = "cerebras"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = CEREBRAS_BASE_URL,
        client: Any = None,
    ) -> None:
        if client is not None:
            self._client = client
        else:
            try:
                import openai  # type: ignore[import]
            except ImportError as exc:
                raise ImportError(
                    "openai package is required for CerebrasProvider. "
                    "Install it with: pip install openai"
                ) from exc
            self._client = openai.AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
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
        plain = [
            {
                "role": m.get("role", "user"),
                "content": m["content"] if isinstance(m.get("content"), str) else "",
            }
            for m in messages
        ]
        params = {**model.generation_params(), **kwargs}
        raw = await self._client.chat.completions.with_raw_response.create(
            model=model.id,
            messages=plain,
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
            usage = getattr(chunk, "usage", None)
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
