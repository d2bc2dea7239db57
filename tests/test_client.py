# tests/test_client.py
"""
Integration tests for RotatorClient and ChatStream.

Uses an in-memory provider adapter so no real API calls are made. Tests
cover:
  - Streaming text and the completion signal.
  - Usage history recorded only once a stream is drained.
  - Header reconciliation on success and on a rate-limited failure.
  - Fallback to the next model after a provider reported a cooldown.
  - Missing provider adapters.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from types import SimpleNamespace
from typing import Any

import pytest

from conftest import make_model
from llm_rotator import RotatorClient
from llm_rotator.config import RouterConfig
from llm_rotator.exceptions import AllModelsExhaustedError, ProviderNotFoundError
from llm_rotator.models import CompletionUsage, ModelConfig
from llm_rotator.providers.base import BaseProvider, ChatStream, ProviderResponse, error_headers
from llm_rotator.providers.registry import ProviderRegistry


class RateLimitError(Exception):
    """Looks like an SDK status error carrying the HTTP response."""

    def __init__(self, headers: Mapping[str, str]) -> None:
        super().__init__("429 Too Many Requests")
        self.response = SimpleNamespace(status_code=429, headers=headers)


class MockProvider(BaseProvider):
    """In-memory mock provider for testing."""

    def __init__(
        self,
        name: str,
        chunks: tuple[str, ...] = ("Hello", ", ", "world"),
        headers: Mapping[str, str] | None = None,
        fail_with: Exception | None = None,
        usage: tuple[int, int] = (10, 20),
    ) -> None:
        self.name = name
        self.chunks = chunks
        self.headers = headers or {}
        self.fail_with = fail_with
        self.usage = usage
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.closed = False

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: ModelConfig,
        **kwargs: Any,
    ) -> ProviderResponse:
        self.calls.append((model.id, kwargs))
        if self.fail_with is not None:
            error, self.fail_with = self.fail_with, None
            raise error
        return ProviderResponse(headers=self.headers, stream=ChatStream(self._events()))

    async def _events(self) -> AsyncIterator[str | CompletionUsage]:
        for chunk in self.chunks:
            yield chunk
        yield CompletionUsage(input_tokens=self.usage[0], output_tokens=self.usage[1])

    async def close(self) -> None:
        self.closed = True


PROMPT = [{"role": "user", "content": "x" * 40}]


def _client(tracker, *providers: MockProvider, **config: Any) -> RotatorClient:
    models = [
        make_model("groq-model", requests_per_day=10, tokens_per_minute=10_000),
        make_model("cerebras-model", provider="cerebras", requests_per_day=10, tokens_per_minute=10_000),
    ]
    registry = ProviderRegistry()
    for provider in providers:
        registry.register(provider)
    return RotatorClient(RouterConfig(models=models, **config), tracker=tracker, registry=registry)


@pytest.mark.asyncio
class TestChatStream:
    async def test_collect_and_usage(self):
        async def events():
            yield "a"
            yield "b"
            yield CompletionUsage(input_tokens=3, output_tokens=4)

        seen: list[CompletionUsage] = []
        stream = ChatStream(events(), on_complete=seen.append)
        assert not stream.done

        assert await stream.collect() == "ab"
        usage = await stream.usage
        assert (usage.input_tokens, usage.output_tokens) == (3, 4)
        assert seen == [usage]
        assert stream.done

    async def test_completion_waits_for_last_chunk(self):
        async def events():
            yield "a"
            yield "b"

        stream = ChatStream(events())
        chunks = []
        async for chunk in stream:
            chunks.append(chunk)
            assert not stream.done
        assert chunks == ["a", "b"]
        assert (await stream.usage) == CompletionUsage()

    async def test_iterates_once(self):
        async def events():
            yield "a"

        stream = ChatStream(events())
        await stream.collect()
        with pytest.raises(RuntimeError):
            stream.__aiter__()

    async def test_callbacks_chain_before_start(self):
        async def events():
            yield "a"

        order: list[str] = []
        stream = ChatStream(events(), on_complete=lambda u: order.append("first"))
        stream.add_completion_callback(lambda u: order.append("second"))
        await stream.collect()
        assert order == ["first", "second"]
        with pytest.raises(RuntimeError):
            stream.add_completion_callback(lambda u: None)

    async def test_failing_callback_does_not_break_stream(self):
        async def events():
            yield "a"

        def boom(_: CompletionUsage) -> None:
            raise RuntimeError("callback failed")

        stream = ChatStream(events(), on_complete=boom)
        assert await stream.collect() == "a"
        assert stream.usage.done()

    async def test_source_error_propagates(self):
        async def events():
            yield "a"
            raise ConnectionError("stream dropped")

        stream = ChatStream(events())
        with pytest.raises(ConnectionError):
            await stream.collect()
        with pytest.raises(ConnectionError):
            await stream.usage


@pytest.mark.asyncio
class TestRotatorClient:
    async def test_chat_streams_text(self, tracker):
        groq = MockProvider("groq")
        client = _client(tracker, groq, MockProvider("cerebras"))

        result = await client.chat(PROMPT, temperature=0.1)
        assert result.model.id == "groq-model"
        assert result.estimated_tokens == 10
        assert await result.text() == "Hello, world"
        assert groq.calls == [("groq-model", {"temperature": 0.1})]

    async def test_usage_recorded_after_drain(self, tracker):
        client = _client(tracker, MockProvider("groq"), MockProvider("cerebras"))

        result = await client.chat(PROMPT)
        assert client.usage() == []

        chunks = [chunk async for chunk in result]
        assert "".join(chunks) == "Hello, world"
        records = client.usage()
        assert len(records) == 1
        assert records[0].model_id == "groq-model"
        assert (records[0].input_tokens, records[0].output_tokens) == (10, 20)

    async def test_success_headers_are_reconciled(self, tracker):
        groq = MockProvider(
            "groq",
            headers={
                "x-ratelimit-remaining-requests": "3",
                "x-ratelimit-remaining-tokens": "500",
                "x-ratelimit-reset-tokens": "6s",
            },
        )
        client = _client(tracker, groq, MockProvider("cerebras"))

        await client.chat(PROMPT)
        stats = tracker.usage_stats("groq-model")
        assert stats.remaining_requests == 3
        assert stats.remaining_tokens == 500
        assert stats.reset_tokens_at == tracker.now() + 6

    async def test_rate_limited_failure_is_reconciled_and_raised(self, tracker):
        error = RateLimitError({"retry-after": "30", "x-ratelimit-remaining-requests": "0"})
        client = _client(tracker, MockProvider("groq", fail_with=error), MockProvider("cerebras"))

        with pytest.raises(RateLimitError):
            await client.chat(PROMPT)

        status = {entry["model"].id: entry for entry in client.status()}
        assert status["groq-model"]["available"] is False
        assert status["groq-model"]["reason"] == "Rate limited: retry after 30s"

        second = await client.chat(PROMPT)
        assert second.model.id == "cerebras-model"
        third = await client.chat(PROMPT)
        assert third.model.id == "cerebras-model"
        assert [s.model_id for s in third.skipped] == ["groq-model"]

    async def test_error_without_response(self, tracker):
        client = _client(
            tracker,
            MockProvider("groq", fail_with=TimeoutError("read timeout")),
            MockProvider("cerebras"),
        )
        with pytest.raises(TimeoutError):
            await client.chat(PROMPT)
        # Optimistic charge stands; no authoritative data arrived.
        assert tracker.usage_stats("groq-model").remaining_requests == 9

    async def test_explicit_model(self, tracker):
        cerebras = MockProvider("cerebras")
        client = _client(tracker, MockProvider("groq"), cerebras)
        result = await client.chat(PROMPT, model="cerebras-model")
        assert result.model.provider == "cerebras"
        assert len(cerebras.calls) == 1

    async def test_missing_adapter(self, tracker):
        client = _client(tracker, MockProvider("cerebras"))
        with pytest.raises(ProviderNotFoundError):
            await client.chat(PROMPT)

    async def test_exhaustion_surfaces_from_router(self, tracker):
        client = _client(
            tracker, MockProvider("groq"), MockProvider("cerebras"), providers=["groq"]
        )
        for _ in range(10):
            await client.chat(PROMPT)
        with pytest.raises(AllModelsExhaustedError):
            await client.chat(PROMPT)

    async def test_non_finite_headers_do_not_break_chat(self, tracker):
        groq = MockProvider(
            "groq",
            headers={
                "x-ratelimit-remaining-requests": "inf",
                "x-ratelimit-reset-tokens": "nan",
                "retry-after": "1e400",
            },
        )
        client = _client(tracker, groq, MockProvider("cerebras"))

        result = await client.chat(PROMPT)
        assert await result.text() == "Hello, world"
        assert tracker.usage_stats("groq-model").remaining_requests == 9
        assert tracker.admit(result.model).allowed

    async def test_usage_report(self, tracker):
        client = _client(tracker, MockProvider("groq"), MockProvider("cerebras"))
        result = await client.chat(PROMPT)
        await result.text()

        report = {entry["model"].id: entry for entry in client.usage_report()}
        groq_entry = report["groq-model"]
        assert groq_entry["completions"] == 1
        assert groq_entry["remaining"].requests == 9
        assert groq_entry["remaining"].tokens == 9_990
        assert groq_entry["stats"].requests_today == 1

        cerebras_entry = report["cerebras-model"]
        assert cerebras_entry["completions"] == 0
        assert cerebras_entry["stats"] is None
        assert cerebras_entry["remaining"].requests == 10

    async def test_context_manager_closes_providers(self, tracker):
        groq, cerebras = MockProvider("groq"), MockProvider("cerebras")
        async with _client(tracker, groq, cerebras):
            pass
        assert groq.closed and cerebras.closed


class TestRegistry:
    def test_from_config_skips_providers_without_keys(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        monkeypatch.delenv("CEREBRAS_API_KEY", raising=False)
        registry = ProviderRegistry.from_config(RouterConfig())
        assert registry.names() == []

    def test_get_unknown(self):
        registry = ProviderRegistry()
        registry.register(MockProvider("groq"))
        assert registry.has("groq")
        with pytest.raises(ProviderNotFoundError, match='Provider "cerebras" not found'):
            registry.get("cerebras")


def test_error_headers():
    assert error_headers(RateLimitError({"retry-after": "1"})) == {"retry-after": "1"}
    assert error_headers(RuntimeError("no response")) is None
