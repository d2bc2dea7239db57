# llm_rotator/client.py
"""
RotatorClient: the class most callers interact with.

Ties the pieces together for a single chat call:
  1. Route the messages to an admitted model (explicit or rotated).
  2. Call that model's provider adapter.
  3. Reconcile the tracker with the rate-limit headers the provider sent,
     on success and on failure alike.
  4. Hand back the text stream; once it is fully drained the token usage
     is appended to the tracker's history.
"""

from __future__ import annotations

import logging
import random
from collections.abc import AsyncIterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .config import RouterConfig
from .models import CompletionUsage, ModelConfig, SkippedModel, UsageRecord
from .providers.base import BaseProvider, ChatStream, error_headers
from .providers.registry import ProviderRegistry
from .router import ModelRouter
from .state.tracker import UsageTracker

logger = logging.getLogger(__name__)


@dataclass
class ChatResult:
    """A routed, in-flight chat completion."""

    model: ModelConfig
    stream: ChatStream
    skipped: list[SkippedModel] = field(default_factory=list)
    estimated_tokens: int = 0

    def __aiter__(self) -> AsyncIterator[str]:
        return self.stream.__aiter__()

    async def text(self) -> str:
        """Drain the stream and return the full response text."""
        return await self.stream.collect()


class RotatorClient:
    """
    Rate-limit-aware chat client rotating over several free-tier models.

    Parameters
    ----------
    config:
        Full configuration. Use one of the factory class methods
        (from_dict, from_yaml, from_env) for convenient construction.
    tracker:
        Share an existing UsageTracker instead of creating one.
    registry:
        Use these provider adapters instead of building them from config.
    rng:
        Random source for the random strategy.
    """

    def __init__(
        self,
        config: RouterConfig | None = None,
        tracker: UsageTracker | None = None,
        registry: ProviderRegistry | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config or RouterConfig()
        self._tracker = tracker or UsageTracker(history_size=self._config.history_size)
        self._router = ModelRouter.from_config(self._config, self._tracker, rng=rng)
        self._registry = registry

    # ------------------------------------------------------------------
    # Factory methods
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any], **kwargs: Any) -> "RotatorClient":
        """Construct from a plain Python dictionary."""
        return cls(RouterConfig.from_dict(data), **kwargs)

    @classmethod
    def from_yaml(cls, path: str, **kwargs: Any) -> "RotatorClient":
        """Construct from a YAML config file."""
        return cls(RouterConfig.from_yaml(path), **kwargs)

    @classmethod
    def from_env(cls, **kwargs: Any) -> "RotatorClient":
        """Construct from environment variables."""
        return cls(RouterConfig.from_env(), **kwargs)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> RouterConfig:
        return self._config

    @property
    def router(self) -> ModelRouter:
        return self._router

    @property
    def tracker(self) -> UsageTracker:
        return self._tracker

    @property
    def registry(self) -> ProviderRegistry:
        """Provider adapters, built from config on first use."""
        if self._registry is None:
            self._registry = ProviderRegistry.from_config(self._config)
        return self._registry

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    async def chat(
        self,
        messages: Sequence[dict[str, Any]],
        model: str | None = None,
        **kwargs: Any,
    ) -> ChatResult:
        """
        Start a streaming chat completion.

        Parameters
        ----------
        messages:
            Chat messages in role/content form.
        model:
            Use this model id instead of rotating. No fallback is tried.
        **kwargs:
            Generation parameters overriding the model's defaults.

        Raises
        ------
        ModelNotFoundError, RateLimitedError, AllModelsExhaustedError
            From routing.
        ProviderNotFoundError
            No adapter is registered for the routed model's provider.
        Exception
            Whatever the provider SDK raised; rate-limit headers on the
            error response are reconciled before it propagates.
        """
        route = self._router.route(messages, model_id=model)
        for skip in route.skipped:
            logger.info("Skipped %s", skip)

        chosen = route.model
        provider = self.registry.get(chosen.provider)
        logger.info("Routing request to %s (~%d tokens)", chosen.label, route.estimated_tokens)

        try:
            response = await provider.chat(list(messages), chosen, **kwargs)
        except Exception as exc:
            headers = error_headers(exc)
            if headers:
                self._reconcile(provider, chosen, headers)
            logger.error("Request to %s failed: %s", chosen.label, exc)
            raise

        self._reconcile(provider, chosen, response.headers)

        def _record(usage: CompletionUsage) -> None:
            self._tracker.record_completion(chosen, usage.input_tokens, usage.output_tokens)

        response.stream.add_completion_callback(_record)
        return ChatResult(
            model=chosen,
            stream=response.stream,
            skipped=route.skipped,
            estimated_tokens=route.estimated_tokens,
        )

    def _reconcile(self, provider: BaseProvider, model: ModelConfig, headers: Mapping[str, str]) -> None:
        snapshot = provider.parse_snapshot(headers, self._tracker.now())
        self._tracker.reconcile(model, snapshot)

    def status(self) -> list[dict[str, Any]]:
        """Per-model availability and rate-limit state."""
        return self._router.status()

    def usage(self, model_id: str | None = None, limit: int | None = None) -> list[UsageRecord]:
        """Recorded completions, oldest first."""
        return self._tracker.history(model_id=model_id, limit=limit)

    def usage_report(self) -> list[dict[str, Any]]:
        """
        Per-model usage view: remaining capacity, the stored budget (None until
        the tracker first touches the model) and the recorded completion count.
        """
        report = []
        for model in self._router.models:
            stats = self._tracker.usage_stats(model.id)
            report.append(
                {
                    "model": model,
                    "remaining": self._tracker.remaining_capacity(model),
                    "stats": stats,
                    "completions": len(self._tracker.history(model_id=model.id)),
                }
            )
        return report

    async def close(self) -> None:
        """Release all provider connections."""
        if self._registry is not None:
            await self._registry.close_all()

    async def __aenter__(self) -> "RotatorClient":
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
