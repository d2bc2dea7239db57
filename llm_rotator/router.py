# llm_rotator/router.py
"""
ModelRouter: picks one admitted model per incoming request.

Pipeline for next_model():
  1. Estimate the token cost of the messages.
  2. Ask the selector for a candidate.
  3. Ask the tracker to admit it (check + optimistic charge, atomically).
  4. Admitted  -> count the use, return the model and the skip list.
     Rejected  -> fail at once if auto-fallback is off, otherwise record
                  the skip and go back to 2 with that candidate excluded.
  5. After every candidate has been rejected, fail with all the reasons.

The loop is bounded by the candidate set size and never retries a
candidate within one call. Nothing here waits: admission is decided now.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable, Sequence
from typing import Any

from .config import RouterConfig
from .constants import DEFAULT_STRATEGY
from .engine.estimator import estimate_tokens
from .engine.selector import ModelSelector
from .exceptions import (
    AllModelsExhaustedError,
    ConfigurationError,
    ModelNotFoundError,
    RateLimitedError,
)
from .models import ModelConfig, RouteResult, SkippedModel
from .state.tracker import UsageTracker

logger = logging.getLogger(__name__)


class ModelRouter:
    """
    Rate-limit-aware model rotation over a fixed candidate set.

    Parameters
    ----------
    models:
        Configured models. Disabled models are dropped.
    tracker:
        The UsageTracker that owns the rate budgets. Shared with whatever
        layer reports authoritative usage back.
    strategy:
        "round-robin" | "random" | "least-used".
    auto_fallback:
        Try the next candidate when the chosen one is rate limited.
    providers:
        Keep only models served by these providers.
    model_ids:
        Keep only these model ids.
    rng:
        Random source for the random strategy.
    """

    def __init__(
        self,
        models: Iterable[ModelConfig],
        tracker: UsageTracker,
        strategy: str = DEFAULT_STRATEGY,
        auto_fallback: bool = True,
        providers: Sequence[str] | None = None,
        model_ids: Sequence[str] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        candidates = [m for m in models if m.enabled]
        if providers:
            candidates = [m for m in candidates if m.provider in providers]
        if model_ids:
            candidates = [m for m in candidates if m.id in model_ids]
        if not candidates:
            raise ConfigurationError("No enabled models available with the specified filters")

        self._models: tuple[ModelConfig, ...] = tuple(candidates)
        self._by_id = {m.id: m for m in self._models}
        self._tracker = tracker
        self._selector = ModelSelector(strategy, rng=rng)
        self._auto_fallback = auto_fallback

        logger.info(
            "ModelRouter initialized with %d models: %s",
            len(self._models),
            ", ".join(m.label for m in self._models),
        )

    @classmethod
    def from_config(
        cls,
        config: RouterConfig,
        tracker: UsageTracker,
        rng: random.Random | None = None,
    ) -> "ModelRouter":
        """Construct from a RouterConfig."""
        return cls(
            config.models,
            tracker,
            strategy=config.strategy,
            auto_fallback=config.auto_fallback,
            providers=config.providers,
            model_ids=config.model_ids,
            rng=rng,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def tracker(self) -> UsageTracker:
        return self._tracker

    @property
    def strategy(self) -> str:
        return self._selector.strategy

    @property
    def auto_fallback(self) -> bool:
        return self._auto_fallback

    @property
    def models(self) -> list[ModelConfig]:
        return list(self._models)

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def next_model(self, messages: Sequence[dict[str, Any]] = ()) -> RouteResult:
        """
        Select and admit the next model for *messages*.

        Raises
        ------
        RateLimitedError
            The chosen model was rejected and auto-fallback is disabled.
        AllModelsExhaustedError
            Every candidate was rejected; carries one reason per candidate.
        """
        estimated = estimate_tokens(messages)
        skipped: list[SkippedModel] = []
        tried: set[str] = set()

        for _ in range(len(self._models)):
            model = self._selector.select(self._models, exclude=tried)
            decision = self._tracker.try_admit(model, estimated)

            if decision.allowed:
                self._selector.record_use(model.id)
                if skipped:
                    logger.info(
                        "Using %s (skipped %d models: %s)",
                        model.label,
                        len(skipped),
                        "; ".join(str(s) for s in skipped),
                    )
                return RouteResult(model=model, skipped=skipped, estimated_tokens=estimated)

            reason = decision.reason or "rate limited"
            if not self._auto_fallback:
                raise RateLimitedError(model.id, reason)

            tried.add(model.id)
            skipped.append(SkippedModel(model_id=model.id, provider=model.provider, reason=reason))
            logger.debug("Skipping %s: %s", model.label, reason)

        logger.warning("All %d models rate limited", len(skipped))
        raise AllModelsExhaustedError(skipped)

    def select_model(self, model_id: str, messages: Sequence[dict[str, Any]] = ()) -> RouteResult:
        """
        Admit an explicitly requested model, bypassing the rotation.

        Raises ModelNotFoundError for an id outside the candidate set and
        RateLimitedError if the model is not admitted. No fallback is tried.
        """
        model = self._by_id.get(model_id)
        if model is None:
            raise ModelNotFoundError(model_id)

        estimated = estimate_tokens(messages)
        decision = self._tracker.try_admit(model, estimated)
        if not decision.allowed:
            raise RateLimitedError(model.id, decision.reason or "rate limited")

        self._selector.record_use(model.id)
        return RouteResult(model=model, estimated_tokens=estimated)

    def route(
        self,
        messages: Sequence[dict[str, Any]] = (),
        model_id: str | None = None,
    ) -> RouteResult:
        """Explicit selection when *model_id* is given, rotation otherwise."""
        if model_id:
            return self.select_model(model_id, messages)
        return self.next_model(messages)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_model(self, model_id: str) -> ModelConfig | None:
        return self._by_id.get(model_id)

    def available_models(self, estimated_tokens: int = 0) -> list[ModelConfig]:
        """Models that would be admitted right now. Does not charge anything."""
        return [m for m in self._models if self._tracker.admit(m, estimated_tokens).allowed]

    def status(self) -> list[dict[str, Any]]:
        """Availability, remaining capacity and rate-limit info for every candidate."""
        result = []
        for model in self._models:
            decision = self._tracker.admit(model)
            result.append(
                {
                    "model": model,
                    "available": decision.allowed,
                    "reason": decision.reason,
                    "remaining": self._tracker.remaining_capacity(model),
                    "rate_limit": self._tracker.rate_limit_info(model),
                    "usage_count": self._selector.usage_count(model.id),
                }
            )
        return result

    def usage_count(self, model_id: str) -> int:
        return self._selector.usage_count(model_id)

    # ------------------------------------------------------------------
    # Runtime controls
    # ------------------------------------------------------------------

    def set_strategy(self, strategy: str) -> None:
        """Switch rotation strategy; cursor and usage counters are kept."""
        self._selector.set_strategy(strategy)
        logger.info("Rotation strategy changed to: %s", strategy)

    def reset_usage_count(self) -> None:
        """Clear the least-used counters."""
        self._selector.reset_usage()
