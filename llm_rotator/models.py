# llm_rotator/models.py
"""
Pydantic v2 data models used throughout llm-rotator.

Static configuration (ModelConfig and its parts) is frozen once loaded: the
router and the tracker hold references to these objects and never mutate
them. Runtime budget state lives in state/budget.py instead.
"""

from __future__ import annotations

import time
from typing import Any, Literal

from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    DEFAULT_TOP_P,
)

ProviderName = Literal["groq", "cerebras"]
Window = Literal["minute", "hour", "day"]


class ModelLimits(BaseModel):
    """
    Configured rate limits for one model.

    Groq publishes RPM, RPD, TPM and TPD; Cerebras additionally publishes
    hourly limits. Any field may be left unset.
    """

    model_config = {"frozen": True}

    requests_per_minute: int | None = Field(default=None, gt=0)
    requests_per_hour: int | None = Field(default=None, gt=0)
    requests_per_day: int | None = Field(default=None, gt=0)
    tokens_per_minute: int | None = Field(default=None, gt=0)
    tokens_per_hour: int | None = Field(default=None, gt=0)
    tokens_per_day: int | None = Field(default=None, gt=0)

    def request_budget(self) -> tuple[int | None, Window]:
        """Limit and window of the request budget (the widest configured window)."""
        for limit, window in (
            (self.requests_per_day, "day"),
            (self.requests_per_hour, "hour"),
            (self.requests_per_minute, "minute"),
        ):
            if limit is not None:
                return limit, window
        return None, "day"

    def token_budget(self) -> tuple[int | None, Window]:
        """Limit and window of the token budget (the narrowest configured window)."""
        for limit, window in (
            (self.tokens_per_minute, "minute"),
            (self.tokens_per_hour, "hour"),
            (self.tokens_per_day, "day"),
        ):
            if limit is not None:
                return limit, window
        return None, "minute"


class GenerationDefaults(BaseModel):
    """Default sampling parameters sent with every request to a model."""

    model_config = {"frozen": True}

    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)


class ModelConfig(BaseModel):
    """
    Configuration for a single backend model.

    Used when constructing a RouterConfig via from_dict / from_yaml / from_env,
    or taken from the built-in catalog.
    """

    model_config = {"frozen": True}

    id: str = Field(..., description="Model identifier as used by the provider API.")
    name: str = Field(default="", description="Human-readable name.")
    provider: ProviderName = Field(..., description="Provider that serves this model.")
    enabled: bool = Field(default=True, description="Toggle without removing from config.")
    limits: ModelLimits = Field(default_factory=ModelLimits)
    defaults: GenerationDefaults = Field(default_factory=GenerationDefaults)

    @property
    def label(self) -> str:
        return f"{self.provider}/{self.id}"

    def generation_params(self) -> dict[str, Any]:
        """Sampling parameters with provider defaults filled in."""
        return {
            "temperature": self.defaults.temperature
            if self.defaults.temperature is not None
            else DEFAULT_TEMPERATURE,
            "max_completion_tokens": self.defaults.max_tokens
            or DEFAULT_MAX_TOKENS[self.provider],
            "top_p": self.defaults.top_p
            if self.defaults.top_p is not None
            else DEFAULT_TOP_P[self.provider],
        }


class UsageRecord(BaseModel):
    """One completed generation. Kept for analytics, never used for admission."""

    model_config = {"frozen": True}

    model_id: str
    provider: ProviderName
    timestamp: float = Field(default_factory=time.time)
    input_tokens: int = 0
    output_tokens: int = 0


class CompletionUsage(BaseModel):
    """Final token counts reported once a stream has been fully drained."""

    input_tokens: int = 0
    output_tokens: int = 0


class SkippedModel(BaseModel):
    """A candidate rejected during the fallback search."""

    model_id: str
    provider: ProviderName
    reason: str

    def __str__(self) -> str:
        return f"{self.provider}/{self.model_id}: {self.reason}"


class RouteResult(BaseModel):
    """The outcome of a successful routing decision."""

    model: ModelConfig
    skipped: list[SkippedModel] = Field(default_factory=list)
    estimated_tokens: int = 0


class RemainingCapacity(BaseModel):
    """Remaining budget for a model; reset instants are epoch seconds."""

    requests: int | None
    tokens: int | None
    requests_reset_at: float | None = None
    tokens_reset_at: float | None = None


class RateLimitInfo(BaseModel):
    """Display-oriented rate-limit view for status surfaces."""

    provider: ProviderName
    remaining_requests: int | None
    remaining_tokens: int | None
    limit_requests: int | None
    limit_tokens: int | None
    requests_reset_in: float = Field(description="Seconds until the request window resets.")
    tokens_reset_in: float = Field(description="Seconds until the token window resets.")
    reset_info: str
    last_updated: float
    requests_today: int
    tokens_today: int
