# llm_rotator/state/budget.py
"""
Per-model rate budget state.

RateBudget is the mutable runtime twin of a ModelConfig's limits. Groq and
Cerebras report their limits in different shapes (Groq: Go-style durations
until reset; Cerebras: seconds until reset, per-day / per-minute headers),
but both are normalized at the parsing boundary into a RateSnapshot whose
reset fields are absolute instants on the tracker clock. The budget only
ever stores those normalized instants, so the admission algorithm does not
need to know which provider it is looking at.

Time values are epoch seconds (float) unless stated otherwise.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime

from ..models import ModelConfig, ProviderName, Window


def local_day(ts: float) -> date:
    """Calendar day of *ts* in local time."""
    return datetime.fromtimestamp(ts).date()


def format_duration(seconds: float) -> str:
    """Render a wait time the way status surfaces show it: 45s, 12m 5s, 3h 20m."""
    if not math.isfinite(seconds):
        return "unknown"
    seconds = max(0, math.ceil(seconds))
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


@dataclass(frozen=True)
class RateSnapshot:
    """
    Authoritative rate-limit values reported by a provider for one call.

    Every field is optional: a provider only overwrites what it reported.
    Reset fields are absolute instants, already normalized from whatever
    encoding the provider used.
    """

    remaining_requests: int | None = None
    remaining_tokens: int | None = None
    limit_requests: int | None = None
    limit_tokens: int | None = None
    reset_requests_at: float | None = None
    reset_tokens_at: float | None = None
    retry_after_until: float | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, f) is None for f in self.__dataclass_fields__)


@dataclass
class RateBudget:
    """
    Remaining / total allowance for one model, plus local daily counters.

    ``remaining_*`` is None when the dimension is not tracked for this model
    (no configured limit and nothing reported by the provider yet).
    The stored token counter may dip below zero after an optimistic
    decrement; anything <= 0 still blocks admission.
    """

    provider: ProviderName
    request_window: Window
    token_window: Window
    remaining_requests: int | None
    remaining_tokens: int | None
    limit_requests: int | None
    limit_tokens: int | None
    reset_requests_at: float | None = None
    reset_tokens_at: float | None = None
    retry_after_until: float | None = None
    last_updated: float = 0.0
    requests_today: int = 0
    tokens_today: int = 0
    day_start: date = field(default_factory=date.today)

    @classmethod
    def seed(cls, model: ModelConfig, today: date) -> "RateBudget":
        """Initial state from configured limits, used until the first authoritative update."""
        limit_requests, request_window = model.limits.request_budget()
        limit_tokens, token_window = model.limits.token_budget()
        return cls(
            provider=model.provider,
            request_window=request_window,
            token_window=token_window,
            remaining_requests=limit_requests,
            remaining_tokens=limit_tokens,
            limit_requests=limit_requests,
            limit_tokens=limit_tokens,
            day_start=today,
        )

    # ------------------------------------------------------------------
    # Window views
    # ------------------------------------------------------------------

    def requests_available(self, now: float) -> int | None:
        """Remaining requests, counting an elapsed window as replenished."""
        if self.reset_requests_at is not None and self.reset_requests_at <= now:
            return self.limit_requests
        return self.remaining_requests

    def tokens_available(self, now: float) -> int | None:
        """Remaining tokens, counting an elapsed window as replenished."""
        if self.reset_tokens_at is not None and self.reset_tokens_at <= now:
            return self.limit_tokens
        return self.remaining_tokens

    def replenish_elapsed(self, now: float) -> None:
        """Materialize the replenishment of any window whose reset instant has passed."""
        if self.reset_requests_at is not None and self.reset_requests_at <= now:
            self.remaining_requests = self.limit_requests
            self.reset_requests_at = None
        if self.reset_tokens_at is not None and self.reset_tokens_at <= now:
            self.remaining_tokens = self.limit_tokens
            self.reset_tokens_at = None
        if self.retry_after_until is not None and self.retry_after_until <= now:
            self.retry_after_until = None

    def apply(self, snapshot: RateSnapshot, now: float) -> None:
        """Overwrite every field the snapshot carries. Last authoritative write wins."""
        if snapshot.remaining_requests is not None:
            self.remaining_requests = snapshot.remaining_requests
        if snapshot.remaining_tokens is not None:
            self.remaining_tokens = snapshot.remaining_tokens
        if snapshot.limit_requests is not None:
            self.limit_requests = snapshot.limit_requests
        if snapshot.limit_tokens is not None:
            self.limit_tokens = snapshot.limit_tokens
        if snapshot.reset_requests_at is not None:
            self.reset_requests_at = snapshot.reset_requests_at
        if snapshot.reset_tokens_at is not None:
            self.reset_tokens_at = snapshot.reset_tokens_at
        if snapshot.retry_after_until is not None:
            self.retry_after_until = snapshot.retry_after_until
        self.last_updated = now
