# llm_rotator/state/tracker.py
"""
UsageTracker: per-model rate budgets, admission control and usage history.

Budgets are fed from two directions:

  - optimistically, by record_admission() at the moment a request is
    dispatched, so a burst of concurrent requests cannot all be admitted
    against the same stale budget;
  - authoritatively, by reconcile() with the limits a provider reported for
    a call. Authoritative values always overwrite the optimistic trail.

Concurrency
-----------
Each model entry has its own threading.Lock. try_admit() performs the
read-check-decrement sequence inside that lock, so two concurrent callers
can never both spend the last unit of a budget. Nothing here awaits, which
keeps the critical sections safe to enter from threads and from coroutines
alike. The history log has a separate lock.

All state is process memory and is lost on restart.
"""

from __future__ import annotations

import copy
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from ..constants import HISTORY_SIZE, WINDOW_SECONDS
from ..exceptions import ConfigurationError
from ..models import (
    ModelConfig,
    ProviderName,
    RateLimitInfo,
    RemainingCapacity,
    UsageRecord,
)
from .budget import RateBudget, RateSnapshot, format_duration, local_day

logger = logging.getLogger(__name__)

_REQUEST_LABELS = {
    "day": "Daily requests exhausted",
    "hour": "Hourly requests exhausted",
    "minute": "Per-minute requests exhausted",
}
_TOKEN_LABELS = {
    "minute": "Token limit (TPM)",
    "hour": "Token limit (TPH)",
    "day": "Token limit (TPD)",
}


@dataclass(frozen=True)
class AdmissionDecision:
    """Result of an admission check."""

    allowed: bool
    reason: str | None = None


class UsageTracker:
    """
    Owns one RateBudget per model, created lazily on first access.

    Parameters
    ----------
    history_size:
        Usage records kept before the log is compacted to its newest half.
    clock:
        Returns the current time as epoch seconds. Injectable for tests.
    """

    def __init__(
        self,
        history_size: int = HISTORY_SIZE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if history_size < 2:
            raise ConfigurationError(f"history_size must be at least 2, got {history_size}")
        self._clock = clock
        self._history_size = history_size
        self._budgets: dict[str, RateBudget] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._entries_lock = threading.Lock()
        self._history: list[UsageRecord] = []
        self._history_lock = threading.Lock()

    def now(self) -> float:
        """Current time according to the tracker's clock."""
        return self._clock()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _lock_for(self, model: ModelConfig) -> threading.Lock:
        with self._entries_lock:
            lock = self._locks.get(model.id)
            if lock is None:
                lock = self._locks[model.id] = threading.Lock()
            return lock

    def _budget(self, model: ModelConfig, now: float) -> RateBudget:
        """Get or create the budget for *model*. Caller holds the model lock."""
        today = local_day(now)
        budget = self._budgets.get(model.id)
        if budget is None:
            budget = self._budgets[model.id] = RateBudget.seed(model, today)

        if budget.day_start != today:
            budget.requests_today = 0
            budget.tokens_today = 0
            budget.day_start = today

        return budget

    @staticmethod
    def _check(budget: RateBudget, estimated_tokens: int, now: float) -> AdmissionDecision:
        if budget.retry_after_until is not None and budget.retry_after_until > now:
            wait = format_duration(budget.retry_after_until - now)
            return AdmissionDecision(False, f"Rate limited: retry after {wait}")

        requests = budget.requests_available(now)
        if requests is not None and requests <= 0:
            label = _REQUEST_LABELS[budget.request_window]
            if budget.reset_requests_at is None:
                return AdmissionDecision(False, f"{label}: reset time unknown")
            wait = format_duration(budget.reset_requests_at - now)
            return AdmissionDecision(False, f"{label}: reset in {wait}")

        tokens = budget.tokens_available(now)
        if tokens is not None and tokens < estimated_tokens:
            label = _TOKEN_LABELS[budget.token_window]
            if budget.reset_tokens_at is not None:
                wait = format_duration(budget.reset_tokens_at - now)
                return AdmissionDecision(False, f"{label}: reset in {wait}")
            if tokens <= 0:
                return AdmissionDecision(False, f"{label}: reset time unknown")

        return AdmissionDecision(True)

    @staticmethod
    def _charge(budget: RateBudget, estimated_tokens: int, now: float) -> None:
        budget.replenish_elapsed(now)

        if budget.remaining_requests is not None:
            if budget.reset_requests_at is None:
                budget.reset_requests_at = now + WINDOW_SECONDS[budget.request_window]
            budget.remaining_requests = max(0, budget.remaining_requests - 1)

        if budget.remaining_tokens is not None and estimated_tokens > 0:
            if budget.reset_tokens_at is None:
                budget.reset_tokens_at = now + WINDOW_SECONDS[budget.token_window]
            # At most one step below zero; admission treats <= 0 as exhausted.
            if budget.remaining_tokens > 0:
                budget.remaining_tokens -= estimated_tokens

        budget.requests_today += 1
        budget.tokens_today += estimated_tokens

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def admit(self, model: ModelConfig, estimated_tokens: int = 0) -> AdmissionDecision:
        """
        Decide whether *model* can take a request of *estimated_tokens* now.

        Check order: explicit retry-after cooldown, request budget, token
        budget. A window whose reset instant has passed counts as
        replenished even if the stored counter is still exhausted.
        """
        now = self._clock()
        with self._lock_for(model):
            budget = self._budget(model, now)
            return self._check(budget, estimated_tokens, now)

    def record_admission(self, model: ModelConfig, estimated_tokens: int = 0) -> None:
        """Optimistically charge one request and *estimated_tokens* to *model*."""
        now = self._clock()
        with self._lock_for(model):
            budget = self._budget(model, now)
            self._charge(budget, estimated_tokens, now)

    def try_admit(self, model: ModelConfig, estimated_tokens: int = 0) -> AdmissionDecision:
        """admit() and, if allowed, record_admission() as one critical section."""
        now = self._clock()
        with self._lock_for(model):
            budget = self._budget(model, now)
            decision = self._check(budget, estimated_tokens, now)
            if decision.allowed:
                self._charge(budget, estimated_tokens, now)
            return decision

    # ------------------------------------------------------------------
    # Authoritative updates
    # ------------------------------------------------------------------

    def reconcile(self, model: ModelConfig, snapshot: RateSnapshot | None) -> bool:
        """
        Overwrite *model*'s budget with provider-reported values.

        Never raises: a missing snapshot or an internal failure is logged and
        leaves the previous state untouched. Returns True if state changed.
        """
        if snapshot is None or snapshot.is_empty():
            logger.debug("No rate-limit data for %s; keeping previous state", model.label)
            return False
        try:
            now = self._clock()
            with self._lock_for(model):
                budget = self._budget(model, now)
                budget.apply(snapshot, now)
        except Exception as exc:  # pragma: no cover
            logger.warning("Failed to reconcile rate limits for %s: %s", model.label, exc)
            return False
        logger.debug("Reconciled %s: %s", model.label, snapshot)
        return True

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def record_completion(
        self,
        model: ModelConfig,
        input_tokens: int,
        output_tokens: int,
    ) -> UsageRecord:
        """Append a usage record. Does not touch admission state."""
        record = UsageRecord(
            model_id=model.id,
            provider=model.provider,
            timestamp=self._clock(),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )
        with self._history_lock:
            self._history.append(record)
            if len(self._history) > self._history_size:
                self._history = self._history[-max(1, self._history_size // 2):]
        return record

    def history(
        self,
        model_id: str | None = None,
        provider: ProviderName | None = None,
        since: float | None = None,
        limit: int | None = None,
    ) -> list[UsageRecord]:
        """Return usage records, oldest first, optionally filtered."""
        with self._history_lock:
            records = list(self._history)
        if model_id:
            records = [r for r in records if r.model_id == model_id]
        if provider:
            records = [r for r in records if r.provider == provider]
        if since is not None:
            records = [r for r in records if r.timestamp >= since]
        if limit is not None:
            if limit < 0:
                raise ValueError(f"limit must be >= 0, got {limit}")
            records = records[-limit:] if limit else []
        return records

    # ------------------------------------------------------------------
    # Read-only projections
    # ------------------------------------------------------------------

    def usage_stats(self, model_id: str) -> RateBudget | None:
        """Copy of the stored budget for *model_id*, or None if never accessed."""
        with self._entries_lock:
            lock = self._locks.get(model_id)
        if lock is None:
            return None
        with lock:
            budget = self._budgets.get(model_id)
            return copy.copy(budget) if budget is not None else None

    def remaining_capacity(self, model: ModelConfig) -> RemainingCapacity:
        now = self._clock()
        with self._lock_for(model):
            budget = self._budget(model, now)
            requests = budget.requests_available(now)
            tokens = budget.tokens_available(now)
            return RemainingCapacity(
                requests=max(0, requests) if requests is not None else None,
                tokens=max(0, tokens) if tokens is not None else None,
                requests_reset_at=_future_or_none(budget.reset_requests_at, now),
                tokens_reset_at=_future_or_none(budget.reset_tokens_at, now),
            )

    def rate_limit_info(self, model: ModelConfig) -> RateLimitInfo:
        now = self._clock()
        with self._lock_for(model):
            budget = self._budget(model, now)
            requests = budget.requests_available(now)
            tokens = budget.tokens_available(now)
            requests_in = _seconds_until(budget.reset_requests_at, now)
            tokens_in = _seconds_until(budget.reset_tokens_at, now)
            req_text = format_duration(requests_in) if requests_in > 0 else "now"
            tok_text = format_duration(tokens_in) if tokens_in > 0 else "now"
            return RateLimitInfo(
                provider=budget.provider,
                remaining_requests=max(0, requests) if requests is not None else None,
                remaining_tokens=max(0, tokens) if tokens is not None else None,
                limit_requests=budget.limit_requests,
                limit_tokens=budget.limit_tokens,
                requests_reset_in=requests_in,
                tokens_reset_in=tokens_in,
                reset_info=f"Requests reset: {req_text}, Tokens reset: {tok_text}",
                last_updated=budget.last_updated,
                requests_today=budget.requests_today,
                tokens_today=budget.tokens_today,
            )


def _future_or_none(instant: float | None, now: float) -> float | None:
    if instant is None or instant <= now:
        return None
    return instant


def _seconds_until(instant: float | None, now: float) -> float:
    if instant is None:
        return 0.0
    return max(0.0, instant - now)
