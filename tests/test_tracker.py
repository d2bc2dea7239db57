# tests/test_tracker.py
"""
Tests for UsageTracker.

Verifies:
  - Budget seeding from configured limits.
  - Optimistic decrement and admission reasons per dimension.
  - Window replenishment once a reset instant has passed.
  - Authoritative reconciliation overriding the optimistic trail.
  - Retry-after cooldowns.
  - Usage history filters and compaction.
  - Concurrent admission never over-admits.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from conftest import make_model
from llm_rotator.exceptions import ConfigurationError
from llm_rotator.state.budget import RateSnapshot, format_duration
from llm_rotator.state.tracker import UsageTracker


class TestAdmission:
    def test_fresh_model_is_admitted(self, tracker):
        model = make_model("m", requests_per_day=1)
        assert tracker.admit(model).allowed

    def test_model_without_limits_is_always_admitted(self, tracker):
        model = make_model("free")
        for _ in range(100):
            assert tracker.try_admit(model, 10_000).allowed

    def test_admit_does_not_charge(self, tracker):
        model = make_model("m", requests_per_day=1)
        for _ in range(5):
            assert tracker.admit(model).allowed
        assert tracker.usage_stats("m").remaining_requests == 1

    def test_daily_request_budget_exhausts(self, tracker):
        model = make_model("m", requests_per_day=1)
        assert tracker.try_admit(model).allowed

        decision = tracker.admit(model)
        assert not decision.allowed
        assert decision.reason == "Daily requests exhausted: reset in 24h 0m"

    def test_per_minute_reason(self, tracker):
        model = make_model("m", requests_per_minute=1)
        tracker.try_admit(model)
        decision = tracker.admit(model)
        assert decision.reason == "Per-minute requests exhausted: reset in 1m 0s"

    def test_hourly_reason(self, tracker):
        model = make_model("m", requests_per_minute=10, requests_per_hour=1)
        tracker.try_admit(model)
        decision = tracker.admit(model)
        assert decision.reason.startswith("Hourly requests exhausted: reset in")

    def test_request_counter_floors_at_zero(self, tracker):
        model = make_model("m", requests_per_day=1)
        tracker.record_admission(model)
        tracker.record_admission(model)
        tracker.record_admission(model)
        assert tracker.usage_stats("m").remaining_requests == 0

    def test_token_budget_blocks_large_request(self, tracker):
        model = make_model("m", tokens_per_minute=1_000)
        assert tracker.try_admit(model, 600).allowed

        decision = tracker.admit(model, 600)
        assert not decision.allowed
        assert decision.reason == "Token limit (TPM): reset in 1m 0s"
        # A smaller request still fits.
        assert tracker.admit(model, 400).allowed

    def test_token_counter_goes_at_most_one_step_negative(self, tracker):
        model = make_model("m", tokens_per_minute=100)
        tracker.record_admission(model, 150)
        tracker.record_admission(model, 150)
        assert tracker.usage_stats("m").remaining_tokens == -50

    def test_remaining_capacity_is_floored_for_display(self, tracker):
        model = make_model("m", tokens_per_minute=100)
        tracker.record_admission(model, 150)
        capacity = tracker.remaining_capacity(model)
        assert capacity.tokens == 0
        assert capacity.requests is None

    def test_zero_estimate_does_not_touch_tokens(self, tracker):
        model = make_model("m", tokens_per_minute=100)
        tracker.try_admit(model, 0)
        stats = tracker.usage_stats("m")
        assert stats.remaining_tokens == 100
        assert stats.reset_tokens_at is None


class TestReplenishment:
    def test_elapsed_window_counts_as_replenished(self, tracker, clock):
        model = make_model("m", requests_per_minute=1)
        assert tracker.try_admit(model).allowed
        assert not tracker.admit(model).allowed

        clock.advance(60)
        assert tracker.admit(model).allowed
        # Read-only check leaves the stored counter alone.
        assert tracker.usage_stats("m").remaining_requests == 0

    def test_charge_after_reset_starts_new_window(self, tracker, clock):
        model = make_model("m", requests_per_minute=2)
        tracker.try_admit(model)
        clock.advance(61)
        assert tracker.try_admit(model).allowed

        stats = tracker.usage_stats("m")
        assert stats.remaining_requests == 1
        assert stats.reset_requests_at == clock.now + 60

    def test_token_window_replenishes(self, tracker, clock):
        model = make_model("m", tokens_per_minute=100)
        tracker.try_admit(model, 100)
        assert not tracker.admit(model, 50).allowed
        clock.advance(60)
        assert tracker.admit(model, 50).allowed

    def test_daily_counters_roll_over(self, tracker, clock):
        model = make_model("m", requests_per_day=100)
        tracker.try_admit(model, 10)
        tracker.try_admit(model, 10)
        info = tracker.rate_limit_info(model)
        assert info.requests_today == 2
        assert info.tokens_today == 20

        clock.advance(86_400)
        info = tracker.rate_limit_info(model)
        assert info.requests_today == 0
        assert info.tokens_today == 0


class TestReconcile:
    def test_authoritative_values_overwrite_optimistic_state(self, tracker, clock):
        model = make_model("m", requests_per_day=1_000)
        for _ in range(3):
            tracker.try_admit(model)
        assert tracker.usage_stats("m").remaining_requests == 997

        changed = tracker.reconcile(
            model, RateSnapshot(remaining_requests=500, reset_requests_at=clock.now + 100)
        )
        assert changed
        stats = tracker.usage_stats("m")
        assert stats.remaining_requests == 500
        assert stats.reset_requests_at == clock.now + 100
        assert stats.last_updated == clock.now

        tracker.try_admit(model)
        assert tracker.usage_stats("m").remaining_requests == 499

    def test_reported_exhaustion_blocks_admission(self, tracker, clock):
        model = make_model("m", requests_per_day=1_000)
        tracker.reconcile(model, RateSnapshot(remaining_requests=0, reset_requests_at=clock.now + 30))
        decision = tracker.admit(model)
        assert not decision.allowed
        assert decision.reason == "Daily requests exhausted: reset in 30s"

    def test_exhaustion_with_unknown_reset(self, tracker):
        model = make_model("m")
        tracker.reconcile(model, RateSnapshot(remaining_requests=0))
        decision = tracker.admit(model)
        assert not decision.allowed
        assert decision.reason.endswith("reset time unknown")

    def test_reconcile_updates_limits(self, tracker, clock):
        model = make_model("m", tokens_per_minute=100)
        tracker.reconcile(
            model,
            RateSnapshot(remaining_tokens=0, limit_tokens=5_000, reset_tokens_at=clock.now + 10),
        )
        assert tracker.remaining_capacity(model).tokens == 0
        clock.advance(10)
        assert tracker.remaining_capacity(model).tokens == 5_000

    def test_missing_snapshot_keeps_state(self, tracker):
        model = make_model("m", requests_per_day=10)
        tracker.try_admit(model)
        assert tracker.reconcile(model, None) is False
        assert tracker.reconcile(model, RateSnapshot()) is False
        assert tracker.usage_stats("m").remaining_requests == 9

    def test_retry_after_blocks_until_elapsed(self, tracker, clock):
        model = make_model("m", requests_per_day=10)
        tracker.reconcile(model, RateSnapshot(retry_after_until=clock.now + 5))

        decision = tracker.admit(model)
        assert not decision.allowed
        assert decision.reason == "Rate limited: retry after 5s"

        clock.advance(5)
        assert tracker.admit(model).allowed


class TestHistory:
    def test_record_completion(self, tracker, clock):
        model = make_model("m", provider="cerebras")
        record = tracker.record_completion(model, 12, 34)
        assert record.model_id == "m"
        assert record.provider == "cerebras"
        assert record.timestamp == clock.now
        assert (record.input_tokens, record.output_tokens) == (12, 34)
        assert tracker.history() == [record]

    def test_completion_does_not_touch_budget(self, tracker):
        model = make_model("m", requests_per_day=10, tokens_per_minute=1_000)
        tracker.try_admit(model, 100)
        tracker.record_completion(model, 500, 500)
        stats = tracker.usage_stats("m")
        assert stats.remaining_requests == 9
        assert stats.remaining_tokens == 900

    def test_filters(self, tracker, clock):
        a = make_model("a")
        b = make_model("b", provider="cerebras")
        tracker.record_completion(a, 1, 1)
        clock.advance(10)
        tracker.record_completion(b, 2, 2)
        since = clock.now
        clock.advance(10)
        tracker.record_completion(a, 3, 3)

        assert [r.input_tokens for r in tracker.history(model_id="a")] == [1, 3]
        assert [r.input_tokens for r in tracker.history(provider="cerebras")] == [2]
        assert [r.input_tokens for r in tracker.history(since=since)] == [2, 3]
        assert [r.input_tokens for r in tracker.history(limit=1)] == [3]

    def test_compaction_keeps_newest_half(self, clock):
        tracker = UsageTracker(history_size=4, clock=clock)
        model = make_model("m")
        for i in range(5):
            tracker.record_completion(model, i, 0)
        assert [r.input_tokens for r in tracker.history()] == [3, 4]

    def test_smallest_log_stays_bounded(self, clock):
        tracker = UsageTracker(history_size=2, clock=clock)
        model = make_model("m")
        for i in range(50):
            tracker.record_completion(model, i, 0)
        assert len(tracker.history()) <= 2
        assert tracker.history()[-1].input_tokens == 49

    @pytest.mark.parametrize("size", [1, 0, -5])
    def test_history_size_below_two_is_rejected(self, clock, size):
        with pytest.raises(ConfigurationError):
            UsageTracker(history_size=size, clock=clock)

    def test_limit_zero_returns_nothing(self, tracker):
        model = make_model("m")
        tracker.record_completion(model, 1, 1)
        assert tracker.history(limit=0) == []

    def test_negative_limit_is_rejected(self, tracker):
        tracker.record_completion(make_model("m"), 1, 1)
        with pytest.raises(ValueError):
            tracker.history(limit=-1)


class TestProjections:
    def test_usage_stats_unknown_model(self, tracker):
        assert tracker.usage_stats("nope") is None

    def test_usage_stats_returns_copy(self, tracker):
        model = make_model("m", requests_per_day=10)
        tracker.try_admit(model)
        stats = tracker.usage_stats("m")
        stats.remaining_requests = 0
        assert tracker.usage_stats("m").remaining_requests == 9

    def test_rate_limit_info(self, tracker, clock):
        model = make_model("m", requests_per_day=10, tokens_per_minute=1_000)
        info = tracker.rate_limit_info(model)
        assert info.reset_info == "Requests reset: now, Tokens reset: now"

        tracker.try_admit(model, 100)
        info = tracker.rate_limit_info(model)
        assert info.remaining_requests == 9
        assert info.remaining_tokens == 900
        assert info.limit_requests == 10
        assert info.limit_tokens == 1_000
        assert info.tokens_reset_in == 60
        assert info.reset_info == "Requests reset: 24h 0m, Tokens reset: 1m 0s"


class TestConcurrency:
    def test_concurrent_admission_never_over_admits(self, tracker):
        model = make_model("m", requests_per_minute=50)
        with ThreadPoolExecutor(max_workers=16) as pool:
            decisions = list(pool.map(lambda _: tracker.try_admit(model), range(200)))
        assert sum(d.allowed for d in decisions) == 50
        assert tracker.usage_stats("m").remaining_requests == 0


@pytest.mark.parametrize(
    "seconds,expected",
    [
        (0, "0s"),
        (0.2, "1s"),
        (45, "45s"),
        (725, "12m 5s"),
        (12_000, "3h 20m"),
        (float("inf"), "unknown"),
        (float("nan"), "unknown"),
    ],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected
