# tests/conftest.py
"""
Shared pytest fixtures for llm-rotator tests.
"""

from __future__ import annotations

from typing import Any

import pytest

from llm_rotator.models import ModelConfig
from llm_rotator.state.tracker import UsageTracker

START = 1_700_000_000.0


class FakeClock:
    """Manually advanced clock, callable like time.time."""

    def __init__(self, start: float = START) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_model(model_id: str, provider: str = "groq", **limits: Any) -> ModelConfig:
    return ModelConfig(id=model_id, name=model_id, provider=provider, limits=limits)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tracker(clock):
    return UsageTracker(clock=clock)


@pytest.fixture
def daily_models():
    """Two models that each allow a single request per day."""
    return [
        make_model("model-a", requests_per_day=1),
        make_model("model-b", provider="cerebras", requests_per_day=1),
    ]


@pytest.fixture
def roomy_models():
    """Three models with plenty of headroom."""
    return [
        make_model("alpha", requests_per_minute=1_000, tokens_per_minute=1_000_000),
        make_model("beta", requests_per_minute=1_000, tokens_per_minute=1_000_000),
        make_model("gamma", provider="cerebras", requests_per_minute=1_000, tokens_per_minute=1_000_000),
    ]
