# llm_rotator/exceptions.py
"""
Custom exceptions for llm-rotator.

All public exceptions inherit from RotatorError so callers can catch
the whole family with a single except clause if preferred.

None of these are retried by the router itself. Mapping them onto a
transport response (404 for ModelNotFoundError, 429 for the two rate-limit
errors) is the caller's job.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SkippedModel


class RotatorError(Exception):
    """Base exception for all rotator errors."""


class ConfigurationError(RotatorError):
    """
    Raised at construction time when the configuration cannot produce a
    working router, e.g. no enabled model survives the provider / id filters.
    """


class ModelNotFoundError(RotatorError):
    """Raised when an explicitly requested model id is not in the candidate set."""

    def __init__(self, model_id: str) -> None:
        self.model_id = model_id
        super().__init__(f'Model "{model_id}" not found')


class ProviderNotFoundError(RotatorError):
    """Raised when no adapter is registered for a model's provider."""

    def __init__(self, provider: str, available: list[str]) -> None:
        self.provider = provider
        self.available = available
        super().__init__(
            f'Provider "{provider}" not found. Available: {", ".join(available) or "none"}'
        )


class RateLimitedError(RotatorError):
    """
    Raised when a single model is rejected and no fallback is attempted:
    auto-fallback is disabled, or the model was requested explicitly.

    Attributes
    ----------
    model_id:
        The rejected model.
    reason:
        Which budget dimension blocked it and how long until it resets.
    """

    def __init__(self, model_id: str, reason: str) -> None:
        self.model_id = model_id
        self.reason = reason
        super().__init__(f"Model {model_id} rate limited: {reason}")


class AllModelsExhaustedError(RotatorError):
    """
    Raised when every candidate was rejected during the fallback search.

    Attributes
    ----------
    skipped:
        One entry per candidate, in the order they were tried, each with
        its own rejection reason.
    """

    def __init__(self, skipped: list["SkippedModel"]) -> None:
        self.skipped = list(skipped)
        lines = "\n".join(str(s) for s in self.skipped)
        super().__init__(f"All models rate limited:\n{lines}")

    @property
    def reasons(self) -> list[str]:
        return [str(s) for s in self.skipped]
