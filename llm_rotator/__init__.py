# llm_rotator/__init__.py
"""
llm-rotator: rate-limit-aware rotation across free-tier LLM models.

Public API surface:
  RotatorClient          - main class; call chat() and stream the answer
  ModelRouter            - picks one admitted model per request, with fallback
  UsageTracker           - per-model rate budgets, admission and usage history
  ModelSelector          - round-robin / random / least-used candidate choice
  RouterConfig           - top-level configuration model
  ModelConfig            - one backend model with its limits and defaults
  ModelLimits            - configured per-window request/token limits
  RateSnapshot           - authoritative limits reported by a provider
  estimate_tokens        - rough token estimate for a list of messages
  ConfigurationError     - no usable models after filtering, bad strategy
  ModelNotFoundError     - explicitly requested model is not a candidate
  RateLimitedError       - chosen model rejected and fallback is off
  AllModelsExhaustedError - every candidate was rejected
"""

from .client import ChatResult, RotatorClient
from .router import ModelRouter
from .config import RouterConfig
from .models import ModelConfig, ModelLimits, GenerationDefaults, UsageRecord, RouteResult, SkippedModel
from .engine import ModelSelector, estimate_tokens
from .state import RateBudget, RateSnapshot, UsageTracker
from .exceptions import (
    AllModelsExhaustedError,
    ConfigurationError,
    ModelNotFoundError,
    ProviderNotFoundError,
    RateLimitedError,
    RotatorError,
)

__all__ = [
    "RotatorClient",
    "ChatResult",
    "ModelRouter",
    "RouterConfig",
    "ModelConfig",
    "ModelLimits",
    "GenerationDefaults",
    "UsageRecord",
    "RouteResult",
    "SkippedModel",
    "ModelSelector",
    "estimate_tokens",
    "RateBudget",
    "RateSnapshot",
    "UsageTracker",
    "RotatorError",
    "ConfigurationError",
    "ModelNotFoundError",
    "ProviderNotFoundError",
    "RateLimitedError",
    "AllModelsExhaustedError",
]

__version__ = "0.1.0"
