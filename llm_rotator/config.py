# llm_rotator/config.py
"""
RouterConfig: everything needed to build a tracker, a router and the
provider adapters.

Supports construction from:
  - Python dict   -> RouterConfig.from_dict(data)
  - YAML file     -> RouterConfig.from_yaml("rotator.yaml")
  - Environment   -> RouterConfig.from_env()

When no models are given the built-in catalog is used.
"""

from __future__ import annotations

import os
import re
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .catalog import default_models
from .constants import (
    DEFAULT_STRATEGY,
    HISTORY_SIZE,
    PROVIDER_API_KEY_ENV,
    VALID_PROVIDERS,
    VALID_STRATEGIES,
)
from .models import ModelConfig

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class RouterConfig(BaseModel):
    """
    Top-level configuration for llm-rotator.

    Instantiate directly or use one of the factory class methods:
      RouterConfig.from_dict(data)
      RouterConfig.from_yaml(path)
      RouterConfig.from_env()
    """

    models: list[ModelConfig] = Field(default_factory=default_models)
    strategy: str = Field(
        default=DEFAULT_STRATEGY,
        description="Rotation strategy: 'round-robin' | 'random' | 'least-used'.",
    )
    auto_fallback: bool = Field(
        default=True,
        description="Fall back to the next candidate when the chosen model is rate limited.",
    )
    providers: list[str] = Field(
        default_factory=list,
        description="Keep only models served by these providers (empty = all).",
    )
    model_ids: list[str] = Field(
        default_factory=list,
        description="Keep only these model ids (empty = all).",
    )
    history_size: int = Field(
        default=HISTORY_SIZE,
        gt=1,
        description="Usage records kept in memory before compaction.",
    )
    api_keys: dict[str, str] = Field(
        default_factory=dict,
        description="Provider API keys by provider name. Missing keys are read from the environment.",
        repr=False,
    )

    @field_validator("strategy")
    @classmethod
    def validate_strategy(cls, v: str) -> str:
        if v not in VALID_STRATEGIES:
            raise ValueError(f"strategy must be one of {sorted(VALID_STRATEGIES)}, got '{v}'")
        return v

    @field_validator("providers")
    @classmethod
    def validate_providers(cls, v: list[str]) -> list[str]:
        unknown = [p for p in v if p not in VALID_PROVIDERS]
        if unknown:
            raise ValueError(f"unknown providers {unknown}; expected any of {sorted(VALID_PROVIDERS)}")
        return v

    def api_key(self, provider: str) -> str | None:
        """API key for *provider*: explicit config first, then its environment variable."""
        if provider in self.api_keys:
            return self.api_keys[provider]
        env_var = PROVIDER_API_KEY_ENV.get(provider)
        return os.environ.get(env_var) if env_var else None

    # ------------------------------------------------------------------
    # Factory methods
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any], **kwargs: Any) -> "RouterConfig":
        """Build config from a plain Python dictionary."""
        merged = {**data, **kwargs}
        return cls.model_validate(merged)

    @classmethod
    def from_yaml(cls, path: str, **kwargs: Any) -> "RouterConfig":
        """
        Build config from a YAML file.

        Environment variable interpolation is supported:
          api_keys:
            groq: "${GROQ_API_KEY}"
        """
        import yaml

        with open(path, encoding="utf-8") as f:
            raw = f.read()

        def _replace(match: re.Match) -> str:  # type: ignore[type-arg]
            var = match.group(1)
            value = os.environ.get(var)
            if value is None:
                raise EnvironmentError(
                    f"Environment variable '{var}' referenced in '{path}' is not set."
                )
            return value

        raw = re.sub(r"\$\{([^}]+)\}", _replace, raw)
        data = yaml.safe_load(raw) or {}
        return cls.from_dict(data, **kwargs)

    @classmethod
    def from_env(cls, **kwargs: Any) -> "RouterConfig":
        """
        Build config from environment variables.

          LLM_ROTATOR_CONFIG        -> load this YAML file first
          LLM_ROTATOR_STRATEGY      -> strategy
          LLM_ROTATOR_AUTO_FALLBACK -> auto_fallback ("true"/"false")
          LLM_ROTATOR_PROVIDERS     -> providers (comma separated)
          LLM_ROTATOR_MODELS        -> model_ids (comma separated)

        API keys are always read lazily from GROQ_API_KEY / CEREBRAS_API_KEY.
        """
        data: dict[str, Any] = {}

        path = os.environ.get("LLM_ROTATOR_CONFIG")
        if path:
            data = cls.from_yaml(path).model_dump(exclude_unset=True)

        strategy = os.environ.get("LLM_ROTATOR_STRATEGY")
        if strategy:
            data["strategy"] = strategy

        fallback = os.environ.get("LLM_ROTATOR_AUTO_FALLBACK")
        if fallback:
            value = fallback.strip().lower()
            if value not in _TRUE | _FALSE:
                raise ValueError(f"LLM_ROTATOR_AUTO_FALLBACK must be a boolean, got '{fallback}'")
            data["auto_fallback"] = value in _TRUE

        providers = os.environ.get("LLM_ROTATOR_PROVIDERS")
        if providers:
            data["providers"] = _split(providers)

        model_ids = os.environ.get("LLM_ROTATOR_MODELS")
        if model_ids:
            data["model_ids"] = _split(model_ids)

        data.update(kwargs)
        return cls.from_dict(data)


def _split(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]
