# llm_rotator/catalog.py
"""
Built-in model catalog.

Free-tier limits from the providers' published rate-limit tables:
  - Groq:     https://console.groq.com/docs/rate-limits         (RPM, RPD, TPM, TPD)
  - Cerebras: https://inference-docs.cerebras.ai/support/rate-limits#free
                                                                (RPM, RPH, RPD, TPM, TPH, TPD)

Used when a RouterConfig does not list its own models.
"""

from __future__ import annotations

from typing import Any

from .models import ModelConfig


def _groq(
    id: str,
    name: str,
    rpm: int,
    rpd: int,
    tpm: int,
    tpd: int,
    enabled: bool = True,
    **defaults: Any,
) -> dict[str, Any]:
    return {
        "id": id,
        "name": name,
        "provider": "groq",
        "enabled": enabled,
        "limits": {
            "requests_per_minute": rpm,
            "requests_per_day": rpd,
            "tokens_per_minute": tpm,
            "tokens_per_day": tpd,
        },
        "defaults": defaults,
    }


def _cerebras(
    id: str,
    name: str,
    rpm: int = 30,
    rph: int = 900,
    rpd: int = 14_400,
    tpm: int = 60_000,
    tph: int = 1_000_000,
    tpd: int = 1_000_000,
    **defaults: Any,
) -> dict[str, Any]:
    return {
        "id": id,
        "name": name,
        "provider": "cerebras",
        "limits": {
            "requests_per_minute": rpm,
            "requests_per_hour": rph,
            "requests_per_day": rpd,
            "tokens_per_minute": tpm,
            "tokens_per_hour": tph,
            "tokens_per_day": tpd,
        },
        "defaults": defaults,
    }


_CATALOG: list[dict[str, Any]] = [
    # Groq: Llama
    _groq("llama-3.3-70b-versatile", "Llama 3.3 70B Versatile", 30, 1_000, 12_000, 100_000,
          temperature=0.7, max_tokens=4096, top_p=1),
    _groq("llama-3.1-8b-instant", "Llama 3.1 8B Instant", 30, 14_400, 6_000, 500_000,
          temperature=0.6, max_tokens=8192, top_p=1),
    _groq("meta-llama/llama-4-maverick-17b-128e-instruct", "Llama 4 Maverick 17B", 30, 1_000, 6_000, 500_000,
          temperature=0.7, max_tokens=4096),
    _groq("meta-llama/llama-4-scout-17b-16e-instruct", "Llama 4 Scout 17B", 30, 1_000, 30_000, 500_000,
          temperature=0.7, max_tokens=4096),
    # Groq: Moonshot Kimi
    _groq("moonshotai/kimi-k2-instruct", "Moonshot Kimi K2", 60, 1_000, 10_000, 300_000,
          temperature=0.6, max_tokens=4096, top_p=1),
    # Groq: GPT-OSS
    _groq("openai/gpt-oss-120b", "GPT OSS 120B", 30, 1_000, 8_000, 200_000,
          temperature=0.7, max_tokens=4096),
    _groq("openai/gpt-oss-20b", "GPT OSS 20B", 30, 1_000, 8_000, 200_000,
          temperature=0.7, max_tokens=4096),
    # Groq: Qwen
    _groq("qwen/qwen3-32b", "Qwen 3 32B", 60, 1_000, 6_000, 500_000,
          temperature=0.7, max_tokens=4096),
    # Moderation only
    _groq("meta-llama/llama-guard-4-12b", "Llama Guard 4 12B", 30, 14_400, 15_000, 500_000,
          enabled=False),
    # Cerebras: standard free-tier limits
    _cerebras("llama3.1-8b", "Llama 3.1 8B", temperature=0.7, max_tokens=8192, top_p=0.95),
    _cerebras("llama-3.3-70b", "Llama 3.3 70B", temperature=0.7, max_tokens=8192, top_p=0.95),
    _cerebras("qwen-3-32b", "Qwen 3 32B", temperature=0.7, max_tokens=8192),
    _cerebras("qwen-3-235b-a22b-instruct-2507", "Qwen 3 235B Instruct", temperature=0.7, max_tokens=8192),
    _cerebras("gpt-oss-120b", "GPT OSS 120B", temperature=0.7, max_tokens=8192),
    # ZAI GLM 4.6 has much tighter request limits
    _cerebras("zai-glm-4.6", "ZAI GLM 4.6", rpm=10, rph=100, rpd=100, tpm=150_000,
              temperature=0.6, max_tokens=40960, top_p=0.95),
]


def default_models() -> list[ModelConfig]:
    """All catalog models, enabled and disabled, in catalog order."""
    return [ModelConfig.model_validate(entry) for entry in _CATALOG]


def enabled_models() -> list[ModelConfig]:
    return [m for m in default_models() if m.enabled]


def provider_models(provider: str) -> list[ModelConfig]:
    return [m for m in enabled_models() if m.provider == provider]


def get_model_by_id(model_id: str) -> ModelConfig | None:
    for model in default_models():
        if model.id == model_id:
            return model
    return None
