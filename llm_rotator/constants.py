# llm_rotator/constants.py
"""
Default constants for llm-rotator.
All tunable values are centralised here so they can be overridden via RouterConfig
without touching internal logic.
"""

# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------
PROVIDER_GROQ: str = "groq"
PROVIDER_CEREBRAS: str = "cerebras"

VALID_PROVIDERS = frozenset({PROVIDER_GROQ, PROVIDER_CEREBRAS})

PROVIDER_API_KEY_ENV: dict[str, str] = {
    PROVIDER_GROQ: "GROQ_API_KEY",
    PROVIDER_CEREBRAS: "CEREBRAS_API_KEY",
}

CEREBRAS_BASE_URL: str = "https://api.cerebras.ai/v1"

# ---------------------------------------------------------------------------
# Rotation
# ---------------------------------------------------------------------------
STRATEGY_ROUND_ROBIN: str = "round-robin"
STRATEGY_RANDOM: str = "random"
STRATEGY_LEAST_USED: str = "least-used"

VALID_STRATEGIES = frozenset({STRATEGY_ROUND_ROBIN, STRATEGY_RANDOM, STRATEGY_LEAST_USED})

DEFAULT_STRATEGY: str = STRATEGY_ROUND_ROBIN

# ---------------------------------------------------------------------------
# Token estimation
# ---------------------------------------------------------------------------
CHARS_PER_TOKEN: int = 4
"""Divisor of the character-based token estimate (rounded up)."""

# ---------------------------------------------------------------------------
# Usage tracking
# ---------------------------------------------------------------------------
HISTORY_SIZE: int = 10_000
"""Usage records kept before the log is compacted to its newest half."""

WINDOW_SECONDS: dict[str, int] = {
    "minute": 60,
    "hour": 3_600,
    "day": 86_400,
}
"""Length of each rate-limit window, used to seed a reset instant when none is known."""

# ---------------------------------------------------------------------------
# Generation defaults (used when a model config leaves a field unset)
# ---------------------------------------------------------------------------
DEFAULT_TEMPERATURE: float = 0.7

DEFAULT_MAX_TOKENS: dict[str, int] = {
    PROVIDER_GROQ: 4_096,
    PROVIDER_CEREBRAS: 8_192,
}

DEFAULT_TOP_P: dict[str, float] = {
    PROVIDER_GROQ: 1.0,
    PROVIDER_CEREBRAS: 0.95,
}
