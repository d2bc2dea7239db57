from .base import BaseProvider, ChatStream, ProviderResponse, error_headers
from .headers import parse_cerebras_headers, parse_duration, parse_groq_headers, parse_snapshot
from .registry import ProviderRegistry
from .groq import GroqProvider
from .cerebras import CerebrasProvider

__all__ = [
    "BaseProvider",
    "ChatStream",
    "ProviderResponse",
    "error_headers",
    "parse_cerebras_headers",
    "parse_duration",
    "parse_groq_headers",
    "parse_snapshot",
    "ProviderRegistry",
    "GroqProvider",
    "CerebrasProvider",
]
