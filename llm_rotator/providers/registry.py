# llm_rotator/providers/registry.py
"""
ProviderRegistry: container for the provider adapters a client can call.

Adapters are keyed by provider name, the same tag ModelConfig.provider
carries, so a routed model maps straight to the adapter that serves it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .base import BaseProvider
from .cerebras import CerebrasProvider
from .groq import GroqProvider
from ..exceptions import ProviderNotFoundError

if TYPE_CHECKING:
    from ..config import RouterConfig

logger = logging.getLogger(__name__)

# Map provider name -> adapter class
_ADAPTER_MAP: dict[str, type[BaseProvider]] = {
    "groq": GroqProvider,
    "cerebras": CerebrasProvider,
}


class ProviderRegistry:
    """Holds all registered provider adapters."""

    def __init__(self) -> None:
        self._providers: dict[str, BaseProvider] = {}

    @classmethod
    def from_config(cls, config: "RouterConfig") -> "ProviderRegistry":
        """
        Build adapters for every provider that serves at least one enabled
        model and has an API key available.
        """
        registry = cls()
        wanted = {m.provider for m in config.models if m.enabled}
        if config.providers:
            wanted &= set(config.providers)
        for name in sorted(wanted):
            api_key = config.api_key(name)
            if not api_key:
                logger.warning("No API key for provider %s; its models cannot be called", name)
                continue
            registry.register(_ADAPTER_MAP[name](api_key=api_key))
        return registry

    def register(self, provider: BaseProvider) -> None:
        """Register (or replace) the adapter for ``provider.name``."""
        self._providers[provider.name] = provider
        logger.info("Registered provider: %s", provider.name)

    def get(self, name: str) -> BaseProvider:
        """Return the adapter for *name*; raises ProviderNotFoundError if missing."""
        provider = self._providers.get(name)
        if provider is None:
            raise ProviderNotFoundError(name, self.names())
        return provider

    def has(self, name: str) -> bool:
        return name in self._providers

    def names(self) -> list[str]:
        return list(self._providers.keys())

    async def close_all(self) -> None:
        """Call close() on every provider (releases HTTP connections, etc.)."""
        for provider in self._providers.values():
            await provider.close()
