"""Provider registry."""
from collections.abc import Iterable

from collectory.observability import get_logger
from collectory.providers.base import MetadataProvider, ProviderDescriptor

logger = get_logger(__name__)


class ProviderRegistry:
    """Registry of metadata provider adapters by key."""

    def __init__(self, providers: Iterable[MetadataProvider] = ()):
        """Initialize provider registry."""
        self._providers: dict[str, MetadataProvider] = {}
        for provider in providers:
            self.register(provider)

    def register(self, provider: MetadataProvider) -> None:
        """
        Register a provider, replacing any provider with the same key.

        Args:
            provider: Provider instance to register
        """
        key = provider.key()
        if key in self._providers:
            logger.warning(f"Provider replaced: {key}", extra={"provider_key": key})
        self._providers[key] = provider
        logger.info(f"Provider registered: {key}", extra={"provider_key": key})

    def get(self, key: str) -> MetadataProvider | None:
        return self._providers.get(key)

    def all(self) -> list[MetadataProvider]:
        return list(self._providers.values())

    def keys(self) -> list[str]:
        return sorted(self._providers)

    def descriptors(self) -> list[ProviderDescriptor]:
        """Descriptors of every registered provider, sorted by key."""
        return [self._providers[k].descriptor() for k in self.keys()]


# Global registry
_provider_registry: ProviderRegistry | None = None


def get_provider_registry() -> ProviderRegistry:
    """Get or create the global provider registry with the bundled adapters."""
    global _provider_registry
    if _provider_registry is None:
        from collectory.providers.adapters import default_providers

        _provider_registry = ProviderRegistry(default_providers())
    return _provider_registry


def reset_provider_registry() -> None:
    """Reset the global registry (useful for testing)."""
    global _provider_registry
    _provider_registry = None
