"""Provider aggregation: adapters, registry, field mapping, chaining and lookup."""
from collectory.providers.base import (
    AssetType,
    CredentialField,
    MetadataProvider,
    ProviderAsset,
    ProviderConfidence,
    ProviderDescriptor,
    ProviderResult,
)
from collectory.providers.lookup import (
    LookupIdentifier,
    LookupRequest,
    LookupResponse,
    LookupService,
)
from collectory.providers.registry import (
    ProviderRegistry,
    get_provider_registry,
    reset_provider_registry,
)
from collectory.providers.status import (
    ProviderStatus,
    ProviderStatusService,
    get_provider_status_service,
    reset_provider_status_service,
)

__all__ = [
    "AssetType",
    "CredentialField",
    "get_provider_registry",
    "get_provider_status_service",
    "LookupIdentifier",
    "LookupRequest",
    "LookupResponse",
    "LookupService",
    "MetadataProvider",
    "ProviderAsset",
    "ProviderConfidence",
    "ProviderDescriptor",
    "ProviderRegistry",
    "ProviderResult",
    "ProviderStatus",
    "ProviderStatusService",
    "reset_provider_registry",
    "reset_provider_status_service",
]
