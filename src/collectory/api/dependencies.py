"""FastAPI dependencies."""
from fastapi import Depends

from collectory.modules import ModuleImportService
from collectory.providers import (
    LookupService,
    ProviderRegistry,
    ProviderStatusService,
    get_provider_registry,
    get_provider_status_service,
)
from collectory.storage import get_session


def get_registry() -> ProviderRegistry:
    """Provider registry (override in tests)."""
    return get_provider_registry()


def get_lookup_service(registry: ProviderRegistry = Depends(get_registry)) -> LookupService:
    return LookupService(registry=registry)


def get_import_service() -> ModuleImportService:
    return ModuleImportService()


def get_status_service() -> ProviderStatusService:
    """Process-wide status service; its cache backs the check rate limit."""
    return get_provider_status_service()


__all__ = [
    "get_import_service",
    "get_lookup_service",
    "get_registry",
    "get_session",
    "get_status_service",
]
