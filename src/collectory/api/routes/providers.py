"""Provider routes: registered adapters, readiness and metadata lookup."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from collectory.api.dependencies import get_lookup_service, get_registry, get_session, get_status_service
from collectory.api.errors import to_http_error
from collectory.modules import ModuleError, ModuleQueryService
from collectory.providers import (
    LookupRequest,
    LookupResponse,
    LookupService,
    MetadataProvider,
    ProviderDescriptor,
    ProviderRegistry,
    ProviderStatus,
    ProviderStatusService,
)

router = APIRouter(prefix="/api/providers")


def _provider(key: str, registry: ProviderRegistry) -> MetadataProvider:
    provider = registry.get(key)
    if provider is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown provider: {key}")
    return provider


@router.get("", response_model=list[ProviderDescriptor])
def list_providers(registry: ProviderRegistry = Depends(get_registry)) -> list[ProviderDescriptor]:
    """Describe every registered provider adapter."""
    return registry.descriptors()


@router.get("/{provider_key}/status", response_model=ProviderStatus)
def provider_status(
    provider_key: str,
    registry: ProviderRegistry = Depends(get_registry),
    service: ProviderStatusService = Depends(get_status_service),
) -> ProviderStatus:
    """
    Get a provider's readiness, checking it on first request.

    Raises:
        HTTPException: 404 if no adapter is registered under the key
    """
    return service.get_status(_provider(provider_key, registry))


@router.post("/{provider_key}/status/check", response_model=ProviderStatus)
def check_provider_status(
    provider_key: str,
    registry: ProviderRegistry = Depends(get_registry),
    service: ProviderStatusService = Depends(get_status_service),
) -> ProviderStatus:
    """Run a live readiness check (rate limited per provider)."""
    return service.check_status(_provider(provider_key, registry))


@router.post("/lookup", response_model=LookupResponse)
def lookup(
    request: LookupRequest,
    session: Session = Depends(get_session),
    service: LookupService = Depends(get_lookup_service),
) -> LookupResponse:
    """
    Look up metadata for an item of the given module.

    Raises:
        HTTPException: 404 if the module ID is unknown
    """
    try:
        contract = ModuleQueryService(session).get_contract(request.module_id)
    except ModuleError as e:
        raise to_http_error(e) from e

    return service.lookup(contract, request.effective_identifiers(), request.providers)
