"""Liveness route reporting what the service has loaded."""
from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from collectory.api.dependencies import get_registry, get_session
from collectory.providers import ProviderRegistry
from collectory.storage import ModuleDefinition

router = APIRouter()


@router.get("/health")
def health_check(
    session: Session = Depends(get_session),
    registry: ProviderRegistry = Depends(get_registry),
) -> dict:
    """Liveness plus the number of stored modules and registered providers."""
    modules = session.scalar(select(func.count()).select_from(ModuleDefinition))
    return {
        "status": "healthy",
        "service": "collectory",
        "modules": modules,
        "providers": len(registry.keys()),
    }
