"""Read access to stored module definitions."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from collectory.modules.contracts import ModuleContract
from collectory.modules.errors import ModuleImportError, UnknownModuleError
from collectory.storage import ModuleDefinition, ModuleSource


class ModuleSummary(BaseModel):
    """Summary of a stored module."""

    id: str = Field(..., description="Module definition ID")
    key: str = Field(..., description="Module key")
    name: str = Field(..., description="Display name")
    version: str = Field(..., description="Declared version")
    source: ModuleSource = Field(..., description="BUILTIN or IMPORTED")
    checksum: str = Field(..., description="SHA-256 of the raw document")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @classmethod
    def from_entity(cls, entity: ModuleDefinition) -> "ModuleSummary":
        return cls(
            id=entity.id,
            key=entity.module_key,
            name=entity.name,
            version=entity.version,
            source=entity.source,
            checksum=entity.checksum,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )


class ModuleDetails(ModuleSummary):
    """Summary plus the compiled contract (camelCase JSON form)."""

    contract: dict[str, Any] = Field(..., description="Compiled module contract")


class ModuleRawSource(BaseModel):
    key: str = Field(..., description="Module key")
    raw: str = Field(..., description="Raw module document")


def normalize_key(raw: Optional[str]) -> str:
    if raw is None or not raw.strip():
        raise ModuleImportError("moduleKey is required")
    return raw.strip()


class ModuleQueryService:
    """Lookups over module definitions using a caller-owned session."""

    def __init__(self, session: Session):
        self.session = session

    def _by_key(self, module_key: str) -> ModuleDefinition:
        key = normalize_key(module_key)
        entity = self.session.scalars(
            select(ModuleDefinition).where(ModuleDefinition.module_key == key)
        ).one_or_none()
        if entity is None:
            raise UnknownModuleError(key)
        return entity

    def list_all(self) -> list[ModuleSummary]:
        entities = self.session.scalars(select(ModuleDefinition).order_by(ModuleDefinition.module_key))
        return [ModuleSummary.from_entity(e) for e in entities]

    def get_details(self, module_key: str) -> ModuleDetails:
        entity = self._by_key(module_key)
        summary = ModuleSummary.from_entity(entity)
        return ModuleDetails(**summary.model_dump(), contract=entity.contract)

    def get_raw_source(self, module_key: str) -> ModuleRawSource:
        entity = self._by_key(module_key)
        return ModuleRawSource(key=entity.module_key, raw=entity.raw_source)

    def get_contract(self, module_id: str) -> ModuleContract:
        """Compiled contract of the module with this definition ID."""
        entity = self.session.get(ModuleDefinition, module_id)
        if entity is None:
            raise UnknownModuleError(module_id)
        return ModuleContract.from_json_dict(entity.contract)
