"""
Module Contracts - canonical, compiled form of a module definition.

A contract is what the compiler produces from a parsed module document. It is
validated against the contract JSON Schema, checked semantically, and stored
as JSON on the module definition row. The JSON form uses camelCase keys.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FieldType(str, Enum):
    """Value type of a module field."""

    TEXT = "TEXT"
    NUMBER = "NUMBER"
    DATE = "DATE"
    BOOLEAN = "BOOLEAN"
    ENUM = "ENUM"
    TAGS = "TAGS"
    LINK = "LINK"
    JSON = "JSON"


class IdentifierType(str, Enum):
    """External identifier used to query providers."""

    ISBN10 = "ISBN10"
    ISBN13 = "ISBN13"
    UPC = "UPC"
    EAN = "EAN"
    ASIN = "ASIN"
    CUSTOM = "CUSTOM"


class WorkflowStepType(str, Enum):
    """Declarative workflow step kinds, interpreted by clients."""

    PROMPT = "PROMPT"
    PROMPT_ANY = "PROMPT_ANY"
    LOOKUP_METADATA = "LOOKUP_METADATA"
    APPLY_METADATA = "APPLY_METADATA"
    SELECT_IMAGE = "SELECT_IMAGE"
    SAVE_ITEM = "SAVE_ITEM"


class ContractModel(BaseModel):
    """Base for contract models: camelCase JSON, immutable, strict keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )


class Author(ContractModel):
    name: str
    email: str | None = None
    url: str | None = None


class ModuleMeta(ContractModel):
    authors: list[Author] = Field(default_factory=list)
    license: str | None = None
    homepage: str | None = None
    repository: str | None = None
    icon: str | None = None
    tags: list[str] = Field(default_factory=list)
    min_app_version: str | None = None


class StateContract(ContractModel):
    key: str
    label: str
    order: int = 0
    active: bool = True
    deprecated: bool = False


class ProviderContract(ContractModel):
    key: str
    enabled: bool = True
    priority: int = 100
    supports: list[IdentifierType] = Field(default_factory=list)


class EnumValue(ContractModel):
    key: str
    label: str


class Constraints(ContractModel):
    min: float | None = None
    max: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    multi: bool | None = None
    unique_within_collection: bool | None = None


class UiHints(ContractModel):
    widget: str | None = None
    placeholder: str | None = None
    help_text: str | None = None
    group: str | None = None
    hidden: bool | None = None


class ProviderMapping(ContractModel):
    provider: str
    path: str
    transform: str | None = None


class FieldContract(ContractModel):
    key: str
    label: str
    type: FieldType
    required: bool = False
    searchable: bool = False
    filterable: bool = False
    sortable: bool = False
    order: int = 0
    active: bool = True
    deprecated: bool = False
    default_value: str | None = None
    identifiers: list[IdentifierType] = Field(default_factory=list)
    enum_values: list[EnumValue] = Field(default_factory=list)
    constraints: Constraints | None = None
    ui_hints: UiHints | None = None
    provider_mappings: list[ProviderMapping] = Field(default_factory=list)


class WorkflowStep(ContractModel):
    type: WorkflowStepType
    field: str | None = None
    fields: list[str] = Field(default_factory=list)
    providers: list[str] = Field(default_factory=list)
    query: str | None = None
    label: str | None = None


class WorkflowContract(ContractModel):
    key: str
    label: str | None = None
    steps: list[WorkflowStep] = Field(default_factory=list)


class ModuleContract(ContractModel):
    key: str
    version: str
    name: str
    description: str | None = None
    meta: ModuleMeta | None = None
    states: list[StateContract] = Field(default_factory=list)
    providers: list[ProviderContract] = Field(default_factory=list)
    fields: list[FieldContract] = Field(default_factory=list)
    workflows: list[WorkflowContract] = Field(default_factory=list)

    def __str__(self) -> str:
        """String representation."""
        return f"{self.key}@{self.version}"

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize to the stored JSON form (camelCase, nulls omitted)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_json_dict(cls, data: dict[str, Any]) -> "ModuleContract":
        """Rebuild a contract from its stored JSON form."""
        return cls.model_validate(data)
