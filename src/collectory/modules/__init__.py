"""Module contract pipeline: parse, compile, validate and persist module documents."""
from collectory.modules.compiler import compile_document
from collectory.modules.contracts import (
    FieldContract,
    FieldType,
    IdentifierType,
    ModuleContract,
    ProviderContract,
    StateContract,
    WorkflowContract,
    WorkflowStep,
    WorkflowStepType,
)
from collectory.modules.errors import (
    ContractSchemaError,
    DocumentSchemaError,
    ModuleAlreadyExistsError,
    ModuleBootstrapError,
    ModuleDeleteForbiddenError,
    ModuleError,
    ModuleImportError,
    ModuleInUseError,
    ModuleParseError,
    SemanticErrorCode,
    SemanticValidationError,
    UnknownModuleError,
)
from collectory.modules.importer import ModuleImportService, ScanFailure, ScanResult
from collectory.modules.loader import LoadOutcome, LoadStatus, ModuleLoader, sha256_hex
from collectory.modules.parser import ModuleDocument, parse_document
from collectory.modules.query import ModuleDetails, ModuleQueryService, ModuleRawSource, ModuleSummary
from collectory.modules.service import ModuleService

__all__ = [
    "compile_document",
    "ContractSchemaError",
    "DocumentSchemaError",
    "FieldContract",
    "FieldType",
    "IdentifierType",
    "LoadOutcome",
    "LoadStatus",
    "ModuleAlreadyExistsError",
    "ModuleBootstrapError",
    "ModuleContract",
    "ModuleDeleteForbiddenError",
    "ModuleDetails",
    "ModuleDocument",
    "ModuleError",
    "ModuleImportError",
    "ModuleImportService",
    "ModuleInUseError",
    "ModuleLoader",
    "ModuleParseError",
    "ModuleQueryService",
    "ModuleRawSource",
    "ModuleService",
    "ModuleSummary",
    "parse_document",
    "ProviderContract",
    "ScanFailure",
    "ScanResult",
    "SemanticErrorCode",
    "SemanticValidationError",
    "sha256_hex",
    "StateContract",
    "UnknownModuleError",
    "WorkflowContract",
    "WorkflowStep",
    "WorkflowStepType",
]
