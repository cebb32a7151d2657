"""Errors raised by the module contract pipeline."""
from enum import Enum


class ModuleError(Exception):
    """Base exception for module pipeline errors."""

    pass


class StructuralValidationError(ModuleError):
    """Raised when a document or contract violates its structural schema."""

    stage = "structure"

    def __init__(self, source_name: str, messages: list[str]):
        self.source_name = source_name
        self.messages = list(messages)
        joined = "\n - ".join(self.messages)
        super().__init__(f"[{source_name}] {self.stage} invalid:\n - {joined}")


class DocumentSchemaError(StructuralValidationError):
    """Raised when the raw module document fails XSD validation."""

    stage = "Module document"


class ContractSchemaError(StructuralValidationError):
    """Raised when a compiled contract fails JSON Schema validation."""

    stage = "Module contract"


class ModuleParseError(ModuleError):
    """Raised when a module document cannot be parsed."""

    pass


class SemanticErrorCode(str, Enum):
    """Cross-reference violations the structural schemas cannot express."""

    MISSING_OWNED_STATE = "MISSING_OWNED_STATE"
    DUPLICATE_STATE_KEY = "DUPLICATE_STATE_KEY"
    DUPLICATE_FIELD_KEY = "DUPLICATE_FIELD_KEY"
    DUPLICATE_PROVIDER_KEY = "DUPLICATE_PROVIDER_KEY"
    UNKNOWN_MAPPING_PROVIDER = "UNKNOWN_MAPPING_PROVIDER"
    INVALID_MAPPING_PATH = "INVALID_MAPPING_PATH"
    UNKNOWN_STEP_FIELD = "UNKNOWN_STEP_FIELD"
    UNKNOWN_STEP_PROVIDER = "UNKNOWN_STEP_PROVIDER"
    QUERY_ON_NON_PROMPT_STEP = "QUERY_ON_NON_PROMPT_STEP"
    PROMPT_WITHOUT_TARGET = "PROMPT_WITHOUT_TARGET"


class SemanticValidationError(ModuleError):
    """Raised when a compiled contract breaks a cross-reference invariant."""

    def __init__(self, code: SemanticErrorCode, source_name: str, module_key: str, detail: str):
        self.code = code
        self.source_name = source_name
        self.module_key = module_key
        self.detail = detail
        super().__init__(f"[{source_name}] Module '{module_key}' {detail}")


class ModuleAlreadyExistsError(ModuleError):
    """Raised when importing a module whose key is already stored."""

    def __init__(self, module_key: str):
        self.module_key = module_key
        super().__init__(f"Module already exists: {module_key}")


class UnknownModuleError(ModuleError):
    """Raised when a module key or id is not stored."""

    def __init__(self, module_ref: str):
        self.module_ref = module_ref
        super().__init__(f"Module not found: {module_ref}")


class ModuleInUseError(ModuleError):
    """Raised when deleting a module that collections or items depend on."""

    pass


class ModuleDeleteForbiddenError(ModuleError):
    """Raised when deleting a module that was not imported."""

    pass


class ModuleImportError(ModuleError):
    """Raised for bad import input or an unexpected import failure."""

    pass


class ModuleBootstrapError(ModuleError):
    """Raised after bootstrap when one or more module documents failed to load."""

    def __init__(self, failures: list[tuple[str, Exception]]):
        self.failures = list(failures)
        lines = [f"{name}: {error}" for name, error in self.failures]
        super().__init__(
            f"Module load failed for {len(self.failures)} module(s):\n"
            + "\n".join(lines)
        )
