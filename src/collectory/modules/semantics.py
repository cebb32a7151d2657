"""Cross-reference checks on a compiled contract."""

from collectory.modules.contracts import ModuleContract, WorkflowStepType
from collectory.modules.errors import SemanticErrorCode, SemanticValidationError

OWNED_STATE = "OWNED"


def _first_duplicate(keys: list[str]) -> str | None:
    seen: set[str] = set()
    for key in keys:
        if key in seen:
            return key
        seen.add(key)
    return None


def validate_semantics(contract: ModuleContract, source_name: str) -> None:
    """
    Check the invariants the structural schemas cannot express.

    Raises:
        SemanticValidationError: On the first violation found
    """

    def fail(code: SemanticErrorCode, detail: str) -> None:
        raise SemanticValidationError(code, source_name, contract.key, detail)

    state_keys = [s.key for s in contract.states]
    duplicate = _first_duplicate(state_keys)
    if duplicate is not None:
        fail(SemanticErrorCode.DUPLICATE_STATE_KEY, f"has duplicate state key '{duplicate}'")
    if OWNED_STATE not in state_keys:
        fail(SemanticErrorCode.MISSING_OWNED_STATE, f"must declare a state with key '{OWNED_STATE}'")

    provider_keys = [p.key for p in contract.providers]
    duplicate = _first_duplicate(provider_keys)
    if duplicate is not None:
        fail(SemanticErrorCode.DUPLICATE_PROVIDER_KEY, f"has duplicate provider key '{duplicate}'")

    field_keys = [f.key for f in contract.fields]
    duplicate = _first_duplicate(field_keys)
    if duplicate is not None:
        fail(SemanticErrorCode.DUPLICATE_FIELD_KEY, f"has duplicate field key '{duplicate}'")

    declared_providers = set(provider_keys)
    declared_fields = set(field_keys)

    for field in contract.fields:
        for mapping in field.provider_mappings:
            if mapping.provider not in declared_providers:
                fail(
                    SemanticErrorCode.UNKNOWN_MAPPING_PROVIDER,
                    f"field '{field.key}' maps unknown provider '{mapping.provider}'",
                )
            if not mapping.path.startswith("/"):
                fail(
                    SemanticErrorCode.INVALID_MAPPING_PATH,
                    f"field '{field.key}' mapping for '{mapping.provider}' has path "
                    f"'{mapping.path}' that does not start with '/'",
                )

    for workflow in contract.workflows:
        for index, step in enumerate(workflow.steps):
            where = f"workflow '{workflow.key}' step {index} ({step.type.value})"

            referenced = ([step.field] if step.field else []) + step.fields
            for key in referenced:
                if key not in declared_fields:
                    fail(SemanticErrorCode.UNKNOWN_STEP_FIELD, f"{where} references unknown field '{key}'")

            for key in step.providers:
                if key not in declared_providers:
                    fail(
                        SemanticErrorCode.UNKNOWN_STEP_PROVIDER,
                        f"{where} references unknown provider '{key}'",
                    )

            has_query = bool(step.query and step.query.strip())
            if step.type is WorkflowStepType.PROMPT:
                if not referenced and not has_query:
                    fail(SemanticErrorCode.PROMPT_WITHOUT_TARGET, f"{where} needs field(s) or a query")
            elif step.query is not None:
                fail(SemanticErrorCode.QUERY_ON_NON_PROMPT_STEP, f"{where} declares a query")
