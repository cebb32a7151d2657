"""
Contract Compiler - declaration tree to canonical ModuleContract.

Compilation applies defaults, normalises enum names, splits comma separated
step lists and sorts states, providers and fields into a stable order so the
stored contract is deterministic for a given document.
"""

from typing import Optional

from collectory.modules.contracts import (
    Author,
    Constraints,
    EnumValue,
    FieldContract,
    FieldType,
    IdentifierType,
    ModuleContract,
    ModuleMeta,
    ProviderContract,
    ProviderMapping,
    StateContract,
    UiHints,
    WorkflowContract,
    WorkflowStep,
    WorkflowStepType,
)
from collectory.modules.errors import ModuleParseError
from collectory.modules.parser import (
    ConstraintsDecl,
    FieldDecl,
    MetaDecl,
    ModuleDocument,
    ProviderDecl,
    StateDecl,
    StepDecl,
    UiDecl,
    WorkflowDecl,
)
from collectory.observability import get_logger, with_log_context

logger = get_logger(__name__)

DEFAULT_PRIORITY = 100
DEFAULT_ORDER = 0


def split_csv(value: Optional[str]) -> list[str]:
    """Split a comma separated list, trimming entries and dropping blanks."""
    if not value or not value.strip():
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _enum(enum_cls, raw: str, what: str):
    try:
        return enum_cls(raw.strip().upper())
    except ValueError as e:
        raise ModuleParseError(f"Unknown {what}: {raw!r}") from e


def _compile_meta(meta: Optional[MetaDecl]) -> Optional[ModuleMeta]:
    if meta is None:
        return None
    return ModuleMeta(
        authors=[Author(name=a.name, email=a.email, url=a.url) for a in meta.authors],
        license=meta.license,
        homepage=meta.homepage,
        repository=meta.repository,
        icon=meta.icon,
        tags=list(meta.tags),
        min_app_version=meta.min_app_version,
    )


def _compile_state(state: StateDecl) -> StateContract:
    return StateContract(
        key=state.key,
        label=state.label,
        order=state.order if state.order is not None else DEFAULT_ORDER,
    )


def _compile_provider(provider: ProviderDecl) -> ProviderContract:
    return ProviderContract(
        key=provider.key,
        enabled=provider.enabled if provider.enabled is not None else True,
        priority=provider.priority if provider.priority is not None else DEFAULT_PRIORITY,
        supports=[_enum(IdentifierType, t, "identifier type") for t in provider.supports],
    )


def _compile_constraints(constraints: Optional[ConstraintsDecl]) -> Optional[Constraints]:
    if constraints is None:
        return None
    return Constraints(
        min=float(constraints.min) if constraints.min is not None else None,
        max=float(constraints.max) if constraints.max is not None else None,
        min_length=constraints.min_length,
        max_length=constraints.max_length,
        pattern=constraints.pattern,
        multi=constraints.multi,
        unique_within_collection=constraints.unique_within_collection,
    )


def _compile_ui(ui: Optional[UiDecl]) -> Optional[UiHints]:
    if ui is None:
        return None
    return UiHints(
        widget=ui.widget,
        placeholder=ui.placeholder,
        help_text=ui.help_text,
        group=ui.group,
        hidden=ui.hidden,
    )


def _compile_field(field: FieldDecl, module_key: str) -> FieldContract:
    identifiers = [_enum(IdentifierType, t, "identifier type") for t in field.identifiers]
    ui_hints = _compile_ui(field.ui)

    if IdentifierType.CUSTOM in identifiers:
        help_text = ui_hints.help_text if ui_hints else None
        if not help_text or not help_text.strip():
            logger.warning(
                f"Field '{field.key}' declares CUSTOM identifier but ui.helpText is missing",
                extra=with_log_context(module_key=module_key, field_key=field.key),
            )

    return FieldContract(
        key=field.key,
        label=field.label,
        type=_enum(FieldType, field.type, "field type"),
        required=bool(field.required),
        searchable=bool(field.searchable),
        filterable=bool(field.filterable),
        sortable=bool(field.sortable),
        order=field.order if field.order is not None else DEFAULT_ORDER,
        default_value=field.default_value,
        identifiers=identifiers,
        enum_values=[EnumValue(key=v.key, label=v.label) for v in field.enum_values],
        constraints=_compile_constraints(field.constraints),
        ui_hints=ui_hints,
        provider_mappings=[
            ProviderMapping(provider=m.provider, path=m.path, transform=m.transform)
            for m in field.mappings
        ],
    )


def _compile_step(step: StepDecl) -> WorkflowStep:
    return WorkflowStep(
        type=_enum(WorkflowStepType, step.type, "workflow step type"),
        field=step.field,
        fields=split_csv(step.fields),
        providers=split_csv(step.providers),
        query=step.query,
        label=step.label,
    )


def _compile_workflow(workflow: WorkflowDecl) -> WorkflowContract:
    return WorkflowContract(
        key=workflow.key,
        label=workflow.label,
        steps=[_compile_step(s) for s in workflow.steps],
    )


def compile_document(doc: ModuleDocument) -> ModuleContract:
    """
    Compile a parsed document into its canonical contract.

    States sort by (order, key), providers by (priority, key) and fields by
    (order, key), all ascending. Workflows and steps keep document order.
    """
    states = sorted((_compile_state(s) for s in doc.states), key=lambda s: (s.order, s.key))
    providers = sorted(
        (_compile_provider(p) for p in doc.providers), key=lambda p: (p.priority, p.key)
    )
    fields = sorted(
        (_compile_field(f, doc.key) for f in doc.fields), key=lambda f: (f.order, f.key)
    )

    return ModuleContract(
        key=doc.key,
        version=doc.version,
        name=doc.name,
        description=doc.description,
        meta=_compile_meta(doc.meta),
        states=states,
        providers=providers,
        fields=fields,
        workflows=[_compile_workflow(w) for w in doc.workflows],
    )
