"""
Module Document Parser - raw XML to a declaration tree.

The declaration tree mirrors the XML one to one: every optional attribute or
element is None when absent, and no defaults are applied here. Defaults,
sorting and list splitting belong to the compiler.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

from lxml import etree
from pydantic import BaseModel, Field

from collectory.modules.errors import ModuleParseError
from collectory.modules.schema import secure_xml_parser


class AuthorDecl(BaseModel):
    name: str
    email: Optional[str] = None
    url: Optional[str] = None


class MetaDecl(BaseModel):
    authors: list[AuthorDecl] = Field(default_factory=list)
    license: Optional[str] = None
    homepage: Optional[str] = None
    repository: Optional[str] = None
    icon: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    min_app_version: Optional[str] = None


class StateDecl(BaseModel):
    key: str
    label: str
    order: Optional[int] = None


class ProviderDecl(BaseModel):
    key: str
    enabled: Optional[bool] = None
    priority: Optional[int] = None
    supports: list[str] = Field(default_factory=list)


class EnumValueDecl(BaseModel):
    key: str
    label: str


class ConstraintsDecl(BaseModel):
    min: Optional[Decimal] = None
    max: Optional[Decimal] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    multi: Optional[bool] = None
    unique_within_collection: Optional[bool] = None


class UiDecl(BaseModel):
    widget: Optional[str] = None
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    group: Optional[str] = None
    hidden: Optional[bool] = None


class MappingDecl(BaseModel):
    provider: str
    path: str
    transform: Optional[str] = None


class FieldDecl(BaseModel):
    key: str
    label: str
    type: str
    required: Optional[bool] = None
    searchable: Optional[bool] = None
    filterable: Optional[bool] = None
    sortable: Optional[bool] = None
    order: Optional[int] = None
    identifiers: list[str] = Field(default_factory=list)
    enum_values: list[EnumValueDecl] = Field(default_factory=list)
    constraints: Optional[ConstraintsDecl] = None
    ui: Optional[UiDecl] = None
    mappings: list[MappingDecl] = Field(default_factory=list)
    default_value: Optional[str] = None


class StepDecl(BaseModel):
    type: str
    field: Optional[str] = None
    fields: Optional[str] = None
    providers: Optional[str] = None
    query: Optional[str] = None
    label: Optional[str] = None


class WorkflowDecl(BaseModel):
    key: str
    label: Optional[str] = None
    steps: list[StepDecl] = Field(default_factory=list)


class ModuleDocument(BaseModel):
    """Parsed, uncompiled module document."""

    key: str
    version: str
    name: str
    description: Optional[str] = None
    meta: Optional[MetaDecl] = None
    states: list[StateDecl] = Field(default_factory=list)
    providers: list[ProviderDecl] = Field(default_factory=list)
    fields: list[FieldDecl] = Field(default_factory=list)
    workflows: list[WorkflowDecl] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Scalar helpers
# ---------------------------------------------------------------------------

_TRUE = {"true", "1"}
_FALSE = {"false", "0"}


def _bool(value: Optional[str], name: str) -> Optional[bool]:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ModuleParseError(f"Attribute '{name}' is not a boolean: {value!r}")


def _int(value: Optional[str], name: str) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError as e:
        raise ModuleParseError(f"'{name}' is not an integer: {value!r}") from e


def _decimal(value: Optional[str], name: str) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(value.strip())
    except InvalidOperation as e:
        raise ModuleParseError(f"Attribute '{name}' is not a number: {value!r}") from e


def _required(el: etree._Element, name: str) -> str:
    value = el.get(name)
    if value is None:
        raise ModuleParseError(f"<{el.tag}> is missing required attribute '{name}'")
    return value


def _text(el: Optional[etree._Element]) -> Optional[str]:
    if el is None or el.text is None:
        return None
    return el.text.strip()


def _children(parent: Optional[etree._Element], wrapper: str, tag: str) -> list[etree._Element]:
    if parent is None:
        return []
    container = parent.find(wrapper)
    if container is None:
        return []
    return container.findall(tag)


# ---------------------------------------------------------------------------
# Element parsers
# ---------------------------------------------------------------------------


def _parse_meta(el: Optional[etree._Element]) -> Optional[MetaDecl]:
    if el is None:
        return None
    return MetaDecl(
        authors=[
            AuthorDecl(name=_required(a, "name"), email=a.get("email"), url=a.get("url"))
            for a in _children(el, "authors", "author")
        ],
        license=_text(el.find("license")),
        homepage=_text(el.find("homepage")),
        repository=_text(el.find("repository")),
        icon=_text(el.find("icon")),
        tags=[t for t in (_text(tag) for tag in _children(el, "tags", "tag")) if t],
        min_app_version=_text(el.find("minAppVersion")),
    )


def _parse_state(el: etree._Element) -> StateDecl:
    return StateDecl(
        key=_required(el, "key"),
        label=_required(el, "label"),
        order=_int(el.get("order"), "order"),
    )


def _parse_provider(el: etree._Element) -> ProviderDecl:
    return ProviderDecl(
        key=_required(el, "key"),
        enabled=_bool(el.get("enabled"), "enabled"),
        priority=_int(_text(el.find("priority")), "priority"),
        supports=[_required(i, "type") for i in _children(el, "supports", "identifier")],
    )


def _parse_constraints(el: Optional[etree._Element]) -> Optional[ConstraintsDecl]:
    if el is None:
        return None
    return ConstraintsDecl(
        min=_decimal(el.get("min"), "min"),
        max=_decimal(el.get("max"), "max"),
        min_length=_int(el.get("minLength"), "minLength"),
        max_length=_int(el.get("maxLength"), "maxLength"),
        pattern=el.get("pattern"),
        multi=_bool(el.get("multi"), "multi"),
        unique_within_collection=_bool(el.get("uniqueWithinCollection"), "uniqueWithinCollection"),
    )


def _parse_ui(el: Optional[etree._Element]) -> Optional[UiDecl]:
    if el is None:
        return None
    return UiDecl(
        widget=el.get("widget"),
        placeholder=_text(el.find("placeholder")),
        help_text=_text(el.find("helpText")),
        group=el.get("group"),
        hidden=_bool(el.get("hidden"), "hidden"),
    )


def _parse_field(el: etree._Element) -> FieldDecl:
    default_el = el.find("defaultValue")
    return FieldDecl(
        key=_required(el, "key"),
        label=_required(el, "label"),
        type=_required(el, "type"),
        required=_bool(el.get("required"), "required"),
        searchable=_bool(el.get("searchable"), "searchable"),
        filterable=_bool(el.get("filterable"), "filterable"),
        sortable=_bool(el.get("sortable"), "sortable"),
        order=_int(el.get("order"), "order"),
        identifiers=[_required(i, "type") for i in _children(el, "identifiers", "identifier")],
        enum_values=[
            EnumValueDecl(key=_required(v, "key"), label=_required(v, "label"))
            for v in _children(el, "enumValues", "value")
        ],
        constraints=_parse_constraints(el.find("constraints")),
        ui=_parse_ui(el.find("ui")),
        mappings=[
            MappingDecl(
                provider=_required(m, "provider"),
                path=_required(m, "path"),
                transform=m.get("transform"),
            )
            for m in _children(el, "providerMappings", "map")
        ],
        # Default values keep their whitespace
        default_value=default_el.text if default_el is not None else None,
    )


def _parse_workflow(el: etree._Element) -> WorkflowDecl:
    return WorkflowDecl(
        key=_required(el, "key"),
        label=el.get("label"),
        steps=[
            StepDecl(
                type=_required(s, "type"),
                field=s.get("field"),
                fields=s.get("fields"),
                providers=s.get("providers"),
                query=s.get("query"),
                label=s.get("label"),
            )
            for s in el.findall("step")
        ],
    )


def parse_document(raw: str) -> ModuleDocument:
    """
    Parse raw module XML into a declaration tree.

    Args:
        raw: Module document text

    Returns:
        ModuleDocument with every declared value and no defaults applied

    Raises:
        ModuleParseError: If the text is not well-formed or lacks required parts
    """
    try:
        root = etree.fromstring(raw.encode("utf-8"), secure_xml_parser())
    except etree.XMLSyntaxError as e:
        raise ModuleParseError(f"Module document is not well-formed: {e}") from e

    if root.tag != "module":
        raise ModuleParseError(f"Expected <module> root element, found <{root.tag}>")

    name = _text(root.find("name"))
    if not name:
        raise ModuleParseError("Module document is missing <name>")

    return ModuleDocument(
        key=_required(root, "key"),
        version=_required(root, "version"),
        name=name,
        description=_text(root.find("description")),
        meta=_parse_meta(root.find("meta")),
        states=[_parse_state(s) for s in _children(root, "states", "state")],
        providers=[_parse_provider(p) for p in _children(root, "providers", "provider")],
        fields=[_parse_field(f) for f in _children(root, "fields", "field")],
        workflows=[_parse_workflow(w) for w in _children(root, "workflows", "workflow")],
    )


def read_module_key(raw: str) -> Optional[str]:
    """Best-effort read of the module key attribute; None when unreadable."""
    try:
        root = etree.fromstring(raw.encode("utf-8"), secure_xml_parser())
    except etree.XMLSyntaxError:
        return None
    key = root.get("key")
    return key.strip() if key and key.strip() else None
