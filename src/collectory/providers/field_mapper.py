"""
Field Mapper - provider payload to module attributes.

Each module field lists provider mappings as JSON pointers into a provider's
normalized payload. For one provider the first mapping that resolves to a
non-null value wins for that field.
"""
import json
from typing import Any, Iterable

from jsonpointer import EndOfList, JsonPointerException, resolve_pointer

from collectory.modules.contracts import FieldContract
from collectory.observability import get_logger, with_log_context
from collectory.providers.base import ProviderResult

logger = get_logger(__name__)

_MISSING = object()


def unwrap_payload(payload: Any) -> Any:
    """
    Return the JSON document a normalized payload carries.

    Adapters may hand over a parsed document, JSON text, or a ``{"json": text}``
    envelope.

    Raises:
        ValueError: If embedded JSON text cannot be decoded
    """
    if isinstance(payload, dict) and len(payload) == 1 and isinstance(payload.get("json"), str):
        return json.loads(payload["json"])
    if isinstance(payload, str):
        return json.loads(payload)
    return payload


def to_attribute(value: Any) -> Any:
    """Scalars map to native values; arrays and objects to compact JSON text."""
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return value


def map_fields(document: Any, fields: Iterable[FieldContract], provider_key: str) -> dict[str, Any]:
    """Map one provider's payload document onto field keys."""
    mapped: dict[str, Any] = {}
    for field in fields:
        for mapping in field.provider_mappings:
            if mapping.provider != provider_key:
                continue
            try:
                value = resolve_pointer(document, mapping.path, _MISSING)
            except JsonPointerException:
                value = _MISSING
            # "-" addresses the slot past a list's end, which holds no value
            if value is _MISSING or value is None or isinstance(value, EndOfList):
                continue
            mapped[field.key] = to_attribute(value)
            break
    return mapped


class FieldMapper:
    """Per-lookup mapper; each provider's output is computed at most once."""

    def __init__(self, fields: list[FieldContract], lookup_id: str | None = None):
        self.fields = fields
        self.lookup_id = lookup_id
        self._cache: dict[str, dict[str, Any]] = {}

    def mapped(self, result: ProviderResult) -> dict[str, Any]:
        """Mapped attributes for a provider's result, memoized by provider key."""
        key = result.provider_key
        if key not in self._cache:
            try:
                document = unwrap_payload(result.normalized_fields)
            except ValueError as e:
                logger.warning(
                    f"Unparseable normalized payload: {e}",
                    extra=with_log_context(provider_key=key, lookup_id=self.lookup_id),
                )
                self._cache[key] = {}
            else:
                self._cache[key] = map_fields(document, self.fields, key)
        return self._cache[key]
