"""
Chaining rules - follow-up fetches triggered by another provider's result.

A rule takes a result and the set of provider keys active for the lookup
and returns the (provider, identifier type, value) to fetch next, or None.
Only the Metron to ComicVine rule exists.
"""
import re
from typing import Any, Callable, NamedTuple

from jsonpointer import EndOfList, JsonPointerException, resolve_pointer

from collectory.modules.contracts import IdentifierType
from collectory.observability import get_logger
from collectory.providers.base import ProviderResult
from collectory.providers.field_mapper import unwrap_payload

logger = get_logger(__name__)

COMICVINE_ISSUE_PREFIX = "4000-"
_DIGITS = re.compile(r"\d+")


class ChainedFetch(NamedTuple):
    provider_key: str
    identifier_type: IdentifierType
    value: str


ChainRule = Callable[[ProviderResult, set[str]], "ChainedFetch | None"]


def _text_at(document: Any, path: str) -> str | None:
    try:
        value = resolve_pointer(document, path, None)
    except JsonPointerException:
        return None
    if value is None or isinstance(value, (dict, list, EndOfList)):
        return None
    text = str(value).strip()
    return text or None


def comicvine_reference(result: ProviderResult) -> str | None:
    """
    ComicVine issue id referenced by a result, as ``4000-<digits>``.

    Reads ``/comicvine_id`` then ``/cv_id``. Bare digits get the issue prefix,
    prefixed values pass through and anything else is ignored.
    """
    try:
        document = unwrap_payload(result.normalized_fields)
    except ValueError as e:
        logger.warning(
            f"Failed to parse normalized payload: {e}",
            extra={"provider_key": result.provider_key},
        )
        return None

    ref = _text_at(document, "/comicvine_id") or _text_at(document, "/cv_id")
    if ref is None:
        return None
    if ref.startswith(COMICVINE_ISSUE_PREFIX):
        return ref
    if _DIGITS.fullmatch(ref):
        return COMICVINE_ISSUE_PREFIX + ref
    return None


def metron_to_comicvine(result: ProviderResult, active_providers: set[str]) -> ChainedFetch | None:
    if result.provider_key != "metron" or "comicvine" not in active_providers:
        return None
    ref = comicvine_reference(result)
    if ref is None:
        return None
    return ChainedFetch("comicvine", IdentifierType.CUSTOM, ref)


CHAIN_RULES: list[ChainRule] = [metron_to_comicvine]


def chained_fetches(
    result: ProviderResult,
    active_providers: set[str],
    rules: list[ChainRule] | None = None,
) -> list[ChainedFetch]:
    """Follow-up fetches every rule derives from one result."""
    fetches = []
    for rule in CHAIN_RULES if rules is None else rules:
        fetch = rule(result, active_providers)
        if fetch is not None:
            fetches.append(fetch)
    return fetches
