"""
Lookup Orchestrator - fan out to providers, rank, merge.

One lookup:
1. keeps the module's enabled providers (optionally filtered by key)
2. fetches every (provider x supported identifier) pair concurrently and
   applies chaining rules to each result
3. ranks all results by declared priority, then confidence, both descending
4. merges field values walking providers in compiled (ascending priority) order
5. collects and de-duplicates the best candidates' assets

A provider that raises, or that is still running at the lookup deadline,
simply contributes nothing.
"""
import sys
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Iterable

from pydantic import Field

from collectory.config import get_settings
from collectory.modules.contracts import IdentifierType, ModuleContract, ProviderContract
from collectory.observability import get_logger, with_log_context
from collectory.providers.base import MetadataProvider, ProviderAsset, ProviderModel, ProviderResult
from collectory.providers.chaining import chained_fetches
from collectory.providers.field_mapper import FieldMapper
from collectory.providers.registry import ProviderRegistry, get_provider_registry

logger = get_logger(__name__)

# Priority of results from providers the module does not declare
UNDECLARED_PRIORITY = sys.maxsize


class LookupIdentifier(ProviderModel):
    identifier_type: IdentifierType = Field(..., description="Identifier type")
    identifier_value: str = Field(..., min_length=1, description="Identifier value")


class LookupRequest(ProviderModel):
    """Request model for a metadata lookup."""

    module_id: str = Field(..., description="Module definition ID")
    identifiers: list[LookupIdentifier] = Field(default_factory=list)
    providers: list[str] | None = Field(default=None, description="Only query these provider keys")
    query: str | None = Field(default=None, description="Free-text query")

    def effective_identifiers(self) -> list[LookupIdentifier]:
        """Identifiers to query; a bare query becomes a CUSTOM identifier."""
        if self.identifiers:
            return list(self.identifiers)
        if self.query and self.query.strip():
            return [LookupIdentifier(identifier_type=IdentifierType.CUSTOM, identifier_value=self.query.strip())]
        return []


class LookupResponse(ProviderModel):
    results: list[ProviderResult] = Field(default_factory=list, description="Every result, in fetch order")
    best: ProviderResult | None = Field(default=None, description="Top ranked result")
    merged_attributes: dict[str, Any] = Field(default_factory=dict)
    assets: list[ProviderAsset] = Field(default_factory=list)


def active_providers(contract: ModuleContract, provider_filter: Iterable[str] | None) -> list[ProviderContract]:
    """Enabled declared providers in compiled order, narrowed by the filter."""
    wanted = set(provider_filter) if provider_filter else None
    return [p for p in contract.providers if p.enabled and (wanted is None or p.key in wanted)]


def rank_results(results: list[ProviderResult], priority: dict[str, int]) -> list[ProviderResult]:
    """Higher declared priority first, then higher confidence; stable otherwise."""
    return sorted(
        results,
        key=lambda r: (priority.get(r.provider_key, UNDECLARED_PRIORITY), r.score),
        reverse=True,
    )


def dedupe_assets(assets: Iterable[ProviderAsset]) -> list[ProviderAsset]:
    seen: set[tuple] = set()
    unique = []
    for asset in assets:
        identity = asset.identity()
        if identity not in seen:
            seen.add(identity)
            unique.append(asset)
    return unique


class LookupService:
    """Runs metadata lookups against the registered providers."""

    def __init__(
        self,
        registry: ProviderRegistry | None = None,
        max_workers: int | None = None,
        timeout_s: float | None = None,
    ):
        settings = get_settings()
        self.registry = registry or get_provider_registry()
        self.max_workers = max_workers or settings.lookup_max_workers
        self.timeout_s = timeout_s or settings.lookup_timeout_s

    def lookup(
        self,
        contract: ModuleContract,
        identifiers: list[LookupIdentifier],
        provider_filter: Iterable[str] | None = None,
    ) -> LookupResponse:
        """
        Look up metadata for one item.

        Args:
            contract: Compiled contract of the item's module
            identifiers: Identifiers to query
            provider_filter: Optional provider keys to restrict the lookup to

        Returns:
            LookupResponse with results, best, merged attributes and assets
        """
        lookup_id = uuid.uuid4().hex[:12]
        kept = active_providers(contract, provider_filter)
        priority = {p.key: p.priority for p in kept}

        results = self._collect(kept, identifiers, lookup_id)

        ranked = rank_results(results, priority)
        best_by_provider: dict[str, ProviderResult] = {}
        for result in ranked:
            best_by_provider.setdefault(result.provider_key, result)

        mapper = FieldMapper(contract.fields, lookup_id=lookup_id)
        merged: dict[str, Any] = {}
        for field in contract.fields:
            for provider in kept:
                candidate = best_by_provider.get(provider.key)
                if candidate is None:
                    continue
                value = mapper.mapped(candidate).get(field.key)
                if value is not None:
                    merged[field.key] = value
                    break

        assets: list[ProviderAsset] = []
        for provider in kept:
            candidate = best_by_provider.get(provider.key)
            if candidate is not None:
                assets.extend(candidate.assets)

        logger.info(
            "Lookup completed",
            extra=with_log_context(
                module_key=contract.key,
                lookup_id=lookup_id,
                providers=len(kept),
                results=len(results),
                merged_fields=len(merged),
            ),
        )
        return LookupResponse(
            results=results,
            best=ranked[0] if ranked else None,
            merged_attributes=merged,
            assets=dedupe_assets(assets),
        )

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    def _collect(
        self,
        kept: list[ProviderContract],
        identifiers: list[LookupIdentifier],
        lookup_id: str,
    ) -> list[ProviderResult]:
        active_keys = {p.key for p in kept}
        deadline = time.monotonic() + self.timeout_s
        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="lookup")
        try:
            calls: list[tuple[str, Future]] = []
            for provider_config in kept:
                adapter = self.registry.get(provider_config.key)
                if adapter is None:
                    logger.debug(
                        "No adapter registered",
                        extra=with_log_context(provider_key=provider_config.key, lookup_id=lookup_id),
                    )
                    continue
                for identifier in identifiers:
                    if not adapter.supports(identifier.identifier_type):
                        continue
                    future = executor.submit(
                        self._fetch, adapter, identifier.identifier_type, identifier.identifier_value, lookup_id
                    )
                    calls.append((provider_config.key, future))

            results: list[ProviderResult] = []
            for provider_key, future in calls:
                result = self._await(future, deadline, provider_key, lookup_id)
                if result is None:
                    continue
                results.append(result)

                for chained in chained_fetches(result, active_keys):
                    adapter = self.registry.get(chained.provider_key)
                    if adapter is None:
                        continue
                    future = executor.submit(
                        self._fetch, adapter, chained.identifier_type, chained.value, lookup_id
                    )
                    chained_result = self._await(future, deadline, chained.provider_key, lookup_id)
                    if chained_result is not None:
                        results.append(chained_result)
            return results
        finally:
            # Calls still running past the deadline are abandoned, not awaited
            executor.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _fetch(
        adapter: MetadataProvider,
        identifier_type: IdentifierType,
        value: str,
        lookup_id: str,
    ) -> ProviderResult | None:
        try:
            return adapter.fetch(identifier_type, value)
        except Exception as e:
            logger.warning(
                f"Provider fetch failed: {e}",
                extra=with_log_context(
                    provider_key=adapter.key(),
                    lookup_id=lookup_id,
                    identifier_type=identifier_type.value,
                    error_type=type(e).__name__,
                ),
            )
            return None

    @staticmethod
    def _await(future: Future, deadline: float, provider_key: str, lookup_id: str) -> ProviderResult | None:
        try:
            return future.result(timeout=max(0.0, deadline - time.monotonic()))
        except FutureTimeoutError:
            logger.warning(
                "Provider call missed the lookup deadline",
                extra=with_log_context(provider_key=provider_key, lookup_id=lookup_id),
            )
            return None
