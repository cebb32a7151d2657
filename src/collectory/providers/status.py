"""
Provider Status - readiness of a provider adapter.

A status combines credential readiness with a reachability check against the
adapter's health check URL. The last status per provider is cached; a live
re-check within the rate limit window returns the cached status marked as
rate limited, with the seconds left until a new check is allowed.
"""
import threading
import time
from dataclasses import dataclass
from typing import Callable

import httpx
from pydantic import Field

from collectory.modules.contracts import IdentifierType
from collectory.observability import get_logger, with_log_context
from collectory.providers.adapters.common import default_client
from collectory.providers.base import MetadataProvider, ProviderModel

logger = get_logger(__name__)

RATE_LIMIT_S = 30.0


class ProviderStatus(ProviderModel):
    """Readiness of one provider."""

    key: str = Field(..., description="Provider key")
    available: bool = Field(..., description="Configured and responsive")
    message: str = Field(..., description="Status detail")
    supported_id_types: list[IdentifierType] = Field(default_factory=list)
    rate_limited: bool = Field(default=False, description="Live check refused, cached status returned")
    retry_after_s: int | None = Field(default=None, description="Seconds until a live check is allowed")
    credentials_required: bool = False
    credentials_configured: bool = True


@dataclass(frozen=True)
class _StatusEntry:
    status: ProviderStatus
    checked_at: float


class ProviderStatusService:
    """Builds and caches provider statuses."""

    def __init__(
        self,
        client: httpx.Client | None = None,
        rate_limit_s: float = RATE_LIMIT_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._client = client
        self.rate_limit_s = rate_limit_s
        self.clock = clock
        self._cache: dict[str, _StatusEntry] = {}
        self._lock = threading.Lock()

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = default_client()
        return self._client

    def get_status(self, provider: MetadataProvider) -> ProviderStatus:
        """Cached status, built on first request."""
        key = provider.key()
        with self._lock:
            entry = self._cache.get(key)
        if entry is None:
            entry = self._store(provider)
        return entry.status

    def check_status(self, provider: MetadataProvider) -> ProviderStatus:
        """
        Run a live check unless the last one is younger than the rate limit.

        Returns:
            The fresh status, or the cached one with ``rate_limited`` set
        """
        key = provider.key()
        with self._lock:
            entry = self._cache.get(key)
        if entry is not None:
            since = self.clock() - entry.checked_at
            if since < self.rate_limit_s:
                retry_after = max(1, int(self.rate_limit_s - since))
                return entry.status.model_copy(update={
                    "message": f"Rate limited, try again in {retry_after}s",
                    "rate_limited": True,
                    "retry_after_s": retry_after,
                })
        return self._store(provider).status

    def _store(self, provider: MetadataProvider) -> _StatusEntry:
        entry = _StatusEntry(self._build(provider), self.clock())
        with self._lock:
            self._cache[provider.key()] = entry
        return entry

    def _build(self, provider: MetadataProvider) -> ProviderStatus:
        descriptor = provider.descriptor()
        available, message = self._check_reachable(provider, descriptor.credentials_required, descriptor.credentials_configured)
        return ProviderStatus(
            key=descriptor.key,
            available=available,
            message=message,
            supported_id_types=descriptor.supported_id_types,
            credentials_required=descriptor.credentials_required,
            credentials_configured=descriptor.credentials_configured,
        )

    def _check_reachable(self, provider: MetadataProvider, required: bool, configured: bool) -> tuple[bool, str]:
        if required and not configured:
            return False, "Credentials not configured for this provider"

        url = provider.health_check_url()
        if not url:
            return False, "Health check not configured for this provider"

        log_extra = with_log_context(provider_key=provider.key())
        try:
            response = self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.debug(f"Provider health check failed: HTTP {e.response.status_code}", extra=log_extra)
            return False, f"Health check failed: HTTP {e.response.status_code}"
        except httpx.HTTPError as e:
            logger.debug(f"Provider health check failed: {e}", extra=log_extra)
            return False, "Health check failed: API unreachable"
        return True, "Successfully contacted provider"


# Global status service
_status_service: ProviderStatusService | None = None


def get_provider_status_service() -> ProviderStatusService:
    """Get or create the global status service."""
    global _status_service
    if _status_service is None:
        _status_service = ProviderStatusService()
    return _status_service


def reset_provider_status_service() -> None:
    """Reset the global status service (useful for testing)."""
    global _status_service
    _status_service = None
