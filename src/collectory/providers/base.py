"""Metadata provider base class and the value types providers return."""
import threading
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from collectory.modules.contracts import IdentifierType


class ProviderModel(BaseModel):
    """Base for provider wire types: camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AssetType(str, Enum):
    COVER = "COVER"
    THUMBNAIL = "THUMBNAIL"


class ProviderAsset(ProviderModel):
    """Image offered by a provider."""

    type: AssetType = Field(..., description="Asset kind")
    url: str = Field(..., description="Absolute asset URL")
    width: int | None = Field(default=None, description="Width in pixels, if known")
    height: int | None = Field(default=None, description="Height in pixels, if known")

    def identity(self) -> tuple[str, str, int | None, int | None]:
        return (self.type.value, self.url, self.width, self.height)


class ProviderConfidence(ProviderModel):
    score: int = Field(..., ge=0, le=100, description="Match confidence, 0-100")
    reason: str | None = Field(default=None, description="Why the provider is this confident")


class ProviderResult(ProviderModel):
    """One provider's answer for one identifier. Never persisted."""

    provider_key: str = Field(..., description="Key of the provider that answered")
    raw_data: Any = Field(default=None, description="Opaque upstream payload")
    normalized_fields: Any = Field(default=None, description="Provider-normalized payload")
    assets: list[ProviderAsset] = Field(default_factory=list)
    confidence: ProviderConfidence | None = None

    @property
    def score(self) -> int:
        return self.confidence.score if self.confidence else 0


def humanize(key: str | None, fallback: str) -> str:
    """``google_books`` -> ``Google Books``."""
    if not key or not key.strip():
        return fallback
    parts = key.replace("_", " ").replace("-", " ").split()
    return " ".join(p[0].upper() + p[1:] for p in parts)


class CredentialField(ProviderModel):
    """A credential value a provider needs from the administrator."""

    name: str = Field(..., description="Internal name used to store the value")
    label: str = Field(..., description="Label shown to administrators")
    description: str = Field(default="", description="What to enter")
    secret: bool = Field(default=False, description="Mask the value")
    required: bool = Field(default=True, description="Must be provided")

    @classmethod
    def text(cls, name: str, label: str | None = None, description: str = "", required: bool = True):
        return cls(name=name, label=label or humanize(name, "Field"), description=description,
                   secret=False, required=required)

    @classmethod
    def secret_field(cls, name: str, label: str | None = None, description: str = "", required: bool = True):
        return cls(name=name, label=label or humanize(name, "Field"), description=description,
                   secret=True, required=required)


class ProviderDescriptor(ProviderModel):
    key: str
    display_name: str
    description: str | None = None
    supported_id_types: list[IdentifierType] = Field(default_factory=list)
    credential_fields: list[CredentialField] = Field(default_factory=list)
    credentials_required: bool = Field(default=False, description="A required credential is declared")
    credentials_configured: bool = Field(default=True, description="Every declared credential has a value")


class MetadataProvider(ABC):
    """
    Base class for metadata provider adapters.

    Subclasses answer ``fetch`` with a ProviderResult or None for "no match".
    Exceptions raised from ``fetch`` are caught and logged by the lookup.
    Adapters that must space out upstream calls set ``min_call_interval_s``
    and call ``throttle()`` before each request.
    """

    min_call_interval_s: float = 0.0

    def __init__(self):
        self._throttle_lock = threading.Lock()
        self._last_call = 0.0

    @abstractmethod
    def key(self) -> str:
        """Stable provider key, as referenced by module documents."""
        pass

    @abstractmethod
    def supports(self, identifier_type: IdentifierType) -> bool:
        pass

    @abstractmethod
    def fetch(self, identifier_type: IdentifierType, value: str) -> ProviderResult | None:
        """
        Query the upstream service for one identifier.

        Returns:
            ProviderResult, or None when the provider has no match
        """
        pass

    def credential_fields(self) -> list[CredentialField]:
        return []

    def has_credentials(self) -> bool:
        """
        Whether the credentials this provider declares are configured.

        Adapters that read credentials from settings override this; the default
        holds when no required credential is declared.
        """
        return not any(f.required for f in self.credential_fields())

    def health_check_url(self) -> str | None:
        """URL a cheap GET can reach to confirm the provider is up, or None when there is none."""
        return None

    def descriptor(self) -> ProviderDescriptor:
        fields = self.credential_fields()
        return ProviderDescriptor(
            key=self.key(),
            display_name=humanize(self.key(), "Provider"),
            supported_id_types=[t for t in IdentifierType if self.supports(t)],
            credential_fields=fields,
            credentials_required=any(f.required for f in fields),
            credentials_configured=self.has_credentials(),
        )

    def throttle(self) -> None:
        """Block until ``min_call_interval_s`` has passed since this provider's last call."""
        if self.min_call_interval_s <= 0:
            return
        with self._throttle_lock:
            wait = self._last_call + self.min_call_interval_s - time.monotonic()
            if wait > 0:
                time.sleep(wait)
            self._last_call = time.monotonic()
