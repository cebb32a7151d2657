"""Open Library adapter (ISBN lookups)."""
from typing import Any

import httpx

from collectory.modules.contracts import IdentifierType
from collectory.observability import get_logger
from collectory.providers.adapters.common import (
    default_client,
    first_year,
    json_envelope,
    normalize_isbn,
    put_text,
)
from collectory.providers.base import (
    AssetType,
    MetadataProvider,
    ProviderAsset,
    ProviderConfidence,
    ProviderResult,
)

logger = get_logger(__name__)


class OpenLibraryProvider(MetadataProvider):
    """
    Looks up editions by ISBN on openlibrary.org.

    Author names need one extra request per author; an author that cannot be
    resolved is left out.
    """

    base_url = "https://openlibrary.org"
    covers_url = "https://covers.openlibrary.org"
    # Open Library asks clients to keep request rates low
    min_call_interval_s = 0.1

    def __init__(self, client: httpx.Client | None = None):
        super().__init__()
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = default_client()
        return self._client

    def key(self) -> str:
        return "openlibrary"

    def supports(self, identifier_type: IdentifierType) -> bool:
        return identifier_type in (IdentifierType.ISBN10, IdentifierType.ISBN13)

    def health_check_url(self) -> str | None:
        return f"{self.base_url}/robots.txt"

    def fetch(self, identifier_type: IdentifierType, value: str) -> ProviderResult | None:
        isbn = normalize_isbn(value)
        if isbn is None:
            return None

        self.throttle()
        response = self.client.get(f"{self.base_url}/isbn/{isbn}.json")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        raw = response.json()
        if not isinstance(raw, dict):
            return None

        normalized: dict[str, Any] = {}
        put_text(normalized, "title", raw.get("title"))
        put_text(normalized, "subtitle", raw.get("subtitle"))

        publishers = raw.get("publishers")
        if isinstance(publishers, list) and publishers:
            put_text(normalized, "publisher", publishers[0])

        year = first_year(raw.get("publish_date"))
        if year is not None:
            normalized["published_year"] = year

        if isinstance(raw.get("number_of_pages"), int):
            normalized["pages"] = raw["number_of_pages"]

        languages = raw.get("languages")
        if isinstance(languages, list) and languages and isinstance(languages[0], dict):
            lang_key = languages[0].get("key")
            if isinstance(lang_key, str):
                # "/languages/eng" -> "eng"
                normalized["language"] = lang_key.rsplit("/", 1)[-1]

        if identifier_type == IdentifierType.ISBN10:
            normalized["isbn10"] = isbn
        else:
            normalized["isbn13"] = isbn

        authors = self._resolve_authors(raw)
        if authors:
            normalized["authors"] = ", ".join(authors)

        assets = [
            ProviderAsset(type=AssetType.COVER, url=f"{self.covers_url}/b/isbn/{isbn}-L.jpg"),
            ProviderAsset(type=AssetType.THUMBNAIL, url=f"{self.covers_url}/b/isbn/{isbn}-M.jpg"),
        ]

        return ProviderResult(
            provider_key=self.key(),
            raw_data=raw,
            normalized_fields=json_envelope(normalized),
            assets=assets,
            confidence=ProviderConfidence(score=80, reason="OpenLibrary ISBN match"),
        )

    def _resolve_authors(self, raw: dict[str, Any]) -> list[str]:
        authors = raw.get("authors")
        if not isinstance(authors, list):
            return []
        names = []
        for entry in authors:
            author_key = entry.get("key") if isinstance(entry, dict) else None
            if not isinstance(author_key, str):
                continue
            self.throttle()
            try:
                response = self.client.get(f"{self.base_url}{author_key}.json")
                response.raise_for_status()
                name = response.json().get("name")
            except (httpx.HTTPError, ValueError) as e:
                logger.debug(f"Author lookup failed for {author_key}: {e}", extra={"provider_key": self.key()})
                continue
            if isinstance(name, str) and name.strip():
                names.append(name.strip())
        return names
