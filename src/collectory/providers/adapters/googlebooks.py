"""Google Books adapter (ISBN lookups)."""
from typing import Any

import httpx

from collectory.config import get_settings
from collectory.modules.contracts import IdentifierType
from collectory.providers.adapters.common import (
    default_client,
    first_year,
    json_envelope,
    normalize_isbn,
    put_text,
)
from collectory.providers.base import (
    AssetType,
    CredentialField,
    MetadataProvider,
    ProviderAsset,
    ProviderConfidence,
    ProviderResult,
)


class GoogleBooksProvider(MetadataProvider):
    """Looks up volumes by ISBN on the Google Books API. The API key is optional."""

    base_url = "https://www.googleapis.com/books/v1"

    def __init__(self, client: httpx.Client | None = None, api_key: str | None = None):
        super().__init__()
        self._client = client
        if api_key is None and get_settings().google_books_api_key is not None:
            api_key = get_settings().google_books_api_key.get_secret_value()
        self._api_key = api_key

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = default_client()
        return self._client

    def key(self) -> str:
        return "googlebooks"

    def supports(self, identifier_type: IdentifierType) -> bool:
        return identifier_type in (IdentifierType.ISBN10, IdentifierType.ISBN13)

    def credential_fields(self) -> list[CredentialField]:
        return [
            CredentialField.secret_field(
                "api_key",
                "API key",
                "Google Books API key; raises the anonymous quota",
                required=False,
            )
        ]

    def has_credentials(self) -> bool:
        return bool(self._api_key)

    def health_check_url(self) -> str | None:
        # The volumes endpoint rejects requests without a query
        return f"{self.base_url}/volumes?q=ping"

    def fetch(self, identifier_type: IdentifierType, value: str) -> ProviderResult | None:
        isbn = normalize_isbn(value)
        if isbn is None:
            return None

        params = {"q": f"isbn:{isbn}"}
        if self._api_key:
            params["key"] = self._api_key
        response = self.client.get(f"{self.base_url}/volumes", params=params)
        response.raise_for_status()
        root = response.json()

        items = root.get("items") if isinstance(root, dict) else None
        if not isinstance(items, list) or not items:
            return None
        item = items[0]
        info = item.get("volumeInfo")
        if not isinstance(info, dict):
            return None

        normalized: dict[str, Any] = {}
        put_text(normalized, "title", info.get("title"))
        put_text(normalized, "subtitle", info.get("subtitle"))

        authors = [a for a in info.get("authors") or [] if isinstance(a, str)]
        if authors:
            normalized["authors"] = ", ".join(authors)

        put_text(normalized, "publisher", info.get("publisher"))
        year = first_year(info.get("publishedDate"))
        if year is not None:
            normalized["published_year"] = year
        if isinstance(info.get("pageCount"), int):
            normalized["pages"] = info["pageCount"]
        put_text(normalized, "language", info.get("language"))

        industry_ids = info.get("industryIdentifiers")
        if isinstance(industry_ids, list):
            for entry in industry_ids:
                if not isinstance(entry, dict):
                    continue
                if entry.get("type") == "ISBN_10":
                    put_text(normalized, "isbn10", entry.get("identifier"))
                elif entry.get("type") == "ISBN_13":
                    put_text(normalized, "isbn13", entry.get("identifier"))
        elif identifier_type == IdentifierType.ISBN10:
            normalized["isbn10"] = isbn
        else:
            normalized["isbn13"] = isbn

        assets = []
        image_links = info.get("imageLinks")
        if isinstance(image_links, dict):
            if isinstance(image_links.get("thumbnail"), str):
                assets.append(ProviderAsset(type=AssetType.COVER, url=image_links["thumbnail"]))
            if isinstance(image_links.get("smallThumbnail"), str):
                assets.append(ProviderAsset(type=AssetType.THUMBNAIL, url=image_links["smallThumbnail"]))

        return ProviderResult(
            provider_key=self.key(),
            raw_data=item,
            normalized_fields=json_envelope(normalized),
            assets=assets,
            confidence=ProviderConfidence(score=90, reason="GoogleBooks ISBN match"),
        )
