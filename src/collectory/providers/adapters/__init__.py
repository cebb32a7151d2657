"""Bundled metadata provider adapters."""
from collectory.providers.adapters.googlebooks import GoogleBooksProvider
from collectory.providers.adapters.openlibrary import OpenLibraryProvider
from collectory.providers.base import MetadataProvider


def default_providers() -> list[MetadataProvider]:
    return [OpenLibraryProvider(), GoogleBooksProvider()]


__all__ = ["default_providers", "GoogleBooksProvider", "OpenLibraryProvider"]
