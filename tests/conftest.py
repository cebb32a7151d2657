"""Pytest configuration and fixtures."""
import os
import time

import pytest
from sqlalchemy.orm import sessionmaker

# Set test environment variables
os.environ["COLLECTORY_ENV"] = "test"
os.environ["COLLECTORY_DATABASE_URL"] = "sqlite://"  # In-memory DB

from collectory.config import reset_settings  # noqa: E402
from collectory.modules import IdentifierType, ModuleLoader, compile_document, parse_document  # noqa: E402
from collectory.modules.import_storage import ModuleImportStorage  # noqa: E402
from collectory.modules.importer import ModuleImportService  # noqa: E402
from collectory.providers import (  # noqa: E402
    MetadataProvider,
    ProviderAsset,
    ProviderConfidence,
    ProviderResult,
    reset_provider_registry,
    reset_provider_status_service,
)
from collectory.storage import init_db, make_engine, reset_session_factory  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Fresh settings, engine and registry per test; imports go to tmp_path."""
    monkeypatch.setenv("COLLECTORY_IMPORT_DIR", str(tmp_path / "imported"))
    reset_settings()
    reset_session_factory()
    reset_provider_registry()
    reset_provider_status_service()
    yield
    reset_settings()
    reset_session_factory()
    reset_provider_registry()
    reset_provider_status_service()


@pytest.fixture
def session_factory():
    """Session factory bound to a private in-memory database."""
    engine = make_engine("sqlite://")
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    init_db(factory)
    yield factory
    engine.dispose()


@pytest.fixture
def loader(session_factory):
    return ModuleLoader(session_factory=session_factory)


@pytest.fixture
def import_storage(tmp_path):
    return ModuleImportStorage(tmp_path / "imports")


@pytest.fixture
def import_service(session_factory, loader, import_storage):
    return ModuleImportService(session_factory=session_factory, loader=loader, storage=import_storage)


DEFAULT_STATES = '<state key="OWNED" label="Owned" order="0"/>'
DEFAULT_FIELDS = '<field key="title" label="Title" type="TEXT" required="true"/>'


def build_module_xml(
    key: str = "sample",
    version: str = "1.0.0",
    name: str = "Sample",
    states: str = DEFAULT_STATES,
    providers: str = "",
    fields: str = DEFAULT_FIELDS,
    workflows: str = "",
    extra: str = "",
) -> str:
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<module key="{key}" version="{version}">
  <name>{name}</name>{extra}
  <states>{states}</states>
  <providers>{providers}</providers>
  <fields>{fields}</fields>
  <workflows>{workflows}</workflows>
</module>
"""


@pytest.fixture
def module_xml():
    """Builder for module documents; every part is an XML fragment."""
    return build_module_xml


BOOK_PROVIDERS = """
<provider key="openlibrary">
  <supports><identifier type="ISBN13"/></supports>
  <priority>10</priority>
</provider>
<provider key="googlebooks">
  <supports><identifier type="ISBN13"/></supports>
  <priority>20</priority>
</provider>
"""

BOOK_FIELDS = """
<field key="title" label="Title" type="TEXT" order="1">
  <providerMappings>
    <map provider="openlibrary" path="/title"/>
    <map provider="googlebooks" path="/title"/>
  </providerMappings>
</field>
<field key="pages" label="Pages" type="NUMBER" order="2">
  <providerMappings>
    <map provider="googlebooks" path="/pages"/>
    <map provider="openlibrary" path="/number_of_pages"/>
  </providerMappings>
</field>
"""


@pytest.fixture
def book_contract():
    """Compiled contract declaring openlibrary (10) and googlebooks (20)."""
    raw = build_module_xml(key="books", providers=BOOK_PROVIDERS, fields=BOOK_FIELDS)
    return compile_document(parse_document(raw))


class StubProvider(MetadataProvider):
    """In-process provider answering from a dict of identifier value -> result."""

    def __init__(self, provider_key, results=None, supported=(IdentifierType.ISBN13,), error=None, delay_s=0.0):
        super().__init__()
        self._key = provider_key
        self.results = results or {}
        self.supported = set(supported)
        self.error = error
        self.delay_s = delay_s
        self.calls = []

    def key(self) -> str:
        return self._key

    def supports(self, identifier_type: IdentifierType) -> bool:
        return identifier_type in self.supported

    def fetch(self, identifier_type, value):
        self.calls.append((identifier_type, value))
        if self.delay_s:
            time.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        return self.results.get(value)


@pytest.fixture
def stub_provider():
    return StubProvider


@pytest.fixture
def make_result():
    """Builder for provider results with a plain dict payload."""

    def _make(provider_key, score=None, document=None, assets=()):
        return ProviderResult(
            provider_key=provider_key,
            raw_data=document,
            normalized_fields=document,
            assets=[ProviderAsset(type=t, url=u) for t, u in assets],
            confidence=ProviderConfidence(score=score, reason="stub") if score is not None else None,
        )

    return _make
