"""Integration tests for provider API endpoints."""
import httpx
import pytest

from collectory.api.dependencies import get_registry, get_status_service
from collectory.modules import IdentifierType
from collectory.providers import AssetType, ProviderRegistry, ProviderStatusService

ISBN = "9780261103573"


@pytest.fixture
def registry(stub_provider, make_result):
    return ProviderRegistry([
        stub_provider("openlibrary", {
            ISBN: make_result(
                "openlibrary",
                80,
                {"title": "The Fellowship of the Ring", "authors": "J.R.R. Tolkien"},
                assets=[(AssetType.COVER, "https://covers.example.org/1.jpg")],
            ),
        }, supported=(IdentifierType.ISBN10, IdentifierType.ISBN13)),
        stub_provider("googlebooks", {
            ISBN: make_result(
                "googlebooks",
                90,
                {"json": '{"title": "The Lord of the Rings", "pages": 1178}'},
                assets=[(AssetType.COVER, "https://covers.example.org/1.jpg")],
            ),
        }, supported=(IdentifierType.ISBN10, IdentifierType.ISBN13)),
    ])


@pytest.fixture
def api(app, client, registry):
    app.dependency_overrides[get_registry] = lambda: registry
    yield client
    app.dependency_overrides.clear()


def module_id(client, key):
    return client.get(f"/api/modules/{key}").json()["id"]


def test_list_providers(api):
    response = api.get("/api/providers")

    assert response.status_code == 200
    data = response.json()
    assert [d["key"] for d in data] == ["googlebooks", "openlibrary"]
    assert data[0]["supportedIdTypes"] == ["ISBN10", "ISBN13"]
    assert "displayName" in data[0]


def test_lookup_merges_declared_providers(api):
    payload = {
        "moduleId": module_id(api, "books"),
        "identifiers": [{"identifierType": "ISBN13", "identifierValue": ISBN}],
    }

    response = api.post("/api/providers/lookup", json=payload)

    assert response.status_code == 200
    data = response.json()
    assert data["best"]["providerKey"] == "googlebooks"
    assert [r["providerKey"] for r in data["results"]] == ["openlibrary", "googlebooks"]
    assert data["mergedAttributes"] == {
        "title": "The Fellowship of the Ring",
        "authors": "J.R.R. Tolkien",
        "pages": 1178,
    }
    assert data["assets"] == [
        {"type": "COVER", "url": "https://covers.example.org/1.jpg", "width": None, "height": None}
    ]


def test_lookup_with_provider_filter(api):
    payload = {
        "moduleId": module_id(api, "books"),
        "identifiers": [{"identifierType": "ISBN13", "identifierValue": ISBN}],
        "providers": ["googlebooks"],
    }

    data = api.post("/api/providers/lookup", json=payload).json()

    assert [r["providerKey"] for r in data["results"]] == ["googlebooks"]
    assert data["mergedAttributes"]["title"] == "The Lord of the Rings"


def test_lookup_for_module_without_providers(api):
    payload = {"moduleId": module_id(api, "games"), "query": "Hades"}

    data = api.post("/api/providers/lookup", json=payload).json()

    assert data["results"] == []
    assert data["best"] is None
    assert data["mergedAttributes"] == {}


def test_lookup_unknown_module(api):
    response = api.post("/api/providers/lookup", json={"moduleId": "missing", "identifiers": []})

    assert response.status_code == 404


def test_lookup_rejects_unknown_identifier_type(api):
    payload = {
        "moduleId": module_id(api, "books"),
        "identifiers": [{"identifierType": "DOI", "identifierValue": "10.1000/1"}],
    }

    assert api.post("/api/providers/lookup", json=payload).status_code == 422


@pytest.fixture
def status_api(app, api):
    """Status checks against a mock upstream that always answers 200."""
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    app.dependency_overrides[get_status_service] = lambda: ProviderStatusService(client=client)
    yield api


def test_list_providers_reports_credential_readiness(api):
    data = api.get("/api/providers").json()

    assert data[0]["credentialsRequired"] is False
    assert data[0]["credentialsConfigured"] is True


def test_provider_status(status_api):
    response = status_api.get("/api/providers/openlibrary/status")

    assert response.status_code == 200
    data = response.json()
    assert data["key"] == "openlibrary"
    assert data["available"] is False
    assert data["message"] == "Health check not configured for this provider"
    assert data["supportedIdTypes"] == ["ISBN10", "ISBN13"]


def test_provider_status_unknown_key(status_api):
    response = status_api.get("/api/providers/nope/status")

    assert response.status_code == 404
    assert response.json()["detail"] == "Unknown provider: nope"


def test_status_check_is_rate_limited(app, api):
    service = ProviderStatusService(client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200))))
    app.dependency_overrides[get_status_service] = lambda: service

    first = api.post("/api/providers/googlebooks/status/check").json()
    second = api.post("/api/providers/googlebooks/status/check").json()

    assert first["rateLimited"] is False
    assert second["rateLimited"] is True
    assert 1 <= second["retryAfterS"] <= 30


def test_status_check_unknown_key(status_api):
    assert status_api.post("/api/providers/nope/status/check").status_code == 404
