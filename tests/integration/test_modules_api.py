"""Integration tests for module API endpoints."""
import pytest
from fastapi.testclient import TestClient

from collectory.api.main import create_app
from collectory.config import get_settings
from collectory.modules import ModuleBootstrapError


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["modules"] == 3
    assert data["providers"] == 2


def test_root_endpoint(client):
    """Test root endpoint."""
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["service"] == "collectory"


def test_startup_loads_bundled_modules(client):
    response = client.get("/api/modules")

    assert response.status_code == 200
    data = response.json()
    assert [m["key"] for m in data] == ["books", "comics", "games"]
    assert all(m["source"] == "BUILTIN" for m in data)
    assert {"id", "name", "version", "checksum", "created_at", "updated_at"} <= set(data[0])


def test_get_module_details(client):
    response = client.get("/api/modules/books")

    assert response.status_code == 200
    contract = response.json()["contract"]
    assert contract["key"] == "books"
    assert [s["key"] for s in contract["states"]][0] == "OWNED"
    assert "providerMappings" in contract["fields"][0]


def test_get_unknown_module(client):
    response = client.get("/api/modules/nope")

    assert response.status_code == 404
    assert "not found" in response.json()["detail"].lower()


def test_get_module_source(client):
    response = client.get("/api/modules/games/source")

    assert response.status_code == 200
    assert response.json()["key"] == "games"
    assert response.json()["raw"] == (get_settings().modules_dir / "games.xml").read_text(encoding="utf-8")


def import_xml(client, raw, filename="upload.xml"):
    return client.post(
        "/api/admin/modules/import",
        content=raw.encode("utf-8"),
        params={"filename": filename},
        headers={"Content-Type": "application/xml"},
    )


def test_import_module(client, module_xml):
    response = import_xml(client, module_xml(key="vinyl", name="Vinyl"), "vinyl.xml")

    assert response.status_code == 201
    assert response.json()["key"] == "vinyl"
    assert response.json()["source"] == "IMPORTED"
    assert (get_settings().import_dir / "vinyl-1.0.0.xml").is_file()
    assert "vinyl" in [m["key"] for m in client.get("/api/modules").json()]


def test_import_existing_key_conflicts(client, module_xml):
    response = import_xml(client, module_xml(key="Books"))

    assert response.status_code == 409
    assert client.get("/api/modules/books").json()["version"] == "1.0.0"


def test_import_invalid_document(client, module_xml):
    response = import_xml(client, module_xml(key="vinyl", states='<state key="X" label="X"/>'))

    assert response.status_code == 400
    assert "OWNED" in response.json()["detail"]
    assert client.get("/api/modules/vinyl").status_code == 404


def test_import_empty_body(client):
    response = client.post("/api/admin/modules/import", headers={"Content-Type": "application/xml"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Module XML is required"


def test_scan_import_dir(client, module_xml):
    import_dir = get_settings().import_dir
    (import_dir / "coins.xml").write_text(module_xml(key="coins"), encoding="utf-8")
    (import_dir / "broken.xml").write_text("<module", encoding="utf-8")

    response = client.post("/api/admin/modules/scan")

    assert response.status_code == 200
    data = response.json()
    assert [m["key"] for m in data["imported"]] == ["coins"]
    assert [f["file"] for f in data["failed"]] == ["broken.xml"]


def test_delete_imported_module(client, module_xml):
    import_xml(client, module_xml(key="vinyl"))

    response = client.delete("/api/admin/modules/vinyl")

    assert response.status_code == 204
    assert client.get("/api/modules/vinyl").status_code == 404
    assert not (get_settings().import_dir / "vinyl-1.0.0.xml").exists()


def test_delete_builtin_module_forbidden(client):
    response = client.delete("/api/admin/modules/books")

    assert response.status_code == 400
    assert client.get("/api/modules/books").status_code == 200


def test_delete_unknown_module(client):
    assert client.delete("/api/admin/modules/nope").status_code == 404


def test_invalid_imported_file_aborts_startup(module_xml, restore_root_logging):
    import_dir = get_settings().import_dir
    import_dir.mkdir(parents=True, exist_ok=True)
    (import_dir / "bad.xml").write_text(module_xml(key="bad", states='<state key="X" label="X"/>'), encoding="utf-8")

    with pytest.raises(ModuleBootstrapError, match="bad.xml"):
        with TestClient(create_app()):
            pass
