"""Tests for imported module file storage."""
import pytest

from collectory.modules import ModuleImportError
from collectory.modules.import_storage import build_file_name, sanitize_file_name


@pytest.mark.parametrize("name,expected", [
    ("books.xml", "books.xml"),
    ("books", "books.xml"),
    ("My Books (v2).XML", "My_Books__v2_.XML"),
    ("../../etc/passwd", "passwd.xml"),
    ("C:\\modules\\comics.xml", "comics.xml"),
])
def test_sanitize_file_name(name, expected):
    assert sanitize_file_name(name) == expected


@pytest.mark.parametrize("name", [None, "", "   ", "..", "a/.."])
def test_sanitize_rejects_empty_names(name):
    with pytest.raises(ModuleImportError):
        sanitize_file_name(name)


@pytest.mark.parametrize("key,version,fallback,expected", [
    ("books", "1.0.0", "upload.xml", "books-1.0.0.xml"),
    ("books", None, "upload.xml", "books.xml"),
    (None, None, "upload.xml", "upload.xml"),
    (" ", "", "upload", "upload.xml"),
])
def test_build_file_name(key, version, fallback, expected):
    assert build_file_name(key, version, fallback) == expected


class TestModuleImportStorage:
    """Test saving, listing and deleting imported documents."""

    def test_save_writes_file(self, import_storage):
        path = import_storage.save("books-1.xml", "<module/>")

        assert path.parent == import_storage.import_dir
        assert path.read_text(encoding="utf-8") == "<module/>"
        # No temp files left behind
        assert [p.name for p in import_storage.import_dir.iterdir()] == ["books-1.xml"]

    def test_save_replaces_existing_file(self, import_storage):
        import_storage.save("books.xml", "old")
        path = import_storage.save("books.xml", "new")

        assert path.read_text(encoding="utf-8") == "new"

    def test_list_files_sorted_xml_only(self, import_storage):
        import_storage.save("b.xml", "b")
        import_storage.save("a.xml", "a")
        (import_storage.import_dir / "notes.txt").write_text("x")
        (import_storage.import_dir / "sub.xml").mkdir()

        assert [p.name for p in import_storage.list_files()] == ["a.xml", "b.xml"]

    def test_list_files_creates_directory(self, import_storage):
        assert import_storage.list_files() == []
        assert import_storage.import_dir.is_dir()

    def test_delete(self, import_storage):
        path = import_storage.save("books.xml", "x")

        import_storage.delete(path)
        # Deleting twice is not an error
        import_storage.delete(path)

        assert not path.exists()

    def test_delete_outside_directory_is_refused(self, import_storage, tmp_path):
        outside = tmp_path / "outside.xml"
        outside.write_text("keep")
        import_storage.ensure_dir()

        with pytest.raises(ModuleImportError, match="outside of import directory"):
            import_storage.delete(import_storage.import_dir / ".." / "outside.xml")

        assert outside.exists()
