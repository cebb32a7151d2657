"""File storage for administrator-imported module documents."""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from collectory.config import get_settings
from collectory.modules.errors import ModuleImportError

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_file_name(file_name: Optional[str]) -> str:
    """Reduce a client supplied name to a safe ``*.xml`` base name."""
    if file_name is None or not file_name.strip():
        raise ModuleImportError("Module file name cannot be empty")
    # Drop any directory part, from either path flavour
    base = file_name.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]
    if not base or base in (".", ".."):
        raise ModuleImportError(f"Module file name cannot be resolved: {file_name}")
    safe = _UNSAFE_CHARS.sub("_", base)
    if not safe.lower().endswith(".xml"):
        safe += ".xml"
    return safe


class ModuleImportStorage:
    """Stores imported module documents as files in one directory."""

    def __init__(self, import_dir: Optional[Path] = None):
        self.import_dir = Path(import_dir or get_settings().import_dir).resolve()

    def ensure_dir(self) -> None:
        self.import_dir.mkdir(parents=True, exist_ok=True)

    def save(self, file_name: str, raw: str) -> Path:
        """
        Write a document atomically, replacing any file of the same name.

        Returns:
            Path of the stored file
        """
        self.ensure_dir()
        target = self.import_dir / sanitize_file_name(file_name)
        fd, temp_name = tempfile.mkstemp(prefix="module-import-", suffix=".tmp", dir=self.import_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(raw)
            os.replace(temp_name, target)
        except OSError:
            Path(temp_name).unlink(missing_ok=True)
            raise
        return target

    def list_files(self) -> list[Path]:
        """Regular ``*.xml`` files in the import directory, sorted by name."""
        self.ensure_dir()
        return sorted(
            p for p in self.import_dir.iterdir() if p.is_file() and p.name.lower().endswith(".xml")
        )

    def delete(self, path: Path) -> None:
        """Delete a stored file; paths outside the import directory are refused."""
        resolved = Path(path).resolve()
        if not resolved.is_relative_to(self.import_dir):
            raise ModuleImportError(f"Cannot delete file outside of import directory: {path}")
        resolved.unlink(missing_ok=True)


def build_file_name(module_key: Optional[str], version: Optional[str], fallback: str) -> str:
    """``<key>-<version>.xml``, falling back to the upload name."""
    parts = [p.strip() for p in (module_key, version) if p and p.strip()]
    candidate = "-".join(parts) if parts else fallback
    if not candidate.lower().endswith(".xml"):
        candidate += ".xml"
    return candidate
