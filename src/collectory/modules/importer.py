"""
Administrator import, re-scan and delete of module documents.

Imported documents go through the same pipeline as bundled ones. The raw
document is saved to import storage before loading so a restart can load it
again; a failed load removes the saved file.
"""

from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field
from sqlalchemy import exists, func, select
from sqlalchemy.orm import Session, sessionmaker

from collectory.modules.errors import (
    ModuleAlreadyExistsError,
    ModuleDeleteForbiddenError,
    ModuleError,
    ModuleImportError,
    ModuleInUseError,
    ModuleParseError,
    UnknownModuleError,
)
from collectory.modules.import_storage import ModuleImportStorage, build_file_name
from collectory.modules.loader import ModuleLoader
from collectory.modules.parser import parse_document, read_module_key
from collectory.modules.query import ModuleSummary, normalize_key
from collectory.observability import get_logger, with_log_context
from collectory.storage import (
    CollectionModule,
    Item,
    ModuleDefinition,
    ModuleSource,
    get_session_factory,
)

logger = get_logger(__name__)


class ScanFailure(BaseModel):
    file: str = Field(..., description="File name in the import directory")
    reason: str = Field(..., description="Why the file was not imported")


class ScanResult(BaseModel):
    """Outcome of re-scanning the import directory."""

    imported: list[ModuleSummary] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list, description="Keys already stored")
    failed: list[ScanFailure] = Field(default_factory=list)


class ModuleImportService:
    """Import, scan and delete administrator supplied modules."""

    def __init__(
        self,
        session_factory: Optional[sessionmaker[Session]] = None,
        loader: Optional[ModuleLoader] = None,
        storage: Optional[ModuleImportStorage] = None,
    ):
        self._session_factory = session_factory
        self.loader = loader or ModuleLoader(session_factory=session_factory)
        self.storage = storage or ModuleImportStorage()

    @property
    def session_factory(self) -> sessionmaker[Session]:
        return self._session_factory or get_session_factory()

    @staticmethod
    def _find_by_key(session: Session, module_key: str) -> Optional[ModuleDefinition]:
        return session.scalars(
            select(ModuleDefinition).where(
                func.lower(ModuleDefinition.module_key) == module_key.lower()
            )
        ).one_or_none()

    def import_document(
        self,
        raw: Union[str, bytes, None],
        source_name: Optional[str] = None,
        persist_file: bool = True,
    ) -> ModuleSummary:
        """
        Import one module document.

        Args:
            raw: Document text (bytes are decoded as UTF-8)
            source_name: Upload or file name, defaults to ``<key>.xml``
            persist_file: Save the document to import storage before loading

        Returns:
            Summary of the stored module

        Raises:
            ModuleImportError: Empty or unreadable input
            ModuleAlreadyExistsError: The key is already stored (any case)
            ModuleError: Any validation failure of the pipeline
        """
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ModuleImportError(f"Module XML is not valid UTF-8: {source_name}") from e
        if not raw or not raw.strip():
            raise ModuleImportError("Module XML is required")

        try:
            document = parse_document(raw)
        except ModuleParseError as e:
            raise ModuleImportError(f"Invalid module XML: {source_name or 'upload'}: {e}") from e

        module_key = document.key.strip()
        if not module_key:
            raise ModuleImportError("Module key is required")

        with self.session_factory() as session:
            if self._find_by_key(session, module_key) is not None:
                raise ModuleAlreadyExistsError(module_key)

        name = source_name if source_name and source_name.strip() else f"{module_key}.xml"
        log_extra = with_log_context(module_key=module_key, source_name=name)

        saved_path: Optional[Path] = None
        if persist_file:
            saved_path = self.storage.save(build_file_name(module_key, document.version, name), raw)

        try:
            self.loader.load(raw, name, ModuleSource.IMPORTED)
        except Exception:
            self._cleanup(saved_path)
            logger.info("Module import failed", extra=log_extra)
            raise

        logger.info("Module imported", extra=log_extra)
        with self.session_factory() as session:
            entity = self._find_by_key(session, module_key)
            if entity is None:
                raise ModuleImportError(f"Module could not be loaded after import: {module_key}")
            return ModuleSummary.from_entity(entity)

    def _cleanup(self, saved_path: Optional[Path]) -> None:
        if saved_path is None:
            return
        try:
            self.storage.delete(saved_path)
        except (OSError, ModuleImportError) as e:
            logger.warning(f"Failed to clean up imported module file {saved_path}: {e}")

    def scan_import_dir(self) -> ScanResult:
        """Import every file in the import directory, classifying each outcome."""
        result = ScanResult()
        for path in self.storage.list_files():
            try:
                raw = path.read_text(encoding="utf-8")
                result.imported.append(self.import_document(raw, path.name, persist_file=False))
            except ModuleAlreadyExistsError as e:
                result.skipped.append(e.module_key)
            except (ModuleError, OSError, UnicodeDecodeError) as e:
                result.failed.append(ScanFailure(file=path.name, reason=str(e)))
            except Exception as e:
                logger.exception(
                    "Unexpected failure importing module file",
                    extra=with_log_context(source_name=path.name),
                )
                result.failed.append(ScanFailure(file=path.name, reason=str(e) or type(e).__name__))

        logger.info(
            "Import directory scanned",
            extra={
                "imported": len(result.imported),
                "skipped": len(result.skipped),
                "failed": len(result.failed),
            },
        )
        return result

    def _find_file_for_module(self, module_key: str) -> Optional[Path]:
        for path in self.storage.list_files():
            try:
                key = read_module_key(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError) as e:
                logger.debug(f"Failed to read imported module file {path}: {e}")
                continue
            if key is not None and key.lower() == module_key.lower():
                return path
        return None

    def delete_imported_module(self, module_key: str) -> None:
        """
        Delete an imported module and its stored file.

        Raises:
            UnknownModuleError: No module with this key
            ModuleDeleteForbiddenError: The module is bundled
            ModuleInUseError: A collection enables it or an item references it
        """
        key = normalize_key(module_key)
        with self.session_factory() as session:
            entity = self._find_by_key(session, key)
            if entity is None:
                raise UnknownModuleError(key)
            if entity.source is not ModuleSource.IMPORTED:
                raise ModuleDeleteForbiddenError("Only imported modules can be deleted")

            enabled = session.scalar(
                select(exists().where(CollectionModule.module_id == entity.id))
            )
            if enabled:
                raise ModuleInUseError("Module is enabled in one or more collections")

            has_items = session.scalar(select(exists().where(Item.module_id == entity.id)))
            if has_items:
                raise ModuleInUseError("Module has associated items")

            path = self._find_file_for_module(entity.module_key)
            stored_key = entity.module_key
            session.delete(entity)
            session.commit()

        if path is not None:
            self.storage.delete(path)
        logger.info("Imported module deleted", extra=with_log_context(module_key=stored_key))
