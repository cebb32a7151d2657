"""Startup loading of bundled and previously imported modules."""

from pathlib import Path
from typing import Optional

from sqlalchemy import select

from collectory.config import get_settings
from collectory.modules.errors import ModuleBootstrapError
from collectory.modules.import_storage import ModuleImportStorage
from collectory.modules.loader import LoadOutcome, LoadStatus, ModuleLoader
from collectory.modules.parser import read_module_key
from collectory.observability import get_logger, with_log_context
from collectory.storage import ModuleDefinition, ModuleSource

logger = get_logger(__name__)


class ModuleService:
    """Loads every known module document into storage."""

    def __init__(
        self,
        loader: Optional[ModuleLoader] = None,
        storage: Optional[ModuleImportStorage] = None,
        modules_dir: Optional[Path] = None,
    ):
        self.loader = loader or ModuleLoader()
        self.storage = storage or ModuleImportStorage()
        self.modules_dir = Path(modules_dir or get_settings().modules_dir)

    def bundled_files(self) -> list[Path]:
        if not self.modules_dir.is_dir():
            return []
        return sorted(self.modules_dir.glob("*.xml"), key=lambda p: p.name)

    def load_all_modules(self) -> list[LoadOutcome]:
        """
        Load bundled modules (BUILTIN), then the import directory (IMPORTED).

        Each document loads in its own transaction. Every failure is
        collected and reported together after all documents were tried.
        An imported file whose key belongs to a bundled module is skipped
        with a warning, so it can neither replace nor re-source that module.

        Raises:
            ModuleBootstrapError: If at least one document failed to load
        """
        outcomes: list[LoadOutcome] = []
        failures: list[tuple[str, Exception]] = []

        for path in self.bundled_files():
            self._load_file(path, ModuleSource.BUILTIN, outcomes, failures)

        builtin_keys = self._builtin_keys()
        for path in self.storage.list_files():
            self._load_file(path, ModuleSource.IMPORTED, outcomes, failures, skip_keys=builtin_keys)

        if failures:
            raise ModuleBootstrapError(failures)

        logger.info(
            "Modules loaded",
            extra={"loaded": len(outcomes), "changed": sum(o.status is not LoadStatus.UNCHANGED for o in outcomes)},
        )
        return outcomes

    def _builtin_keys(self) -> set[str]:
        """Lower-cased keys of stored bundled modules."""
        with self.loader.session_factory() as session:
            keys = session.scalars(
                select(ModuleDefinition.module_key).where(ModuleDefinition.source == ModuleSource.BUILTIN)
            )
            return {key.lower() for key in keys}

    def _load_file(
        self,
        path: Path,
        source: ModuleSource,
        outcomes: list[LoadOutcome],
        failures: list[tuple[str, Exception]],
        skip_keys: frozenset[str] | set[str] = frozenset(),
    ) -> None:
        try:
            raw = path.read_text(encoding="utf-8")
            key = read_module_key(raw) if skip_keys else None
            if key is not None and key.lower() in skip_keys:
                logger.warning(
                    f"Skipping imported module file; key '{key}' belongs to a bundled module",
                    extra=with_log_context(module_key=key, source_name=path.name),
                )
                return
            outcomes.append(self.loader.load(raw, path.name, source))
        except Exception as e:
            logger.error(
                f"Failed loading {source.value.lower()} module: {e}",
                extra=with_log_context(source_name=path.name),
            )
            failures.append((path.name, e))
