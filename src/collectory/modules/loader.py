"""
Module Loader - validates, compiles and persists one module document.

Pipeline per document:
    XSD -> parse -> compile -> contract JSON Schema -> semantics -> upsert

The upsert is checksum gated: a document whose SHA-256 matches the stored
checksum for its key is a no-op. Otherwise the definition, its field set and
its state set are written in a single transaction.
"""

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from collectory.modules.compiler import compile_document
from collectory.modules.contracts import FieldContract, ModuleContract
from collectory.modules.parser import parse_document
from collectory.modules.schema import ContractSchemaValidator, DocumentSchemaValidator
from collectory.modules.semantics import validate_semantics
from collectory.observability import get_logger, with_log_context
from collectory.storage import (
    Item,
    ModuleDefinition,
    ModuleField,
    ModuleSource,
    ModuleState,
    get_session_factory,
)
from collectory.storage.models import utcnow

logger = get_logger(__name__)


def sha256_hex(raw: str) -> str:
    """Content checksum of a module document (SHA-256 of its UTF-8 bytes)."""
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class LoadStatus(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    UNCHANGED = "UNCHANGED"


@dataclass
class LoadOutcome:
    """Result of loading one module document."""

    module_key: str
    status: LoadStatus
    module_id: Optional[str] = None
    warnings: list[str] = field(default_factory=list)


class ModuleLoader:
    """
    Runs the module pipeline and performs the transactional upsert.

    Validators and the session factory are injectable so tests can point the
    loader at an in-memory database.
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker[Session]] = None,
        document_validator: Optional[DocumentSchemaValidator] = None,
        contract_validator: Optional[ContractSchemaValidator] = None,
    ):
        self._session_factory = session_factory
        self.document_validator = document_validator or DocumentSchemaValidator()
        self.contract_validator = contract_validator or ContractSchemaValidator()

    @property
    def session_factory(self) -> sessionmaker[Session]:
        return self._session_factory or get_session_factory()

    def validate_document(self, raw: str, source_name: str) -> ModuleContract:
        """
        Run every validation stage without touching storage.

        Returns:
            The compiled contract

        Raises:
            DocumentSchemaError, ModuleParseError, ContractSchemaError,
            SemanticValidationError
        """
        self.document_validator.validate(raw, source_name)
        document = parse_document(raw)
        contract = compile_document(document)
        self.contract_validator.validate(contract.to_json_dict(), source_name)
        validate_semantics(contract, source_name)
        return contract

    def load(
        self,
        raw: str,
        source_name: str,
        source: ModuleSource = ModuleSource.BUILTIN,
    ) -> LoadOutcome:
        """
        Validate and persist one module document.

        Args:
            raw: Module document text
            source_name: File or upload name, used in errors and logs
            source: Provenance recorded on the definition row

        Returns:
            LoadOutcome describing what was written
        """
        contract = self.validate_document(raw, source_name)
        checksum = sha256_hex(raw)
        log_extra = with_log_context(module_key=contract.key, source_name=source_name)

        session = self.session_factory()
        try:
            definition = session.scalars(
                select(ModuleDefinition).where(ModuleDefinition.module_key == contract.key)
            ).one_or_none()

            if definition is not None and definition.checksum == checksum:
                logger.debug("Module unchanged, skipping", extra=log_extra)
                return LoadOutcome(contract.key, LoadStatus.UNCHANGED, module_id=definition.id)

            status = LoadStatus.UPDATED if definition is not None else LoadStatus.CREATED
            definition = self._upsert_definition(session, definition, contract, raw, checksum, source)
            self._replace_fields(session, definition, contract)
            warnings = self._upsert_states(session, definition, contract)

            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        for warning in warnings:
            logger.warning(warning, extra=log_extra)
        logger.info(
            f"Module {status.value.lower()}",
            extra={**log_extra, "version": contract.version, "checksum": checksum},
        )
        return LoadOutcome(contract.key, status, module_id=definition.id, warnings=warnings)

    # ------------------------------------------------------------------
    # Persistence steps (all inside the caller's transaction)
    # ------------------------------------------------------------------

    @staticmethod
    def _upsert_definition(
        session: Session,
        definition: Optional[ModuleDefinition],
        contract: ModuleContract,
        raw: str,
        checksum: str,
        source: ModuleSource,
    ) -> ModuleDefinition:
        if definition is None:
            definition = ModuleDefinition(module_key=contract.key)
            session.add(definition)

        definition.name = contract.name
        definition.version = contract.version
        definition.source = source
        definition.checksum = checksum
        definition.raw_source = raw
        definition.contract = contract.to_json_dict()
        definition.updated_at = utcnow()
        session.flush()
        return definition

    @staticmethod
    def _field_row(field_contract: FieldContract, position: int) -> ModuleField:
        data = field_contract.model_dump(mode="json", by_alias=True, exclude_none=True)
        return ModuleField(
            field_key=field_contract.key,
            label=field_contract.label,
            field_type=field_contract.type.value,
            required=field_contract.required,
            searchable=field_contract.searchable,
            filterable=field_contract.filterable,
            sortable=field_contract.sortable,
            default_value=field_contract.default_value,
            enum_values=data["enumValues"],
            constraints=data.get("constraints"),
            provider_mappings=data["providerMappings"],
            sort_order=field_contract.order,
            position=position,
            active=field_contract.active,
            deprecated=field_contract.deprecated,
        )

    def _replace_fields(
        self, session: Session, definition: ModuleDefinition, contract: ModuleContract
    ) -> None:
        definition.fields.clear()
        # Deletes must reach the database before re-inserting the same keys
        session.flush()
        definition.fields.extend(
            self._field_row(f, position) for position, f in enumerate(contract.fields)
        )
        session.flush()

    @staticmethod
    def _upsert_states(
        session: Session, definition: ModuleDefinition, contract: ModuleContract
    ) -> list[str]:
        warnings: list[str] = []
        stored = {s.state_key: s for s in definition.states}
        declared = {s.key for s in contract.states}

        for state in contract.states:
            row = stored.get(state.key)
            if row is None:
                row = ModuleState(state_key=state.key)
                definition.states.append(row)
            row.label = state.label
            row.sort_order = state.order
            row.active = state.active
            row.deprecated = state.deprecated

        for key, row in stored.items():
            if key in declared:
                continue
            in_use = session.scalar(
                select(func.count())
                .select_from(Item)
                .where(Item.module_id == definition.id, Item.state_key == key)
            )
            if in_use:
                row.active = False
                row.deprecated = True
                warnings.append(
                    f"State '{key}' of module '{contract.key}' is no longer declared but "
                    f"{in_use} item(s) still use it; keeping it as deprecated"
                )
            else:
                definition.states.remove(row)

        session.flush()
        return warnings
