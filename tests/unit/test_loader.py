"""Tests for the module loader (validation pipeline + transactional upsert)."""
import pytest
from sqlalchemy import func, select

from collectory.modules import (
    DocumentSchemaError,
    LoadStatus,
    SemanticErrorCode,
    SemanticValidationError,
    sha256_hex,
)
from collectory.storage import Item, ModuleDefinition, ModuleField, ModuleSource, ModuleState

STATES = '<state key="OWNED" label="Owned" order="0"/><state key="LENT" label="Lent" order="1"/>'
FIELDS = """
<field key="title" label="Title" type="TEXT" required="true" order="1"/>
<field key="author" label="Author" type="TEXT" order="2">
  <constraints maxLength="200"/>
</field>"""


def count(session_factory, model):
    with session_factory() as session:
        return session.scalar(select(func.count()).select_from(model))


def get_definition(session_factory, key):
    with session_factory() as session:
        definition = session.scalars(
            select(ModuleDefinition).where(ModuleDefinition.module_key == key)
        ).one()
        # Touch relationships while the session is open
        states = {s.state_key: s for s in definition.states}
        fields = list(definition.fields)
        return definition, states, fields


class TestLoad:
    """Test loading and re-loading module documents."""

    def test_first_load_creates_definition(self, loader, session_factory, module_xml):
        raw = module_xml(states=STATES, fields=FIELDS)

        outcome = loader.load(raw, "sample.xml")

        assert outcome.status is LoadStatus.CREATED
        assert outcome.module_key == "sample"
        assert outcome.warnings == []

        definition, states, fields = get_definition(session_factory, "sample")
        assert definition.id == outcome.module_id
        assert definition.source is ModuleSource.BUILTIN
        assert definition.checksum == sha256_hex(raw)
        assert definition.raw_source == raw
        assert definition.contract["key"] == "sample"
        assert set(states) == {"OWNED", "LENT"}
        assert [(f.field_key, f.position) for f in fields] == [("title", 0), ("author", 1)]
        assert fields[0].required is True
        assert fields[1].constraints == {"maxLength": 200}

    def test_validate_document_returns_contract_without_storing(self, loader, session_factory, module_xml):
        contract = loader.validate_document(module_xml(), "sample.xml")

        assert contract.key == "sample"
        assert count(session_factory, ModuleDefinition) == 0

    def test_unchanged_document_is_noop(self, loader, session_factory, module_xml):
        raw = module_xml(states=STATES, fields=FIELDS)
        first = loader.load(raw, "sample.xml")
        before, _, _ = get_definition(session_factory, "sample")

        second = loader.load(raw, "sample.xml")

        after, _, _ = get_definition(session_factory, "sample")
        assert second.status is LoadStatus.UNCHANGED
        assert second.module_id == first.module_id
        assert after.updated_at == before.updated_at
        assert count(session_factory, ModuleField) == 2
        assert count(session_factory, ModuleState) == 2

    def test_changed_document_replaces_fields(self, loader, session_factory, module_xml):
        loader.load(module_xml(states=STATES, fields=FIELDS), "sample.xml")
        fields = """
<field key="title" label="Book title" type="TEXT" order="1"/>
<field key="pages" label="Pages" type="NUMBER" order="3"/>"""

        outcome = loader.load(module_xml(version="1.1.0", states=STATES, fields=fields), "sample.xml")

        definition, _, stored_fields = get_definition(session_factory, "sample")
        assert outcome.status is LoadStatus.UPDATED
        assert definition.version == "1.1.0"
        assert [f.field_key for f in stored_fields] == ["title", "pages"]
        assert stored_fields[0].label == "Book title"
        assert count(session_factory, ModuleField) == 2

    def test_source_is_recorded(self, loader, session_factory, module_xml):
        loader.load(module_xml(), "sample.xml", ModuleSource.IMPORTED)

        definition, _, _ = get_definition(session_factory, "sample")
        assert definition.source is ModuleSource.IMPORTED


class TestStateEvolution:
    """Test that states referenced by items survive a reload."""

    def test_dropped_state_in_use_is_retained(self, loader, session_factory, module_xml):
        outcome = loader.load(module_xml(states=STATES), "sample.xml")
        with session_factory() as session:
            session.add(Item(collection_id="c1", module_id=outcome.module_id, state_key="LENT"))
            session.commit()

        reloaded = loader.load(
            module_xml(version="2", states='<state key="OWNED" label="Owned" order="0"/>'),
            "sample.xml",
        )

        _, states, _ = get_definition(session_factory, "sample")
        assert reloaded.status is LoadStatus.UPDATED
        assert set(states) == {"OWNED", "LENT"}
        assert states["LENT"].active is False
        assert states["LENT"].deprecated is True
        assert states["OWNED"].active is True
        assert states["OWNED"].deprecated is False
        assert states["OWNED"].label == "Owned"
        assert len(reloaded.warnings) == 1
        assert "LENT" in reloaded.warnings[0]

    def test_dropped_state_not_in_use_is_removed(self, loader, session_factory, module_xml):
        loader.load(module_xml(states=STATES), "sample.xml")

        outcome = loader.load(
            module_xml(version="2", states='<state key="OWNED" label="Owned"/>'),
            "sample.xml",
        )

        _, states, _ = get_definition(session_factory, "sample")
        assert set(states) == {"OWNED"}
        assert outcome.warnings == []

    def test_existing_state_label_and_order_update(self, loader, session_factory, module_xml):
        loader.load(module_xml(states=STATES), "sample.xml")
        states = '<state key="OWNED" label="In collection" order="5"/><state key="LENT" label="Lent"/>'

        loader.load(module_xml(version="2", states=states), "sample.xml")

        _, stored, _ = get_definition(session_factory, "sample")
        assert stored["OWNED"].label == "In collection"
        assert stored["OWNED"].sort_order == 5
        assert stored["LENT"].sort_order == 0


class TestRejection:
    """Test that invalid documents persist nothing."""

    def test_missing_owned_state_persists_nothing(self, loader, session_factory, module_xml):
        raw = module_xml(states='<state key="WISHLIST" label="Wishlist"/>')

        with pytest.raises(SemanticValidationError) as exc_info:
            loader.load(raw, "bad.xml")

        assert exc_info.value.code is SemanticErrorCode.MISSING_OWNED_STATE
        assert count(session_factory, ModuleDefinition) == 0
        assert count(session_factory, ModuleState) == 0
        assert count(session_factory, ModuleField) == 0

    def test_invalid_reload_keeps_previous_version(self, loader, session_factory, module_xml):
        raw = module_xml(states=STATES, fields=FIELDS)
        loader.load(raw, "sample.xml")

        with pytest.raises(DocumentSchemaError):
            loader.load(module_xml(version="2", fields='<field key="x" type="TEXT"/>'), "sample.xml")

        definition, states, fields = get_definition(session_factory, "sample")
        assert definition.checksum == sha256_hex(raw)
        assert len(states) == 2
        assert len(fields) == 2
