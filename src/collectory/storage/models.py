import enum
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ModuleSource(str, enum.Enum):
    """Where a module definition came from."""

    BUILTIN = "BUILTIN"
    IMPORTED = "IMPORTED"


class ModuleDefinition(Base):
    __tablename__ = "module_definitions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    module_key: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    version: Mapped[str] = mapped_column(String(64))
    source: Mapped[ModuleSource] = mapped_column(Enum(ModuleSource, native_enum=False, length=16))
    checksum: Mapped[str] = mapped_column(String(64))
    raw_source: Mapped[str] = mapped_column(Text)
    contract: Mapped[Dict[str, Any]] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    states: Mapped[List["ModuleState"]] = relationship(
        "ModuleState",
        back_populates="module",
        cascade="all, delete-orphan",
        order_by="ModuleState.sort_order",
    )
    fields: Mapped[List["ModuleField"]] = relationship(
        "ModuleField",
        back_populates="module",
        cascade="all, delete-orphan",
        order_by="ModuleField.position",
    )

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.module_key}@{self.version}"


class ModuleState(Base):
    __tablename__ = "module_states"

    module_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("module_definitions.id", ondelete="CASCADE"), primary_key=True
    )
    state_key: Mapped[str] = mapped_column(String(64), primary_key=True)
    label: Mapped[str] = mapped_column(String(255))
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    deprecated: Mapped[bool] = mapped_column(Boolean, default=False)

    module: Mapped["ModuleDefinition"] = relationship("ModuleDefinition", back_populates="states")


class ModuleField(Base):
    __tablename__ = "module_fields"
    __table_args__ = (
        UniqueConstraint("module_id", "field_key", name="uk_module_field_module_key"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    module_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("module_definitions.id", ondelete="CASCADE"), index=True
    )
    field_key: Mapped[str] = mapped_column(String(128))
    label: Mapped[str] = mapped_column(String(255))
    field_type: Mapped[str] = mapped_column(String(16))
    required: Mapped[bool] = mapped_column(Boolean, default=False)
    searchable: Mapped[bool] = mapped_column(Boolean, default=False)
    filterable: Mapped[bool] = mapped_column(Boolean, default=False)
    sortable: Mapped[bool] = mapped_column(Boolean, default=False)
    default_value: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    enum_values: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(JSON, nullable=True)
    constraints: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    provider_mappings: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(JSON, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    # Index in the compiled field list; sort_order alone is not unique
    position: Mapped[int] = mapped_column(Integer, default=0)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    deprecated: Mapped[bool] = mapped_column(Boolean, default=False)

    module: Mapped["ModuleDefinition"] = relationship("ModuleDefinition", back_populates="fields")


# ---------------------------------------------------------------------------
# Tables owned by the collection/item subsystem. Only the columns the module
# loader and the delete checks read are modelled here.
# ---------------------------------------------------------------------------


class CollectionModule(Base):
    __tablename__ = "collection_modules"

    collection_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    module_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("module_definitions.id"), primary_key=True
    )
    enabled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Item(Base):
    __tablename__ = "items"
    __table_args__ = (Index("ix_items_module_state", "module_id", "state_key"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    collection_id: Mapped[str] = mapped_column(String(36), index=True)
    module_id: Mapped[str] = mapped_column(String(36), ForeignKey("module_definitions.id"))
    state_key: Mapped[str] = mapped_column(String(64))
    title: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    attributes: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
