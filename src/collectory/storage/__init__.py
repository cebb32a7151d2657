"""Storage package."""
from collectory.storage.database import (
    Base,
    get_session,
    get_session_factory,
    init_db,
    make_engine,
    reset_session_factory,
    session_scope,
)
from collectory.storage.models import (
    CollectionModule,
    Item,
    ModuleDefinition,
    ModuleField,
    ModuleSource,
    ModuleState,
)

__all__ = [
    "Base",
    "CollectionModule",
    "get_session",
    "get_session_factory",
    "init_db",
    "Item",
    "make_engine",
    "ModuleDefinition",
    "ModuleField",
    "ModuleSource",
    "ModuleState",
    "reset_session_factory",
    "session_scope",
]
