"""Fixtures for API tests."""
import logging

import pytest
from fastapi.testclient import TestClient

from collectory.api.main import create_app


@pytest.fixture
def restore_root_logging():
    """Startup installs the JSON handler on the root logger; undo it afterwards."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    root.handlers = saved_handlers
    root.setLevel(saved_level)


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app, restore_root_logging):
    """Client with the lifespan run: tables created and bundled modules loaded."""
    with TestClient(app) as client:
        yield client
