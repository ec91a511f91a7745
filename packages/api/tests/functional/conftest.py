# This project was developed with assistance from AI tools.
"""Fixtures for functional tests.

The real app from ``pms_api.main`` is a module singleton. ``_clean_overrides``
clears dependency_overrides after every test so one persona's access
context never leaks into the next.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from pms_db import get_db

from pms_api.main import app as real_app
from pms_api.middleware.auth import get_access_context
from pms_api.services.access import AccessContext


@pytest.fixture(autouse=True)
def _clean_overrides():
    yield
    real_app.dependency_overrides.clear()


@pytest.fixture
def app():
    return real_app


@pytest.fixture
def make_client(app):
    """Factory fixture: install persona access + mock DB, return TestClient."""

    def _make(access: AccessContext, session: AsyncMock) -> TestClient:
        app.dependency_overrides[get_access_context] = lambda: access
        app.dependency_overrides[get_db] = lambda: session
        return TestClient(app, raise_server_exceptions=False)

    return _make
