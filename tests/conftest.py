"""Root pytest configuration for all tests."""

from __future__ import annotations

import pytest

from clode.config import reset_config
from clode.logging import reset_logging

# Configure pytest-asyncio to use auto mode
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(scope="session")
def anyio_backend():
    """Set anyio backend to asyncio."""
    return "asyncio"


@pytest.fixture(autouse=True)
def clean_globals(monkeypatch: pytest.MonkeyPatch):
    """Isolate tests from the global config cache, logging and environment."""
    monkeypatch.delenv("CLODE_URL", raising=False)
    monkeypatch.delenv("CLODE_LOG", raising=False)
    reset_config()
    reset_logging()
    yield
    reset_config()
    reset_logging()
