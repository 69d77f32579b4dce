"""
Shared pytest fixtures for gateway tests

Includes:
    - Environment isolation (no WEBGATE_* leakage between tests)
    - Config file helpers
    - Fake provider, API context and HTTP test client
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

from support.fakes import FakeProvider
from webgate.gateway.app import create_app
from webgate.server.context import ApiContext


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Drop every WEBGATE_* variable for the duration of a test."""
    for key in list(os.environ):
        if key.startswith("WEBGATE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """setup_logging() replaces root handlers; put them back after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


# =============================================================================
# Config
# =============================================================================


@pytest.fixture
def config_path(tmp_path) -> Path:
    return tmp_path / "config" / "app.config.json"


@pytest.fixture
def write_config(config_path) -> Callable[[dict[str, Any]], Path]:
    """Write a JSON config file and return its path."""

    def _write(data: dict[str, Any]) -> Path:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(json.dumps(data), encoding="utf-8")
        return config_path

    return _write


# =============================================================================
# Gateway
# =============================================================================


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def api_context(provider) -> ApiContext:
    return ApiContext(
        default_model="gemini-2.5-flash",
        active_provider_id=provider.id,
        get_provider=lambda: provider,
    )


@pytest.fixture
def client(api_context) -> TestClient:
    return TestClient(create_app(api_context), raise_server_exceptions=False)
