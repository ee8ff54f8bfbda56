"""
Pytest configuration and shared fixtures.
"""

import json
from pathlib import Path
from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from dataset_store import build_datasets
from server_settings import Settings
from value_mapper_server import create_app


@pytest.fixture
def raw_datasets() -> Dict[str, Any]:
    """Dataset file contents with both list and keyed datasets."""
    return {
        "colors": ["Red", "Green", "Blue"],
        "numbers": [1, 22, 3.5, True, None],
        "hosts": {"h1": "Host One", "h2": "Host Two"},
        "letters": {"a": "Alpha", "b": "Bravo", "c": "Charlie", "d": "Delta"},
        "empty": [],
    }


@pytest.fixture
def datasets(raw_datasets):
    """Loaded, read-only dataset collection."""
    return build_datasets(raw_datasets)


@pytest.fixture
def data_file(tmp_path, raw_datasets) -> Path:
    """Dataset JSON file on disk."""
    path = tmp_path / "data.json"
    path.write_text(json.dumps(raw_datasets))
    return path


@pytest.fixture
def settings() -> Settings:
    """Settings with auth disabled, ignoring any local .env file."""
    return Settings(_env_file=None, http_auth_username="", http_auth_password="")


@pytest.fixture
def auth_settings() -> Settings:
    """Settings with HTTP Basic auth enabled."""
    return Settings(_env_file=None, http_auth_username="grafana", http_auth_password="s3cret")


@pytest.fixture
def client(settings, datasets) -> TestClient:
    """Test client for an app without auth."""
    return TestClient(create_app(settings, datasets))


@pytest.fixture
def auth_client(auth_settings, datasets) -> TestClient:
    """Test client for an app with auth configured."""
    return TestClient(create_app(auth_settings, datasets))
