"""
Shared fixtures for the newsagg test suite.
"""

import json
from pathlib import Path

import pytest

from newsagg.config.sources import ConfigSource
from newsagg.storage.client import SQLiteDatabaseClient


@pytest.fixture
def db(tmp_path):
    """SQLite client with the full schema created."""
    client = SQLiteDatabaseClient(tmp_path / "test.db")
    client.ensure_schema()
    return client


@pytest.fixture
def config_dir(tmp_path) -> Path:
    """Directory holding a .env file and a JSON config document."""
    directory = tmp_path / "project"
    (directory / "config").mkdir(parents=True)
    (directory / ".env").write_text(
        "rss.maxRetries=5\n"
        "newsapi.apiKey=env-key-1234567890\n"
        "scheduler.enabled=false\n"
    )
    (directory / "config" / "default.json").write_text(json.dumps({
        "rss": {"maxRetries": 7, "defaultTimeout": 45000},
        "cleanup": {"logs": {"maxAgeDays": 3}}
    }))
    return directory


@pytest.fixture
def config_sources(config_dir):
    """Sources in precedence order: .env first, then the JSON document."""
    return [
        ConfigSource(config_dir / ".env", "env", watched=True),
        ConfigSource(config_dir / "config" / "default.json", "json", watched=True),
    ]
