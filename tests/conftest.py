"""Shared test fixtures."""

from pathlib import Path

import pytest

from src.llm import client as llm_client
from src.records.store import RecordStore


@pytest.fixture(autouse=False)
def _no_turso(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure tests use local file, not remote Turso."""
    monkeypatch.setattr("src.config.settings.turso_database_url", "")


@pytest.fixture
def record_store(tmp_path: Path, _no_turso: None):
    """A RecordStore on a temp database, installed as the shared instance."""
    RecordStore._reset()
    store = RecordStore(db_path=tmp_path / "test.db")
    RecordStore._instance = store
    yield store
    RecordStore._reset()


@pytest.fixture
def api_key(monkeypatch: pytest.MonkeyPatch):
    """Configure a provider key and drop any cached client."""
    monkeypatch.setattr("src.config.settings.openai_api_key", "sk-test")
    llm_client._reset()
    yield "sk-test"
    llm_client._reset()
