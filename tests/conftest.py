"""Shared fixtures: every test gets its own ~/.openclaw in tmp_path."""

import json

import pytest

import audit
from config_store import ConfigStore
from settings import Settings


@pytest.fixture(autouse=True)
def isolated_audit_log(tmp_path, monkeypatch):
    """Keep audit lines out of the real home directory."""
    monkeypatch.setattr(audit, "AUDIT_LOG", tmp_path / "audit.jsonl")
    return tmp_path / "audit.jsonl"


@pytest.fixture
def settings(tmp_path):
    return Settings.for_dir(tmp_path / ".openclaw", static_dir=tmp_path / "dist")


@pytest.fixture
def store(settings):
    return ConfigStore(settings)


@pytest.fixture
def write_config(store):
    """Write a dict (or raw text) as openclaw.json."""
    def _write(content):
        store.config_path.parent.mkdir(parents=True, exist_ok=True)
        if not isinstance(content, str):
            content = json.dumps(content, indent=2)
        store.config_path.write_text(content, encoding="utf-8")
    return _write


@pytest.fixture
def read_config(store):
    def _read():
        return json.loads(store.config_path.read_text(encoding="utf-8"))
    return _read
