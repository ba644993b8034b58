from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest


def pytest_configure():
    # Ensure project root is on sys.path for absolute imports like 'pipelines.steps.resolve_and_merge'
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))
    # Set test environment knobs
    os.environ.setdefault("RUN_ENV", "test")


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    # No real waiting between items or after a 429, and a fresh Settings per test
    monkeypatch.setenv("ITEM_DELAY_SECONDS", "0")
    monkeypatch.setenv("RATE_LIMIT_BACKOFF_SECONDS", "0")
    monkeypatch.setenv("AI_ENABLED", "false")
    from config.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def conn(tmp_path):
    from db import schema
    from db.connection import get_connection

    c = get_connection(str(tmp_path / "contacts.db"))
    schema.bootstrap(c)
    yield c
    c.close()
