"""Shared fixtures for the Unity Lens test suite.

Every test runs with ULENS_* variables removed from the environment and the
state file redirected into a temporary directory, so a developer's real
configuration and cache are never read or written.
"""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

import pytest

from unity_lens.config import reset_settings_cache
from unity_lens.config.connection_store import ConnectionStore
from unity_lens.config.settings import Settings
from unity_lens.infrastructure.resolution import ResolutionCache
from unity_lens.io.storage import InMemoryStore

TABLE_ID = "0f6e0c1e-2b7d-4f0a-9d7e-3c5a1b2c3d4e"
TABLE_ID_2 = "1a2b3c4d-5e6f-4a7b-8c9d-0e1f2a3b4c5d"
SCHEMA_ID = "7a1b2c3d-4e5f-4061-8273-9d8e7f6a5b4c"
CATALOG_ID = "5c2e9f10-aaaa-4bbb-8ccc-ddddeeeeffff"

# Fixed "now" used by the fake clock (2024-01-01T00:00:00Z)
FIXED_NOW_SECONDS = 1_704_067_200.0


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Strip ULENS_* variables and point the state file at tmp_path."""
    for key in list(os.environ):
        if key.startswith("ULENS_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("ULENS_STATE_FILE", str(tmp_path / "state.json"))
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def settings() -> Settings:
    """Settings with no .env influence and empty connection defaults."""
    return Settings(_env_file=None, workspace_url="", warehouse_id="", pat_token="")


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


class FakeClock:
    """Controllable replacement for time.time()."""

    def __init__(self, now: float = FIXED_NOW_SECONDS) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(memory_store, clock) -> ResolutionCache:
    return ResolutionCache(memory_store, clock=clock)


@pytest.fixture
def connections(memory_store, settings) -> ConnectionStore:
    return ConnectionStore(memory_store, settings)


@pytest.fixture
def configured_connections(connections) -> ConnectionStore:
    connections.save(
        workspace_url="https://dbc-test.cloud.databricks.com/",
        warehouse_id="wh-123",
        pat_token="dapi-test-token",
    )
    return connections


class FakeExecutor:
    """
    Scripted StatementExecutor.

    ``responses`` maps a substring of the SQL text to either a list of rows or
    an exception instance to raise. Every executed statement is recorded.
    """

    def __init__(self, responses: Optional[Dict[str, Any]] = None) -> None:
        self.responses = responses or {}
        self.statements: List[str] = []

    def execute(self, statement: str, cancel_event=None) -> List[List[Any]]:
        self.statements.append(statement)
        for fragment, response in self.responses.items():
            if fragment in statement:
                if isinstance(response, Exception):
                    raise response
                return response
        return []


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()
