"""Pytest configuration and fixtures for agent hook tests."""

from typing import Callable
from unittest.mock import AsyncMock

import pytest

from agent_hooks.models import Todo


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_todos() -> Callable[..., list[Todo]]:
    """Build a todo list from status strings."""

    def _make(*statuses: str) -> list[Todo]:
        return [
            Todo(id=str(i), content=f"task {i}", status=status, priority="medium")
            for i, status in enumerate(statuses, start=1)
        ]

    return _make


@pytest.fixture
def mock_client() -> AsyncMock:
    """Host client double with the three RPCs the hooks use."""
    client = AsyncMock()
    client.session_todo.return_value = []
    client.session_prompt.return_value = None
    client.show_toast.return_value = None
    return client


@pytest.fixture
def mock_xdg_config_home(tmp_path, monkeypatch):
    """Point XDG_CONFIG_HOME at a temporary directory."""
    config_home = tmp_path / "xdg"
    config_home.mkdir()
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    return config_home
