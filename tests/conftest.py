"""Shared fixtures."""

import pytest

from promptier.core.config import Settings
from promptier.strategies.filesystem.cache import HandleCache
from promptier.strategies.filesystem.permissions import PermissionGate
from promptier.strategies.filesystem.registry import FileHandleRegistry
from promptier.strategies.filesystem.resolver import FileContentResolver
from tests.fakes import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment and .env files."""
    return Settings(
        _env_file=None,
        log_dir=tmp_path / "logs",
        clipboard_type="memory",
        notifier_type="recording",
        registry_database_url=f"sqlite+aiosqlite:///{tmp_path / 'promptier.db'}",
    )


@pytest.fixture
def registry():
    return FileHandleRegistry()


@pytest.fixture
def handle_cache():
    return HandleCache(max_size=10, default_ttl=60)


@pytest.fixture
def resolver(registry, handle_cache):
    return FileContentResolver(registry, PermissionGate(), handle_cache)
