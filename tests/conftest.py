"""
Shared test fixtures.

Tests provision a temporary home directory. Filesystem actions run for
real inside it; shell, disk image and HTTP actions go to MockAdapters.
"""

from pathlib import Path

import pytest

from devsetup.adapters.mock import MockAdapter
from devsetup.adapters.registry import AdapterRegistry
from devsetup.adapters.shell.filesystem import FilesystemAdapter
from devsetup.core.engine.gateway import ExecutionGateway
from devsetup.core.models.settings import Settings


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """An empty home directory."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Default settings with machine-wide paths redirected into tmp_path."""
    (tmp_path / "tmp").mkdir()
    (tmp_path / "Applications").mkdir()
    return Settings(
        temp_glob=str(tmp_path / "tmp" / "setup_temp_*"),
        applications_dir=str(tmp_path / "Applications"),
        xcode_timeout=0,
        poll_interval=0,
    )


@pytest.fixture
def shell() -> MockAdapter:
    """Stands in for every process invocation. Empty output by default."""
    return MockAdapter("shell", default_output="")


@pytest.fixture
def dmg() -> MockAdapter:
    return MockAdapter("dmg")


@pytest.fixture
def http() -> MockAdapter:
    return MockAdapter("http")


@pytest.fixture
def registry(shell: MockAdapter, dmg: MockAdapter, http: MockAdapter) -> AdapterRegistry:
    reg = AdapterRegistry()
    reg.register(shell)
    reg.register(FilesystemAdapter())
    reg.register(dmg)
    reg.register(http)
    return reg


@pytest.fixture
def all_tools(monkeypatch: pytest.MonkeyPatch) -> None:
    """Pretend every executable is on PATH."""
    monkeypatch.setattr(ExecutionGateway, "which", lambda self, name: f"/usr/local/bin/{name}")


@pytest.fixture
def no_tools(monkeypatch: pytest.MonkeyPatch) -> None:
    """Pretend nothing is on PATH."""
    monkeypatch.setattr(ExecutionGateway, "which", lambda self, name: None)
