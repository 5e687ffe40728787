"""
Shared fixtures for bootstrap tests.

Provides in-memory stand-ins for the external capabilities the resolvers
consume (database driver, bundling library, downloader, PATH lookup) so
resolution can be exercised without a database, a browser or a network.
"""

import asyncio
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from core.bootstrap import (
    BinaryFetcher,
    BundledBinaryLocator,
    Connector,
    DatabaseHandle,
    DeploymentMode,
    Environment,
    InterruptGuard,
    ModeState,
)


# =============================================================================
# Capability fakes
# =============================================================================


class FakeConnection:
    """Mimics the parts of an asyncpg connection the handle uses."""

    def __init__(self):
        self.closed = False
        self.close_calls = 0
        self.termination_listeners: List[Callable] = []
        self.log_listeners: List[Callable] = []

    def is_closed(self) -> bool:
        return self.closed

    def add_termination_listener(self, callback: Callable) -> None:
        self.termination_listeners.append(callback)

    def add_log_listener(self, callback: Callable) -> None:
        self.log_listeners.append(callback)

    async def fetchval(self, query: str):
        return 1

    async def close(self) -> None:
        self.close_calls += 1
        self.closed = True


class FakeConnector(Connector):
    """Connect capability that succeeds, fails or hangs on demand."""

    def __init__(self, error: Optional[Exception] = None, delay: float = 0.0):
        self.error = error
        self.delay = delay
        self.calls: List[tuple] = []
        self.connections: List[FakeConnection] = []

    async def connect(self, uri: str, timeout: float) -> DatabaseHandle:
        self.calls.append((uri, timeout))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        connection = FakeConnection()
        self.connections.append(connection)
        return DatabaseHandle(connection, host="db.example.com")


class FakeLocator(BundledBinaryLocator):
    """Bundling capability reporting a fixed path."""

    def __init__(self, path: Optional[str] = None, error: Optional[Exception] = None):
        self.path = path
        self.error = error
        self.calls = 0

    async def locate(self) -> Optional[str]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.path


class FakeFetcher(BinaryFetcher):
    """Download capability writing a dummy executable into the cache."""

    def __init__(self, error: Optional[Exception] = None, create: bool = True):
        self.error = error
        self.create = create
        self.calls: List[tuple] = []

    async def fetch(self, revision: str, dest_dir: Path, platform: str) -> Path:
        self.calls.append((revision, dest_dir, platform))
        if self.error is not None:
            raise self.error
        executable = dest_dir / f"{platform}-{revision}" / "chrome-linux" / "chrome"
        if self.create:
            executable.parent.mkdir(parents=True, exist_ok=True)
            executable.write_bytes(b"\x7fELF")
            executable.chmod(0o644)
        return executable


class FakeWhich:
    """PATH lookup backed by a dictionary."""

    def __init__(self, found: Optional[Dict[str, str]] = None):
        self.found = found or {}
        self.calls: List[str] = []

    def __call__(self, name: str) -> Optional[str]:
        self.calls.append(name)
        return self.found.get(name)


class ExitRecorder:
    """Stands in for sys.exit in the interrupt guard."""

    def __init__(self):
        self.codes: List[int] = []

    def __call__(self, code: int) -> None:
        self.codes.append(code)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def make_environment(tmp_path) -> Callable[..., Environment]:
    """Factory for Environment snapshots rooted in a temporary cache dir."""

    def _make(
        mode: DeploymentMode = DeploymentMode.DEVELOPMENT,
        uri: Optional[str] = None,
        degraded: bool = False,
        **overrides,
    ) -> Environment:
        values = dict(
            deployment_mode=mode,
            resource_uri=uri,
            explicit_degraded_mode_flag=degraded,
            cache_directory=tmp_path / "cache",
            connect_timeout=0.5,
        )
        values.update(overrides)
        return Environment(**values)

    return _make


@pytest.fixture
def exit_recorder() -> ExitRecorder:
    return ExitRecorder()


@pytest.fixture
def interrupt_guard(exit_recorder) -> InterruptGuard:
    """Guard that registers no real signal handlers."""
    return InterruptGuard(signals=(), exit_process=exit_recorder)


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def locator() -> FakeLocator:
    return FakeLocator()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def which() -> FakeWhich:
    return FakeWhich()


@pytest.fixture
def fake_executable(tmp_path) -> Path:
    """An existing file standing in for a browser executable."""
    path = tmp_path / "bin" / "chrome"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x7fELF")
    return path


@pytest.fixture
def mode_state() -> ModeState:
    return ModeState()
