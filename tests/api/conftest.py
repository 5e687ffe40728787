"""
Fixtures for API tests.

Builds applications around hand-made bootstrap reports so each route can
be exercised against a given combination of resource outcomes.
"""

from pathlib import Path
from typing import Callable, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from api.config import Settings
from api.dependencies import get_app_settings, reset_first_use_warnings
from api.main import create_application
from core.bootstrap import (
    BootstrapReport,
    DatabaseHandle,
    DeploymentMode,
    Environment,
    InterruptGuard,
    ResolutionOutcome,
)


@pytest.fixture(autouse=True)
def fresh_first_use_warnings():
    """Each test sees first-use warnings as if the process just started."""
    reset_first_use_warnings()
    yield
    reset_first_use_warnings()


@pytest.fixture
def mock_connection():
    """asyncpg-like connection that answers SELECT 1."""
    connection = MagicMock()
    connection.is_closed.return_value = False
    connection.fetchval = AsyncMock(return_value=1)
    connection.close = AsyncMock()
    return connection


@pytest.fixture
def database_acquired(mock_connection) -> ResolutionOutcome:
    handle = DatabaseHandle(mock_connection, host="db.example.com")
    return ResolutionOutcome.acquired(handle, tier="configured_uri")


@pytest.fixture
def browser_acquired() -> ResolutionOutcome:
    return ResolutionOutcome.acquired("/opt/browser/chrome", tier="bundled")


@pytest.fixture
def make_report(tmp_path) -> Callable[..., BootstrapReport]:
    """Factory for bootstrap reports with chosen outcomes."""

    def _make(
        database: ResolutionOutcome,
        browser: ResolutionOutcome,
        degraded_mode: bool = False,
        mode: DeploymentMode = DeploymentMode.PRODUCTION,
    ) -> BootstrapReport:
        guard = InterruptGuard(signals=(), exit_process=lambda code: None)
        environment = Environment(
            deployment_mode=mode,
            resource_uri="postgresql://db.example.com/app",
            explicit_degraded_mode_flag=False,
            cache_directory=Path(tmp_path),
        )
        return BootstrapReport(
            environment=environment,
            database=database,
            browser=browser,
            degraded_mode=degraded_mode,
            interrupt_guard=guard,
        )

    return _make


@pytest.fixture
def make_client() -> Callable[..., TestClient]:
    """Factory for test clients around a prepared report."""

    def _make(report: Optional[BootstrapReport], override: Optional[str] = None) -> TestClient:
        app = create_application(report)
        settings = Settings(
            deployment_mode=DeploymentMode.PRODUCTION,
            binary_executable_path_override=override,
        )
        app.dependency_overrides[get_app_settings] = lambda: settings
        return TestClient(app)

    return _make
