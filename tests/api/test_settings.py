"""
Tests for environment-driven settings.

Tests cover:
- Only the literal 'production' selects production mode
- Only the literal 'true' enables degraded mode
- Empty variables are treated as unset
- The Environment snapshot mirrors the settings
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from api.config import Settings, get_settings_uncached
from core.bootstrap import DeploymentMode

BOOTSTRAP_VARS = [
    "DEPLOYMENT_MODE",
    "RESOURCE_URI",
    "DEGRADED_MODE",
    "BINARY_CACHE_DIR",
    "BINARY_EXECUTABLE_PATH_OVERRIDE",
    "BINARY_REVISION",
    "BINARY_PLATFORM",
    "CONNECT_TIMEOUT",
    "DEBUG",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Start every test from an empty bootstrap environment, away from any .env file."""
    for name in BOOTSTRAP_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class TestDeploymentMode:

    def test_defaults_to_development(self):
        settings = get_settings_uncached()
        assert settings.deployment_mode == DeploymentMode.DEVELOPMENT
        assert settings.is_development
        assert settings.debug is True

    @pytest.mark.parametrize("value", ["production", "PRODUCTION", " Production "])
    def test_production(self, monkeypatch, value):
        monkeypatch.setenv("DEPLOYMENT_MODE", value)
        settings = get_settings_uncached()
        assert settings.is_production
        assert settings.debug is False

    @pytest.mark.parametrize("value", ["prod", "staging", "", "test"])
    def test_anything_else_is_development(self, monkeypatch, value):
        monkeypatch.setenv("DEPLOYMENT_MODE", value)
        assert get_settings_uncached().is_development


class TestDegradedModeFlag:

    @pytest.mark.parametrize("value,expected", [
        ("true", True),
        ("TRUE", True),
        ("1", False),
        ("yes", False),
        ("false", False),
        ("", False),
    ])
    def test_only_literal_true(self, monkeypatch, value, expected):
        monkeypatch.setenv("DEGRADED_MODE", value)
        assert get_settings_uncached().degraded_mode is expected


class TestBootstrapVariables:

    def test_empty_uri_is_unset(self, monkeypatch):
        monkeypatch.setenv("RESOURCE_URI", "")
        monkeypatch.setenv("BINARY_EXECUTABLE_PATH_OVERRIDE", "  ")
        settings = get_settings_uncached()
        assert settings.resource_uri is None
        assert settings.binary_executable_path_override is None

    def test_connect_timeout_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("CONNECT_TIMEOUT", "0")
        with pytest.raises(ValidationError):
            get_settings_uncached()

    def test_to_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DEPLOYMENT_MODE", "production")
        monkeypatch.setenv("RESOURCE_URI", "postgresql://db.example.com/app")
        monkeypatch.setenv("DEGRADED_MODE", "true")
        monkeypatch.setenv("BINARY_CACHE_DIR", str(tmp_path / "browsers"))
        monkeypatch.setenv("BINARY_REVISION", "1200000")
        monkeypatch.setenv("CONNECT_TIMEOUT", "2.5")

        environment = get_settings_uncached().to_environment()

        assert environment.is_production
        assert environment.resource_uri == "postgresql://db.example.com/app"
        assert environment.explicit_degraded_mode_flag is True
        assert environment.cache_directory == tmp_path / "browsers"
        assert environment.binary_revision == "1200000"
        assert environment.binary_platform == "linux"
        assert environment.connect_timeout == 2.5

    def test_defaults(self):
        settings = Settings()
        assert settings.binary_cache_dir == Path("./.cache/browser")
        assert settings.binary_revision == "1134945"
        assert settings.connect_timeout == 5.0
        assert settings.resource_uri is None
