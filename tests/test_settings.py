"""Tests for settings defaults and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from helm_monitor.config.settings import Settings
from helm_monitor.errors import ConfigurationError


def test_defaults_are_valid(settings):
    assert settings.validate() is settings
    assert settings.refresh_interval == 20.0
    assert settings.port == 2112
    assert settings.stale_cache_fallback is True


@pytest.mark.parametrize("field,value,message", [
    ("refresh_interval", 0, "refresh_interval must be positive"),
    ("backoff_base", -1, "backoff_base must be positive"),
    ("backoff_cap", 1, "lower than backoff_base"),
    ("shutdown_grace", -5, "must not be negative"),
    ("storage_driver", "sql", "unknown storage driver"),
    ("port", 70000, "port out of range"),
])
def test_invalid_values(settings, field, value, message):
    setattr(settings, field, value)
    with pytest.raises(ConfigurationError, match=message):
        settings.validate()


def test_index_cache_file(settings):
    assert settings.index_cache_file("bitnami") == settings.cache_dir / "bitnami-index.yaml"


def test_helm_environment_locations(monkeypatch, tmp_path):
    monkeypatch.setenv("HELM_REPOSITORY_CONFIG", str(tmp_path / "repos.yaml"))
    monkeypatch.setenv("HELM_REPOSITORY_CACHE", str(tmp_path / "cache"))
    s = Settings()
    assert s.repositories_file == Path(tmp_path / "repos.yaml")
    assert s.cache_dir == Path(tmp_path / "cache")


def test_xdg_locations(monkeypatch, tmp_path):
    for var in ("HELM_REPOSITORY_CONFIG", "HELM_CONFIG_HOME", "HELM_REPOSITORY_CACHE", "HELM_CACHE_HOME"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr("helm_monitor.config.settings.platform.system", lambda: "Linux")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    s = Settings()
    assert s.repositories_file == tmp_path / "config" / "helm" / "repositories.yaml"
    assert s.cache_dir == tmp_path / "cache" / "helm" / "repository"
