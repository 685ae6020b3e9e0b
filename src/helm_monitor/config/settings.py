"""Monitor configuration and defaults."""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass, field
from pathlib import Path

from helm_monitor.errors import ConfigurationError

STORAGE_DRIVERS = ("secrets", "configmaps")


def _default_helm_cache_dir() -> Path:
    """Return the Helm repository cache directory for the current platform.

    HELM_REPOSITORY_CACHE wins, then HELM_CACHE_HOME, matching helm's own
    resolution order.
    """
    repo_cache = os.environ.get("HELM_REPOSITORY_CACHE", "")
    if repo_cache:
        return Path(repo_cache)
    cache_home = os.environ.get("HELM_CACHE_HOME", "")
    if cache_home:
        return Path(cache_home) / "repository"
    if platform.system() == "Windows":
        temp = os.environ.get("TEMP", "")
        if temp:
            return Path(temp) / "helm" / "repository"
        return Path.home() / "AppData" / "Roaming" / "helm" / "repository"
    xdg = os.environ.get("XDG_CACHE_HOME", "")
    if xdg:
        return Path(xdg) / "helm" / "repository"
    return Path.home() / ".cache" / "helm" / "repository"


def _default_repositories_file() -> Path:
    repo_config = os.environ.get("HELM_REPOSITORY_CONFIG", "")
    if repo_config:
        return Path(repo_config)
    config_home = os.environ.get("HELM_CONFIG_HOME", "")
    if config_home:
        return Path(config_home) / "repositories.yaml"
    if platform.system() == "Windows":
        appdata = os.environ.get("APPDATA", "")
        base = Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
        return base / "helm" / "repositories.yaml"
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg) / "helm" / "repositories.yaml"
    return Path.home() / ".config" / "helm" / "repositories.yaml"


@dataclass
class Settings:
    # Helm locations
    repositories_file: Path = field(default_factory=_default_repositories_file)
    cache_dir: Path = field(default_factory=_default_helm_cache_dir)
    storage_driver: str = "secrets"  # "secrets" or "configmaps"
    helm_label_selector: str = "owner=helm"
    secret_type: str = "helm.sh/release.v1"

    # Cluster
    kube_context: str | None = None
    kubeconfig: str | None = None

    # Release selection
    namespace: str | None = None
    exclude_names: list[str] = field(default_factory=list)
    chart_names: list[str] = field(default_factory=list)
    include_all_statuses: bool = False

    # Refresh cadence (seconds)
    refresh_interval: float = 20.0
    backoff_base: float = 5.0
    backoff_cap: float = 300.0
    readiness_timeout: float = 120.0
    readiness_poll: float = 2.0
    request_timeout: float = 30.0
    shutdown_grace: float = 30.0
    stale_cache_fallback: bool = True

    # HTTP endpoint
    host: str = "0.0.0.0"
    port: int = 2112

    debug: bool = False

    def validate(self) -> Settings:
        """Check option values, raising ConfigurationError on the first bad one."""
        for name in ("refresh_interval", "backoff_base", "backoff_cap", "readiness_timeout",
                     "readiness_poll", "request_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)!r}")
        if self.shutdown_grace < 0:
            raise ConfigurationError(f"shutdown_grace must not be negative, got {self.shutdown_grace!r}")
        if self.backoff_cap < self.backoff_base:
            raise ConfigurationError(
                f"backoff_cap ({self.backoff_cap:g}) is lower than backoff_base ({self.backoff_base:g})"
            )
        if self.storage_driver not in STORAGE_DRIVERS:
            raise ConfigurationError(
                f"unknown storage driver {self.storage_driver!r}, expected one of {', '.join(STORAGE_DRIVERS)}"
            )
        if not 0 < self.port < 65536:
            raise ConfigurationError(f"port out of range: {self.port}")
        return self

    def index_cache_file(self, repo_name: str) -> Path:
        """Location of a repository's cached index, named the way helm names it."""
        return self.cache_dir / f"{repo_name}-index.yaml"
