"""Shared CLI options."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer

from helm_monitor.config.settings import Settings
from helm_monitor.errors import ConfigurationError

OutputOption = typer.Option("table", "--output", "-o", help="Output format: table, json, yaml")
NamespaceOption = typer.Option(
    None, "--namespace", "-n", envvar="HELM_MONITOR_NAMESPACE", help="Kubernetes namespace (default: all)",
)
ContextOption = typer.Option(None, "--context", envvar="HELM_MONITOR_CONTEXT", help="Kubernetes context name")
KubeconfigOption = typer.Option(None, "--kubeconfig", envvar="KUBECONFIG", help="Path to kubeconfig file")
RepoFileOption = typer.Option(
    None, "--repo-file", envvar="HELM_MONITOR_REPO_FILE", help="Path to repositories.yaml file",
)
CacheDirOption = typer.Option(
    None, "--cache-dir", envvar="HELM_MONITOR_CACHE_DIR", help="Path to repository cache directory",
)
ExcludeOption = typer.Option(
    None, "--exclude", "-x", envvar="HELM_MONITOR_EXCLUDE",
    help="Skip releases whose name contains this text (repeatable)",
)
ChartOption = typer.Option(
    None, "--chart", "-c", envvar="HELM_MONITOR_CHARTS", help="Only evaluate this chart (repeatable)",
)
DriverOption = typer.Option(
    None, "--storage-driver", envvar="HELM_DRIVER", help="Helm storage driver: secrets or configmaps",
)
DebugOption = typer.Option(False, "--debug", envvar="HELM_MONITOR_DEBUG", help="Enable debug logging")


def build_settings(**overrides: Any) -> Settings:
    """Apply CLI values on top of the defaults; unset (None) options are ignored."""
    settings = Settings()
    for key, value in overrides.items():
        if value is None:
            continue
        if key in ("repositories_file", "cache_dir"):
            value = Path(value)
        elif key in ("exclude_names", "chart_names"):
            value = list(value)
        setattr(settings, key, value)
    try:
        return settings.validate()
    except ConfigurationError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(code=2)
