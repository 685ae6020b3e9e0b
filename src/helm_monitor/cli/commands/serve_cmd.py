"""helm-monitor serve - Run the metrics exporter."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import typer

from helm_monitor.cli.options import (
    CacheDirOption,
    ChartOption,
    ContextOption,
    DebugOption,
    DriverOption,
    ExcludeOption,
    KubeconfigOption,
    NamespaceOption,
    RepoFileOption,
    build_settings,
)
from helm_monitor.errors import ReadinessTimeout
from helm_monitor.output.logs import configure_logging
from helm_monitor.server.runner import MonitorService

app = typer.Typer()
logger = logging.getLogger(__name__)


@app.callback(invoke_without_command=True)
def serve(
    namespace: Optional[str] = NamespaceOption,
    context: Optional[str] = ContextOption,
    kubeconfig: Optional[str] = KubeconfigOption,
    repo_file: Optional[Path] = RepoFileOption,
    cache_dir: Optional[Path] = CacheDirOption,
    exclude: Optional[List[str]] = ExcludeOption,
    chart: Optional[List[str]] = ChartOption,
    storage_driver: Optional[str] = DriverOption,
    host: str = typer.Option("0.0.0.0", "--host", envvar="HELM_MONITOR_HOST", help="Listen address"),
    port: int = typer.Option(2112, "--metrics-port", "-p", envvar="HELM_MONITOR_PORT", help="Metrics server port"),
    refresh_interval: float = typer.Option(
        20.0, "--refresh-rate", envvar="HELM_MONITOR_REFRESH_RATE", help="Seconds between refreshes",
    ),
    backoff_base: float = typer.Option(
        5.0, "--backoff-base", envvar="HELM_MONITOR_BACKOFF_BASE", help="First retry delay after a failed refresh",
    ),
    backoff_cap: float = typer.Option(
        300.0, "--backoff-cap", envvar="HELM_MONITOR_BACKOFF_CAP", help="Longest retry delay",
    ),
    readiness_timeout: float = typer.Option(
        120.0, "--readiness-timeout", envvar="HELM_MONITOR_READINESS_TIMEOUT",
        help="Give up if no refresh succeeds within this many seconds of startup",
    ),
    shutdown_grace: float = typer.Option(
        30.0, "--shutdown-grace", envvar="HELM_MONITOR_SHUTDOWN_GRACE", help="Seconds allowed for a clean shutdown",
    ),
    stale_cache: bool = typer.Option(
        True, "--stale-cache/--no-stale-cache", envvar="HELM_MONITOR_STALE_CACHE",
        help="Use the last cached index of a repository that fails to sync",
    ),
    all_statuses: bool = typer.Option(
        False, "--all-statuses", help="Also evaluate releases that are not in deployed state",
    ),
    debug: bool = DebugOption,
) -> None:
    """Serve /metrics and /health, refreshing release freshness periodically."""
    configure_logging(debug)
    settings = build_settings(
        namespace=namespace,
        kube_context=context,
        kubeconfig=kubeconfig,
        repositories_file=repo_file,
        cache_dir=cache_dir,
        exclude_names=exclude,
        chart_names=chart,
        storage_driver=storage_driver,
        host=host,
        port=port,
        refresh_interval=refresh_interval,
        backoff_base=backoff_base,
        backoff_cap=backoff_cap,
        readiness_timeout=readiness_timeout,
        shutdown_grace=shutdown_grace,
        stale_cache_fallback=stale_cache,
        include_all_statuses=all_statuses,
        debug=debug,
    )
    logger.info(
        "Starting helm-monitor (port %d, refresh every %gs, repositories from %s)",
        settings.port, settings.refresh_interval, settings.repositories_file,
    )
    try:
        asyncio.run(MonitorService(settings).run())
    except ReadinessTimeout as e:
        logger.error("Application failed: %s", e)
        raise typer.Exit(code=1)
