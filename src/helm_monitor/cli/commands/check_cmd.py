"""helm-monitor check - Run one refresh and print the result."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from helm_monitor.cli.options import (
    CacheDirOption,
    ChartOption,
    ContextOption,
    DebugOption,
    DriverOption,
    ExcludeOption,
    KubeconfigOption,
    NamespaceOption,
    OutputOption,
    RepoFileOption,
    build_settings,
)
from helm_monitor.errors import CycleFailure
from helm_monitor.output.formatters import output_snapshot
from helm_monitor.output.logs import configure_logging
from helm_monitor.server.runner import build_cycle

app = typer.Typer()
console = Console(stderr=True)


@app.callback(invoke_without_command=True)
def check(
    output: str = OutputOption,
    namespace: Optional[str] = NamespaceOption,
    context: Optional[str] = ContextOption,
    kubeconfig: Optional[str] = KubeconfigOption,
    repo_file: Optional[Path] = RepoFileOption,
    cache_dir: Optional[Path] = CacheDirOption,
    exclude: Optional[List[str]] = ExcludeOption,
    chart: Optional[List[str]] = ChartOption,
    storage_driver: Optional[str] = DriverOption,
    stale_cache: bool = typer.Option(True, "--stale-cache/--no-stale-cache", help="Fall back to cached indexes"),
    all_statuses: bool = typer.Option(False, "--all-statuses", help="Include releases not in deployed state"),
    debug: bool = DebugOption,
) -> None:
    """Compare every deployed release against its chart repositories once."""
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
        stale_cache_fallback=stale_cache,
        include_all_statuses=all_statuses,
        debug=debug,
    )
    cycle = build_cycle(settings)
    with console.status("[bold cyan]Checking releases against repositories…"):
        try:
            snapshot = cycle.run(generation=1)
        except CycleFailure as e:
            console.print(f"[red]Refresh failed:[/red] {e}")
            raise typer.Exit(code=1)
    output_snapshot(snapshot, output)
