"""helm-monitor repos - Show configured chart repositories."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from helm_monitor.cli.options import CacheDirOption, DebugOption, OutputOption, RepoFileOption, build_settings
from helm_monitor.core.aggregator import sync_repositories
from helm_monitor.core.repo_config import load_repositories
from helm_monitor.core.repo_syncer import RepoSyncer
from helm_monitor.errors import ConfigurationError
from helm_monitor.output.formatters import output_repositories
from helm_monitor.output.logs import configure_logging
from helm_monitor.output.tables import repo_sync_table

app = typer.Typer()
console = Console()


@app.callback(invoke_without_command=True)
def repos(
    output: str = OutputOption,
    repo_file: Optional[Path] = RepoFileOption,
    cache_dir: Optional[Path] = CacheDirOption,
    update: bool = typer.Option(False, "--update", "-u", help="Download fresh indexes before listing"),
    debug: bool = DebugOption,
) -> None:
    """List repositories from repositories.yaml with their cache status."""
    configure_logging(debug)
    settings = build_settings(repositories_file=repo_file, cache_dir=cache_dir, debug=debug)
    try:
        configs = load_repositories(settings.repositories_file)
    except ConfigurationError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)

    syncer = RepoSyncer(settings)
    if update:
        with console.status("[bold cyan]Updating repository indexes…"):
            _, result = sync_repositories(configs, syncer, stale_cache_fallback=False)
        if output == "table":
            console.print(repo_sync_table(result))

    output_repositories([syncer.repo_info(c) for c in configs], output)
