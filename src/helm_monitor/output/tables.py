"""Rich table builders for each command."""

from __future__ import annotations

from rich.table import Table

from helm_monitor.models.freshness import FreshnessRecord
from helm_monitor.models.repo import RepoInfo, RepoSyncResult
from helm_monitor.output.themes import styled_overdue, styled_update
from helm_monitor.utils.version_compare import classify_update


def freshness_table(records: list[FreshnessRecord]) -> Table:
    table = Table(title="Chart Freshness", expand=True)
    table.add_column("Namespace", style="blue", no_wrap=True)
    table.add_column("Release", style="bold white", no_wrap=True)
    table.add_column("Chart", style="magenta", no_wrap=True)
    table.add_column("Current", style="dim")
    table.add_column("Latest", style="bold")
    table.add_column("Overdue", justify="right", no_wrap=True)
    table.add_column("Update Type", no_wrap=True)

    for r in records:
        table.add_row(
            r.namespace,
            r.release_name,
            r.chart_name,
            r.current_version,
            r.latest_version or "-",
            styled_overdue(r),
            styled_update(classify_update(r.current_version, r.latest_version)),
        )
    return table


def repo_sync_table(result: RepoSyncResult) -> Table:
    table = Table(title="Repository Sync", expand=False)
    table.add_column("Repository", style="cyan", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Detail", style="dim", max_width=60)

    for name in result.all_repo_names:
        if name in result.successful_repo_names:
            table.add_row(name, "[green]synced[/green]", "")
        elif name in result.stale_repo_names:
            table.add_row(name, "[yellow]cached[/yellow]", result.failed_repos[name])
        else:
            table.add_row(name, "[red]failed[/red]", result.failed_repos[name])
    return table


def repo_info_table(infos: list[RepoInfo]) -> Table:
    table = Table(title="Helm Repositories", expand=True)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("URL", style="dim")
    table.add_column("Cached", no_wrap=True)
    table.add_column("Charts", justify="right", style="bold")
    table.add_column("Generated", style="dim", no_wrap=True)

    for info in infos:
        table.add_row(
            info.name,
            info.url,
            "[green]yes[/green]" if info.has_index_file else "[red]no[/red]",
            str(info.chart_count) if info.has_index_file else "-",
            info.generated.strftime("%Y-%m-%d %H:%M:%S") if info.generated else "-",
        )
    return table
