"""Table / JSON / YAML output dispatch."""

from __future__ import annotations

import json
from typing import Any

import yaml
from rich.console import Console

from helm_monitor.models.freshness import FreshnessRecord, Snapshot
from helm_monitor.models.repo import RepoInfo

console = Console()


def _record_to_dict(r: FreshnessRecord) -> dict[str, Any]:
    return {
        "release": r.release_name,
        "namespace": r.namespace,
        "chart": r.chart_name,
        "current_version": r.current_version,
        "latest_version": r.latest_version,
        "overdue": None if r.is_unknown else r.overdue_count,
        "available_versions": r.available_count,
        "diagnostics": list(r.diagnostics),
    }


def snapshot_to_dict(snapshot: Snapshot) -> dict[str, Any]:
    sync = snapshot.sync_result
    return {
        "generation": snapshot.generation,
        "created_at": snapshot.created_at.isoformat(),
        "records": [_record_to_dict(r) for r in snapshot.records],
        "repositories": {
            "successful": sorted(sync.successful_repo_names),
            "failed": dict(sync.failed_repos),
            "stale": sorted(sync.stale_repo_names),
        },
    }


def output_snapshot(snapshot: Snapshot, fmt: str) -> None:
    if fmt == "json":
        console.print_json(json.dumps(snapshot_to_dict(snapshot), indent=2))
    elif fmt == "yaml":
        console.print(yaml.safe_dump(snapshot_to_dict(snapshot), default_flow_style=False, sort_keys=False))
    else:
        from helm_monitor.output.tables import freshness_table, repo_sync_table
        console.print(freshness_table(list(snapshot.records)))
        console.print(repo_sync_table(snapshot.sync_result))
        outdated = snapshot.outdated
        unknown = [r for r in snapshot.records if r.is_unknown]
        if outdated:
            console.print(f"\n[yellow]{len(outdated)} release(s) behind their latest chart version[/yellow]")
        else:
            console.print("\n[green]All evaluated releases are up to date[/green]")
        if unknown:
            console.print(f"[dim]{len(unknown)} release(s) could not be evaluated[/dim]")


def output_repositories(infos: list[RepoInfo], fmt: str) -> None:
    data = [
        {
            "name": i.name,
            "url": i.url,
            "cache_file": str(i.cache_file),
            "has_index_file": i.has_index_file,
            "chart_count": i.chart_count,
            "last_synced": i.generated.isoformat() if i.generated else None,
        }
        for i in infos
    ]
    if fmt == "json":
        console.print_json(json.dumps(data, indent=2))
    elif fmt == "yaml":
        console.print(yaml.safe_dump(data, default_flow_style=False, sort_keys=False))
    else:
        from helm_monitor.output.tables import repo_info_table
        console.print(repo_info_table(infos))
