"""Shared test fixtures for Helm Monitor."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest
import yaml

from helm_monitor.config.settings import Settings
from helm_monitor.errors import RepositorySyncError
from helm_monitor.models.chart import AvailableVersion, ChartMetadata
from helm_monitor.models.freshness import FreshnessRecord, Snapshot
from helm_monitor.models.release import HelmRelease, ReleaseStatus
from helm_monitor.models.repo import RepoConfig, RepoSyncResult


# ── Builders ─────────────────────────────────────────────────────────


def make_release(
    name: str = "web",
    chart: str = "nginx",
    version: str = "1.0.0",
    namespace: str = "default",
    status: ReleaseStatus = ReleaseStatus.DEPLOYED,
) -> HelmRelease:
    return HelmRelease(
        name=name,
        namespace=namespace,
        revision=1,
        status=status,
        chart=ChartMetadata(name=chart, version=version),
    )


def make_catalog(repo: str, charts: dict[str, list[str]]) -> dict[str, list[AvailableVersion]]:
    return {
        chart: [AvailableVersion(version=v, repo=repo) for v in versions]
        for chart, versions in charts.items()
    }


def make_snapshot(generation: int, records: list[FreshnessRecord] | None = None, **sync) -> Snapshot:
    return Snapshot(
        generation=generation,
        created_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        records=tuple(records or ()),
        sync_result=RepoSyncResult(**sync),
    )


def index_yaml(charts: dict[str, list[str]]) -> str:
    """Render a minimal helm index.yaml."""
    return yaml.safe_dump({
        "apiVersion": "v1",
        "generated": "2024-05-01T10:00:00Z",
        "entries": {
            chart: [{"name": chart, "version": v, "appVersion": f"app-{v}"} for v in versions]
            for chart, versions in charts.items()
        },
    })


# ── Fakes ────────────────────────────────────────────────────────────


class FakeReleaseSource:
    def __init__(self, releases=None, error: Exception | None = None):
        self.releases = list(releases or [])
        self.error = error
        self.calls: list[dict] = []

    def list_releases(self, namespace=None, exclude_names=(), chart_names=()):
        self.calls.append({"namespace": namespace, "exclude_names": list(exclude_names),
                           "chart_names": list(chart_names)})
        if self.error is not None:
            raise self.error
        return list(self.releases)


class FakeSyncer:
    """Per-repo syncer returning canned catalogs; names in ``failing`` raise."""

    def __init__(self, catalogs: dict, failing: tuple[str, ...] = (), cached: dict | None = None):
        self.catalogs = catalogs
        self.failing = set(failing)
        self.cached = cached or {}
        self.synced: list[str] = []

    def sync(self, repo: RepoConfig):
        self.synced.append(repo.name)
        if repo.name in self.failing:
            raise RepositorySyncError(repo.name, "download_index", "connection refused")
        return self.catalogs[repo.name]

    def cached_catalog(self, repo: RepoConfig):
        if repo.name in self.cached:
            return self.cached[repo.name]
        raise RepositorySyncError(repo.name, "load_index", "no cached index")


class FakeProvider:
    def __init__(self, repos=None, error: Exception | None = None):
        self.repos = list(repos or [])
        self.error = error

    def load_repositories(self):
        if self.error is not None:
            raise self.error
        return list(self.repos)


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        repositories_file=tmp_path / "config" / "repositories.yaml",
        cache_dir=tmp_path / "cache",
    )


@pytest.fixture
def repositories_file(settings: Settings) -> Path:
    """A repositories.yaml listing three repositories."""
    path = settings.repositories_file
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump({
        "apiVersion": "",
        "generated": "2024-05-01T10:00:00Z",
        "repositories": [
            {"name": "alpha", "url": "https://alpha.example.com/charts"},
            {"name": "beta", "url": "https://beta.example.com"},
            {"name": "gamma", "url": "https://gamma.example.com/", "username": "u", "password": "p"},
        ],
    }))
    return path


@pytest.fixture
def three_repos() -> list[RepoConfig]:
    return [
        RepoConfig(name="A", url="https://a.example.com"),
        RepoConfig(name="B", url="https://b.example.com"),
        RepoConfig(name="C", url="https://c.example.com"),
    ]
