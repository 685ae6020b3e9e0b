"""Tests for a single refresh cycle."""

from __future__ import annotations

import pytest
from conftest import FakeReleaseSource, make_catalog, make_release

from helm_monitor.core.refresh import RefreshCycle
from helm_monitor.errors import ConfigurationError, CycleFailure, ReleaseSourceError
from helm_monitor.models.freshness import UNKNOWN
from helm_monitor.models.repo import RepoSyncResult


class FakeAggregator:
    def __init__(self, index=None, result=None, error=None):
        self.index = index or {}
        self.result = result or RepoSyncResult(successful_repo_names={"A"})
        self.error = error
        self.chart_names = None

    def sync(self, chart_names=None):
        self.chart_names = set(chart_names)
        if self.error is not None:
            raise self.error
        return self.index, self.result


def test_snapshot_from_releases_and_index(settings):
    releases = FakeReleaseSource([
        make_release("web", "nginx", "1.0.0"),
        make_release("cache", "redis", "7.0.0", namespace="data"),
    ])
    aggregator = FakeAggregator(make_catalog("A", {"nginx": ["1.0.0", "1.1.0", "2.0.0"]}))

    snapshot = RefreshCycle(releases, aggregator, settings).run(generation=4)

    assert snapshot.generation == 4
    assert aggregator.chart_names == {"nginx", "redis"}
    by_chart = {r.chart_name: r for r in snapshot.records}
    assert by_chart["nginx"].overdue_count == 2
    assert by_chart["redis"].overdue_count is UNKNOWN
    assert snapshot.sync_result.successful_repo_names == {"A"}


def test_release_filters_come_from_settings(settings):
    settings.namespace = "prod"
    settings.exclude_names = ["canary"]
    settings.chart_names = ["nginx"]
    releases = FakeReleaseSource()

    RefreshCycle(releases, FakeAggregator(), settings).run(generation=1)

    assert releases.calls == [{"namespace": "prod", "exclude_names": ["canary"], "chart_names": ["nginx"]}]


def test_release_source_failure_aborts_cycle(settings):
    releases = FakeReleaseSource(error=ReleaseSourceError("list_releases", "503 Service Unavailable"))
    aggregator = FakeAggregator()

    with pytest.raises(CycleFailure, match="failed to list releases"):
        RefreshCycle(releases, aggregator, settings).run(generation=1)
    assert aggregator.chart_names is None


def test_configuration_failure_aborts_cycle(settings):
    aggregator = FakeAggregator(error=ConfigurationError("no repositories configured"))

    with pytest.raises(CycleFailure, match="no repositories configured"):
        RefreshCycle(FakeReleaseSource([make_release()]), aggregator, settings).run(generation=1)


def test_partial_repository_failure_still_publishes(settings):
    result = RepoSyncResult(successful_repo_names={"A"}, failed_repos={"B": "HTTP 500"})
    aggregator = FakeAggregator(make_catalog("A", {"nginx": ["1.0.0"]}), result)

    snapshot = RefreshCycle(FakeReleaseSource([make_release()]), aggregator, settings).run(generation=1)

    assert snapshot.records[0].overdue_count == 0
    assert snapshot.sync_result.failed_repos == {"B": "HTTP 500"}
