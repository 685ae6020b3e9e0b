"""Tests for the repository sync aggregator."""

from __future__ import annotations

import httpx
import pytest
from conftest import FakeProvider, FakeSyncer, index_yaml, make_catalog

from helm_monitor.core.aggregator import RepositoryAggregator, merge_catalog, sync_repositories
from helm_monitor.core.repo_syncer import RepoSyncer
from helm_monitor.errors import ConfigurationError
from helm_monitor.models.repo import RepoConfig


def _catalogs():
    return {
        "A": make_catalog("A", {"nginx": ["1.0.0", "1.1.0"], "redis": ["7.0.0"]}),
        "B": make_catalog("B", {"nginx": ["9.9.9"]}),
        "C": make_catalog("C", {"nginx": ["1.1.0", "1.2.0"], "postgres": ["15.0.0"]}),
    }


class TestSyncRepositories:
    def test_one_failing_repository_is_isolated(self, three_repos):
        syncer = FakeSyncer(_catalogs(), failing=("B",))

        index, result = sync_repositories(three_repos, syncer, stale_cache_fallback=False)

        assert result.successful_repo_names == {"A", "C"}
        assert set(result.failed_repos) == {"B"}
        assert "connection refused" in result.failed_repos["B"]
        assert syncer.synced == ["A", "B", "C"]
        assert "9.9.9" not in [v.version for v in index["nginx"]]

    def test_merges_and_dedupes_versions(self, three_repos):
        index, result = sync_repositories(three_repos, FakeSyncer(_catalogs()))

        assert result.fully_successful
        assert [v.version for v in index["nginx"]] == ["1.0.0", "1.1.0", "9.9.9", "1.2.0"]
        assert index["nginx"][1].repo == "A"
        assert set(index) == {"nginx", "redis", "postgres"}

    def test_chart_filter(self, three_repos):
        index, _ = sync_repositories(three_repos, FakeSyncer(_catalogs()), chart_names={"redis"})
        assert set(index) == {"redis"}

    def test_all_repositories_failing_still_reports_each(self, three_repos):
        index, result = sync_repositories(three_repos, FakeSyncer({}, failing=("A", "B", "C")))
        assert index == {}
        assert result.successful_repo_names == frozenset()
        assert sorted(result.failed_repos) == ["A", "B", "C"]

    def test_stale_cache_fallback(self, three_repos):
        cached = {"B": make_catalog("B", {"nginx": ["3.0.0"]})}
        syncer = FakeSyncer(_catalogs(), failing=("B",), cached=cached)

        index, result = sync_repositories(three_repos, syncer, stale_cache_fallback=True)

        assert "B" in result.failed_repos
        assert result.stale_repo_names == {"B"}
        assert "3.0.0" in [v.version for v in index["nginx"]]

    def test_stale_cache_disabled(self, three_repos):
        cached = {"B": make_catalog("B", {"nginx": ["3.0.0"]})}
        syncer = FakeSyncer(_catalogs(), failing=("B",), cached=cached)

        index, result = sync_repositories(three_repos, syncer, stale_cache_fallback=False)

        assert result.stale_repo_names == frozenset()
        assert "3.0.0" not in [v.version for v in index["nginx"]]

    def test_unexpected_error_is_recorded(self, three_repos):
        class Exploding(FakeSyncer):
            def sync(self, repo):
                if repo.name == "C":
                    raise KeyError("boom")
                return super().sync(repo)

        _, result = sync_repositories(three_repos, Exploding(_catalogs()), stale_cache_fallback=False)
        assert result.successful_repo_names == {"A", "B"}
        assert "unexpected error" in result.failed_repos["C"]

    def test_broken_cache_read_stays_a_repository_failure(self, three_repos):
        class BrokenCache(FakeSyncer):
            def cached_catalog(self, repo):
                raise AttributeError("'int' object has no attribute 'get'")

        index, result = sync_repositories(three_repos, BrokenCache(_catalogs(), failing=("B",)))

        assert result.successful_repo_names == {"A", "C"}
        assert set(result.failed_repos) == {"B"}
        assert result.stale_repo_names == frozenset()
        assert "9.9.9" not in [v.version for v in index["nginx"]]

    def test_malformed_cached_index_does_not_abort_sync(self, settings):
        repos = [
            RepoConfig(name="a", url="https://a.example.com"),
            RepoConfig(name="b", url="https://b.example.com"),
            RepoConfig(name="c", url="https://c.example.com"),
        ]
        bodies = {
            "a.example.com": index_yaml({"nginx": ["1.0.0", "1.1.0"]}),
            "c.example.com": index_yaml({"redis": ["7.0.0"]}),
        }

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "b.example.com":
                return httpx.Response(503)
            return httpx.Response(200, text=bodies[request.url.host])

        cached = settings.index_cache_file("b")
        cached.parent.mkdir(parents=True)
        cached.write_text("apiVersion: v1\nentries:\n  nginx: 5\n")
        syncer = RepoSyncer(settings, transport=httpx.MockTransport(handler))

        index, result = sync_repositories(repos, syncer)

        assert result.successful_repo_names == {"a", "c"}
        assert set(result.failed_repos) == {"b"}
        assert "HTTP 503" in result.failed_repos["b"]
        assert [v.version for v in index["nginx"]] == ["1.0.0", "1.1.0"]
        assert set(index) == {"nginx", "redis"}

    def test_empty_configuration_is_fatal(self):
        syncer = FakeSyncer({})
        with pytest.raises(ConfigurationError):
            sync_repositories([], syncer)
        assert syncer.synced == []


def test_sync_result_is_immutable(three_repos):
    _, result = sync_repositories(three_repos, FakeSyncer(_catalogs(), failing=("B",)))
    with pytest.raises(TypeError):
        result.failed_repos["X"] = "nope"


def test_merge_catalog_in_place():
    index = {}
    merge_catalog(index, make_catalog("A", {"nginx": ["1.0.0"]}))
    merge_catalog(index, make_catalog("B", {"nginx": ["1.0.0", "2.0.0"]}))
    assert [(v.version, v.repo) for v in index["nginx"]] == [("1.0.0", "A"), ("2.0.0", "B")]


class TestRepositoryAggregator:
    def test_configuration_error_propagates(self):
        aggregator = RepositoryAggregator(FakeProvider(error=ConfigurationError("no repositories configured")),
                                          FakeSyncer({}))
        with pytest.raises(ConfigurationError):
            aggregator.sync({"nginx"})

    def test_sync_uses_provider(self, three_repos):
        aggregator = RepositoryAggregator(FakeProvider(three_repos), FakeSyncer(_catalogs()))
        index, result = aggregator.sync({"nginx"})
        assert set(index) == {"nginx"}
        assert len(result.successful_repo_names) == 3
