"""Prometheus exposition of the published snapshot."""

from __future__ import annotations

import time
from typing import Callable, Iterator

from prometheus_client import CollectorRegistry, Counter, Histogram
from prometheus_client.core import GaugeMetricFamily, Metric

from helm_monitor.core.snapshot_store import NOT_READY, SnapshotStore
from helm_monitor.models.freshness import Snapshot

NAMESPACE = "helm_monitor"

# Same buckets as the operation duration histogram of earlier releases.
DURATION_BUCKETS = (0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30)


class SnapshotCollector:
    """Builds every snapshot-derived gauge from scratch on each scrape.

    Nothing is remembered between scrapes, so releases and repositories that
    vanish from the snapshot vanish from the exposition too.
    """

    def __init__(self, store: SnapshotStore, started_at: float, clock: Callable[[], float] = time.time):
        self.store = store
        self.started_at = started_at
        self.clock = clock

    def describe(self) -> list[Metric]:
        return []

    def collect(self) -> Iterator[Metric]:
        uptime = GaugeMetricFamily(
            f"{NAMESPACE}_server_uptime_seconds",
            "Time since the server started in seconds",
        )
        uptime.add_metric([], max(0.0, self.clock() - self.started_at))
        yield uptime

        snapshot = self.store.read()
        if snapshot is NOT_READY:
            return
        yield from snapshot_metrics(snapshot)


def snapshot_metrics(snapshot: Snapshot) -> Iterator[Metric]:
    overdue = GaugeMetricFamily(
        f"{NAMESPACE}_chart_versions_overdue",
        "Number of versions a chart is behind latest (-1 when unknown)",
        labels=["chart", "namespace", "current_version"],
    )
    available = GaugeMetricFamily(
        f"{NAMESPACE}_chart_versions_available",
        "Number of available versions for each chart",
        labels=["chart", "namespace"],
    )
    latest = GaugeMetricFamily(
        f"{NAMESPACE}_chart_latest_version_info",
        "Latest version published for each chart",
        labels=["chart", "latest_version"],
    )

    # Several releases may share one label set; their values are identical.
    overdue_values: dict[tuple[str, str, str], float] = {}
    available_values: dict[tuple[str, str], float] = {}
    latest_values: set[tuple[str, str]] = set()
    for record in snapshot.records:
        overdue_values.setdefault(
            (record.chart_name, record.namespace, record.current_version), record.gauge_value
        )
        if record.in_catalog:
            available_values.setdefault((record.chart_name, record.namespace), float(record.available_count))
        if record.latest_version is not None:
            latest_values.add((record.chart_name, record.latest_version))

    for labels, value in overdue_values.items():
        overdue.add_metric(list(labels), value)
    for labels, value in available_values.items():
        available.add_metric(list(labels), value)
    for labels in sorted(latest_values):
        latest.add_metric(list(labels), 1.0)
    yield overdue
    yield available
    yield latest

    sync = snapshot.sync_result
    repo_status = GaugeMetricFamily(
        f"{NAMESPACE}_repo_sync_status",
        "1 if the repository synced in the last refresh, 0 if it failed",
        labels=["repo"],
    )
    repo_stale = GaugeMetricFamily(
        f"{NAMESPACE}_repo_stale",
        "1 if a failed repository was served from its cached index",
        labels=["repo"],
    )
    for repo in sync.all_repo_names:
        repo_status.add_metric([repo], 1.0 if repo in sync.successful_repo_names else 0.0)
        repo_stale.add_metric([repo], 1.0 if repo in sync.stale_repo_names else 0.0)
    yield repo_status
    yield repo_stale

    generation = GaugeMetricFamily(
        f"{NAMESPACE}_snapshot_generation",
        "Generation of the published snapshot",
    )
    generation.add_metric([], float(snapshot.generation))
    yield generation

    created = GaugeMetricFamily(
        f"{NAMESPACE}_snapshot_timestamp_seconds",
        "Unix time the published snapshot was computed",
    )
    created.add_metric([], snapshot.created_at.timestamp())
    yield created


class PipelineMetrics:
    """Process-lifetime counters of the refresh loop."""

    def __init__(self, registry: CollectorRegistry):
        self.cycles = Counter(
            "refresh_cycles",
            "Refresh cycles by result",
            ["result"],
            namespace=NAMESPACE,
            registry=registry,
        )
        self.duration = Histogram(
            "refresh_duration_seconds",
            "Duration of refresh cycles in seconds",
            namespace=NAMESPACE,
            buckets=DURATION_BUCKETS,
            registry=registry,
        )
        self.repo_errors = Counter(
            "repo_errors",
            "Repository sync failures",
            ["repo"],
            namespace=NAMESPACE,
            registry=registry,
        )
        self.parse_errors = Counter(
            "version_parse_errors",
            "Version strings skipped because they are not semantic versions",
            namespace=NAMESPACE,
            registry=registry,
        )

    def observe_cycle(self, snapshot: Snapshot, duration: float) -> None:
        self.cycles.labels(result="success").inc()
        self.duration.observe(duration)
        for repo in snapshot.sync_result.failed_repos:
            self.repo_errors.labels(repo=repo).inc()
        self.parse_errors.inc(snapshot.parse_error_count)

    def observe_failure(self, duration: float) -> None:
        self.cycles.labels(result="failure").inc()
        self.duration.observe(duration)


def build_registry(store: SnapshotStore, started_at: float | None = None) -> tuple[CollectorRegistry, PipelineMetrics]:
    """Create a private registry holding the snapshot collector and loop counters."""
    registry = CollectorRegistry()
    registry.register(SnapshotCollector(store, started_at if started_at is not None else time.time()))
    return registry, PipelineMetrics(registry)
