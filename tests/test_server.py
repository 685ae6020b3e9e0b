"""Tests for the /health and /metrics endpoints."""

from __future__ import annotations

import asyncio

from conftest import make_snapshot
from fastapi.testclient import TestClient
from prometheus_client import CONTENT_TYPE_LATEST

from helm_monitor.core.scheduler import Backoff, RefreshScheduler
from helm_monitor.core.snapshot_store import SnapshotStore
from helm_monitor.errors import CycleFailure
from helm_monitor.metrics.collector import build_registry
from helm_monitor.models.freshness import FreshnessRecord
from helm_monitor.server.app import create_app


class FailingCycle:
    def run(self, generation):
        raise CycleFailure("failed to list releases: cluster unreachable")


def _client():
    store = SnapshotStore()
    registry, metrics = build_registry(store)
    return store, metrics, TestClient(create_app(store, registry))


def test_health_not_ready_before_first_snapshot():
    _, _, client = _client()
    resp = client.get("/health")
    assert resp.status_code == 503
    assert resp.json() == {"status": "not ready"}


def test_health_ready_after_publish():
    store, _, client = _client()
    store.publish(make_snapshot(
        1,
        [FreshnessRecord("nginx", "default", "1.0.0", 0)],
        successful_repo_names={"A"},
        failed_repos={"B": "HTTP 404"},
    ))

    resp = client.get("/health")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ready"
    assert body["generation"] == 1
    assert body["releases"] == 1
    assert body["failed_repos"] == {"B": "HTTP 404"}


def test_health_stays_ready_after_failed_cycle():
    store, metrics, client = _client()
    store.publish(make_snapshot(1))
    scheduler = RefreshScheduler(FailingCycle(), store, interval=20.0, backoff=Backoff(5.0, 300.0),
                                 metrics=metrics)

    async def fail_once():
        ok = await scheduler.run_once()
        await scheduler.stop(grace=1.0)
        return ok

    assert asyncio.run(fail_once()) is False
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["generation"] == 1


def test_metrics_endpoint():
    store, _, client = _client()
    store.publish(make_snapshot(3, [FreshnessRecord("nginx", "default", "1.0.0", 2)]))

    resp = client.get("/metrics")

    assert resp.status_code == 200
    assert resp.headers["content-type"] == CONTENT_TYPE_LATEST
    assert ('helm_monitor_chart_versions_overdue{chart="nginx",namespace="default",'
            'current_version="1.0.0"} 2.0') in resp.text
    assert "helm_monitor_snapshot_generation 3.0" in resp.text
