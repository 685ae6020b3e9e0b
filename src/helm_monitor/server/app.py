"""HTTP surface: Prometheus scrape endpoint and health check."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from starlette.responses import Response

from helm_monitor import __version__
from helm_monitor.core.snapshot_store import NOT_READY, SnapshotStore


def health_payload(store: SnapshotStore) -> tuple[int, dict]:
    """Map store readiness to an HTTP status and body.

    Partial repository failures do not make a published snapshot unhealthy.
    """
    snapshot = store.read()
    if snapshot is NOT_READY:
        return 503, {"status": "not ready"}
    sync = snapshot.sync_result
    return 200, {
        "status": "ready",
        "generation": snapshot.generation,
        "created_at": snapshot.created_at.isoformat(),
        "releases": len(snapshot.records),
        "failed_repos": dict(sync.failed_repos),
        "stale_repos": sorted(sync.stale_repo_names),
    }


def create_app(store: SnapshotStore, registry: CollectorRegistry) -> FastAPI:
    app = FastAPI(title="helm-monitor", version=__version__, docs_url=None, redoc_url=None)

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    @app.get("/health")
    async def health() -> JSONResponse:
        status_code, body = health_payload(store)
        return JSONResponse(body, status_code=status_code)

    return app
