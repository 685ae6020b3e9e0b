"""Process wiring: build the pipeline, serve it, shut it down."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import signal
import time
from typing import Callable, Iterator

import uvicorn

from helm_monitor.config.settings import Settings
from helm_monitor.core.aggregator import RepositoryAggregator
from helm_monitor.core.k8s_client import K8sClient
from helm_monitor.core.refresh import RefreshCycle
from helm_monitor.core.release_source import ReleaseSource
from helm_monitor.core.repo_config import RepoConfigProvider
from helm_monitor.core.repo_syncer import RepoSyncer
from helm_monitor.core.scheduler import Backoff, RefreshScheduler, wait_until_ready
from helm_monitor.core.snapshot_store import SnapshotStore
from helm_monitor.errors import ReadinessTimeout
from helm_monitor.metrics.collector import build_registry
from helm_monitor.server.app import create_app

logger = logging.getLogger(__name__)


class _Server(uvicorn.Server):
    """uvicorn server that lets SIGINT/SIGTERM end serving without re-raising them.

    ``on_exit`` runs on the first exit request, while uvicorn drains connections.
    """

    def __init__(self, config: uvicorn.Config, on_exit: Callable[[], object] | None = None):
        super().__init__(config)
        self._on_exit = on_exit

    def handle_exit(self, sig: int, frame) -> None:
        super().handle_exit(sig, frame)
        if self._on_exit is not None:
            self._on_exit()

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        loop = asyncio.get_running_loop()
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, self.handle_exit, sig, None)
                installed.append(sig)
        try:
            yield
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)


def shutdown_timeout(grace: float) -> int:
    """uvicorn's graceful shutdown bound for a grace period in seconds.

    uvicorn only takes whole seconds and treats None as "wait forever".
    """
    return max(0, math.ceil(grace))


def build_cycle(settings: Settings) -> RefreshCycle:
    """Assemble a refresh cycle talking to the real cluster and repositories."""
    k8s = K8sClient(settings)
    logger.info("Using Kubernetes context %s", k8s.active_context_name)
    releases = ReleaseSource(k8s, settings)
    aggregator = RepositoryAggregator(
        RepoConfigProvider(settings.repositories_file),
        RepoSyncer(settings),
        stale_cache_fallback=settings.stale_cache_fallback,
    )
    return RefreshCycle(releases, aggregator, settings)


class MonitorService:
    """Runs the refresh scheduler and the HTTP endpoint side by side."""

    def __init__(self, settings: Settings, cycle: RefreshCycle | None = None):
        self.settings = settings
        self.store = SnapshotStore()
        self.registry, self.metrics = build_registry(self.store, time.time())
        self.scheduler = RefreshScheduler(
            cycle or build_cycle(settings),
            self.store,
            interval=settings.refresh_interval,
            backoff=Backoff(settings.backoff_base, settings.backoff_cap),
            metrics=self.metrics,
        )
        self.app = create_app(self.store, self.registry)
        self._stopping: asyncio.Task | None = None

    def begin_shutdown(self) -> asyncio.Task:
        """Start stopping the scheduler; repeated calls return the same task.

        Called on the first exit request, while uvicorn drains connections.
        """
        if self._stopping is None:
            logger.info("Initiating graceful shutdown")
            self._stopping = asyncio.ensure_future(self.scheduler.stop(self.settings.shutdown_grace))
        return self._stopping

    async def run(self) -> None:
        """Serve until SIGINT/SIGTERM.

        Raises ReadinessTimeout when no snapshot is published within the
        readiness window; later cycle failures only ever retry.
        """
        config = uvicorn.Config(
            self.app,
            host=self.settings.host,
            port=self.settings.port,
            log_config=None,
            access_log=self.settings.debug,
            timeout_graceful_shutdown=shutdown_timeout(self.settings.shutdown_grace),
        )
        server = _Server(config, on_exit=self.begin_shutdown)
        self.scheduler.start()
        serving = asyncio.create_task(server.serve(), name="http-server")
        try:
            ready = asyncio.create_task(
                wait_until_ready(self.store, self.settings.readiness_timeout, self.settings.readiness_poll)
            )
            done, _ = await asyncio.wait({ready, serving}, return_when=asyncio.FIRST_COMPLETED)
            if ready in done:
                ready.result()
                logger.info("Serving metrics on http://%s:%d/metrics", self.settings.host, self.settings.port)
            else:
                ready.cancel()
            await serving
        except ReadinessTimeout:
            server.should_exit = True
            self.begin_shutdown()
            await asyncio.gather(serving, return_exceptions=True)
            raise
        finally:
            await self.begin_shutdown()
            logger.info("Shutdown completed")
