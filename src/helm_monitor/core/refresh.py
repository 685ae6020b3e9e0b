"""One end-to-end refresh cycle: releases -> repositories -> freshness."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from helm_monitor.config.settings import Settings
from helm_monitor.core.aggregator import RepositoryAggregator
from helm_monitor.core.freshness import evaluate_all
from helm_monitor.core.release_source import ReleaseSource
from helm_monitor.errors import ConfigurationError, CycleFailure, ReleaseSourceError
from helm_monitor.models.freshness import Snapshot

logger = logging.getLogger(__name__)


class RefreshCycle:
    """Computes a complete snapshot, or raises CycleFailure.

    Blocking: talks to the cluster and to every repository. The scheduler
    runs it off the event loop.
    """

    def __init__(self, releases: ReleaseSource, aggregator: RepositoryAggregator, settings: Settings):
        self.releases = releases
        self.aggregator = aggregator
        self.settings = settings

    def run(self, generation: int) -> Snapshot:
        start = time.monotonic()
        try:
            releases = self.releases.list_releases(
                namespace=self.settings.namespace,
                exclude_names=self.settings.exclude_names,
                chart_names=self.settings.chart_names,
            )
        except ReleaseSourceError as e:
            raise CycleFailure(f"failed to list releases: {e}") from e

        chart_names = {r.chart_name for r in releases}
        try:
            index, sync_result = self.aggregator.sync(chart_names)
        except ConfigurationError as e:
            raise CycleFailure(f"failed to load repositories: {e}") from e

        records = evaluate_all(releases, index)
        snapshot = Snapshot(
            generation=generation,
            created_at=datetime.now(timezone.utc),
            records=tuple(records),
            sync_result=sync_result,
        )
        logger.info(
            "Refresh cycle %d: %d releases, %d charts, %d/%d repositories synced in %.2fs",
            generation,
            len(records),
            len(chart_names),
            len(sync_result.successful_repo_names),
            len(sync_result.all_repo_names),
            time.monotonic() - start,
        )
        return snapshot
