"""Synchronize every configured repository and merge their catalogs."""

from __future__ import annotations

import logging
import time
from typing import Iterable

from helm_monitor.core.repo_syncer import Catalog, RepoSyncer
from helm_monitor.errors import ConfigurationError, RepositorySyncError
from helm_monitor.models.chart import AvailableVersion
from helm_monitor.models.repo import RepoConfig, RepoSyncResult

logger = logging.getLogger(__name__)

MergedIndex = dict[str, list[AvailableVersion]]


def merge_catalog(
    index: MergedIndex,
    catalog: Catalog,
    chart_names: set[str] | None = None,
) -> None:
    """Fold one repository's catalog into the merged index in place.

    A version string already contributed by another repository is not
    counted twice.
    """
    for chart_name, versions in catalog.items():
        if chart_names is not None and chart_name not in chart_names:
            continue
        merged = index.setdefault(chart_name, [])
        seen = {v.version for v in merged}
        for v in versions:
            if v.version not in seen:
                seen.add(v.version)
                merged.append(v)


def sync_repositories(
    repo_configs: Iterable[RepoConfig],
    syncer: RepoSyncer,
    chart_names: Iterable[str] | None = None,
    stale_cache_fallback: bool = True,
) -> tuple[MergedIndex, RepoSyncResult]:
    """Sync each repository independently and merge what could be read.

    Raises ConfigurationError when there is nothing to sync. Any failure of
    a single repository is recorded in the result and never raised.
    """
    repos = list(repo_configs)
    if not repos:
        raise ConfigurationError("no repositories configured")

    wanted = set(chart_names) if chart_names is not None else None
    start = time.monotonic()
    index: MergedIndex = {}
    successful: set[str] = set()
    failed: dict[str, str] = {}
    stale: set[str] = set()

    for repo in repos:
        try:
            catalog = syncer.sync(repo)
        except RepositorySyncError as e:
            logger.warning("Failed to sync repository %s: %s", repo.name, e.reason)
            failed[repo.name] = str(e)
        except Exception as e:
            logger.exception("Unexpected error syncing repository %s", repo.name)
            failed[repo.name] = f"unexpected error: {e}"
        else:
            successful.add(repo.name)
            merge_catalog(index, catalog, wanted)
            continue

        if not stale_cache_fallback:
            continue
        try:
            catalog = syncer.cached_catalog(repo)
        except RepositorySyncError as e:
            logger.debug("No usable cached index for %s: %s", repo.name, e.reason)
            continue
        except Exception:
            logger.exception("Unexpected error reading cached index of %s", repo.name)
            continue
        logger.info("Using cached index for repository %s", repo.name)
        stale.add(repo.name)
        merge_catalog(index, catalog, wanted)

    logger.debug(
        "Repository sync completed: %d successful, %d failed, %d stale in %.2fs",
        len(successful), len(failed), len(stale), time.monotonic() - start,
    )
    return index, RepoSyncResult(
        successful_repo_names=frozenset(successful),
        failed_repos=failed,
        stale_repo_names=frozenset(stale),
    )


class RepositoryAggregator:
    """Loads the repository list and syncs it, once per refresh cycle."""

    def __init__(self, provider, syncer: RepoSyncer, stale_cache_fallback: bool = True):
        self.provider = provider
        self.syncer = syncer
        self.stale_cache_fallback = stale_cache_fallback

    def sync(self, chart_names: Iterable[str] | None = None) -> tuple[MergedIndex, RepoSyncResult]:
        repos = self.provider.load_repositories()
        return sync_repositories(repos, self.syncer, chart_names, self.stale_cache_fallback)
