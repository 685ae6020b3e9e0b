"""Compute how far an installed release lags behind its repositories."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Sequence

import semver

from helm_monitor.errors import VersionParseError
from helm_monitor.models.chart import AvailableVersion
from helm_monitor.models.freshness import UNKNOWN, FreshnessRecord
from helm_monitor.models.release import HelmRelease
from helm_monitor.utils.version_compare import parse_version_strict

logger = logging.getLogger(__name__)


def _raw(entry: AvailableVersion | str) -> str:
    return entry.version if isinstance(entry, AvailableVersion) else entry


def evaluate(
    release: HelmRelease,
    available_versions: Sequence[AvailableVersion | str] | None,
) -> FreshnessRecord:
    """Build the freshness record of one release.

    ``available_versions`` is None when no repository carries the chart; the
    overdue count is then UNKNOWN. Unparsable available versions are skipped
    and reported in ``diagnostics``; an unparsable installed version makes
    the count UNKNOWN.
    """
    base = dict(
        chart_name=release.chart_name,
        namespace=release.namespace,
        current_version=release.current_version,
        release_name=release.name,
    )
    if available_versions is None:
        return FreshnessRecord(
            overdue_count=UNKNOWN,
            in_catalog=False,
            diagnostics=(f"chart {release.chart_name!r} not found in any repository",),
            **base,
        )

    diagnostics: list[str] = []
    parsed: list[tuple[semver.Version, str]] = []
    for entry in available_versions:
        raw = _raw(entry)
        try:
            parsed.append((parse_version_strict(raw), raw))
        except VersionParseError as e:
            diagnostics.append(f"skipped {e}")
    skipped = len(diagnostics)

    latest_version = None
    if parsed:
        # max() keeps the first of equal-precedence versions, so input order decides ties.
        latest_version = max(parsed, key=lambda p: p[0])[1]

    try:
        current = parse_version_strict(release.current_version)
    except VersionParseError as e:
        diagnostics.insert(0, f"cannot evaluate installed version: {e}")
        logger.warning(
            "Invalid version format for release %s/%s (chart %s): %r",
            release.namespace, release.name, release.chart_name, release.current_version,
        )
        return FreshnessRecord(
            overdue_count=UNKNOWN,
            latest_version=latest_version,
            available_count=len(parsed),
            parse_errors=skipped + 1,
            diagnostics=tuple(diagnostics),
            **base,
        )

    overdue = sum(1 for version, _ in parsed if version > current)
    if skipped:
        logger.debug("Chart %s: %d unparsable versions skipped", release.chart_name, skipped)
    return FreshnessRecord(
        overdue_count=overdue,
        latest_version=latest_version,
        available_count=len(parsed),
        parse_errors=skipped,
        diagnostics=tuple(diagnostics),
        **base,
    )


def evaluate_all(
    releases: Iterable[HelmRelease],
    index: Mapping[str, Sequence[AvailableVersion]],
) -> list[FreshnessRecord]:
    """Evaluate every release against the merged repository index, in order."""
    return [evaluate(r, index.get(r.chart_name)) for r in releases]
