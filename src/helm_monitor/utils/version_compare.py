"""Semantic version parsing and comparison.

Precedence follows SemVer 2.0.0: pre-releases sort below their release and
build metadata is ignored. Parsing is as lenient as helm's: a leading ``v``
is dropped and missing minor/patch parts default to zero.
"""

from __future__ import annotations

import semver

from helm_monitor.errors import VersionParseError
from helm_monitor.models import UpdateType


def parse_version_strict(v: str) -> semver.Version:
    """Parse a version string, raising VersionParseError on failure."""
    if not isinstance(v, str):
        raise VersionParseError(repr(v))
    raw = v.strip()
    if raw[:1] in ("v", "V"):
        raw = raw[1:]
    try:
        return semver.Version.parse(raw, optional_minor_and_patch=True)
    except (ValueError, TypeError) as e:
        raise VersionParseError(v) from e


def parse_version(v: str) -> semver.Version | None:
    """Parse a version string, returning None on failure."""
    try:
        return parse_version_strict(v)
    except VersionParseError:
        return None


def classify_update(current: str, latest: str | None) -> UpdateType:
    """Classify the update between two version strings."""
    cur = parse_version(current)
    lat = parse_version(latest) if latest else None

    if cur is None or lat is None:
        return UpdateType.UNKNOWN
    if lat <= cur:
        return UpdateType.UP_TO_DATE
    if lat.major > cur.major:
        return UpdateType.MAJOR
    if lat.minor > cur.minor:
        return UpdateType.MINOR
    if lat.patch > cur.patch:
        return UpdateType.PATCH
    return UpdateType.PRERELEASE
