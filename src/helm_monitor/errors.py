"""Exception taxonomy for Helm Monitor.

Only :class:`ConfigurationError` (per refresh cycle) and
:class:`ReadinessTimeout` (per process) are ever allowed to escape the
pipeline. Repository and version failures are recorded as data.
"""

from __future__ import annotations


class HelmMonitorError(Exception):
    """Base class for all Helm Monitor errors."""


class ConfigurationError(HelmMonitorError):
    """Repository configuration or settings are missing, unparsable or empty."""

    def __init__(self, message: str, path: str = "") -> None:
        self.path = path
        if path:
            message = f"{message} ({path})"
        super().__init__(message)


class RepositorySyncError(HelmMonitorError):
    """A single repository could not be synchronized."""

    def __init__(self, repo: str, op: str, reason: str) -> None:
        self.repo = repo
        self.op = op
        self.reason = reason
        super().__init__(f"repository operation {op!r} failed for repo {repo!r}: {reason}")


class VersionParseError(HelmMonitorError, ValueError):
    """A version string is not a valid semantic version."""

    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(f"invalid semantic version: {version!r}")


class ReleaseSourceError(HelmMonitorError):
    """Installed releases could not be listed from the cluster."""

    def __init__(self, op: str, reason: str, namespace: str | None = None) -> None:
        self.op = op
        self.namespace = namespace
        scope = f" in namespace {namespace!r}" if namespace else ""
        super().__init__(f"helm operation {op!r} failed{scope}: {reason}")


class CycleFailure(HelmMonitorError):
    """A refresh cycle was aborted; nothing was published."""


class ReadinessTimeout(HelmMonitorError):
    """No snapshot was published within the startup window."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"timeout waiting for initial metrics after {timeout:g}s")
