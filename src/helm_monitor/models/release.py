"""Helm release models."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from helm_monitor.models.chart import ChartMetadata


class ReleaseStatus(enum.Enum):
    DEPLOYED = "deployed"
    FAILED = "failed"
    SUPERSEDED = "superseded"
    PENDING_INSTALL = "pending-install"
    PENDING_UPGRADE = "pending-upgrade"
    PENDING_ROLLBACK = "pending-rollback"
    UNINSTALLING = "uninstalling"
    UNINSTALLED = "uninstalled"
    UNKNOWN = "unknown"

    @classmethod
    def from_str(cls, s: str) -> ReleaseStatus:
        for member in cls:
            if member.value == s:
                return member
        return cls.UNKNOWN


@dataclass(frozen=True)
class HelmRelease:
    """The latest revision of an installed release.

    Built once per refresh cycle by the release source and never mutated.
    """

    name: str = ""
    namespace: str = ""
    revision: int = 0
    status: ReleaseStatus = ReleaseStatus.UNKNOWN
    chart: ChartMetadata = field(default_factory=ChartMetadata)

    @property
    def chart_name(self) -> str:
        return self.chart.name

    @property
    def current_version(self) -> str:
        return self.chart.version

    @classmethod
    def from_dict(cls, d: dict, namespace: str = "") -> HelmRelease:
        """Build from a decoded helm release payload."""
        chart_raw = d.get("chart") or {}
        info = d.get("info") or {}
        return cls(
            name=d.get("name", ""),
            namespace=d.get("namespace") or namespace,
            revision=int(d.get("version", 0) or 0),
            status=ReleaseStatus.from_str(info.get("status", "unknown")),
            chart=ChartMetadata.from_dict(chart_raw.get("metadata") or {}),
        )
