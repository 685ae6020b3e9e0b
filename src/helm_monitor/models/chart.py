"""Chart metadata and catalog entry models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ChartMetadata:
    name: str = ""
    version: str = ""

    @classmethod
    def from_dict(cls, d: dict) -> ChartMetadata:
        if not d:
            return cls()
        return cls(
            name=d.get("name", ""),
            version=str(d.get("version", "")),
        )


@dataclass(frozen=True)
class AvailableVersion:
    """One chart version published by a repository."""

    version: str
    repo: str = ""

    @classmethod
    def from_dict(cls, d: dict, repo: str = "") -> AvailableVersion:
        return cls(
            version=str(d.get("version", "")),
            repo=repo,
        )
