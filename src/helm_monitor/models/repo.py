"""Repository configuration and sync result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class RepoConfig:
    """One entry of helm's repositories.yaml."""

    name: str
    url: str
    username: str = ""
    password: str = ""
    ca_file: str = ""
    cert_file: str = ""
    key_file: str = ""
    insecure_skip_tls_verify: bool = False

    @classmethod
    def from_dict(cls, d: dict) -> RepoConfig:
        return cls(
            name=d["name"],
            url=d["url"],
            username=d.get("username") or "",
            password=d.get("password") or "",
            ca_file=d.get("caFile") or "",
            cert_file=d.get("certFile") or "",
            key_file=d.get("keyFile") or "",
            insecure_skip_tls_verify=bool(d.get("insecure_skip_tls_verify", False)),
        )

    @property
    def index_url(self) -> str:
        return self.url.rstrip("/") + "/index.yaml"


@dataclass(frozen=True)
class RepoSyncResult:
    """Outcome of synchronizing every configured repository in one cycle.

    ``stale_repo_names`` is the subset of failed repositories whose last
    cached catalog was still merged into the index.
    """

    successful_repo_names: frozenset[str] = frozenset()
    failed_repos: Mapping[str, str] = field(default_factory=dict)
    stale_repo_names: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "successful_repo_names", frozenset(self.successful_repo_names))
        object.__setattr__(self, "failed_repos", MappingProxyType(dict(self.failed_repos)))
        object.__setattr__(self, "stale_repo_names", frozenset(self.stale_repo_names))

    @property
    def all_repo_names(self) -> list[str]:
        return sorted(self.successful_repo_names | set(self.failed_repos))

    @property
    def fully_successful(self) -> bool:
        return not self.failed_repos


@dataclass
class RepoInfo:
    """Cache status of a configured repository, for the ``repos`` command."""

    name: str
    url: str
    cache_file: Path
    has_index_file: bool = False
    chart_count: int = 0
    generated: datetime | None = None
