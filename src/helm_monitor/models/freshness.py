"""Freshness records and published snapshots."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Union

from helm_monitor.models.repo import RepoSyncResult


class Overdue(enum.Enum):
    """Sentinel for an overdue count that could not be determined."""

    UNKNOWN = "unknown"

    def __repr__(self) -> str:
        return "UNKNOWN"


UNKNOWN = Overdue.UNKNOWN

# Value exported for UNKNOWN; a real count is never negative.
UNKNOWN_GAUGE_VALUE = -1.0

OverdueCount = Union[int, Overdue]


@dataclass(frozen=True)
class FreshnessRecord:
    chart_name: str
    namespace: str
    current_version: str
    overdue_count: OverdueCount
    latest_version: str | None = None
    release_name: str = ""
    available_count: int = 0
    in_catalog: bool = True
    parse_errors: int = 0
    diagnostics: tuple[str, ...] = ()

    @property
    def is_unknown(self) -> bool:
        return self.overdue_count is UNKNOWN

    @property
    def gauge_value(self) -> float:
        if self.overdue_count is UNKNOWN:
            return UNKNOWN_GAUGE_VALUE
        return float(self.overdue_count)


@dataclass(frozen=True)
class Snapshot:
    """The fully computed result of one refresh cycle."""

    generation: int
    created_at: datetime
    records: tuple[FreshnessRecord, ...]
    sync_result: RepoSyncResult

    def __post_init__(self) -> None:
        object.__setattr__(self, "records", tuple(self.records))

    @property
    def parse_error_count(self) -> int:
        return sum(r.parse_errors for r in self.records)

    @property
    def outdated(self) -> list[FreshnessRecord]:
        return [r for r in self.records if not r.is_unknown and r.overdue_count > 0]
