"""Data models for Helm Monitor."""

from __future__ import annotations

import enum


class SchedulerState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    PUBLISHED = "published"
    FAILED = "failed"
    BACKOFF = "backoff"
    STOPPED = "stopped"


class UpdateType(enum.Enum):
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    PRERELEASE = "prerelease"
    UP_TO_DATE = "up-to-date"
    UNKNOWN = "unknown"
