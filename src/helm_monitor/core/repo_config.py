"""Load helm's repositories.yaml."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from helm_monitor.errors import ConfigurationError
from helm_monitor.models.repo import RepoConfig

logger = logging.getLogger(__name__)


def load_repositories(path: Path) -> list[RepoConfig]:
    """Parse the repository list.

    Raises ConfigurationError when the file is missing, unparsable or lists
    no usable repository. Entries without a name or url are skipped.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigurationError("repository config file does not exist", str(path)) from e
    except OSError as e:
        raise ConfigurationError(f"cannot read repository config: {e}", str(path)) from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"cannot parse repository config: {e}", str(path)) from e

    if not isinstance(data, dict) or not data.get("repositories"):
        raise ConfigurationError("no repositories configured", str(path))

    repos: list[RepoConfig] = []
    seen: set[str] = set()
    for entry in data["repositories"]:
        if not isinstance(entry, dict) or not entry.get("name") or not entry.get("url"):
            logger.warning("Ignoring malformed repository entry in %s: %r", path, entry)
            continue
        if entry["name"] in seen:
            logger.warning("Duplicate repository %r in %s, keeping the first", entry["name"], path)
            continue
        seen.add(entry["name"])
        repos.append(RepoConfig.from_dict(entry))

    if not repos:
        raise ConfigurationError("no repositories configured", str(path))
    return repos


class RepoConfigProvider:
    """Reloads the repository list from disk on every call."""

    def __init__(self, path: Path):
        self.path = path

    def load_repositories(self) -> list[RepoConfig]:
        repos = load_repositories(self.path)
        logger.debug("Loaded %d repositories from %s", len(repos), self.path)
        return repos
