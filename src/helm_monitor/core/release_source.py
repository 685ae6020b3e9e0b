"""Enumerate installed helm releases from the cluster's release storage."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Iterable

import urllib3
from kubernetes.client import ApiException
from kubernetes.config import ConfigException

from helm_monitor.config.settings import Settings
from helm_monitor.core.k8s_client import K8sClient
from helm_monitor.errors import ReleaseSourceError
from helm_monitor.models.release import HelmRelease, ReleaseStatus
from helm_monitor.utils.encoding import decode_release

logger = logging.getLogger(__name__)


def _object_name(obj: Any) -> str:
    if getattr(obj, "metadata", None):
        return obj.metadata.name or "<unknown>"
    return "<unknown>"


def _object_namespace(obj: Any) -> str:
    if getattr(obj, "metadata", None):
        return obj.metadata.namespace or ""
    return ""


def storage_revision(obj: Any) -> int:
    """Read the release revision from the storage object's labels."""
    labels = {}
    if getattr(obj, "metadata", None) and obj.metadata.labels:
        labels = obj.metadata.labels
    try:
        return int(labels.get("version", "0"))
    except ValueError:
        return 0


def storage_release_name(obj: Any) -> str:
    if getattr(obj, "metadata", None) and obj.metadata.labels:
        return obj.metadata.labels.get("name", "")
    return ""


def decode_storage_object(obj: Any) -> HelmRelease | None:
    """Decode a helm Secret or ConfigMap into a HelmRelease.

    Returns None when the object carries no decodable release.
    """
    data = getattr(obj, "data", None)
    if not data or "release" not in data:
        return None
    try:
        payload = decode_release(data["release"])
    except ValueError:
        logger.debug("Failed to decode release object %s", _object_name(obj), exc_info=True)
        return None
    return HelmRelease.from_dict(payload, namespace=_object_namespace(obj))


def should_include(
    release: HelmRelease,
    exclude_names: Iterable[str] = (),
    chart_names: Iterable[str] = (),
) -> bool:
    """Apply the release-name exclusions and the chart-name allowlist."""
    for excluded in exclude_names:
        if excluded and excluded in release.name:
            return False
    allowed = [c for c in chart_names if c]
    if allowed:
        return release.chart_name in allowed
    return True


class ReleaseSource:
    """Lists the latest revision of each helm release in the cluster."""

    def __init__(self, k8s: K8sClient, settings: Settings):
        self.k8s = k8s
        self.settings = settings

    def _list_storage_objects(self, namespace: str | None) -> list[Any]:
        if self.settings.storage_driver == "configmaps":
            return self.k8s.list_helm_configmaps(namespace=namespace)
        return self.k8s.list_helm_secrets(namespace=namespace)

    def list_releases(
        self,
        namespace: str | None = None,
        exclude_names: Iterable[str] = (),
        chart_names: Iterable[str] = (),
    ) -> list[HelmRelease]:
        """List releases, raising ReleaseSourceError if the cluster is unreachable."""
        try:
            objects = self._list_storage_objects(namespace)
        except ApiException as e:
            raise ReleaseSourceError("list_releases", f"{e.status} {e.reason}", namespace) from e
        except (ConfigException, urllib3.exceptions.HTTPError, OSError) as e:
            raise ReleaseSourceError("list_releases", str(e), namespace) from e

        # Only the highest revision of each (name, namespace) matters.
        grouped: dict[tuple[str, str], list[tuple[int, Any]]] = defaultdict(list)
        for obj in objects:
            key = (storage_release_name(obj), _object_namespace(obj))
            grouped[key].append((storage_revision(obj), obj))

        exclude_names = list(exclude_names)
        chart_names = list(chart_names)
        releases: list[HelmRelease] = []
        for revisions in grouped.values():
            revisions.sort(key=lambda x: x[0], reverse=True)
            release = decode_storage_object(revisions[0][1])
            if release is None or not release.chart_name:
                continue
            if not self.settings.include_all_statuses and release.status != ReleaseStatus.DEPLOYED:
                continue
            if not should_include(release, exclude_names, chart_names):
                logger.debug("Skipping release %s/%s", release.namespace, release.name)
                continue
            releases.append(release)

        releases.sort(key=lambda r: (r.namespace, r.name))
        logger.debug("Listed %d releases (%d storage objects)", len(releases), len(objects))
        return releases
