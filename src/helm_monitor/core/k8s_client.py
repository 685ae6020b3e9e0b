"""Kubernetes API wrapper."""

from __future__ import annotations

from typing import Any

from kubernetes import client, config

from helm_monitor.config.settings import Settings


class K8sClient:
    """Thin wrapper around the Kubernetes Python client.

    Only reads helm's storage objects; nothing in the cluster is ever written.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._core_v1: client.CoreV1Api | None = None
        self._api_client: client.ApiClient | None = None

    def _load_config(self) -> client.ApiClient:
        if self._api_client is not None:
            return self._api_client
        try:
            cfg = client.Configuration()
            config.load_kube_config(
                config_file=self.settings.kubeconfig,
                context=self.settings.kube_context,
                client_configuration=cfg,
            )
            # Fail fast on unreachable clusters; the scheduler retries.
            cfg.retries = 1
            self._api_client = client.ApiClient(configuration=cfg)
        except config.ConfigException:
            config.load_incluster_config()
            self._api_client = client.ApiClient()
        return self._api_client

    @property
    def core_v1(self) -> client.CoreV1Api:
        if self._core_v1 is None:
            self._core_v1 = client.CoreV1Api(api_client=self._load_config())
        return self._core_v1

    @property
    def active_context_name(self) -> str:
        if self.settings.kube_context:
            return self.settings.kube_context
        try:
            _, ctx = config.list_kube_config_contexts(config_file=self.settings.kubeconfig)
            return ctx.get("name", "unknown") if ctx else "unknown"
        except config.ConfigException:
            return "in-cluster"

    def list_helm_secrets(self, namespace: str | None = None) -> list[Any]:
        """List helm release secrets, optionally within one namespace."""
        kwargs = dict(
            label_selector=self.settings.helm_label_selector,
            field_selector=f"type={self.settings.secret_type}",
            _request_timeout=self.settings.request_timeout,
        )
        if namespace:
            result = self.core_v1.list_namespaced_secret(namespace=namespace, **kwargs)
        else:
            result = self.core_v1.list_secret_for_all_namespaces(**kwargs)
        return result.items

    def list_helm_configmaps(self, namespace: str | None = None) -> list[Any]:
        """List helm release ConfigMaps, optionally within one namespace."""
        kwargs = dict(
            label_selector=self.settings.helm_label_selector,
            _request_timeout=self.settings.request_timeout,
        )
        if namespace:
            result = self.core_v1.list_namespaced_config_map(namespace=namespace, **kwargs)
        else:
            result = self.core_v1.list_config_map_for_all_namespaces(**kwargs)
        return result.items
