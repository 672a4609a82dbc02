"""Read-only Kubernetes queries used by the collector."""

from __future__ import annotations

import logging
from typing import Any

from kubernetes import client, config

logger = logging.getLogger(__name__)

METRICS_GROUP = "metrics.k8s.io"
METRICS_VERSION = "v1beta1"


def _load_kube_config(kubeconfig_path: str | None, context: str | None) -> client.Configuration:
    """Load in-cluster or kubeconfig-based configuration."""
    try:
        config.load_incluster_config()
        logger.debug("Using in-cluster Kubernetes configuration")
        return client.Configuration.get_default_copy()
    except config.ConfigException:
        pass
    kwargs: dict[str, Any] = {}
    if kubeconfig_path:
        kwargs["config_file"] = str(kubeconfig_path)
    if context:
        kwargs["context"] = context
    config.load_kube_config(**kwargs)
    return client.Configuration.get_default_copy()


class ClusterClient:
    """Thin wrapper over the Kubernetes API groups the collector reads from.

    Every method is a single read-only request scoped to ``namespace`` unless the
    resource is cluster-scoped. Errors propagate as ``ApiException`` or transport
    errors; callers decide whether they are fatal.
    """

    def __init__(self, namespace: str, api_client: client.ApiClient, request_timeout: float = 30.0) -> None:
        self.namespace = namespace
        self.request_timeout = request_timeout
        self._core = client.CoreV1Api(api_client)
        self._apps = client.AppsV1Api(api_client)
        self._networking = client.NetworkingV1Api(api_client)
        self._custom = client.CustomObjectsApi(api_client)

    @classmethod
    def from_kubeconfig(
        cls,
        namespace: str,
        kubeconfig: str | None = None,
        context: str | None = None,
        request_timeout: float = 30.0,
    ) -> ClusterClient:
        cfg = _load_kube_config(kubeconfig, context)
        return cls(namespace, client.ApiClient(cfg), request_timeout=request_timeout)

    # Namespace

    def read_namespace(self, name: str | None = None) -> Any:
        return self._core.read_namespace(name=name or self.namespace, _request_timeout=self.request_timeout)

    # Pods

    def list_pods(self) -> list[Any]:
        return self._core.list_namespaced_pod(self.namespace, _request_timeout=self.request_timeout).items

    def read_pod(self, name: str) -> Any:
        return self._core.read_namespaced_pod(name, self.namespace, _request_timeout=self.request_timeout)

    def read_pod_log(self, name: str, container: str | None, tail_lines: int, previous: bool = False) -> str:
        kwargs: dict[str, Any] = {"tail_lines": tail_lines, "previous": previous}
        if container:
            kwargs["container"] = container
        return self._core.read_namespaced_pod_log(
            name, self.namespace, _request_timeout=self.request_timeout, **kwargs
        )

    # Services and networking

    def list_services(self) -> list[Any]:
        return self._core.list_namespaced_service(self.namespace, _request_timeout=self.request_timeout).items

    def read_service(self, name: str) -> Any:
        return self._core.read_namespaced_service(name, self.namespace, _request_timeout=self.request_timeout)

    def list_endpoints(self) -> list[Any]:
        return self._core.list_namespaced_endpoints(self.namespace, _request_timeout=self.request_timeout).items

    def list_ingresses(self) -> list[Any]:
        return self._networking.list_namespaced_ingress(
            self.namespace, _request_timeout=self.request_timeout
        ).items

    def read_ingress(self, name: str) -> Any:
        return self._networking.read_namespaced_ingress(name, self.namespace, _request_timeout=self.request_timeout)

    # Events

    def list_events(self, kind: str | None = None, name: str | None = None) -> list[Any]:
        """List namespace events, optionally only those about one object."""
        selectors = []
        if kind:
            selectors.append(f"involvedObject.kind={kind}")
        if name:
            selectors.append(f"involvedObject.name={name}")
        kwargs: dict[str, Any] = {}
        if selectors:
            kwargs["field_selector"] = ",".join(selectors)
        return self._core.list_namespaced_event(
            self.namespace, _request_timeout=self.request_timeout, **kwargs
        ).items

    # Cluster-wide and workload lists

    def list_nodes(self) -> list[Any]:
        return self._core.list_node(_request_timeout=self.request_timeout).items

    def list_pvcs(self) -> list[Any]:
        return self._core.list_namespaced_persistent_volume_claim(
            self.namespace, _request_timeout=self.request_timeout
        ).items

    def list_statefulsets(self) -> list[Any]:
        return self._apps.list_namespaced_stateful_set(self.namespace, _request_timeout=self.request_timeout).items

    def list_deployments(self) -> list[Any]:
        return self._apps.list_namespaced_deployment(self.namespace, _request_timeout=self.request_timeout).items

    # Metrics API

    def node_metrics(self) -> list[dict[str, Any]]:
        resp = self._custom.list_cluster_custom_object(
            METRICS_GROUP, METRICS_VERSION, "nodes", _request_timeout=self.request_timeout
        )
        return resp.get("items", [])

    def pod_metrics(self) -> list[dict[str, Any]]:
        resp = self._custom.list_namespaced_custom_object(
            METRICS_GROUP, METRICS_VERSION, self.namespace, "pods", _request_timeout=self.request_timeout
        )
        return resp.get("items", [])
