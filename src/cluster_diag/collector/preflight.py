"""Fatal preconditions checked before anything is captured."""

from __future__ import annotations

import logging

from kubernetes import config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from cluster_diag.capture.kube import ClusterClient
from cluster_diag.config import Settings

logger = logging.getLogger(__name__)


class PreflightError(Exception):
    """A precondition failed; no capture would be meaningful."""


def connect(settings: Settings, kubeconfig: str | None = None) -> ClusterClient:
    """Build the cluster client, failing if no usable configuration exists."""
    try:
        return ClusterClient.from_kubeconfig(
            settings.namespace,
            kubeconfig=kubeconfig,
            context=settings.kube_context,
            request_timeout=settings.request_timeout,
        )
    except (config.ConfigException, OSError) as e:
        raise PreflightError(f"Kubernetes client is not configured: {e}") from e


def verify_namespace(cluster: ClusterClient, namespace: str) -> None:
    """Fail unless ``namespace`` exists in the cluster."""
    try:
        cluster.read_namespace(namespace)
    except ApiException as e:
        if e.status == 404:
            raise PreflightError(f"Namespace '{namespace}' does not exist") from e
        raise PreflightError(f"Unable to verify namespace '{namespace}': {e.status} {e.reason}") from e
    except HTTPError as e:
        raise PreflightError(f"Kubernetes API is unreachable: {e}") from e
    logger.debug("Namespace %s exists", namespace)


def run_preflight(
    settings: Settings,
    cluster: ClusterClient | None = None,
    kubeconfig: str | None = None,
) -> ClusterClient:
    """Run both checks in order and return the client to capture with."""
    if cluster is None:
        cluster = connect(settings, kubeconfig)
    verify_namespace(cluster, settings.namespace)
    return cluster
