"""Enumerate namespace resources and fan out per-resource captures."""

from __future__ import annotations

import logging
from typing import Any, Callable

from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from cluster_diag.capture import render
from cluster_diag.capture.executor import CaptureExecutor, format_error
from cluster_diag.capture.kube import ClusterClient
from cluster_diag.capture.models import CaptureTask, RunContext

logger = logging.getLogger(__name__)

DEFAULT_CONTAINER_ANNOTATION = "kubectl.kubernetes.io/default-container"


def needs_previous_logs(pod: Any) -> bool:
    """True when the pod's first container has restarted at least once."""
    statuses = (getattr(pod.status, "container_statuses", None) if pod.status else None) or []
    if not statuses:
        return False
    return (statuses[0].restart_count or 0) > 0


def log_container(pod: Any) -> str | None:
    """Container whose logs are captured: the annotated default, else the first one."""
    annotations = pod.metadata.annotations or {}
    if annotations.get(DEFAULT_CONTAINER_ANNOTATION):
        return annotations[DEFAULT_CONTAINER_ANNOTATION]
    containers = (getattr(pod.spec, "containers", None) if pod.spec else None) or []
    return containers[0].name if containers else None


def enumerate_resources(
    executor: CaptureExecutor,
    kind: str,
    label: str,
    filename: str,
    fetch: Callable[[], list[Any]],
    render_list: Callable[[list[Any]], str],
) -> list[Any]:
    """Save the list view of one resource category and return its items.

    A failed or empty listing is not an error; it simply seeds no fan-out.
    Items that were fetched but failed to render still seed it.
    """
    result = executor.execute(CaptureTask(label, filename, fetch, render_list))
    items = list(result.data or [])
    if not items:
        logger.info("No %s found in namespace %s", kind, executor.context.namespace)
        executor.console.print(f"[yellow]No {kind} found in namespace {executor.context.namespace}[/yellow]")
    return items


def _describe_task(cluster: ClusterClient, kind: str, name: str, read: Callable[[str], Any], filename: str) -> CaptureTask:
    def fetch() -> tuple[Any, list[Any] | None, str | None]:
        obj = read(name)
        try:
            events = cluster.list_events(kind=kind, name=name)
        except (ApiException, HTTPError) as exc:
            logger.debug("Listing events for %s %s failed: %s", kind, name, exc)
            return obj, None, format_error(exc).splitlines()[0]
        return obj, events, None

    return CaptureTask(
        f"{kind} description: {name}",
        filename,
        fetch,
        lambda payload: render.describe(*payload),
    )


def _reader(read: Callable[[str], Any], name: str) -> Callable[[], Any]:
    return lambda: read(name)


def _log_task(cluster: ClusterClient, pod: Any, tail: int, previous: bool) -> CaptureTask:
    name = pod.metadata.name
    container = log_container(pod)
    prefix = "Previous pod logs" if previous else "Pod logs"
    suffix = "-previous" if previous else ""
    return CaptureTask(
        f"{prefix}: {name} (last {tail} lines)",
        f"pod-{name}-logs{suffix}.txt",
        lambda: cluster.read_pod_log(name, container, tail, previous=previous),
        lambda text: text or "",
    )


def capture_pods(executor: CaptureExecutor, cluster: ClusterClient, context: RunContext) -> list[Any]:
    """Pod list, then describe + logs (+ previous logs after a restart) per pod."""
    pods = enumerate_resources(
        executor, "pods", "Pod list (wide format)", "pods-wide.txt", cluster.list_pods, render.pods_table
    )
    for pod in pods:
        name = pod.metadata.name
        executor.console.print(f"[yellow]Processing pod: {name}[/yellow]")
        executor.execute(_describe_task(cluster, "Pod", name, cluster.read_pod, f"pod-{name}-describe.txt"))
        executor.execute(_log_task(cluster, pod, context.log_tail, previous=False))
        if needs_previous_logs(pod):
            executor.execute(_log_task(cluster, pod, context.log_tail, previous=True))
    return pods


def capture_events(executor: CaptureExecutor, cluster: ClusterClient, context: RunContext) -> None:
    tail = context.events_tail
    executor.execute(
        CaptureTask(
            f"Kubernetes events (last {tail} events)",
            "events.txt",
            cluster.list_events,
            lambda events: render.events_table(events, tail=tail),
        )
    )


def capture_ingresses(executor: CaptureExecutor, cluster: ClusterClient) -> list[Any]:
    """Ingress list, then describe + full YAML per ingress."""
    ingresses = enumerate_resources(
        executor,
        "ingress resources",
        "Ingress resources",
        "ingress-list.txt",
        cluster.list_ingresses,
        render.ingress_table,
    )
    for ing in ingresses:
        name = ing.metadata.name
        executor.execute(_describe_task(cluster, "Ingress", name, cluster.read_ingress, f"ingress-{name}-describe.txt"))
        executor.execute(
            CaptureTask(
                f"Ingress YAML: {name}",
                f"ingress-{name}.yaml",
                _reader(cluster.read_ingress, name),
                render.to_yaml,
            )
        )
    return ingresses


def capture_services(executor: CaptureExecutor, cluster: ClusterClient) -> list[Any]:
    """Service list, endpoints, then describe per service."""
    services = enumerate_resources(
        executor, "services", "Service list", "services-list.txt", cluster.list_services, render.services_table
    )
    executor.execute(CaptureTask("Endpoints", "endpoints.txt", cluster.list_endpoints, render.endpoints_table))
    for svc in services:
        name = svc.metadata.name
        executor.execute(_describe_task(cluster, "Service", name, cluster.read_service, f"svc-{name}-describe.txt"))
    return services


def capture_nodes(executor: CaptureExecutor, cluster: ClusterClient) -> None:
    executor.execute(CaptureTask("Node list", "nodes-wide.txt", cluster.list_nodes, render.nodes_table))


def capture_storage_and_workloads(executor: CaptureExecutor, cluster: ClusterClient) -> None:
    executor.execute(CaptureTask("Persistent Volume Claims", "pvc-list.txt", cluster.list_pvcs, render.pvc_table))
    executor.execute(
        CaptureTask("StatefulSets", "statefulsets.txt", cluster.list_statefulsets, render.statefulsets_table)
    )
    executor.execute(CaptureTask("Deployments", "deployments.txt", cluster.list_deployments, render.deployments_table))
