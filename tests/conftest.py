"""
Shared fixtures: an in-memory cluster, a fake load balancer source, quiet consoles.

The fake cluster implements the same read methods as ``ClusterClient`` and returns
real ``kubernetes.client`` model objects, so rendering runs the production code.
"""

from __future__ import annotations

import io
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException
from rich.console import Console

from cluster_diag.config import Settings

CREATED = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def read_manifest_files(path: Path) -> list[str]:
    """File names listed under ``Files captured:`` in a written summary."""
    lines = path.read_text(encoding="utf-8").splitlines()
    start = lines.index("Files captured:") + 1
    return [line.strip() for line in lines[start:] if line.strip()]


_CONFIG_ENV = (
    "NAMESPACE",
    "LOG_TAIL",
    "EVENTS_TAIL",
    "OUTPUT_DIR",
    "AWS_REGION",
    "KUBE_CONTEXT",
    "LB_ANNOTATION",
    "REQUEST_TIMEOUT",
)


@pytest.fixture(autouse=True)
def _clean_config_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep the caller's environment and any local .env out of Settings."""
    for name in _CONFIG_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def make_pod(name: str, restarts: int = 0, containers: tuple[str, ...] = ("app",), annotations=None) -> client.V1Pod:
    statuses = [
        client.V1ContainerStatus(
            name=c,
            image=f"{c}:1.0",
            image_id=f"sha256:{c}",
            ready=True,
            restart_count=restarts if i == 0 else 0,
            state=client.V1ContainerState(running=client.V1ContainerStateRunning(started_at=CREATED)),
        )
        for i, c in enumerate(containers)
    ]
    return client.V1Pod(
        metadata=client.V1ObjectMeta(name=name, namespace="diag", creation_timestamp=CREATED, annotations=annotations),
        spec=client.V1PodSpec(containers=[client.V1Container(name=c, image=f"{c}:1.0") for c in containers]),
        status=client.V1PodStatus(phase="Running", pod_ip="10.0.0.5", container_statuses=statuses),
    )


def make_service(name: str) -> client.V1Service:
    return client.V1Service(
        metadata=client.V1ObjectMeta(name=name, namespace="diag", creation_timestamp=CREATED),
        spec=client.V1ServiceSpec(
            type="ClusterIP",
            cluster_ip="10.96.0.10",
            ports=[client.V1ServicePort(port=80, protocol="TCP")],
            selector={"app": name},
        ),
    )


def make_ingress(name: str, annotations: dict[str, str] | None = None) -> client.V1Ingress:
    return client.V1Ingress(
        metadata=client.V1ObjectMeta(
            name=name, namespace="diag", creation_timestamp=CREATED, annotations=annotations
        ),
        spec=client.V1IngressSpec(
            ingress_class_name="alb",
            rules=[client.V1IngressRule(host=f"{name}.example.com")],
        ),
    )


def make_event(name: str, reason: str, last_seen: datetime, kind: str = "Pod", obj: str = "web-0") -> client.CoreV1Event:
    return client.CoreV1Event(
        metadata=client.V1ObjectMeta(name=name, namespace="diag"),
        involved_object=client.V1ObjectReference(kind=kind, name=obj, namespace="diag"),
        type="Normal",
        reason=reason,
        message=f"{reason} happened",
        last_timestamp=last_seen,
    )


def make_node(name: str) -> client.V1Node:
    return client.V1Node(
        metadata=client.V1ObjectMeta(
            name=name,
            creation_timestamp=CREATED,
            labels={"node-role.kubernetes.io/worker": ""},
        ),
        spec=client.V1NodeSpec(),
        status=client.V1NodeStatus(
            conditions=[client.V1NodeCondition(type="Ready", status="True")],
            addresses=[client.V1NodeAddress(type="InternalIP", address="192.168.1.10")],
        ),
    )


def _forbidden() -> ApiException:
    return ApiException(status=403, reason="Forbidden")


class FakeClusterClient:
    """In-memory stand-in for ClusterClient."""

    def __init__(
        self,
        namespace: str = "diag",
        pods: list[Any] | None = None,
        services: list[Any] | None = None,
        ingresses: list[Any] | None = None,
        events: list[Any] | None = None,
        nodes: list[Any] | None = None,
        namespace_exists: bool = True,
        metrics: bool = True,
        failing: set[str] | None = None,
    ) -> None:
        self.namespace = namespace
        self.pods = pods or []
        self.services = services or []
        self.ingresses = ingresses or []
        self.events = events or []
        self.nodes = nodes if nodes is not None else [make_node("node-1")]
        self.namespace_exists = namespace_exists
        self.metrics = metrics
        self.failing = failing or set()
        self.log_calls: list[tuple[str, str | None, int, bool]] = []

    def _check(self, method: str) -> None:
        if method in self.failing:
            raise _forbidden()

    @staticmethod
    def _find(items: list[Any], name: str) -> Any:
        for item in items:
            if item.metadata.name == name:
                return item
        raise ApiException(status=404, reason="Not Found")

    def read_namespace(self, name: str | None = None) -> Any:
        if not self.namespace_exists:
            raise ApiException(status=404, reason="Not Found")
        return client.V1Namespace(metadata=client.V1ObjectMeta(name=name or self.namespace))

    def list_pods(self) -> list[Any]:
        self._check("list_pods")
        return list(self.pods)

    def read_pod(self, name: str) -> Any:
        self._check("read_pod")
        return self._find(self.pods, name)

    def read_pod_log(self, name: str, container: str | None, tail_lines: int, previous: bool = False) -> str:
        self._check("read_pod_log")
        self.log_calls.append((name, container, tail_lines, previous))
        return f"{'previous ' if previous else ''}log line from {name}\n"

    def list_services(self) -> list[Any]:
        self._check("list_services")
        return list(self.services)

    def read_service(self, name: str) -> Any:
        return self._find(self.services, name)

    def list_endpoints(self) -> list[Any]:
        self._check("list_endpoints")
        return []

    def list_ingresses(self) -> list[Any]:
        self._check("list_ingresses")
        return list(self.ingresses)

    def read_ingress(self, name: str) -> Any:
        return self._find(self.ingresses, name)

    def list_events(self, kind: str | None = None, name: str | None = None) -> list[Any]:
        self._check("list_events")
        return [
            e
            for e in self.events
            if (kind is None or e.involved_object.kind == kind) and (name is None or e.involved_object.name == name)
        ]

    def list_nodes(self) -> list[Any]:
        self._check("list_nodes")
        return list(self.nodes)

    def list_pvcs(self) -> list[Any]:
        self._check("list_pvcs")
        return []

    def list_statefulsets(self) -> list[Any]:
        self._check("list_statefulsets")
        return []

    def list_deployments(self) -> list[Any]:
        self._check("list_deployments")
        return []

    def node_metrics(self) -> list[dict[str, Any]]:
        if not self.metrics:
            raise ApiException(status=404, reason="Not Found")
        return [{"metadata": {"name": "node-1"}, "usage": {"cpu": "250m", "memory": "512Mi"}}]

    def pod_metrics(self) -> list[dict[str, Any]]:
        if not self.metrics:
            raise ApiException(status=404, reason="Not Found")
        return [
            {
                "metadata": {"name": p.metadata.name},
                "containers": [{"name": "app", "usage": {"cpu": "5m", "memory": "64Mi"}}],
            }
            for p in self.pods
        ]


class FakeLoadBalancerSource:
    """Load balancer source backed by a dict of LB ARN -> target group ARNs."""

    available = True

    def __init__(self, groups: dict[str, list[str]] | None = None, fail_health: bool = False) -> None:
        self.groups = groups or {}
        self.fail_health = fail_health
        self.health_calls: list[str] = []

    def describe_target_groups(self, load_balancer_arn: str) -> dict[str, Any]:
        if load_balancer_arn not in self.groups:
            raise RuntimeError(f"LoadBalancerNotFound: {load_balancer_arn}")
        return {"TargetGroups": [{"TargetGroupArn": tg} for tg in self.groups[load_balancer_arn]]}

    def describe_target_health(self, target_group_arn: str) -> dict[str, Any]:
        self.health_calls.append(target_group_arn)
        if self.fail_health:
            raise RuntimeError("Throttling")
        return {
            "TargetHealthDescriptions": [
                {"Target": {"Id": "10.0.0.5", "Port": 8080}, "TargetHealth": {"State": "healthy"}}
            ]
        }


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=200)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(namespace="diag", output_dir=tmp_path / "diagnostics")
