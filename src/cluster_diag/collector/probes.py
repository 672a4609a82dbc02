"""Feature-gated captures: cluster metrics and cloud load-balancer health."""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import boto3
from botocore.exceptions import BotoCoreError

from cluster_diag.capture import render
from cluster_diag.capture.executor import CaptureExecutor
from cluster_diag.capture.kube import ClusterClient
from cluster_diag.capture.models import CaptureTask, RunContext

logger = logging.getLogger(__name__)

METRICS_UNAVAILABLE = "Metrics API not available, skipping resource usage metrics"
LB_UNAVAILABLE = "AWS credentials not available, skipping ALB target group health capture"


# Metrics


def metrics_available(cluster: ClusterClient) -> bool:
    """Whether the metrics API answers a node usage query."""
    try:
        cluster.node_metrics()
    except Exception as exc:
        logger.debug("Metrics probe failed: %s", exc)
        return False
    return True


def capture_metrics(executor: CaptureExecutor, cluster: ClusterClient, have_pods: bool) -> str | None:
    """Capture node and pod usage. Returns a notice when the metrics API is absent."""
    if not metrics_available(cluster):
        logger.warning(METRICS_UNAVAILABLE)
        return METRICS_UNAVAILABLE
    executor.execute(CaptureTask("Node resource usage", "nodes-top.txt", cluster.node_metrics, render.node_usage_table))
    if have_pods:
        executor.execute(CaptureTask("Pod resource usage", "pods-top.txt", cluster.pod_metrics, render.pod_usage_table))
    return None


# Load balancer health


@runtime_checkable
class LoadBalancerHealthSource(Protocol):
    """Read-only access to load balancer target groups and their health."""

    available: bool

    def describe_target_groups(self, load_balancer_arn: str) -> dict[str, Any]: ...

    def describe_target_health(self, target_group_arn: str) -> dict[str, Any]: ...


class NoopLoadBalancerHealthSource:
    """Used when no cloud credentials resolve; nothing is ever queried."""

    available = False

    def describe_target_groups(self, load_balancer_arn: str) -> dict[str, Any]:
        return {"TargetGroups": []}

    def describe_target_health(self, target_group_arn: str) -> dict[str, Any]:
        return {"TargetHealthDescriptions": []}


class Elbv2HealthSource:
    """ELBv2 lookups through boto3 using the default credential chain."""

    available = True

    def __init__(self, region: str, elbv2: Any = None) -> None:
        self.region = region
        self._elbv2 = elbv2 or boto3.client("elbv2", region_name=region)

    def describe_target_groups(self, load_balancer_arn: str) -> dict[str, Any]:
        resp = self._elbv2.describe_target_groups(LoadBalancerArn=load_balancer_arn)
        resp.pop("ResponseMetadata", None)
        return resp

    def describe_target_health(self, target_group_arn: str) -> dict[str, Any]:
        resp = self._elbv2.describe_target_health(TargetGroupArn=target_group_arn)
        resp.pop("ResponseMetadata", None)
        return resp


def get_load_balancer_health_source(region: str) -> LoadBalancerHealthSource:
    """Return an ELBv2 source if AWS credentials resolve, else a no-op one."""
    try:
        credentials = boto3.Session(region_name=region).get_credentials()
        if credentials is None:
            return NoopLoadBalancerHealthSource()
        return Elbv2HealthSource(region)
    except BotoCoreError as exc:
        logger.debug("AWS session unavailable: %s", exc)
        return NoopLoadBalancerHealthSource()


def load_balancer_arn(ingress: Any, annotation: str) -> str | None:
    annotations = ingress.metadata.annotations or {}
    return annotations.get(annotation) or None


def target_group_id(target_group_arn: str) -> str:
    """Last path segment of a target group ARN, e.g. ``73e2d6bc24d8a067``."""
    return target_group_arn.rstrip("/").rsplit("/", 1)[-1]


def capture_load_balancer_health(
    executor: CaptureExecutor,
    source: LoadBalancerHealthSource,
    ingresses: list[Any],
    context: RunContext,
) -> str | None:
    """Capture target groups and target health for annotated ingresses.

    Returns a notice when the source is unavailable. Ingresses without the
    annotation are skipped silently.
    """
    if not source.available:
        logger.warning(LB_UNAVAILABLE)
        return LB_UNAVAILABLE
    executor.console.print("[yellow]Attempting to capture ALB target group health information...[/yellow]")
    for ing in ingresses:
        name = ing.metadata.name
        arn = load_balancer_arn(ing, context.lb_annotation)
        if not arn:
            continue
        groups = executor.execute(
            CaptureTask(
                f"ALB target groups: {name}",
                f"alb-{name}-target-groups.json",
                _lookup(source.describe_target_groups, arn),
                render.to_json,
            )
        )
        if not groups.ok:
            continue
        for tg in groups.data.get("TargetGroups", []):
            tg_arn = tg.get("TargetGroupArn")
            if not tg_arn:
                continue
            executor.execute(
                CaptureTask(
                    f"Target group health: {tg_arn}",
                    f"alb-{name}-target-health-{target_group_id(tg_arn)}.json",
                    _lookup(source.describe_target_health, tg_arn),
                    render.to_json,
                )
            )
    return None


def _lookup(method: Any, arn: str) -> Any:
    return lambda: method(arn)
