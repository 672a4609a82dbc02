"""
Unit tests for the metrics and load balancer health probes.
"""

from __future__ import annotations

import pytest
from conftest import FakeClusterClient, FakeLoadBalancerSource, make_ingress

from cluster_diag.capture.executor import CaptureExecutor
from cluster_diag.capture.models import RunContext
from cluster_diag.collector import probes

LB_ARN = "arn:aws:elasticloadbalancing:us-west-2:123456789012:loadbalancer/app/k8s-diag/50dc6c495c0c9188"
TG_A = "arn:aws:elasticloadbalancing:us-west-2:123456789012:targetgroup/k8s-api/73e2d6bc24d8a067"
TG_B = "arn:aws:elasticloadbalancing:us-west-2:123456789012:targetgroup/k8s-web/943f017f100becff"
ANNOTATION = "alb.ingress.kubernetes.io/load-balancer-id"


@pytest.fixture
def context(tmp_path) -> RunContext:
    out = tmp_path / "run"
    out.mkdir()
    return RunContext(
        namespace="diag",
        timestamp="20261018-101500",
        output_path=out,
        lb_annotation=ANNOTATION,
    )


def _files(context: RunContext) -> set[str]:
    return {p.name for p in context.output_path.iterdir()}


# Metrics


def test_missing_metrics_api_skips_usage_captures(context, console):
    executor = CaptureExecutor(context, console)

    notice = probes.capture_metrics(executor, FakeClusterClient(metrics=False), have_pods=True)

    assert notice == probes.METRICS_UNAVAILABLE
    assert _files(context) == set()
    assert executor.results == []


def test_metrics_capture_node_and_pod_usage(context, console):
    executor = CaptureExecutor(context, console)

    notice = probes.capture_metrics(executor, FakeClusterClient(), have_pods=True)

    assert notice is None
    assert _files(context) == {"nodes-top.txt", "pods-top.txt"}
    nodes_top = (context.output_path / "nodes-top.txt").read_text()
    assert "node-1" in nodes_top
    assert "250m" in nodes_top
    assert "512Mi" in nodes_top


def test_pod_usage_skipped_without_pods(context, console):
    executor = CaptureExecutor(context, console)

    probes.capture_metrics(executor, FakeClusterClient(), have_pods=False)

    assert _files(context) == {"nodes-top.txt"}


# Load balancer health


def test_ingress_without_annotation_produces_no_lb_files(context, console):
    executor = CaptureExecutor(context, console)
    source = FakeLoadBalancerSource({LB_ARN: [TG_A]})

    notice = probes.capture_load_balancer_health(executor, source, [make_ingress("plain")], context)

    assert notice is None
    assert _files(context) == set()


def test_annotated_ingress_captures_groups_and_health_per_group(context, console):
    executor = CaptureExecutor(context, console)
    source = FakeLoadBalancerSource({LB_ARN: [TG_A, TG_B]})
    ingress = make_ingress("api", annotations={ANNOTATION: LB_ARN})

    probes.capture_load_balancer_health(executor, source, [ingress, make_ingress("plain")], context)

    assert _files(context) == {
        "alb-api-target-groups.json",
        "alb-api-target-health-73e2d6bc24d8a067.json",
        "alb-api-target-health-943f017f100becff.json",
    }
    assert source.health_calls == [TG_A, TG_B]
    assert '"healthy"' in (context.output_path / "alb-api-target-health-73e2d6bc24d8a067.json").read_text()


def test_lookup_failures_are_recorded_not_raised(context, console):
    executor = CaptureExecutor(context, console)
    source = FakeLoadBalancerSource({})
    ingress = make_ingress("api", annotations={ANNOTATION: LB_ARN})

    probes.capture_load_balancer_health(executor, source, [ingress], context)

    assert _files(context) == {"alb-api-target-groups.json"}
    assert "LoadBalancerNotFound" in (context.output_path / "alb-api-target-groups.json").read_text()
    assert source.health_calls == []


def test_unavailable_source_is_a_single_notice(context, console):
    executor = CaptureExecutor(context, console)
    ingress = make_ingress("api", annotations={ANNOTATION: LB_ARN})

    notice = probes.capture_load_balancer_health(
        executor, probes.NoopLoadBalancerHealthSource(), [ingress], context
    )

    assert notice == probes.LB_UNAVAILABLE
    assert _files(context) == set()


def test_target_group_id_is_last_arn_segment():
    assert probes.target_group_id(TG_A) == "73e2d6bc24d8a067"


class _FakeElbv2:
    def __init__(self):
        self.calls = []

    def describe_target_groups(self, **kwargs):
        self.calls.append(("describe_target_groups", kwargs))
        return {"TargetGroups": [{"TargetGroupArn": TG_A}], "ResponseMetadata": {"RequestId": "r1"}}

    def describe_target_health(self, **kwargs):
        self.calls.append(("describe_target_health", kwargs))
        return {"TargetHealthDescriptions": [], "ResponseMetadata": {"RequestId": "r2"}}


def test_elbv2_source_strips_response_metadata():
    elbv2 = _FakeElbv2()
    source = probes.Elbv2HealthSource("us-west-2", elbv2=elbv2)

    groups = source.describe_target_groups(LB_ARN)
    health = source.describe_target_health(TG_A)

    assert groups == {"TargetGroups": [{"TargetGroupArn": TG_A}]}
    assert health == {"TargetHealthDescriptions": []}
    assert elbv2.calls == [
        ("describe_target_groups", {"LoadBalancerArn": LB_ARN}),
        ("describe_target_health", {"TargetGroupArn": TG_A}),
    ]


def test_factory_returns_noop_without_credentials(monkeypatch):
    class _NoCredsSession:
        def __init__(self, region_name=None):
            self.region_name = region_name

        def get_credentials(self):
            return None

    monkeypatch.setattr("cluster_diag.collector.probes.boto3.Session", _NoCredsSession)

    source = probes.get_load_balancer_health_source("us-west-2")

    assert isinstance(source, probes.NoopLoadBalancerHealthSource)
    assert not source.available
    assert isinstance(source, probes.LoadBalancerHealthSource)
