"""Orchestrator: preflight → enumerate → capture → probe → manifest."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel

from cluster_diag.capture.executor import CaptureExecutor
from cluster_diag.capture.kube import ClusterClient
from cluster_diag.capture.models import TIMESTAMP_FORMAT, RunContext, RunReport
from cluster_diag.collector import fanout, probes
from cluster_diag.collector.manifest import write_manifest
from cluster_diag.collector.preflight import run_preflight
from cluster_diag.collector.templates import REPORT_DONE
from cluster_diag.config import Settings, get_settings

logger = logging.getLogger(__name__)


def create_run_directory(output_root: Path, timestamp: str) -> Path:
    """Create a fresh directory for this run; never reuse an existing one."""
    output_root.mkdir(parents=True, exist_ok=True)
    candidate = output_root / timestamp
    suffix = 0
    while True:
        try:
            candidate.mkdir()
            return candidate
        except FileExistsError:
            suffix += 1
            candidate = output_root / f"{timestamp}-{suffix}"


def build_context(settings: Settings, now: datetime | None = None) -> RunContext:
    """Stamp the run and create its output directory."""
    timestamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    output_path = create_run_directory(settings.output_dir, timestamp)
    return RunContext(
        namespace=settings.namespace,
        log_tail=settings.log_tail,
        events_tail=settings.events_tail,
        output_root=settings.output_dir,
        timestamp=timestamp,
        output_path=output_path,
        aws_region=settings.aws_region,
        lb_annotation=settings.lb_annotation,
    )


def run_collection(
    settings: Settings | None = None,
    cluster: ClusterClient | None = None,
    lb_source: probes.LoadBalancerHealthSource | None = None,
    kubeconfig: str | None = None,
    console: Console | None = None,
) -> RunReport:
    """
    Run one collection: preflight (fatal on failure), then every capture in a
    fixed order, then the manifest. Capture failures never stop the run.
    """
    opts = settings or get_settings()
    out = console or Console()

    cluster = run_preflight(opts, cluster=cluster, kubeconfig=kubeconfig)

    context = build_context(opts)
    out.print(f"[green]Capturing diagnostics for namespace: {context.namespace}[/green]")
    out.print(f"[green]Output directory: {context.output_path}[/green]")
    executor = CaptureExecutor(context, out)
    source = lb_source if lb_source is not None else probes.get_load_balancer_health_source(context.aws_region)
    report = RunReport(context=context, results=executor.results, lb_health_available=source.available)

    pods = fanout.capture_pods(executor, cluster, context)
    fanout.capture_events(executor, cluster, context)
    ingresses = fanout.capture_ingresses(executor, cluster)
    fanout.capture_services(executor, cluster)
    fanout.capture_nodes(executor, cluster)

    notice = probes.capture_metrics(executor, cluster, have_pods=bool(pods))
    if notice:
        report.notices.append(notice)

    fanout.capture_storage_and_workloads(executor, cluster)

    notice = probes.capture_load_balancer_health(executor, source, ingresses, context)
    if notice:
        report.notices.append(notice)

    write_manifest(report)
    logger.info(
        "Captured %d artifacts (%d failed) into %s",
        len(report.results),
        len(report.failed),
        context.output_path,
    )
    return report


def print_result(report: RunReport, console: Console | None = None) -> None:
    """Print the run summary to console using Rich."""
    c = console or Console()
    body = REPORT_DONE.format(
        attempted=len(report.results),
        failed=len(report.failed),
        manifest=report.manifest_path,
        output_path=report.context.output_path,
    )
    c.print(Panel(Markdown(body), title="Cluster Diagnostics", border_style="green"))
    for notice in report.notices:
        c.print(f"[yellow]{notice}[/yellow]")
    for r in report.failed:
        c.print(f"[red]✗ {escape(r.label)}[/red] [dim]({r.filename})[/dim]", highlight=False)
