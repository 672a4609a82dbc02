"""Write the end-of-run summary listing every artifact in the run directory."""

from __future__ import annotations

import logging
from pathlib import Path

from cluster_diag.capture.models import RunReport
from cluster_diag.collector.templates import CAPTURED_CATEGORIES, LB_CATEGORY, SUMMARY_HEADER

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "summary.txt"


def list_artifacts(output_path: Path) -> list[str]:
    """Sorted names of the files currently in the run directory."""
    return sorted(p.name for p in output_path.iterdir() if p.is_file())


def render_manifest(report: RunReport, artifacts: list[str]) -> str:
    ctx = report.context
    lines = [
        SUMMARY_HEADER.format(
            timestamp=ctx.timestamp,
            namespace=ctx.namespace,
            output_path=ctx.output_path,
            log_tail=ctx.log_tail,
            events_tail=ctx.events_tail,
            aws_region=ctx.aws_region,
            lb_annotation=ctx.lb_annotation,
        ),
        "Captured Information:",
    ]
    categories = CAPTURED_CATEGORIES + ([LB_CATEGORY] if report.lb_health_available else [])
    lines.extend(f"  - {c}" for c in categories)
    if report.notices:
        lines.extend(["", "Skipped:"])
        lines.extend(f"  - {n}" for n in report.notices)
    if report.failed:
        lines.extend(["", "Failed captures:"])
        lines.extend(f"  - {r.label} ({r.filename})" for r in report.failed)
    lines.extend(["", "Files captured:"])
    lines.extend(f"  {name}" for name in artifacts)
    return "\n".join(lines) + "\n"


def write_manifest(report: RunReport) -> Path:
    """Write the summary once; the listing is taken before the file exists."""
    output_path = report.context.output_path
    artifacts = list_artifacts(output_path)
    path = output_path / MANIFEST_FILENAME
    path.write_text(render_manifest(report, artifacts), encoding="utf-8")
    logger.debug("Wrote manifest with %d artifacts to %s", len(artifacts), path)
    report.manifest_path = path
    return path
