"""Capture layer: read-only cluster queries written to artifact files."""

from cluster_diag.capture.executor import CaptureExecutor, format_error
from cluster_diag.capture.kube import ClusterClient
from cluster_diag.capture.models import (
    CaptureResult,
    CaptureStatus,
    CaptureTask,
    RunContext,
    RunReport,
)

__all__ = [
    "CaptureExecutor",
    "CaptureResult",
    "CaptureStatus",
    "CaptureTask",
    "ClusterClient",
    "RunContext",
    "RunReport",
    "format_error",
]
