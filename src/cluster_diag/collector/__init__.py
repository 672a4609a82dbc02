"""Collector: preflight, fan-out captures, feature probes and the run manifest."""

from cluster_diag.collector.orchestrator import print_result, run_collection
from cluster_diag.collector.preflight import PreflightError

__all__ = [
    "PreflightError",
    "print_result",
    "run_collection",
]
