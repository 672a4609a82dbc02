"""Run capture tasks: one query, one artifact file, never an exception."""

from __future__ import annotations

import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from kubernetes.client.rest import ApiException
from rich.console import Console
from rich.markup import escape

from cluster_diag.capture.models import CaptureResult, CaptureStatus, CaptureTask, RunContext

logger = logging.getLogger(__name__)


def format_error(exc: BaseException) -> str:
    """Error text written in place of a capture's output."""
    if isinstance(exc, ApiException):
        text = f"Error from server ({exc.reason}): status {exc.status}"
        if exc.body:
            body = exc.body.decode("utf-8", "replace") if isinstance(exc.body, bytes) else str(exc.body)
            text += f"\n{body}"
        return text + "\n"
    if isinstance(exc, ClientError):
        err = exc.response.get("Error", {})
        return f"AWS error ({err.get('Code', 'Unknown')}): {err.get('Message', exc)}\n"
    if isinstance(exc, BotoCoreError):
        return f"AWS error: {exc}\n"
    return f"{type(exc).__name__}: {exc}\n"


class CaptureExecutor:
    """Executes CaptureTasks into the run directory and keeps every result."""

    def __init__(self, context: RunContext, console: Console | None = None) -> None:
        self.context = context
        self.console = console or Console()
        self.results: list[CaptureResult] = []

    def execute(self, task: CaptureTask) -> CaptureResult:
        """Run ``task`` once and write its output or error text to its file.

        The query is never retried and its failure never propagates: a deleted
        pod or a denied request must not cost the rest of the bundle.
        When only the render fails, the fetched data stays on the result.
        """
        path = self.context.output_path / task.filename
        self.console.print(f"[yellow]Capturing: {escape(task.label)}[/yellow]", highlight=False)
        data: Any = None
        try:
            data = task.fetch()
            text = task.render(data)
        except Exception as exc:
            logger.debug("Capture %r failed: %s", task.label, exc)
            path.write_text(format_error(exc), encoding="utf-8")
            self.console.print(f"[red]  ✗ Failed to capture {escape(task.label)}[/red]", highlight=False)
            result = CaptureResult(
                CaptureStatus.FAILED, task.label, path, data=data, error=str(exc) or type(exc).__name__
            )
        else:
            path.write_text(text, encoding="utf-8")
            self.console.print(f"[green]  ✓ Saved to {task.filename}[/green]", highlight=False)
            result = CaptureResult(CaptureStatus.OK, task.label, path, data=data)
        self.results.append(result)
        return result
