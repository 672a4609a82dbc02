"""Run context and capture value types shared by the collector."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


class RunContext(BaseModel):
    """Immutable parameters of one collection run."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    log_tail: int = Field(default=200, gt=0)
    events_tail: int = Field(default=50, gt=0)
    output_root: Path = Path("./diagnostics")
    timestamp: str = Field(..., description="Run start, formatted with TIMESTAMP_FORMAT")
    output_path: Path = Field(..., description="This run's own directory under output_root")
    aws_region: str = "us-west-2"
    lb_annotation: str = ""


class CaptureStatus(str, Enum):
    """Outcome of a single capture."""

    OK = "ok"
    FAILED = "failed"


def _as_text(payload: Any) -> str:
    return payload if isinstance(payload, str) else str(payload)


@dataclass(frozen=True)
class CaptureTask:
    """One read-only query and the file its output lands in."""

    label: str
    filename: str
    fetch: Callable[[], Any]
    render: Callable[[Any], str] = _as_text


@dataclass(frozen=True)
class CaptureResult:
    """Result of executing a CaptureTask. The file at ``path`` always exists."""

    status: CaptureStatus
    label: str
    path: Path
    data: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is CaptureStatus.OK

    @property
    def filename(self) -> str:
        return self.path.name


@dataclass
class RunReport:
    """Everything a finished run produced."""

    context: RunContext
    results: list[CaptureResult] = field(default_factory=list)
    notices: list[str] = field(default_factory=list)
    lb_health_available: bool = False
    manifest_path: Path | None = None

    @property
    def failed(self) -> list[CaptureResult]:
        return [r for r in self.results if not r.ok]

    @property
    def files(self) -> list[str]:
        return [r.filename for r in self.results]
