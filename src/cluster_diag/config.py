"""Configuration and environment for the diagnostics collector."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError, ValidationInfo, ValidatorFunctionWrapHandler, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_LB_ANNOTATION = "alb.ingress.kubernetes.io/load-balancer-id"


class Settings(BaseSettings):
    """Collector settings loaded from environment and .env."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Capture scope
    namespace: str = Field(default="default", description="Namespace to capture")
    log_tail: int = Field(default=200, gt=0, description="Lines fetched per pod log capture")
    events_tail: int = Field(default=50, gt=0, description="Most recent events kept in events.txt")
    output_dir: Path = Field(
        default=Path("./diagnostics"),
        description="Parent directory for the timestamped run directory",
    )

    # Kubernetes
    kube_context: str | None = Field(default=None, description="Kubernetes context to use")
    request_timeout: float = Field(default=30.0, gt=0, description="Per-request API timeout in seconds")

    # AWS load balancer probe
    aws_region: str = Field(default="us-west-2", description="Region for ELBv2 lookups")
    lb_annotation: str = Field(
        default=DEFAULT_LB_ANNOTATION,
        description="Ingress annotation holding the load balancer ARN",
    )

    @field_validator("log_tail", "events_tail", "request_timeout", mode="wrap")
    @classmethod
    def _default_on_invalid(cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo) -> Any:
        try:
            return handler(value)
        except ValidationError:
            default = cls.model_fields[info.field_name].default
            logger.warning("Ignoring invalid %s=%r, using default %s", info.field_name.upper(), value, default)
            return default


def get_settings(**overrides: Any) -> Settings:
    """Return settings from the environment, with explicit overrides applied on top."""
    return Settings(**{k: v for k, v in overrides.items() if v is not None})
