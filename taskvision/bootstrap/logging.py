"""Bootstrap wiring for logging configuration."""

from __future__ import annotations

import os

from taskvision.infrastructure.observability import configure_structlog as _configure_structlog


def configure_structlog(environment: str | None = None) -> None:
    """Configure structlog for the given environment.

    Defaults to TASKVISION_ENV, then "production".
    """
    _configure_structlog(
        environment=environment or os.environ.get("TASKVISION_ENV", "production")
    )


__all__ = ["configure_structlog"]
