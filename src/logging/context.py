# src/logging/context.py - v2
"""Contextual logging support: attach run_id, stage and package to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Set once per run, then per stage and per install.
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)
_package: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "package", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    stage: str | None = None
    package: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        stage=_stage.get(),
        package=_package.get(),
    )


def set_run_context(run_id: str) -> None:
    """Set run-level context (called once per orchestrator run)."""
    _run_id.set(run_id)


def set_stage_context(stage: str | None) -> None:
    """Set the current orchestrator stage and drop any package context."""
    _stage.set(stage)
    _package.set(None)


def set_package_context(package: str | None) -> None:
    """Set the package being installed (None once the install returns)."""
    _package.set(package)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _stage.set(None)
    _package.set(None)
