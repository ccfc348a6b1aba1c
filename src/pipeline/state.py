# src/pipeline/state.py - v3
"""Upgrade run state machine.

    START -> VALIDATED -> BACKED_UP -> RESET -> MANIFEST_MUTATED
          -> MANAGED_INSTALLED -> OTHER_INSTALLED -> VERIFIED -> DONE

FAILED is reachable from every non-terminal stage. A failure before
MANIFEST_MUTATED leaves the manifest untouched; from MANIFEST_MUTATED
onwards the mutation stays committed.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from ngupgrade.core.errors import UpgradeError
from ngupgrade.core.models import (
    BackupArtifact,
    CarryOverWarning,
    InstallSummary,
    Partition,
    ValidationResult,
    VerificationResult,
)


UNEXPECTED_KIND = "Unexpected"


class RunStage(str, Enum):
    START = "start"
    VALIDATED = "validated"
    BACKED_UP = "backed_up"
    RESET = "reset"
    MANIFEST_MUTATED = "manifest_mutated"
    MANAGED_INSTALLED = "managed_installed"
    OTHER_INSTALLED = "other_installed"
    VERIFIED = "verified"
    DONE = "done"
    FAILED = "failed"


STAGE_ORDER: list[RunStage] = [
    RunStage.START,
    RunStage.VALIDATED,
    RunStage.BACKED_UP,
    RunStage.RESET,
    RunStage.MANIFEST_MUTATED,
    RunStage.MANAGED_INSTALLED,
    RunStage.OTHER_INSTALLED,
    RunStage.VERIFIED,
    RunStage.DONE,
]


class InvalidTransition(RuntimeError):
    """A stage was entered out of order."""


class StageTransition(BaseModel):
    stage: RunStage
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class FailureInfo(BaseModel):
    """Why a run ended in FAILED."""

    stage: RunStage
    error_type: str
    kind: str
    message: str


class UpgradeState(BaseModel):
    """Everything produced by one run, accumulated stage by stage."""

    run_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    target: str = ""
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None

    stage: RunStage = RunStage.START
    history: list[StageTransition] = Field(default_factory=list)
    failure: FailureInfo | None = None

    validation: ValidationResult | None = None
    backup: BackupArtifact | None = None
    runtime_partition: Partition | None = None
    dev_partition: Partition | None = None
    managed: InstallSummary | None = None
    carried_over: InstallSummary | None = None
    verification: VerificationResult | None = None

    def advance(self, stage: RunStage) -> None:
        """Move to the next stage. Skipping or going back is a programming error."""
        if stage is RunStage.FAILED:
            raise InvalidTransition("use fail() to enter FAILED")
        if self.stage is RunStage.FAILED or self.stage is RunStage.DONE:
            raise InvalidTransition(f"run already terminal ({self.stage.value})")
        expected = STAGE_ORDER[STAGE_ORDER.index(self.stage) + 1]
        if stage is not expected:
            raise InvalidTransition(
                f"cannot go from {self.stage.value} to {stage.value}"
            )
        self.stage = stage
        self.history.append(StageTransition(stage=stage))
        if stage is RunStage.DONE:
            self.finished_at = datetime.now(timezone.utc)

    def fail(self, error: Exception) -> None:
        """Absorb a fatal error, recording the stage it interrupted.

        Errors outside the UpgradeError taxonomy are recorded with kind
        ``Unexpected``.
        """
        if isinstance(error, UpgradeError):
            kind, message = error.kind.value, error.message
        else:
            kind, message = UNEXPECTED_KIND, str(error) or type(error).__name__
        self.failure = FailureInfo(
            stage=self.stage,
            error_type=type(error).__name__,
            kind=kind,
            message=message,
        )
        self.stage = RunStage.FAILED
        self.history.append(StageTransition(stage=RunStage.FAILED))
        self.finished_at = datetime.now(timezone.utc)

    @property
    def success(self) -> bool:
        return self.stage is RunStage.DONE

    @property
    def manifest_mutated(self) -> bool:
        """True once the engine constraint was written, even if the run later failed."""
        reached = {t.stage for t in self.history}
        return RunStage.MANIFEST_MUTATED in reached

    @property
    def warnings(self) -> list[CarryOverWarning]:
        return list(self.carried_over.warnings) if self.carried_over else []
