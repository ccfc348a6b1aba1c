# src/core/models.py - v1
"""Shared Pydantic domain models used across modules.

All entities live for a single run only; nothing here is persisted
except through the manifest, the backup copy and the optional run report.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DependencyKind = Literal["dependencies", "devDependencies"]


# === TOOLCHAIN ===


class ToolchainVersion(BaseModel):
    """Parsed version of an external executable (runtime or package manager)."""

    model_config = ConfigDict(frozen=True)

    name: str
    major: int
    minor: int = 0
    patch: int = 0

    def __str__(self) -> str:
        return f"{self.name} {self.major}.{self.minor}.{self.patch}"


class ValidationResult(BaseModel):
    """Outcome of a successful toolchain validation."""

    manifest_path: Path
    runtime: ToolchainVersion
    package_manager: ToolchainVersion
    installed_tools: list[str] = Field(default_factory=list)


# === DEPENDENCIES ===


class DependencyEntry(BaseModel):
    """A declared dependency: package name and its version spec."""

    model_config = ConfigDict(frozen=True)

    name: str
    version_spec: str

    @property
    def spec(self) -> str:
        """Install argument form, e.g. ``@angular/core@20.0.0``."""
        return f"{self.name}@{self.version_spec}"

    @property
    def pair(self) -> tuple[str, str]:
        return (self.name, self.version_spec)


class Partition(BaseModel):
    """Split of one dependency mapping into managed and carried-over entries.

    ``shadowed`` lists names that appear in the managed list but were
    recorded at a different version; those entries stay in ``other``.
    """

    kind: DependencyKind = "dependencies"
    managed: list[DependencyEntry] = Field(default_factory=list)
    other: list[DependencyEntry] = Field(default_factory=list)
    shadowed: list[str] = Field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [e.name for e in self.managed] + [e.name for e in self.other]


# === BACKUP ===


class BackupArtifact(BaseModel):
    """Immutable timestamped copy of the manifest taken before mutation."""

    model_config = ConfigDict(frozen=True)

    source_path: Path
    timestamp: datetime
    copy_path: Path


# === INSTALL ===


class InstallResult(BaseModel):
    """Outcome of one package-manager install invocation."""

    package: DependencyEntry
    dev: bool = False
    succeeded: bool
    exit_code: int
    attempts: int = 1
    timed_out: bool = False
    duration_ms: int = 0


class CarryOverWarning(BaseModel):
    """A non-managed package failed to install. Recorded, never raised."""

    package: DependencyEntry
    exit_code: int
    message: str


class InstallSummary(BaseModel):
    """Aggregated install results in original list order."""

    results: list[InstallResult] = Field(default_factory=list)
    warnings: list[CarryOverWarning] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.succeeded)


# === VERIFICATION ===


class VerificationResult(BaseModel):
    """Post-install check outcome. Audit fields are advisory only."""

    install_dir: Path
    entry_count: int
    audit_level: str
    audit_passed: bool
    audit_exit_code: int
