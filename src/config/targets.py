# src/config/targets.py - v1
"""Upgrade target: the fixed data one upgrade run pins the project to.

The default target moves an Angular workspace to Angular 20 on Node.js 22.
Another target can be loaded from a JSON file with ``load_target``.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ngupgrade.config.settings import ConfigurationError
from ngupgrade.core.models import DependencyEntry

_EXACT_VERSION = re.compile(r"^\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?$")

ANGULAR_VERSION = "20.0.0"


def _pin(name: str, version: str) -> DependencyEntry:
    return DependencyEntry(name=name, version_spec=version)


DEFAULT_MANAGED_DEPENDENCIES: list[DependencyEntry] = [
    _pin("@angular/animations", ANGULAR_VERSION),
    _pin("@angular/common", ANGULAR_VERSION),
    _pin("@angular/compiler", ANGULAR_VERSION),
    _pin("@angular/core", ANGULAR_VERSION),
    _pin("@angular/forms", ANGULAR_VERSION),
    _pin("@angular/platform-browser", ANGULAR_VERSION),
    _pin("@angular/platform-browser-dynamic", ANGULAR_VERSION),
    _pin("@angular/router", ANGULAR_VERSION),
    _pin("rxjs", "7.8.2"),
    _pin("tslib", "2.8.1"),
    _pin("zone.js", "0.15.1"),
]

DEFAULT_MANAGED_DEV_DEPENDENCIES: list[DependencyEntry] = [
    _pin("@angular-devkit/build-angular", ANGULAR_VERSION),
    _pin("@angular/cli", ANGULAR_VERSION),
    _pin("@angular/compiler-cli", ANGULAR_VERSION),
    _pin("typescript", "5.8.3"),
]


class OptionalTool(BaseModel):
    """Global tool probed during validation and installed when absent."""

    model_config = ConfigDict(frozen=True)

    command: str
    package: str
    probe_args: list[str] = Field(default_factory=lambda: ["--version"])

    @property
    def probe(self) -> list[str]:
        return [self.command, *self.probe_args]


class UpgradeTarget(BaseModel):
    """Process-wide upgrade configuration, immutable for the duration of a run."""

    model_config = ConfigDict(frozen=True)

    name: str = "angular-20"
    runtime_major: int = 22
    engine_field: str = "engines.node"
    engine_constraint: str = ">=22.0.0"
    managed_dependencies: list[DependencyEntry] = Field(
        default_factory=lambda: list(DEFAULT_MANAGED_DEPENDENCIES)
    )
    managed_dev_dependencies: list[DependencyEntry] = Field(
        default_factory=lambda: list(DEFAULT_MANAGED_DEV_DEPENDENCIES)
    )
    optional_tools: list[OptionalTool] = Field(
        default_factory=lambda: [
            OptionalTool(command="ng", package="@angular/cli", probe_args=["version"])
        ]
    )
    # Preempts a transitive resolution defect in ajv-keywords under the new devkit.
    auxiliary_package: DependencyEntry = Field(
        default_factory=lambda: _pin("ajv", "^8.17.1")
    )
    audit_level: Literal["low", "moderate", "high", "critical"] = "high"
    peer_flag: str = "--legacy-peer-deps"

    @field_validator("runtime_major")
    @classmethod
    def validate_runtime_major(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("runtime_major must be > 0")
        return v

    @field_validator("managed_dependencies", "managed_dev_dependencies")
    @classmethod
    def validate_managed(cls, v: list[DependencyEntry]) -> list[DependencyEntry]:
        """Managed entries must be unique by name and pinned to exact versions."""
        seen: set[str] = set()
        for entry in v:
            if entry.name in seen:
                raise ValueError(f"duplicate managed package: {entry.name}")
            seen.add(entry.name)
            if not _EXACT_VERSION.match(entry.version_spec):
                raise ValueError(
                    f"managed package {entry.name} must pin an exact version, "
                    f"got {entry.version_spec!r}"
                )
        return v

    @field_validator("engine_field")
    @classmethod
    def validate_engine_field(cls, v: str) -> str:
        if not v or any(not part for part in v.split(".")):
            raise ValueError(f"invalid engine_field: {v!r}")
        return v


def load_target(path: Path | None = None) -> UpgradeTarget:
    """Load an upgrade target from a JSON file, or the default target.

    Raises:
        ConfigurationError: If the file is unreadable or fails validation.
    """
    if path is None:
        return UpgradeTarget()
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read upgrade target {path}: {e}") from e
    try:
        return UpgradeTarget.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid upgrade target {path}: {e}") from e
