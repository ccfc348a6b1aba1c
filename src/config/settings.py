# src/config/settings.py - v3
"""Typed runtime configuration loaded from the environment via pydantic-settings.

Variables use the ``NGUPGRADE_`` prefix, e.g. ``NGUPGRADE_COMMAND_TIMEOUT_S=600``.
CLI flags override individual fields through ``load_settings(**overrides)``.
The ``.env`` file is resolved against the current directory, and also
against ``--project-dir`` when that flag is given.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ngupgrade.logging.handlers import parse_size


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from environment and .env file."""

    model_config = SettingsConfigDict(
        env_prefix="NGUPGRADE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Project layout ===
    project_dir: Path = Path(".")
    manifest_name: str = "package.json"
    install_dir_name: str = "node_modules"
    lockfile_name: str = "package-lock.json"

    # === Toolchain ===
    runtime_executable: str = "node"
    package_manager_executable: str = "npm"
    command_timeout_s: float | None = 900.0

    # === Registry retry (0 = every call attempted exactly once) ===
    install_max_retries: int = 0
    install_retry_base_delay_s: float = 2.0
    install_retry_backoff_factor: float = 2.0

    # === Run ===
    skip_backup: bool = False
    target_file: Path | None = None
    report_file: Path | None = None

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("install_max_retries", "log_retention")
    @classmethod
    def validate_non_negative(cls, v: int, info) -> int:  # noqa: N805
        if v < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.command_timeout_s is not None and self.command_timeout_s <= 0:
            errors.append("COMMAND_TIMEOUT_S must be > 0 when set")

        for name in (
            "manifest_name",
            "install_dir_name",
            "lockfile_name",
            "runtime_executable",
            "package_manager_executable",
        ):
            if not getattr(self, name).strip():
                errors.append(f"{name.upper()} must not be empty")

        if self.install_retry_base_delay_s < 0:
            errors.append("INSTALL_RETRY_BASE_DELAY_S must be >= 0")

        try:
            parse_size(self.log_rotation)
        except ValueError:
            errors.append(f"LOG_ROTATION is not a size: {self.log_rotation!r}")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def manifest_path(self) -> Path:
        return self.project_dir / self.manifest_name

    @property
    def install_dir(self) -> Path:
        return self.project_dir / self.install_dir_name

    @property
    def lockfile_path(self) -> Path:
        return self.project_dir / self.lockfile_name


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment with optional overrides.

    Overrides whose value is None are ignored so unset CLI flags fall
    through to the environment. When ``project_dir`` is overridden, a
    ``.env`` file in that directory is read after the one in the current
    directory and takes precedence over it.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    applied = {k: v for k, v in overrides.items() if v is not None}
    project_dir = applied.get("project_dir")
    if project_dir is not None and "_env_file" not in applied:
        applied["_env_file"] = (".env", Path(str(project_dir)) / ".env")
    return Settings(**applied)  # type: ignore[arg-type]
