# src/toolchain/validator.py - v1
"""Toolchain validation: gate the run before any state is touched.

Checks, in order:
  1. the manifest exists in the project directory
  2. the runtime is invocable and its major version matches the target
  3. the package manager is invocable
  4. every optional global tool is present, installing it globally if not

The first failing check raises PreconditionError. Nothing in the project
directory is modified here.
"""

from __future__ import annotations

import logging
import re

from ngupgrade.config.settings import Settings
from ngupgrade.config.targets import OptionalTool, UpgradeTarget
from ngupgrade.core.errors import PreconditionError, PreconditionKind
from ngupgrade.core.models import ToolchainVersion, ValidationResult
from ngupgrade.toolchain.runner import CommandResult, CommandRunner

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"v?(\d+)(?:\.(\d+))?(?:\.(\d+))?")


def parse_version(name: str, output: str) -> ToolchainVersion | None:
    """Parse ``v22.11.0`` / ``10.9.0`` style output. None if no version found."""
    first_line = output.strip().splitlines()[0] if output.strip() else ""
    match = _VERSION_RE.search(first_line)
    if not match:
        return None
    major, minor, patch = (int(g) if g else 0 for g in match.groups())
    return ToolchainVersion(name=name, major=major, minor=minor, patch=patch)


class ToolchainValidator:
    """Confirm the environment can run the upgrade.

    Args:
        settings: Runtime settings (project dir, executables, timeout).
        target: Upgrade target (required runtime major, optional tools).
        runner: Subprocess runner.
    """

    def __init__(
        self,
        settings: Settings,
        target: UpgradeTarget,
        runner: CommandRunner,
    ) -> None:
        self._settings = settings
        self._target = target
        self._runner = runner

    async def validate(self) -> ValidationResult:
        manifest_path = self._settings.manifest_path
        if not manifest_path.is_file():
            raise PreconditionError(
                PreconditionKind.MANIFEST_MISSING,
                f"No {self._settings.manifest_name} in {self._settings.project_dir}",
            )

        runtime = await self._check_runtime()
        package_manager = await self._check_package_manager()
        installed = await self._ensure_optional_tools()

        logger.info(
            "Toolchain OK: %s, %s%s",
            runtime,
            package_manager,
            f", installed {', '.join(installed)}" if installed else "",
        )
        return ValidationResult(
            manifest_path=manifest_path,
            runtime=runtime,
            package_manager=package_manager,
            installed_tools=installed,
        )

    async def _check_runtime(self) -> ToolchainVersion:
        exe = self._settings.runtime_executable
        result = await self._runner.run([exe, "--version"])
        version = parse_version(exe, result.stdout) if result.ok else None
        if version is None:
            raise PreconditionError(
                PreconditionKind.RUNTIME_UNAVAILABLE,
                f"{exe} is not invocable ({_describe(result)})",
            )
        required = self._target.runtime_major
        if version.major != required:
            raise PreconditionError(
                PreconditionKind.RUNTIME_VERSION_MISMATCH,
                f"{exe} major version {version.major} found, {required} required",
            )
        return version

    async def _check_package_manager(self) -> ToolchainVersion:
        exe = self._settings.package_manager_executable
        result = await self._runner.run([exe, "--version"])
        version = parse_version(exe, result.stdout) if result.ok else None
        if version is None:
            raise PreconditionError(
                PreconditionKind.PACKAGE_MANAGER_UNAVAILABLE,
                f"{exe} is not invocable ({_describe(result)})",
            )
        return version

    async def _ensure_optional_tools(self) -> list[str]:
        installed: list[str] = []
        for tool in self._target.optional_tools:
            probe = await self._runner.run(tool.probe)
            if probe.ok:
                logger.debug("Optional tool present: %s", tool.command)
                continue
            await self._install_tool(tool)
            installed.append(tool.package)
        return installed

    async def _install_tool(self, tool: OptionalTool) -> None:
        logger.info("%s not found, installing %s globally", tool.command, tool.package)
        result = await self._runner.run(
            [self._settings.package_manager_executable, "install", "-g", tool.package]
        )
        if not result.ok:
            raise PreconditionError(
                PreconditionKind.OPTIONAL_TOOL_INSTALL_FAILED,
                f"Global install of {tool.package} failed ({_describe(result)})",
            )


def _describe(result: CommandResult) -> str:
    if result.ok:
        return "unrecognized version output"
    if result.not_found:
        return "executable not found"
    if result.timed_out:
        return "timed out"
    return f"exit code {result.exit_code}"
