# src/install/sequencer.py - v1
"""Install sequencing with a per-partition failure policy.

  - managed packages: exact-version pin, any failure is fatal (FatalInstallError)
  - carried-over packages: existing recorded spec, failure is a CarryOverWarning
  - auxiliary package: installed last as a dev dependency, carry-over policy

Installs run one at a time in list order. The package manager rewrites
its lockfile on every install, so concurrent installs against the same
project directory are not safe.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from ngupgrade.core.errors import FatalInstallError
from ngupgrade.core.models import (
    CarryOverWarning,
    DependencyEntry,
    InstallResult,
    InstallSummary,
)
from ngupgrade.logging.context import set_package_context
from ngupgrade.toolchain.retry import NO_RETRY, RetryConfig, run_with_retry
from ngupgrade.toolchain.runner import CommandRunner

logger = logging.getLogger(__name__)


class InstallSequencer:
    """Issue package-manager install calls for each partition.

    Args:
        runner: Subprocess runner.
        project_dir: Directory the package manager runs in.
        package_manager: Package manager executable.
        peer_flag: Compatibility-relaxation flag added to every install.
        retry: Retry policy around each install call.
    """

    def __init__(
        self,
        runner: CommandRunner,
        project_dir: Path,
        package_manager: str = "npm",
        peer_flag: str = "--legacy-peer-deps",
        retry: RetryConfig = NO_RETRY,
    ) -> None:
        self._runner = runner
        self._project_dir = Path(project_dir)
        self._package_manager = package_manager
        self._peer_flag = peer_flag
        self._retry = retry

    def build_command(
        self, entry: DependencyEntry, dev: bool = False, exact: bool = False
    ) -> list[str]:
        """Return the install argv for one package."""
        args = [
            self._package_manager,
            "install",
            entry.spec,
            "--save-dev" if dev else "--save",
        ]
        if exact:
            args.append("--save-exact")
        if self._peer_flag:
            args.append(self._peer_flag)
        return args

    async def install_managed(
        self,
        dependencies: Sequence[DependencyEntry],
        dev_dependencies: Sequence[DependencyEntry],
    ) -> InstallSummary:
        """Install runtime then dev managed packages at their exact versions.

        Raises:
            FatalInstallError: On the first package that fails; later
                packages are not attempted.
        """
        summary = InstallSummary()
        for dev, entries in ((False, dependencies), (True, dev_dependencies)):
            for entry in entries:
                result = await self._install(entry, dev=dev, exact=True)
                summary.results.append(result)
                if not result.succeeded:
                    logger.error(
                        "Managed install failed: %s (exit %d)",
                        entry.spec, result.exit_code,
                    )
                    raise FatalInstallError(result)
        logger.info("Managed packages installed: %d", summary.succeeded)
        return summary

    async def install_other(
        self,
        dependencies: Sequence[DependencyEntry],
        dev_dependencies: Sequence[DependencyEntry],
        auxiliary: DependencyEntry | None = None,
    ) -> InstallSummary:
        """Best-effort reinstall of carried-over packages at their recorded specs.

        Failures become warnings in list order; the auxiliary package is
        always attempted last.
        """
        summary = InstallSummary()
        queue: list[tuple[DependencyEntry, bool]] = [
            *((e, False) for e in dependencies),
            *((e, True) for e in dev_dependencies),
        ]
        if auxiliary is not None:
            queue.append((auxiliary, True))

        for entry, dev in queue:
            result = await self._install(entry, dev=dev, exact=False)
            summary.results.append(result)
            if not result.succeeded:
                reason = "timed out" if result.timed_out else f"exit code {result.exit_code}"
                warning = CarryOverWarning(
                    package=entry,
                    exit_code=result.exit_code,
                    message=f"{entry.spec} could not be reinstalled ({reason})",
                )
                summary.warnings.append(warning)
                logger.warning(warning.message)

        logger.info(
            "Carried-over packages: %d installed, %d failed",
            summary.succeeded, summary.failed,
        )
        return summary

    async def _install(
        self, entry: DependencyEntry, dev: bool, exact: bool
    ) -> InstallResult:
        args = self.build_command(entry, dev=dev, exact=exact)
        set_package_context(entry.spec)
        try:
            logger.info("Installing %s%s", entry.spec, " (dev)" if dev else "")
            result, attempts = await run_with_retry(
                lambda: self._runner.run(args, cwd=self._project_dir),
                self._retry,
                label=entry.spec,
            )
        finally:
            set_package_context(None)
        return InstallResult(
            package=entry,
            dev=dev,
            succeeded=result.ok,
            exit_code=result.exit_code,
            attempts=attempts,
            timed_out=result.timed_out,
            duration_ms=result.duration_ms,
        )
