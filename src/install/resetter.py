# src/install/resetter.py - v2
"""Clean-slate reset: drop previous install artifacts before reinstalling.

Removes the install directory and the lockfile when present, then clears
the package manager cache. Safe to run on an already clean project.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from ngupgrade.core.errors import ResetError, ResetKind
from ngupgrade.toolchain.runner import CommandRunner

logger = logging.getLogger(__name__)


@dataclass
class ResetResult:
    removed: list[Path]
    cache_cleared: bool


class CleanSlateResetter:
    """Reset local install state for a reproducible install.

    Args:
        install_dir: Installed-artifact directory (``node_modules``).
        lockfile: Package-manager lockfile.
        runner: Subprocess runner.
        package_manager: Package manager executable.
    """

    def __init__(
        self,
        install_dir: Path,
        lockfile: Path,
        runner: CommandRunner,
        package_manager: str = "npm",
    ) -> None:
        self._install_dir = Path(install_dir)
        self._lockfile = Path(lockfile)
        self._runner = runner
        self._package_manager = package_manager

    async def reset(self) -> ResetResult:
        """Remove install artifacts, then clear the cache.

        Raises:
            ResetError: RemoveFailed if an artifact exists but cannot be removed.
        """
        removed: list[Path] = []

        try:
            if self._install_dir.is_symlink() or self._install_dir.is_file():
                self._install_dir.unlink()
                removed.append(self._install_dir)
            elif self._install_dir.is_dir():
                logger.info("Removing %s", self._install_dir)
                shutil.rmtree(self._install_dir)
                removed.append(self._install_dir)

            if self._lockfile.exists():
                self._lockfile.unlink()
                removed.append(self._lockfile)
        except OSError as e:
            raise ResetError(
                ResetKind.REMOVE_FAILED, f"Cannot remove previous install artifacts: {e}"
            ) from e

        if not removed:
            logger.info("Nothing to remove, project already clean")

        result = await self._runner.run([self._package_manager, "cache", "clean", "--force"])
        if not result.ok:
            logger.warning(
                "Cache clean failed with exit code %d, continuing", result.exit_code
            )
        return ResetResult(removed=removed, cache_cleared=result.ok)
