# src/install/verifier.py - v1
"""Post-install verification and advisory vulnerability audit."""

from __future__ import annotations

import logging
from pathlib import Path

from ngupgrade.core.errors import VerificationError, VerificationKind
from ngupgrade.core.models import VerificationResult
from ngupgrade.toolchain.runner import CommandRunner

logger = logging.getLogger(__name__)


class PostInstallVerifier:
    """Confirm the install produced output, then run the audit.

    The audit result is recorded but never fails the run.
    """

    def __init__(
        self,
        install_dir: Path,
        runner: CommandRunner,
        package_manager: str = "npm",
        audit_level: str = "high",
    ) -> None:
        self._install_dir = Path(install_dir)
        self._runner = runner
        self._package_manager = package_manager
        self._audit_level = audit_level

    async def verify(self) -> VerificationResult:
        """Raise VerificationError if the install directory is missing."""
        if not self._install_dir.is_dir():
            raise VerificationError(
                VerificationKind.INSTALL_DIRECTORY_MISSING,
                f"{self._install_dir} does not exist after install",
            )

        entry_count = count_entries(self._install_dir)
        logger.info("%s contains %d top-level entries", self._install_dir.name, entry_count)

        audit = await self._runner.run(
            [self._package_manager, "audit", f"--audit-level={self._audit_level}"],
            cwd=self._install_dir.parent,
        )
        if audit.ok:
            logger.info("Audit passed at level %s", self._audit_level)
        else:
            logger.warning(
                "Audit reported issues at level %s or above (exit %d); "
                "review with '%s audit'",
                self._audit_level, audit.exit_code, self._package_manager,
            )

        return VerificationResult(
            install_dir=self._install_dir,
            entry_count=entry_count,
            audit_level=self._audit_level,
            audit_passed=audit.ok,
            audit_exit_code=audit.exit_code,
        )


def count_entries(install_dir: Path) -> int:
    """Count visible top-level entries; dot-entries like ``.bin`` are skipped."""
    return sum(1 for p in install_dir.iterdir() if not p.name.startswith("."))
