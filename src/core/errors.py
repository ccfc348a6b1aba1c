# src/core/errors.py - v2
"""Error taxonomy for an upgrade run.

Every anticipated fatal failure is an UpgradeError subclass carrying a
``kind``.
Carry-over install failures are not errors: they are recorded as
CarryOverWarning models (see core.models) and never raised.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ngupgrade.core.models import InstallResult


class PreconditionKind(str, Enum):
    MANIFEST_MISSING = "ManifestMissing"
    RUNTIME_VERSION_MISMATCH = "RuntimeVersionMismatch"
    RUNTIME_UNAVAILABLE = "RuntimeUnavailable"
    PACKAGE_MANAGER_UNAVAILABLE = "PackageManagerUnavailable"
    OPTIONAL_TOOL_INSTALL_FAILED = "OptionalToolInstallFailed"


class ManifestKind(str, Enum):
    PARSE_FAILURE = "ParseFailure"
    WRITE_FAILURE = "WriteFailure"
    READ_FAILURE = "ReadFailure"


class InstallKind(str, Enum):
    MANAGED_INSTALL_FAILED = "ManagedInstallFailed"


class ResetKind(str, Enum):
    REMOVE_FAILED = "RemoveFailed"


class VerificationKind(str, Enum):
    INSTALL_DIRECTORY_MISSING = "InstallDirectoryMissing"


class UpgradeError(Exception):
    """Base class for all fatal run failures."""

    def __init__(self, kind: Enum, message: str) -> None:
        self.kind = kind
        self.message = message
        super().__init__(f"{kind.value}: {message}")


class PreconditionError(UpgradeError):
    """Execution environment is unsuitable. Always raised before any mutation."""

    def __init__(self, kind: PreconditionKind, message: str) -> None:
        super().__init__(kind, message)


class ManifestError(UpgradeError):
    """Manifest could not be read, parsed or written back."""

    def __init__(self, kind: ManifestKind, message: str) -> None:
        super().__init__(kind, message)


class FatalInstallError(UpgradeError):
    """A managed package failed to install at its exact target version."""

    def __init__(self, result: InstallResult, message: str | None = None) -> None:
        self.result = result
        super().__init__(
            InstallKind.MANAGED_INSTALL_FAILED,
            message
            or f"{result.package.spec} exited with code {result.exit_code}",
        )


class ResetError(UpgradeError):
    """Previous install artifacts could not be removed."""

    def __init__(self, kind: ResetKind, message: str) -> None:
        super().__init__(kind, message)


class VerificationError(UpgradeError):
    """Post-install sanity check failed."""

    def __init__(self, kind: VerificationKind, message: str) -> None:
        super().__init__(kind, message)
