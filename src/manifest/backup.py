# src/manifest/backup.py - v2
"""Timestamped manifest backup taken before any mutation.

Backups are written next to the manifest as
``<manifest-name>.backup_<YYYYMMDD_HHMMSS>`` and are never overwritten:
a same-second collision gets a ``_1``, ``_2``, ... suffix instead.
"""

from __future__ import annotations

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable

from ngupgrade.core.errors import ManifestError, ManifestKind
from ngupgrade.core.models import BackupArtifact

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
MAX_COLLISION_SUFFIX = 100


def backup_name(manifest_name: str, timestamp: datetime) -> str:
    """Return the backup file name for a manifest at a given time."""
    return f"{manifest_name}.backup_{timestamp.strftime(TIMESTAMP_FORMAT)}"


class BackupManager:
    """Create immutable copies of the manifest.

    Args:
        clock: Returns the current time; local time by default.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now().astimezone())

    def backup(self, path: Path, skip: bool = False) -> BackupArtifact | None:
        """Copy ``path`` to a timestamped sibling. No I/O at all when ``skip``.

        Raises:
            ManifestError: ReadFailure if the manifest cannot be read,
                WriteFailure if no backup file could be created.
        """
        if skip:
            logger.info("Backup skipped")
            return None

        source = Path(path)
        timestamp = self._clock()
        base = source.with_name(backup_name(source.name, timestamp))

        try:
            with source.open("rb") as fsrc:
                copy_path = self._create_exclusive(base, fsrc)
        except OSError as e:
            if isinstance(e, FileNotFoundError) and not source.exists():
                raise ManifestError(
                    ManifestKind.READ_FAILURE, f"Cannot read {source}: {e}"
                ) from e
            raise ManifestError(
                ManifestKind.WRITE_FAILURE, f"Cannot write backup of {source}: {e}"
            ) from e

        try:
            shutil.copystat(source, copy_path)
        except OSError as e:
            raise ManifestError(
                ManifestKind.WRITE_FAILURE,
                f"Cannot copy metadata of {source} to {copy_path.name}: {e}",
            ) from e
        logger.info("Backed up %s -> %s", source.name, copy_path.name)
        return BackupArtifact(
            source_path=source, timestamp=timestamp, copy_path=copy_path
        )

    @staticmethod
    def _create_exclusive(base: Path, fsrc) -> Path:
        """Write to the first free candidate name; existing files are never opened."""
        for n in range(MAX_COLLISION_SUFFIX):
            candidate = base if n == 0 else base.with_name(f"{base.name}_{n}")
            try:
                fdst = candidate.open("xb")
            except FileExistsError:
                continue
            with fdst:
                shutil.copyfileobj(fsrc, fdst)
            return candidate
        raise FileExistsError(f"No free backup name for {base}")
