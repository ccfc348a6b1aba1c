# src/toolchain/runner.py - v2
"""Async subprocess runner: the only channel to the runtime and package manager.

Exit code and captured output are the whole contract. A missing executable
and a timeout are reported as ordinary failed results, never raised:

  - executable not found -> exit code 127, ``not_found=True``
  - timeout              -> exit code 124, ``timed_out=True``
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one subprocess invocation."""

    args: tuple[str, ...]
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    timed_out: bool = False
    not_found: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass
class CommandRunner:
    """Run commands one at a time with an optional per-call timeout.

    Args:
        default_timeout_s: Applied when ``run`` gets no explicit timeout.
            None waits indefinitely.
        env: Extra environment variables for every child process.
    """

    default_timeout_s: float | None = None
    env: dict[str, str] | None = field(default=None)

    async def run(
        self,
        args: list[str],
        cwd: Path | None = None,
        timeout_s: float | None = None,
    ) -> CommandResult:
        timeout = timeout_s if timeout_s is not None else self.default_timeout_s
        argv = tuple(args)
        logger.debug("exec: %s (cwd=%s)", " ".join(argv), cwd or ".")
        start_ns = time.monotonic_ns()

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(cwd) if cwd else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._child_env(),
            )
        except (FileNotFoundError, PermissionError) as e:
            logger.debug("exec failed: %s: %s", argv[0], e)
            return CommandResult(
                args=argv, exit_code=EXIT_NOT_FOUND, stderr=str(e), not_found=True
            )

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout)
        except asyncio.TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            logger.warning("Timed out after %.0fs: %s", timeout, " ".join(argv))
            return CommandResult(
                args=argv,
                exit_code=EXIT_TIMEOUT,
                duration_ms=_elapsed_ms(start_ns),
                timed_out=True,
            )

        result = CommandResult(
            args=argv,
            exit_code=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            duration_ms=_elapsed_ms(start_ns),
        )
        logger.debug("exit %d in %dms: %s", result.exit_code, result.duration_ms, argv[0])
        return result

    def _child_env(self) -> dict[str, str] | None:
        if not self.env:
            return None
        return {**os.environ, **self.env}


def _elapsed_ms(start_ns: int) -> int:
    return (time.monotonic_ns() - start_ns) // 1_000_000
