# src/main.py - v2
"""CLI entry point.

Usage:
    ngupgrade [--skip-backup] [--project-dir DIR] [--target-file FILE] [options]

Exit codes: 0 on success (carry-over warnings and audit findings
included), 1 on any fatal failure, 2 on invalid configuration,
130 when interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from ngupgrade.config.settings import ConfigurationError, Settings, load_settings
from ngupgrade.config.targets import UpgradeTarget, load_target
from ngupgrade.logging.logger import setup_logging
from ngupgrade.pipeline.orchestrator import UpgradeOrchestrator
from ngupgrade.pipeline.report import format_summary, write_report
from ngupgrade.pipeline.state import UpgradeState
from ngupgrade.version import __version__

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(
            skip_backup=True if args.skip_backup else None,
            project_dir=args.project_dir,
            target_file=args.target_file,
            command_timeout_s=args.timeout,
            install_max_retries=args.retries,
            report_file=args.report,
            log_format=args.log_format,
        )
        target = load_target(settings.target_file)
    except (ConfigurationError, ValueError) as exc:
        setup_logging(level="ERROR", log_format="text")
        logger.error("Invalid configuration: %s", exc)
        return EXIT_CONFIG

    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )

    try:
        state = asyncio.run(_run(settings, target))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return EXIT_FAILED

    print(format_summary(state))
    if settings.report_file:
        try:
            write_report(state, settings.report_file)
        except OSError as exc:
            logger.error("Could not write run report: %s", exc)

    return EXIT_OK if state.success else EXIT_FAILED


async def _run(settings: Settings, target: UpgradeTarget) -> UpgradeState:
    orchestrator = UpgradeOrchestrator(settings, target)
    return await orchestrator.run()


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="ngupgrade",
        description=(
            f"ngupgrade v{__version__}: upgrade a project's framework "
            "dependencies in place"
        ),
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--skip-backup", action="store_true",
        help="Do not back up the manifest before modifying it",
    )
    parser.add_argument(
        "--project-dir", type=Path, default=None,
        help="Project directory containing the manifest (default: .)",
    )
    parser.add_argument(
        "--target-file", type=Path, default=None,
        help="JSON file overriding the default upgrade target",
    )
    parser.add_argument(
        "--timeout", type=float, default=None,
        help="Per-command timeout in seconds",
    )
    parser.add_argument(
        "--retries", type=int, default=None,
        help="Retries per package install (default: 0)",
    )
    parser.add_argument(
        "--report", type=Path, default=None,
        help="Write a JSON run report to this path",
    )
    parser.add_argument(
        "--log-format", choices=["json", "text"], default=None,
        help="Log output format (default: text)",
    )
    return parser
