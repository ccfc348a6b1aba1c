# src/pipeline/report.py - v1
"""Run report: JSON export of a finished UpgradeState and a console summary."""

from __future__ import annotations

import logging
from pathlib import Path

from ngupgrade.pipeline.state import UpgradeState

logger = logging.getLogger(__name__)


def write_report(state: UpgradeState, path: Path) -> Path:
    """Write the full run state as indented JSON, creating parent directories."""
    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(state.model_dump_json(indent=2), encoding="utf-8")
    logger.info("Run report written to %s", path)
    return path


def format_summary(state: UpgradeState) -> str:
    """Human-readable end-of-run summary printed by the CLI."""
    lines = [f"Upgrade {state.target or 'run'} [{state.run_id}]: "
             f"{'SUCCESS' if state.success else 'FAILED'}"]

    if state.backup:
        lines.append(f"  Backup:        {state.backup.copy_path}")
    if state.managed:
        lines.append(f"  Managed:       {state.managed.succeeded} installed")
    if state.carried_over:
        lines.append(
            f"  Carried over:  {state.carried_over.succeeded} installed, "
            f"{state.carried_over.failed} failed"
        )
    if state.verification:
        v = state.verification
        lines.append(f"  Installed:     {v.entry_count} top-level entries")
        lines.append(
            f"  Audit ({v.audit_level}):  "
            f"{'clean' if v.audit_passed else f'issues found (exit {v.audit_exit_code})'}"
        )

    shadowed = [
        name
        for p in (state.runtime_partition, state.dev_partition)
        if p is not None
        for name in p.shadowed
    ]
    if shadowed:
        lines.append(f"  Reinstalled at recorded version: {', '.join(shadowed)}")

    if state.warnings:
        lines.append(f"  Warnings ({len(state.warnings)}):")
        lines.extend(f"    - {w.message}" for w in state.warnings)

    if state.failure:
        f = state.failure
        lines.append(f"  Failed after {f.stage.value}: {f.error_type}({f.kind}) {f.message}")
        if state.manifest_mutated:
            lines.append("  The manifest was already modified; restore it from the backup if needed.")
        else:
            lines.append("  The manifest was not modified.")

    return "\n".join(lines)
