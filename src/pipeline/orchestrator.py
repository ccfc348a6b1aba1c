# src/pipeline/orchestrator.py - v3
"""Upgrade orchestrator: sequence every step of one in-place upgrade run.

Validate -> back up -> reset -> set engine constraint -> partition
-> install managed (fatal) -> install carried over (warn) -> verify.

Each step runs only after the previous one succeeded. Any exception
ends the run in FAILED; carry-over failures and audit findings do not.
"""

from __future__ import annotations

import logging

from ngupgrade.config.settings import Settings
from ngupgrade.config.targets import UpgradeTarget
from ngupgrade.core.errors import UpgradeError
from ngupgrade.install.partitioner import partition
from ngupgrade.install.resetter import CleanSlateResetter
from ngupgrade.install.sequencer import InstallSequencer
from ngupgrade.install.verifier import PostInstallVerifier
from ngupgrade.logging.context import clear_context, set_run_context, set_stage_context
from ngupgrade.manifest.backup import BackupManager
from ngupgrade.manifest.store import ManifestStore
from ngupgrade.pipeline.state import RunStage, UpgradeState
from ngupgrade.toolchain.retry import RetryConfig
from ngupgrade.toolchain.runner import CommandRunner
from ngupgrade.toolchain.validator import ToolchainValidator

logger = logging.getLogger(__name__)


class UpgradeOrchestrator:
    """Run one upgrade of the project in ``settings.project_dir`` to ``target``.

    Args:
        settings: Runtime settings.
        target: Upgrade target (managed lists, runtime major, audit level).
        runner: Subprocess runner; built from settings when omitted.
        backup_manager: Backup manager; default uses the local clock.
    """

    def __init__(
        self,
        settings: Settings,
        target: UpgradeTarget,
        runner: CommandRunner | None = None,
        backup_manager: BackupManager | None = None,
    ) -> None:
        self._settings = settings
        self._target = target
        self._runner = runner or CommandRunner(default_timeout_s=settings.command_timeout_s)
        self._backup = backup_manager or BackupManager()
        self._store = ManifestStore(settings.manifest_path)

        pm = settings.package_manager_executable
        self._validator = ToolchainValidator(settings, target, self._runner)
        self._resetter = CleanSlateResetter(
            settings.install_dir, settings.lockfile_path, self._runner, pm
        )
        self._sequencer = InstallSequencer(
            self._runner,
            settings.project_dir,
            package_manager=pm,
            peer_flag=target.peer_flag,
            retry=RetryConfig(
                max_retries=settings.install_max_retries,
                base_delay_s=settings.install_retry_base_delay_s,
                backoff_factor=settings.install_retry_backoff_factor,
            ),
        )
        self._verifier = PostInstallVerifier(
            settings.install_dir, self._runner, pm, target.audit_level
        )

    async def run(self) -> UpgradeState:
        """Execute the whole run. Fatal errors are recorded in the returned state."""
        state = UpgradeState(target=self._target.name)
        set_run_context(state.run_id)
        logger.info(
            "Upgrading %s to %s", self._settings.project_dir.resolve(), self._target.name
        )
        try:
            await self._execute(state)
        except UpgradeError as e:
            logger.error("Upgrade failed after %s: %s", state.stage.value, e)
            state.fail(e)
        except Exception as e:
            logger.exception("Unexpected failure after %s", state.stage.value)
            state.fail(e)
        finally:
            clear_context()
        return state

    async def _execute(self, state: UpgradeState) -> None:
        settings, target = self._settings, self._target

        self._enter(RunStage.VALIDATED)
        state.validation = await self._validator.validate()
        state.advance(RunStage.VALIDATED)

        self._enter(RunStage.BACKED_UP)
        state.backup = self._backup.backup(settings.manifest_path, skip=settings.skip_backup)
        state.advance(RunStage.BACKED_UP)

        self._enter(RunStage.RESET)
        await self._resetter.reset()
        state.advance(RunStage.RESET)

        self._enter(RunStage.MANIFEST_MUTATED)
        self._store.set_field(target.engine_field, target.engine_constraint)
        state.advance(RunStage.MANIFEST_MUTATED)

        # Partitions come from the mutated manifest, before any install rewrites it.
        state.runtime_partition = partition(
            self._store.get_dependency_map("dependencies"),
            target.managed_dependencies,
            kind="dependencies",
        )
        state.dev_partition = partition(
            self._store.get_dependency_map("devDependencies"),
            target.managed_dev_dependencies,
            kind="devDependencies",
        )

        self._enter(RunStage.MANAGED_INSTALLED)
        state.managed = await self._sequencer.install_managed(
            target.managed_dependencies, target.managed_dev_dependencies
        )
        state.advance(RunStage.MANAGED_INSTALLED)

        self._enter(RunStage.OTHER_INSTALLED)
        state.carried_over = await self._sequencer.install_other(
            state.runtime_partition.other,
            state.dev_partition.other,
            auxiliary=target.auxiliary_package,
        )
        state.advance(RunStage.OTHER_INSTALLED)

        self._enter(RunStage.VERIFIED)
        state.verification = await self._verifier.verify()
        state.advance(RunStage.VERIFIED)

        state.advance(RunStage.DONE)
        logger.info(
            "Upgrade to %s complete with %d warning(s)", target.name, len(state.warnings)
        )

    @staticmethod
    def _enter(stage: RunStage) -> None:
        set_stage_context(stage.value)
        logger.debug("Entering %s", stage.value)
