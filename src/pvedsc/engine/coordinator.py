"""Run coordination: lock, parse, dispatch, audit."""

import logging
from datetime import datetime
from typing import Optional

from pvedsc.agent.config import ConfigManager
from pvedsc.engine.auditor import ForeignWorkloadAuditor
from pvedsc.engine.classifier import check_kind, classify
from pvedsc.engine.coldapply import ColdApplyOrchestrator
from pvedsc.engine.context import RunContext, RunState
from pvedsc.engine.drift import DriftDetector
from pvedsc.engine.power import PowerReconciler
from pvedsc.engine.provisioner import CreationProvisioner
from pvedsc.errors import (
    DscError,
    LockContention,
    ManifestError,
    ProvisioningError,
    TypeConflict,
)
from pvedsc.models.manifest import ManifestEntry
from pvedsc.models.resource import Existence, ResourceKind
from pvedsc.providers import ProviderRegistry
from pvedsc.utils.commands import CommandExecutor, Runner
from pvedsc.utils.lock import ExecutionLock


logger = logging.getLogger(__name__)


class RunCoordinator:
    """Drives one reconciliation run under the host-wide execution lock.

    Entries are processed strictly in manifest order. A failure on one entry
    is logged and never stops the others; only lock contention and an
    unusable manifest end the run early.
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        dry_run: bool = False,
        runner: Optional[Runner] = None,
    ):
        self.config_manager = config_manager
        config = config_manager.config
        self.dry_run = dry_run
        self.executor = CommandExecutor(
            dry_run=dry_run,
            timeout=config.commands.timeout,
            runner=runner,
        )
        self.registry = ProviderRegistry()
        self.lock = ExecutionLock(
            config.lock.path,
            wait_timeout=config.lock.wait_timeout,
            poll_interval=config.lock.poll_interval,
        )
        self.detector = DriftDetector()
        self.orchestrator = ColdApplyOrchestrator(dry_run=dry_run)
        self.power = PowerReconciler()
        self.provisioner = CreationProvisioner()
        self.auditor = ForeignWorkloadAuditor(config.manifest)

    async def run(self) -> RunContext:
        ctx = RunContext(dry_run=self.dry_run)
        start_time = datetime.now()
        mode = "dry-run" if self.dry_run else "live"
        logger.info(f"Starting reconciliation ({mode})")

        try:
            await self.lock.acquire()
        except LockContention as e:
            logger.error(f"{e}; another reconciliation is still running")
            ctx.state = RunState.LOCK_FAILED
            return ctx

        try:
            ctx.state = RunState.LOCKED
            await self.registry.initialize(self.config_manager.config, self.executor)

            ctx.state = RunState.PARSING
            try:
                manifest = self.config_manager.load_manifest()
            except ManifestError as e:
                logger.error(str(e))
                ctx.state = RunState.MANIFEST_INVALID
                return ctx

            ctx.declared_ids = manifest.declared_ids
            for rejected in manifest.rejected:
                ctx.record_error(f"entry #{rejected.index}: {rejected.reason}")

            ctx.state = RunState.DISPATCHING
            for entry in manifest.entries:
                await self._dispatch(ctx, entry)

            ctx.state = RunState.AUDITING
            try:
                ctx.findings = await self.auditor.audit(ctx, self.registry)
            except DscError as e:
                logger.error(f"Foreign workload audit failed: {e}")
                ctx.record_error(str(e))

            ctx.state = RunState.DONE
        finally:
            self.lock.release()

        duration = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Reconciliation completed in {duration:.2f}s: "
            f"{len(ctx.declared_ids)} declared, {len(ctx.actions)} drift actions, "
            f"{len(ctx.findings)} foreign, {len(ctx.errors)} failed"
        )
        return ctx

    async def _dispatch(self, ctx: RunContext, entry: ManifestEntry) -> None:
        kind = ResourceKind(entry.type)
        provider = self.registry.for_kind(kind)
        name = f"{provider.label} {entry.id}"

        try:
            existence = await classify(entry.id, self.registry)
            check_kind(entry.id, kind, existence)

            if existence == Existence.MISSING:
                try:
                    await self.provisioner.provision(entry, provider)
                except DscError:
                    ctx.unprovisioned_ids.add(entry.id)
                    raise
                if ctx.dry_run:
                    ctx.unprovisioned_ids.add(entry.id)
                    return

            actions = await self.detector.detect(entry, provider)
            ctx.actions.extend(actions)
            for action in actions:
                if entry.id in ctx.power_failed_ids:
                    logger.warning(
                        f"Skipping {action.describe()} on {name}: a power transition already failed this run"
                    )
                    continue
                result = await self.orchestrator.apply(action, provider)
                if result.power_failed:
                    ctx.power_failed_ids.add(entry.id)

            if entry.id in ctx.power_failed_ids:
                logger.warning(f"Skipping power reconciliation of {name} until the next run")
                return
            await self.power.reconcile(entry, provider)
        except (TypeConflict, ProvisioningError) as e:
            logger.error(str(e))
            ctx.record_error(str(e))
        except DscError as e:
            logger.error(f"{name}: {e}")
            ctx.record_error(f"{name}: {e}")
        except Exception as e:
            logger.error(f"Unexpected failure reconciling {name}: {e}", exc_info=True)
            ctx.record_error(f"{name}: {e}")
