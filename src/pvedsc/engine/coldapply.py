"""Stop, apply, start sequencing for configuration changes."""

import logging
from enum import Enum

from pvedsc.errors import DscError
from pvedsc.models.resource import PowerState, ReconciliationAction
from pvedsc.providers.base import BaseProvider


logger = logging.getLogger(__name__)


class ApplyResult(Enum):
    """Outcome of one cold-apply cycle."""
    APPLIED = "applied"
    FAILED = "failed"
    STOP_FAILED = "stop_failed"
    START_FAILED = "start_failed"

    @property
    def power_failed(self) -> bool:
        return self in (ApplyResult.STOP_FAILED, ApplyResult.START_FAILED)


class ColdApplyOrchestrator:
    """Applies one reconciliation action to a stopped resource.

    The resource is always started again afterwards, whether or not the
    change went through.
    """

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    async def apply(self, action: ReconciliationAction, provider: BaseProvider) -> ApplyResult:
        vmid = action.target_id
        name = f"{provider.label} {vmid}"

        if action.cold and not await self._stop(provider, vmid):
            logger.warning(f"{name} is still running, skipping change: {action.describe()}")
            return ApplyResult.STOP_FAILED

        result = ApplyResult.APPLIED
        try:
            await provider.apply(action)
        except DscError as e:
            logger.error(f"Failed to apply {action.attribute} on {name}: {e}")
            result = ApplyResult.FAILED

        if action.cold:
            try:
                await provider.start(vmid)
            except DscError as e:
                logger.warning(f"Could not start {name} after applying {action.attribute}: {e}")
                # Left stopped; the next run's power reconciliation retries the start.
                result = ApplyResult.START_FAILED

        if result == ApplyResult.APPLIED and not self.dry_run:
            logger.info(f"Applied {action.attribute} on {name}")
        return result

    async def _observe(self, provider: BaseProvider, vmid: int) -> PowerState:
        try:
            return await provider.power_state(vmid)
        except DscError as e:
            logger.warning(f"Could not read power state of {provider.label} {vmid}: {e}")
            return PowerState.UNKNOWN

    async def _stop(self, provider: BaseProvider, vmid: int) -> bool:
        """Bring the resource down; ``False`` if it stays running."""
        if await self._observe(provider, vmid) == PowerState.STOPPED:
            return True

        if self.dry_run:
            await provider.shutdown(vmid)
            return True

        graceful_failed = False
        try:
            await provider.shutdown(vmid)
        except DscError as e:
            logger.warning(f"Graceful shutdown of {provider.label} {vmid} failed: {e}")
            graceful_failed = True

        state = await self._observe(provider, vmid)
        if graceful_failed or state != PowerState.STOPPED:
            try:
                await provider.stop(vmid)
            except DscError as e:
                logger.warning(f"Forced stop of {provider.label} {vmid} failed: {e}")
            state = await self._observe(provider, vmid)

        return state == PowerState.STOPPED
