"""Power-state reconciliation."""

import logging
from enum import Enum
from typing import Optional

from pvedsc.models.manifest import ManifestEntry
from pvedsc.models.resource import PowerState
from pvedsc.providers.base import BaseProvider


logger = logging.getLogger(__name__)


class PowerTransition(Enum):
    START = "start"
    SHUTDOWN = "shutdown"


def plan_power_transition(desired: str, observed: PowerState) -> Optional[PowerTransition]:
    """Transition needed to move from the observed to the desired state."""
    observed = PowerState(observed)
    if desired == "running" and observed == PowerState.STOPPED:
        return PowerTransition.START
    if desired == "stopped" and observed == PowerState.RUNNING:
        return PowerTransition.SHUTDOWN
    return None


class PowerReconciler:
    """Aligns a resource's run state with its declared ``state``."""

    async def reconcile(self, entry: ManifestEntry, provider: BaseProvider) -> Optional[PowerTransition]:
        observed = await provider.power_state(entry.id)
        transition = plan_power_transition(entry.state, observed)
        if transition is None:
            logger.debug(f"{provider.label} {entry.id} is {observed.value} as declared")
            return None

        logger.info(f"{provider.label} {entry.id} is {observed.value}, declared {entry.state}")
        if transition == PowerTransition.START:
            await provider.start(entry.id)
        else:
            await provider.shutdown(entry.id)
        return transition
