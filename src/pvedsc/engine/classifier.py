"""Resource classification against the host listings."""

import logging

from pvedsc.errors import TypeConflict
from pvedsc.models.resource import Existence, ResourceKind
from pvedsc.providers.registry import ProviderRegistry


logger = logging.getLogger(__name__)


async def classify(vmid: int, registry: ProviderRegistry) -> Existence:
    """Look an id up in the container and VM listings independently."""
    in_containers = vmid in await registry.for_kind(ResourceKind.CONTAINER).list_ids()
    in_vms = vmid in await registry.for_kind(ResourceKind.VM).list_ids()

    if in_containers and in_vms:
        existence = Existence.CONFLICT
    elif in_containers:
        existence = Existence.EXISTS_CONTAINER
    elif in_vms:
        existence = Existence.EXISTS_VM
    else:
        existence = Existence.MISSING
    logger.debug(f"Classified {vmid} as {existence.value}")
    return existence


def check_kind(vmid: int, declared: ResourceKind, existence: Existence) -> None:
    """Raise :class:`TypeConflict` unless the id is missing or of the declared kind."""
    if existence in (Existence.MISSING, Existence.for_kind(declared)):
        return
    if existence == Existence.CONFLICT:
        observed = "both LXC and VM"
    elif existence == Existence.EXISTS_VM:
        observed = "VM"
    else:
        observed = "LXC"
    declared_label = "LXC" if declared == ResourceKind.CONTAINER else "VM"
    raise TypeConflict(vmid, declared_label, observed)
