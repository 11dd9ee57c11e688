"""Container provider for managing LXC containers through ``pct``."""

import logging

from pvedsc.errors import ProvisioningError
from pvedsc.models.manifest import (
    DEFAULT_CONTAINER_NETWORK,
    DEFAULT_CONTAINER_STORAGE,
    ManifestEntry,
    StorageSpec,
)
from pvedsc.models.resource import ManagedResource, PowerState, ResourceKind
from pvedsc.providers.attributes import container_attributes
from pvedsc.providers.base import BaseProvider
from pvedsc.utils.parsing import format_options, normalize_network, storage_hint


logger = logging.getLogger(__name__)

PLACEHOLDER_TEMPLATE = "local:vztmpl/EXISTING"


class ContainerProvider(BaseProvider):
    """Provider for managing LXC containers."""

    kind = ResourceKind.CONTAINER
    tool = "pct"

    def __init__(self):
        """Initialize container provider."""
        super().__init__()
        self.attributes = container_attributes()

    async def create(self, entry: ManifestEntry) -> None:
        """Create the container with every declared attribute in one call."""
        if not entry.template:
            raise ProvisioningError(f"LXC {entry.id}: no template declared, cannot create")

        rootfs = entry.storage or StorageSpec.parse(DEFAULT_CONTAINER_STORAGE)
        if rootfs.size is None:
            rootfs = StorageSpec(store=rootfs.store, size=StorageSpec.parse(DEFAULT_CONTAINER_STORAGE).size)

        cmd = [
            "pct", "create", str(entry.id), entry.template,
            "--hostname", entry.hostname,
            "--memory", str(entry.memory),
            "--cores", str(entry.cores),
            "--swap", str(entry.swap),
            "--net0", entry.network or DEFAULT_CONTAINER_NETWORK,
            "--rootfs", str(rootfs),
            "--onboot", str(entry.on_boot),
            "--protection", str(entry.protection),
        ]
        features = self.config.platform.container_features
        if features:
            cmd += ["--features", features]

        await self.executor.mutate(cmd, timeout=self.config.commands.provision_timeout)

    def suggest_entry(self, resource: ManagedResource) -> ManifestEntry:
        """Reconstruct a manifest entry for a container found on the host."""
        config = resource.config
        attrs = resource.attributes
        network = format_options(normalize_network(config.get("net0"))) or DEFAULT_CONTAINER_NETWORK
        return ManifestEntry(
            type="container",
            id=resource.id,
            hostname=attrs.get("hostname"),
            template=PLACEHOLDER_TEMPLATE,
            memory=attrs.get("memory"),
            cores=attrs.get("cores"),
            swap=attrs.get("swap"),
            network=network,
            storage=storage_hint(config.get("rootfs")) or DEFAULT_CONTAINER_STORAGE,
            on_boot=attrs.get("on_boot"),
            protection=attrs.get("protection"),
            state="stopped" if resource.power_state == PowerState.STOPPED else "running",
        )
