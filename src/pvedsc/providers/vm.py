"""VM provider for managing QEMU virtual machines through ``qm``."""

import logging
import tempfile
from typing import Dict, List, Optional

from pvedsc.errors import ProvisioningError
from pvedsc.models.config import DscConfig
from pvedsc.models.manifest import (
    CloudInitSpec,
    DEFAULT_VM_NETWORK,
    DEFAULT_VM_STORAGE,
    ManifestEntry,
    StorageSpec,
)
from pvedsc.models.resource import (
    ManagedResource,
    PowerState,
    ReconciliationAction,
    ResourceKind,
)
from pvedsc.providers.attributes import vm_attributes
from pvedsc.providers.base import BaseProvider
from pvedsc.providers.cloudinit import CloudInitInspector, is_cloudinit_volume, observed_ssh_keys
from pvedsc.utils.commands import CommandExecutor
from pvedsc.utils.parsing import format_options, normalize_network, storage_hint


logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE = "local:iso/EXISTING"


class VmProvider(BaseProvider):
    """Provider for managing QEMU virtual machines."""

    kind = ResourceKind.VM
    tool = "qm"

    def __init__(self):
        """Initialize VM provider."""
        super().__init__()
        self.cloudinit: Optional[CloudInitInspector] = None

    async def initialize(self, config: DscConfig, executor: CommandExecutor) -> None:
        await super().initialize(config, executor)
        self.attributes = vm_attributes(config.platform.disk_device)
        self.cloudinit = CloudInitInspector(config.platform)

    def detect_extra(self, entry: ManifestEntry, config: Dict[str, str]) -> List[ReconciliationAction]:
        return self.cloudinit.detect(entry, config)

    def _hardware_args(self, entry: ManifestEntry) -> List[str]:
        return [
            "--memory", str(entry.memory),
            "--cores", str(entry.cores),
            "--sockets", str(entry.sockets),
            "--cpu", entry.cpu_model,
        ]

    def _boot_flag_args(self, entry: ManifestEntry) -> List[str]:
        return ["--onboot", str(entry.on_boot), "--protection", str(entry.protection)]

    async def create(self, entry: ManifestEntry) -> None:
        """Create a blank VM booting from the declared installation image."""
        if not entry.template:
            raise ProvisioningError(f"VM {entry.id}: no template declared, cannot create")

        platform = self.config.platform
        disk = entry.storage or StorageSpec.parse(DEFAULT_VM_STORAGE)
        if disk.size is None:
            disk = StorageSpec(store=disk.store, size=StorageSpec.parse(DEFAULT_VM_STORAGE).size)

        cmd = [
            "qm", "create", str(entry.id),
            "--name", entry.hostname,
            *self._hardware_args(entry),
            "--net0", entry.network or DEFAULT_VM_NETWORK,
            "--scsihw", platform.scsi_controller,
            f"--{platform.disk_device}", f"{disk.store}:{disk.size_gb}",
            "--cdrom", entry.template,
            "--boot", f"order={platform.disk_device};ide2;net0",
            *self._boot_flag_args(entry),
        ]
        await self.executor.mutate(cmd, timeout=self.config.commands.provision_timeout)

    async def clone(self, entry: ManifestEntry) -> None:
        """Full-clone the source VM, then apply settings clone cannot take."""
        source = entry.clone_source
        if source is None:
            raise ProvisioningError(f"VM {entry.id}: template {entry.template!r} is not a clone source id")

        cmd = ["qm", "clone", str(source), str(entry.id), "--name", entry.hostname, "--full", "1"]
        if entry.storage:
            cmd += ["--storage", entry.storage.store]
        await self.executor.mutate(cmd, timeout=self.config.commands.provision_timeout)

        args = self._hardware_args(entry)
        if entry.network:
            args += ["--net0", entry.network]
        args += self._boot_flag_args(entry)
        await self.set_options(entry.id, args)

    async def apply(self, action: ReconciliationAction) -> None:
        """``qm set --sshkeys`` only accepts a file, so keys go through a temp file."""
        if action.attribute != "sshkeys":
            await super().apply(action)
            return

        with tempfile.NamedTemporaryFile("w", prefix="pvedsc-", suffix=".pub") as keyfile:
            keyfile.write(action.args[1] + "\n")
            keyfile.flush()
            await self.executor.mutate(["qm", "set", str(action.target_id), "--sshkeys", keyfile.name])

    def suggest_entry(self, resource: ManagedResource) -> ManifestEntry:
        """Reconstruct a manifest entry for a VM found on the host."""
        config = resource.config
        attrs = resource.attributes
        platform = self.config.platform
        network = format_options(normalize_network(config.get("net0"))) or DEFAULT_VM_NETWORK

        cloud_init = None
        if is_cloudinit_volume(config.get(platform.cloudinit_device)):
            cloud_init = CloudInitSpec(
                enabled=True,
                user=config.get("ciuser"),
                ssh_keys=observed_ssh_keys(config) or None,
                ip_config=config.get("ipconfig0"),
            )

        return ManifestEntry(
            type="vm",
            id=resource.id,
            hostname=attrs.get("hostname"),
            template=PLACEHOLDER_IMAGE,
            memory=attrs.get("memory"),
            cores=attrs.get("cores"),
            sockets=attrs.get("sockets"),
            cpu_model=attrs.get("cpu_model"),
            network=network,
            storage=storage_hint(config.get(platform.disk_device)) or DEFAULT_VM_STORAGE,
            on_boot=attrs.get("on_boot"),
            protection=attrs.get("protection"),
            cloud_init=cloud_init,
            state="stopped" if resource.power_state == PowerState.STOPPED else "running",
        )
