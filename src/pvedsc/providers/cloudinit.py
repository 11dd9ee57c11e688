"""Cloud-init drift checks for virtual machines."""

import logging
from typing import Dict, List, Optional
from urllib.parse import unquote

from pvedsc.models.config import PlatformConfig
from pvedsc.models.manifest import ManifestEntry, normalize_ssh_keys
from pvedsc.models.resource import ReconciliationAction, ResourceKind


logger = logging.getLogger(__name__)


def is_cloudinit_volume(value: Optional[str]) -> bool:
    """True when a drive definition is a cloud-init metadata volume."""
    return bool(value) and "cloudinit" in value.split(",", 1)[0]


def observed_ssh_keys(config: Dict[str, str]) -> str:
    """Proxmox stores ``sshkeys`` URL-encoded."""
    return normalize_ssh_keys(unquote(config.get("sshkeys", "")))


class CloudInitInspector:
    """Detects cloud-init device wiring and identity drift on a VM."""

    def __init__(self, platform: PlatformConfig):
        self.platform = platform

    def target_volume(self, entry: ManifestEntry) -> str:
        store = entry.storage.store if entry.storage else self.platform.cloudinit_storage
        return f"{store}:cloudinit"

    def detect(self, entry: ManifestEntry, config: Dict[str, str]) -> List[ReconciliationAction]:
        """Return cloud-init actions for an entry with cloud-init enabled."""
        if not entry.cloud_init_enabled:
            return []

        actions: List[ReconciliationAction] = []
        device = self.platform.cloudinit_device
        current = config.get(device)

        if not is_cloudinit_volume(current):
            if current:
                logger.info(f"VM {entry.id}: {device} holds a boot image ({current}), rewiring to cloud-init")
            else:
                logger.info(f"VM {entry.id}: no cloud-init device on {device}")
            volume = self.target_volume(entry)
            actions.append(ReconciliationAction(
                target_id=entry.id,
                kind=ResourceKind.VM,
                attribute="cloudinit",
                old=current,
                new=volume,
                args=[f"--{device}", volume, "--boot", f"order={self.platform.disk_device}"],
            ))

        spec = entry.cloud_init
        identity = [
            ("ciuser", "--ciuser", spec.user, config.get("ciuser")),
            ("ipconfig0", "--ipconfig0", spec.ip_config, config.get("ipconfig0")),
        ]
        for name, option, wanted, actual in identity:
            if wanted is not None and wanted != (actual or None):
                actions.append(ReconciliationAction(
                    target_id=entry.id,
                    kind=ResourceKind.VM,
                    attribute=name,
                    old=actual,
                    new=wanted,
                    args=[option, wanted],
                ))

        if spec.ssh_keys is not None:
            actual_keys = observed_ssh_keys(config)
            if actual_keys != spec.ssh_keys:
                actions.append(ReconciliationAction(
                    target_id=entry.id,
                    kind=ResourceKind.VM,
                    attribute="sshkeys",
                    old=f"{len(actual_keys.splitlines())} key(s)",
                    new=f"{len(spec.ssh_keys.splitlines())} key(s)",
                    args=["--sshkeys", spec.ssh_keys],
                ))

        return actions
