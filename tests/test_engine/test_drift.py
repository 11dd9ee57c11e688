"""Tests for drift detection."""

import pytest
from unittest.mock import AsyncMock

from pvedsc.engine.drift import DriftDetector, detect_drift
from pvedsc.models.config import DscConfig
from pvedsc.models.manifest import ManifestEntry
from pvedsc.providers.container import ContainerProvider
from pvedsc.providers.vm import VmProvider
from pvedsc.utils.commands import CommandExecutor


@pytest.fixture
async def vm_provider():
    provider = VmProvider()
    await provider.initialize(DscConfig(), CommandExecutor(dry_run=True))
    return provider


@pytest.fixture
def container_provider():
    return ContainerProvider()


CONTAINER_CONFIG = {
    "hostname": "web",
    "memory": "512",
    "cores": "2",
    "swap": "512",
    "net0": "name=eth0,bridge=vmbr0,hwaddr=BC:24:11:AA:BB:CC,ip=dhcp,type=veth",
    "onboot": "1",
}


class TestContainerDrift:

    def test_no_drift(self, container_provider):
        entry = ManifestEntry(type="container", id=100, hostname="web", cores=2, on_boot=1,
                              network="name=eth0,bridge=vmbr0,ip=dhcp")
        assert detect_drift(entry, container_provider, CONTAINER_CONFIG) == []

    def test_memory_and_hostname_drift(self, container_provider):
        entry = ManifestEntry(type="container", id=100, hostname="api", memory=1024, cores=2, on_boot=1)

        actions = detect_drift(entry, container_provider, CONTAINER_CONFIG)

        assert [a.attribute for a in actions] == ["hostname", "memory"]
        assert actions[0].args == ["--hostname", "api"]
        assert actions[1].old == 512
        assert actions[1].new == 1024
        assert actions[1].args == ["--memory", "1024"]

    def test_missing_value_uses_default(self, container_provider):
        entry = ManifestEntry(type="container", id=100, hostname="web", cores=2, on_boot=1, protection=1)

        actions = detect_drift(entry, container_provider, CONTAINER_CONFIG)

        assert [a.attribute for a in actions] == ["protection"]
        assert actions[0].old == 0

    def test_network_option_change(self, container_provider):
        entry = ManifestEntry(type="container", id=100, hostname="web", cores=2, on_boot=1,
                              network="name=eth0,bridge=vmbr1,ip=dhcp")

        actions = detect_drift(entry, container_provider, CONTAINER_CONFIG)

        assert [a.attribute for a in actions] == ["network"]
        assert actions[0].args == ["--net0", "name=eth0,bridge=vmbr1,ip=dhcp"]


VM_CONFIG = {
    "name": "db",
    "memory": "2048",
    "cores": "2",
    "sockets": "1",
    "cpu": "host",
    "net0": "virtio=BC:24:11:00:00:01,bridge=vmbr0",
    "scsi0": "local-lvm:vm-101-disk-0,size=32G",
}


@pytest.mark.asyncio
class TestVmDrift:

    async def test_disk_grow_only(self, vm_provider):
        grow = ManifestEntry(type="vm", id=101, hostname="db", memory=2048, cores=2,
                             cpu_model="host", storage="local-lvm:40")
        shrink = grow.model_copy(update={"storage": grow.storage.model_copy(update={"size": 16})})

        grow_actions = detect_drift(grow, vm_provider, VM_CONFIG)
        assert [a.attribute for a in grow_actions] == ["disk"]
        assert grow_actions[0].verb == "resize"
        assert grow_actions[0].args == ["scsi0", "40G"]

        assert detect_drift(shrink, vm_provider, VM_CONFIG) == []

    async def test_disk_size_units(self, vm_provider):
        config = dict(VM_CONFIG, scsi0="local-lvm:vm-101-disk-0,size=1T")
        entry = ManifestEntry(type="vm", id=101, hostname="db", memory=2048, cores=2,
                              cpu_model="host", storage="local-lvm:500")
        assert detect_drift(entry, vm_provider, config) == []

    async def test_missing_disk_is_not_drift(self, vm_provider):
        config = {k: v for k, v in VM_CONFIG.items() if k != "scsi0"}
        entry = ManifestEntry(type="vm", id=101, hostname="db", memory=2048, cores=2,
                              cpu_model="host", storage="local-lvm:40")
        assert detect_drift(entry, vm_provider, config) == []

    async def test_cpu_model_default(self, vm_provider):
        config = {k: v for k, v in VM_CONFIG.items() if k != "cpu"}
        entry = ManifestEntry(type="vm", id=101, hostname="db", memory=2048, cores=2)
        assert detect_drift(entry, vm_provider, config) == []

    async def test_cloud_init_actions_are_appended(self, vm_provider):
        config = dict(VM_CONFIG, ide2="local:iso/debian.iso,media=cdrom")
        entry = ManifestEntry(type="vm", id=101, hostname="db", memory=2048, cores=2,
                              cpu_model="host", cloud_init={"enabled": True, "user": "ops"})

        actions = detect_drift(entry, vm_provider, config)

        assert [a.attribute for a in actions] == ["cloudinit", "ciuser"]

    async def test_detector_reads_live_config(self, vm_provider):
        vm_provider.read_config = AsyncMock(return_value=VM_CONFIG)
        entry = ManifestEntry(type="vm", id=101, hostname="db", memory=4096, cores=2, cpu_model="host")

        actions = await DriftDetector().detect(entry, vm_provider)

        vm_provider.read_config.assert_awaited_once_with(101)
        assert [a.attribute for a in actions] == ["memory"]
