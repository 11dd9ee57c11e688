"""Tests for resource classification."""

import pytest

from pvedsc.engine.classifier import check_kind, classify
from pvedsc.errors import TypeConflict
from pvedsc.models.config import DscConfig
from pvedsc.models.resource import Existence, ResourceKind
from pvedsc.providers import ProviderRegistry
from pvedsc.utils.commands import CommandExecutor


@pytest.fixture
async def registry(hypervisor):
    registry = ProviderRegistry()
    await registry.initialize(DscConfig(), CommandExecutor(runner=hypervisor))
    return registry


@pytest.mark.asyncio
class TestClassify:

    async def test_each_existence(self, hypervisor, registry):
        hypervisor.add_container(100)
        hypervisor.add_vm(101)

        assert await classify(100, registry) == Existence.EXISTS_CONTAINER
        assert await classify(101, registry) == Existence.EXISTS_VM
        assert await classify(102, registry) == Existence.MISSING

    async def test_id_in_both_listings(self, hypervisor, registry):
        hypervisor.add_container(100)
        original_list = hypervisor._list

        def listing(tool):
            text = original_list(tool)
            if tool == "qm":
                text += "       100 clash                running    1024       32.00        0\n"
            return text

        hypervisor._list = listing

        assert await classify(100, registry) == Existence.CONFLICT


class TestCheckKind:

    def test_matching_and_missing_pass(self):
        check_kind(100, ResourceKind.CONTAINER, Existence.EXISTS_CONTAINER)
        check_kind(100, ResourceKind.VM, Existence.MISSING)

    def test_declared_container_exists_as_vm(self):
        with pytest.raises(TypeConflict) as exc_info:
            check_kind(100, ResourceKind.CONTAINER, Existence.EXISTS_VM)
        assert str(exc_info.value) == "ID Conflict: 100 is defined as LXC but exists as VM. Skipping."

    def test_declared_vm_exists_as_container(self):
        with pytest.raises(TypeConflict) as exc_info:
            check_kind(101, ResourceKind.VM, Existence.EXISTS_CONTAINER)
        assert exc_info.value.observed == "LXC"

    def test_conflict_always_raises(self):
        with pytest.raises(TypeConflict):
            check_kind(100, ResourceKind.VM, Existence.CONFLICT)
