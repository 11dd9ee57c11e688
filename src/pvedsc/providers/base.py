"""Base provider interface."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Set

from pvedsc.errors import ProvisioningError
from pvedsc.models.config import DscConfig
from pvedsc.models.manifest import ManifestEntry
from pvedsc.models.resource import (
    ManagedResource,
    PowerState,
    ReconciliationAction,
    ResourceKind,
)
from pvedsc.providers.attributes import Attribute
from pvedsc.utils.commands import CommandExecutor
from pvedsc.utils.parsing import parse_config, parse_listing, parse_status


logger = logging.getLogger(__name__)


class BaseProvider(ABC):
    """Lifecycle capabilities of one resource kind.

    Concrete providers wrap a platform CLI (``pct`` or ``qm``) whose
    sub-commands share the same shape: ``list``, ``status``, ``config``,
    ``create``, ``set``, ``start``, ``shutdown`` and ``stop``.
    """

    kind: ResourceKind
    tool: str

    def __init__(self):
        self.config: Optional[DscConfig] = None
        self.executor: Optional[CommandExecutor] = None
        self.attributes: List[Attribute] = []

    async def initialize(self, config: DscConfig, executor: CommandExecutor) -> None:
        """Initialize the provider with configuration and the command executor."""
        self.config = config
        self.executor = executor

    @property
    def label(self) -> str:
        return "LXC" if self.kind == ResourceKind.CONTAINER else "VM"

    async def list_ids(self) -> Set[int]:
        """All ids of this kind present on the host."""
        result = await self.executor.query([self.tool, "list"])
        return parse_listing(result.stdout)

    async def power_state(self, vmid: int) -> PowerState:
        """Observed run state of a resource."""
        result = await self.executor.query([self.tool, "status", str(vmid)])
        return PowerState.parse(parse_status(result.stdout))

    async def read_config(self, vmid: int) -> Dict[str, str]:
        """Current configuration as a ``key -> value`` map."""
        result = await self.executor.query([self.tool, "config", str(vmid)])
        return parse_config(result.stdout)

    def observe(self, config: Dict[str, str]) -> Dict[str, Any]:
        """Normalized values of every managed attribute."""
        return {attr.name: attr.observe(config) for attr in self.attributes}

    async def snapshot(self, vmid: int) -> ManagedResource:
        """Build a point-in-time view of a resource."""
        config = await self.read_config(vmid)
        return ManagedResource(
            id=vmid,
            kind=self.kind,
            attributes=self.observe(config),
            config=config,
            power_state=await self.power_state(vmid),
        )

    def detect_extra(self, entry: ManifestEntry, config: Dict[str, str]) -> List[ReconciliationAction]:
        """Kind specific drift checks beyond the attribute table."""
        return []

    @abstractmethod
    async def create(self, entry: ManifestEntry) -> None:
        """Create a resource from its manifest entry."""
        pass

    async def clone(self, entry: ManifestEntry) -> None:
        """Full-clone an existing resource into ``entry.id``."""
        raise ProvisioningError(f"{self.label} {entry.id}: cloning is not supported for this kind")

    @abstractmethod
    def suggest_entry(self, resource: ManagedResource) -> ManifestEntry:
        """Reconstruct a manifest entry from an observed resource."""
        pass

    async def set_options(self, vmid: int, args: List[str]) -> None:
        await self.executor.mutate([self.tool, "set", str(vmid), *args])

    async def apply(self, action: ReconciliationAction) -> None:
        """Run the command that applies one reconciliation action."""
        await self.executor.mutate([self.tool, action.verb, str(action.target_id), *action.args])

    async def start(self, vmid: int) -> None:
        await self.executor.mutate([self.tool, "start", str(vmid)])

    async def shutdown(self, vmid: int) -> None:
        """Graceful stop bounded by ``commands.shutdown_timeout``."""
        wait = self.config.commands.shutdown_timeout
        await self.executor.mutate(
            [self.tool, "shutdown", str(vmid), "--timeout", str(wait)],
            timeout=max(self.executor.timeout, wait + 5),
        )

    async def stop(self, vmid: int) -> None:
        """Forced stop."""
        await self.executor.mutate([self.tool, "stop", str(vmid)])
