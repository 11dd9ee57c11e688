"""Runtime views of host resources and reconciliation steps."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from pvedsc.models.manifest import ManifestEntry


class ResourceKind(str, Enum):
    """Kind of workload managed on the host."""
    CONTAINER = "container"
    VM = "vm"


class Existence(Enum):
    """Result of classifying an id against the host listings."""
    EXISTS_CONTAINER = "exists_container"
    EXISTS_VM = "exists_vm"
    MISSING = "missing"
    CONFLICT = "conflict"

    @classmethod
    def for_kind(cls, kind: ResourceKind) -> "Existence":
        return cls.EXISTS_CONTAINER if kind == ResourceKind.CONTAINER else cls.EXISTS_VM


class PowerState(str, Enum):
    """Observed run state."""
    RUNNING = "running"
    STOPPED = "stopped"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "PowerState":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.UNKNOWN


class ManagedResource(BaseModel):
    """Point-in-time view of a resource on the host."""
    id: int
    kind: ResourceKind
    attributes: Dict[str, Any] = Field(default_factory=dict)
    config: Dict[str, str] = Field(default_factory=dict)
    power_state: PowerState = PowerState.UNKNOWN


class ReconciliationAction(BaseModel):
    """One corrective step produced by drift detection."""
    target_id: int
    kind: ResourceKind
    attribute: str
    old: Optional[Any] = None
    new: Optional[Any] = None
    cold: bool = True
    verb: str = "set"
    args: List[str] = Field(default_factory=list)

    def describe(self) -> str:
        return f"{self.attribute} {self.old} -> {self.new}"


class AuditFinding(BaseModel):
    """A host resource absent from the manifest."""
    id: int
    kind: ResourceKind
    resource: ManagedResource
    suggestion: ManifestEntry
