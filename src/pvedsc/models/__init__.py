"""Pydantic models for configuration, manifest and host state."""

from pvedsc.models.config import (
    DscConfig,
    LockConfig,
    CommandConfig,
    LoggingConfig,
    AgentConfig,
    PlatformConfig,
)
from pvedsc.models.manifest import CloudInitSpec, Manifest, ManifestEntry, RejectedEntry, StorageSpec
from pvedsc.models.resource import (
    AuditFinding,
    Existence,
    ManagedResource,
    PowerState,
    ReconciliationAction,
    ResourceKind,
)

__all__ = [
    "DscConfig",
    "LockConfig",
    "CommandConfig",
    "LoggingConfig",
    "AgentConfig",
    "PlatformConfig",
    "CloudInitSpec",
    "Manifest",
    "ManifestEntry",
    "RejectedEntry",
    "StorageSpec",
    "AuditFinding",
    "Existence",
    "ManagedResource",
    "PowerState",
    "ReconciliationAction",
    "ResourceKind",
]
