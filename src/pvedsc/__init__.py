"""
pvedsc - Desired-state reconciliation for Proxmox VE.

Converges LXC containers and QEMU virtual machines on a single host to a
declarative JSON manifest, and reports workloads the manifest does not know.
"""

__version__ = "1.0.0"

# Re-export key components for easier access
from pvedsc.models.config import DscConfig
from pvedsc.models.manifest import Manifest, ManifestEntry

__all__ = [
    "DscConfig",
    "Manifest",
    "ManifestEntry",
]
