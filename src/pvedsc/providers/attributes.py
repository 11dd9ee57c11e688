"""Drift attribute tables for each resource kind.

Each :class:`Attribute` row says where a setting lives in ``pct config`` /
``qm config`` output, how to read it, how to compare it with the manifest and
which command option changes it. Adding a managed setting is one row.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from pvedsc.models.manifest import (
    DEFAULT_CONTAINER_MEMORY,
    DEFAULT_CORES,
    DEFAULT_CPU_MODEL,
    DEFAULT_SOCKETS,
    DEFAULT_SWAP,
    DEFAULT_VM_MEMORY,
    ManifestEntry,
)
from pvedsc.utils.parsing import disk_size_gb, normalize_network


def differs(declared: Any, observed: Any) -> bool:
    """Exact comparison of the rendered values."""
    return str(declared) != str(observed)


def network_differs(declared: Any, observed: Any) -> bool:
    """Declared network options must all be present with the same value.

    Options only present on the host (generated MACs, ``type=veth``) are
    ignored.
    """
    wanted = normalize_network(declared)
    actual = normalize_network(observed)
    return any(key not in actual or actual[key] != value for key, value in wanted.items())


def grows(declared: Any, observed: Any) -> bool:
    """Disk sizes only ever grow."""
    if declared is None or observed is None:
        return False
    return float(declared) > float(observed)


@dataclass(frozen=True)
class Attribute:
    """One managed setting of a resource kind."""
    name: str
    key: str
    option: str
    declared: Callable[[ManifestEntry], Any]
    default: Any = None
    parse: Callable[[str], Any] = str
    compare: Callable[[Any, Any], bool] = differs
    verb: str = "set"
    cold: bool = True
    build_args: Optional[Callable[[Any], List[str]]] = None

    def observe(self, config: Dict[str, str]) -> Any:
        """Read the normalized current value, falling back to the default."""
        raw = config.get(self.key)
        if raw is None or raw == "":
            return self.default
        try:
            value = self.parse(raw)
        except ValueError:
            return self.default
        return self.default if value is None else value

    def drifted(self, declared: Any, observed: Any) -> bool:
        return self.compare(declared, observed)

    def args(self, value: Any) -> List[str]:
        if self.build_args:
            return self.build_args(value)
        return [self.option, str(value)]


def _size_arg(device: str) -> Callable[[Any], List[str]]:
    def build(value: Any) -> List[str]:
        size = int(value) if float(value) == int(value) else value
        return [device, f"{size}G"]
    return build


def container_attributes() -> List[Attribute]:
    """Managed settings of an LXC container."""
    return [
        Attribute("hostname", "hostname", "--hostname", lambda e: e.hostname),
        Attribute("memory", "memory", "--memory", lambda e: e.memory,
                  default=DEFAULT_CONTAINER_MEMORY, parse=int),
        Attribute("cores", "cores", "--cores", lambda e: e.cores,
                  default=DEFAULT_CORES, parse=int),
        Attribute("swap", "swap", "--swap", lambda e: e.swap,
                  default=DEFAULT_SWAP, parse=int),
        Attribute("network", "net0", "--net0", lambda e: e.network,
                  compare=network_differs),
        Attribute("on_boot", "onboot", "--onboot", lambda e: e.on_boot,
                  default=0, parse=int),
        Attribute("protection", "protection", "--protection", lambda e: e.protection,
                  default=0, parse=int),
    ]


def vm_attributes(disk_device: str = "scsi0") -> List[Attribute]:
    """Managed settings of a QEMU virtual machine."""
    return [
        Attribute("hostname", "name", "--name", lambda e: e.hostname),
        Attribute("memory", "memory", "--memory", lambda e: e.memory,
                  default=DEFAULT_VM_MEMORY, parse=int),
        Attribute("cores", "cores", "--cores", lambda e: e.cores,
                  default=DEFAULT_CORES, parse=int),
        Attribute("sockets", "sockets", "--sockets", lambda e: e.sockets,
                  default=DEFAULT_SOCKETS, parse=int),
        Attribute("cpu_model", "cpu", "--cpu", lambda e: e.cpu_model,
                  default=DEFAULT_CPU_MODEL),
        Attribute("network", "net0", "--net0", lambda e: e.network,
                  compare=network_differs),
        Attribute("on_boot", "onboot", "--onboot", lambda e: e.on_boot,
                  default=0, parse=int),
        Attribute("protection", "protection", "--protection", lambda e: e.protection,
                  default=0, parse=int),
        Attribute("disk", disk_device, disk_device,
                  lambda e: e.storage.size if e.storage else None,
                  parse=disk_size_gb, compare=grows, verb="resize",
                  build_args=_size_arg(disk_device)),
    ]
