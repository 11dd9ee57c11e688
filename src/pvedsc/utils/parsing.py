"""Parsers for loosely structured pct/qm output."""

import re
from typing import Dict, Optional, Set


MAC_RE = re.compile(r"^[0-9A-Fa-f]{2}(:[0-9A-Fa-f]{2}){5}$")
SIZE_RE = re.compile(r"^(\d+(?:\.\d+)?)([KMGT]?)$", re.IGNORECASE)

_SIZE_FACTORS_GB = {
    "": 1.0 / (1024 ** 3),
    "K": 1.0 / (1024 ** 2),
    "M": 1.0 / 1024,
    "G": 1.0,
    "T": 1024.0,
}


def parse_config(text: str) -> Dict[str, str]:
    """Parse ``key: value`` lines of ``pct config`` / ``qm config`` output.

    Parsing stops at the first snapshot section header.
    """
    config: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("["):
            break
        key, sep, value = line.partition(":")
        if not sep:
            continue
        config[key.strip()] = value.strip()
    return config


def parse_listing(text: str) -> Set[int]:
    """Extract ids from ``pct list`` / ``qm list`` output, skipping the header."""
    ids: Set[int] = set()
    for line in text.splitlines():
        parts = line.split()
        if parts and parts[0].isdigit():
            ids.add(int(parts[0]))
    return ids


def parse_status(text: str) -> Optional[str]:
    """Return the state word from ``status: running`` output."""
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if sep and key.strip() == "status":
            return value.strip() or None
    return None


def parse_options(value: Optional[str]) -> Dict[str, Optional[str]]:
    """Split a ``k=v,k2=v2`` option string. Bare tokens map to ``None``."""
    options: Dict[str, Optional[str]] = {}
    if not value:
        return options
    for token in value.split(","):
        token = token.strip()
        if not token:
            continue
        key, sep, val = token.partition("=")
        options[key.strip()] = val.strip() if sep else None
    return options


def normalize_network(value: Optional[str]) -> Dict[str, Optional[str]]:
    """Parse a network string, dropping platform-generated MAC addresses."""
    normalized: Dict[str, Optional[str]] = {}
    for key, val in parse_options(value).items():
        if val is not None and MAC_RE.match(val):
            if key in ("hwaddr", "macaddr"):
                continue
            val = None
        normalized[key] = val
    return normalized


def format_options(options: Dict[str, Optional[str]]) -> str:
    """Inverse of :func:`parse_options`."""
    return ",".join(k if v is None else f"{k}={v}" for k, v in options.items())


def parse_size_gb(value: Optional[str], default_unit: str = "") -> Optional[float]:
    """Convert a Proxmox size (``32G``, ``512M``, ``1T``) to gigabytes.

    A bare number is read in ``default_unit``, bytes unless told otherwise.
    """
    if not value:
        return None
    match = SIZE_RE.match(str(value).strip())
    if not match:
        return None
    number, unit = match.groups()
    return float(number) * _SIZE_FACTORS_GB[(unit or default_unit).upper()]


def disk_size_gb(value: Optional[str]) -> Optional[float]:
    """Return the ``size=`` option of a disk definition in gigabytes."""
    return parse_size_gb(parse_options(value).get("size"))


def storage_hint(value: Optional[str]) -> Optional[str]:
    """Reduce ``local-lvm:vm-100-disk-0,size=32G`` to ``local-lvm:32``."""
    if not value:
        return None
    options = parse_options(value)
    volume = next(iter(options), "")
    store = volume.split(":", 1)[0]
    size = parse_size_gb(options.get("size"))
    if not store:
        return None
    if size is None:
        return store
    return f"{store}:{int(size) if size == int(size) else size}"
