"""Manifest entry models."""

from typing import Any, List, Literal, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from pvedsc.utils.parsing import parse_size_gb


DEFAULT_CONTAINER_MEMORY = 512
DEFAULT_VM_MEMORY = 1024
DEFAULT_CORES = 1
DEFAULT_SOCKETS = 1
DEFAULT_SWAP = 512
DEFAULT_CPU_MODEL = "x86-64-v2-AES"
DEFAULT_CONTAINER_NETWORK = "name=eth0,bridge=vmbr0,ip=dhcp"
DEFAULT_VM_NETWORK = "virtio,bridge=vmbr0"
DEFAULT_CONTAINER_STORAGE = "local-lvm:8"
DEFAULT_VM_STORAGE = "local-lvm:32"

_TYPE_ALIASES = {"lxc": "container", "ct": "container", "qemu": "vm", "kvm": "vm"}


def _lenient_int(value: Any) -> Optional[int]:
    """Coerce to int, or ``None`` when the value is absent or unparseable."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _lenient_flag(value: Any) -> Optional[int]:
    """Coerce a boolean-as-integer flag to 0/1."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, str) and value.strip().lower() in ("true", "yes", "on"):
        return 1
    if isinstance(value, str) and value.strip().lower() in ("false", "no", "off"):
        return 0
    number = _lenient_int(value)
    if number is None:
        return None
    return 1 if number else 0


class StorageSpec(BaseModel):
    """Target store and, for VMs, the declared disk size in GB."""
    store: str
    size: Optional[float] = None

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def parse(cls, value: Any) -> Optional["StorageSpec"]:
        """Build from ``"store:size"``, a mapping, or an existing instance."""
        if value is None or value == "":
            return None
        if isinstance(value, StorageSpec):
            return value
        if isinstance(value, dict):
            store = value.get("store") or value.get("storage")
            if not store:
                return None
            return cls(store=str(store), size=parse_size_gb(value.get("size"), default_unit="G"))
        store, _, size = str(value).strip().partition(":")
        if not store:
            return None
        return cls(store=store, size=parse_size_gb(size, default_unit="G"))

    @property
    def size_gb(self) -> Optional[int]:
        return None if self.size is None else int(self.size)

    def __str__(self) -> str:
        if self.size is None:
            return self.store
        size = int(self.size) if self.size == int(self.size) else self.size
        return f"{self.store}:{size}"


class CloudInitSpec(BaseModel):
    """Cloud-init settings for a VM."""
    enabled: bool = False
    user: Optional[str] = None
    ssh_keys: Optional[str] = Field(
        default=None,
        alias="sshKeys",
        validation_alias=AliasChoices("sshKeys", "ssh_keys", "sshkeys"),
    )
    ip_config: Optional[str] = Field(
        default=None,
        alias="ipConfig",
        validation_alias=AliasChoices("ipConfig", "ip_config", "ipconfig0"),
    )

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("ssh_keys", mode="before")
    @classmethod
    def join_keys(cls, v):
        """Accept a list of keys or a newline separated string."""
        if v is None:
            return None
        if isinstance(v, (list, tuple)):
            v = "\n".join(str(k) for k in v)
        return normalize_ssh_keys(str(v)) or None

    @field_validator("enabled", mode="before")
    @classmethod
    def coerce_enabled(cls, v):
        return bool(_lenient_flag(v))


def normalize_ssh_keys(value: Optional[str]) -> str:
    """Strip whitespace and blank lines from an authorized-keys blob."""
    if not value:
        return ""
    return "\n".join(line.strip() for line in value.splitlines() if line.strip())


class ManifestEntry(BaseModel):
    """One declared container or virtual machine."""
    type: Literal["container", "vm"] = Field(..., description="Resource kind")
    id: int = Field(..., gt=0, validation_alias=AliasChoices("id", "vmid"))
    hostname: Optional[str] = None
    template: Optional[str] = Field(None, description="Image path or id to clone from")
    memory: Optional[int] = None
    cores: Optional[int] = None
    sockets: Optional[int] = None
    cpu_model: Optional[str] = Field(
        None, alias="cpuModel", validation_alias=AliasChoices("cpuModel", "cpu_model", "cpu")
    )
    network: Optional[str] = Field(None, validation_alias=AliasChoices("network", "net0"))
    storage: Optional[StorageSpec] = None
    swap: Optional[int] = None
    on_boot: Optional[int] = Field(
        None, alias="onBoot", validation_alias=AliasChoices("onBoot", "on_boot", "onboot")
    )
    protection: Optional[int] = None
    cloud_init: Optional[CloudInitSpec] = Field(
        None, alias="cloudInit", validation_alias=AliasChoices("cloudInit", "cloud_init")
    )
    state: Literal["running", "stopped"] = Field(default="running")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            return _TYPE_ALIASES.get(v, v)
        return v

    @field_validator("template", "hostname", "cpu_model", "network", mode="before")
    @classmethod
    def optional_text(cls, v):
        if v is None or isinstance(v, (dict, list)):
            return None
        v = str(v).strip()
        return v or None

    @field_validator("memory", "cores", "sockets", "swap", mode="before")
    @classmethod
    def optional_int(cls, v):
        number = _lenient_int(v)
        if number is not None and number <= 0:
            return None
        return number

    @field_validator("on_boot", "protection", mode="before")
    @classmethod
    def optional_flag(cls, v):
        return _lenient_flag(v)

    @field_validator("storage", mode="before")
    @classmethod
    def parse_storage(cls, v):
        return StorageSpec.parse(v)

    @field_validator("cloud_init", mode="before")
    @classmethod
    def optional_cloud_init(cls, v):
        return v if isinstance(v, (dict, CloudInitSpec)) else None

    @field_validator("state", mode="before")
    @classmethod
    def normalize_state(cls, v):
        if v is None or v == "":
            return "running"
        return str(v).strip().lower()

    @model_validator(mode="after")
    def apply_defaults(self):
        """Fill documented defaults for optional fields."""
        if self.hostname is None:
            self.hostname = f"ct{self.id}" if self.is_container else f"vm{self.id}"
        if self.memory is None:
            self.memory = DEFAULT_CONTAINER_MEMORY if self.is_container else DEFAULT_VM_MEMORY
        if self.cores is None:
            self.cores = DEFAULT_CORES
        if self.on_boot is None:
            self.on_boot = 0
        if self.protection is None:
            self.protection = 0
        if self.is_container:
            if self.swap is None:
                self.swap = DEFAULT_SWAP
            self.sockets = None
            self.cpu_model = None
        else:
            if self.sockets is None:
                self.sockets = DEFAULT_SOCKETS
            if self.cpu_model is None:
                self.cpu_model = DEFAULT_CPU_MODEL
            self.swap = None
        return self

    @property
    def is_container(self) -> bool:
        return self.type == "container"

    @property
    def clone_source(self) -> Optional[int]:
        """Source id when ``template`` is a bare positive integer."""
        if self.template and self.template.isdigit() and int(self.template) > 0:
            return int(self.template)
        return None

    @property
    def cloud_init_enabled(self) -> bool:
        return bool(self.cloud_init and self.cloud_init.enabled)

    def to_manifest(self) -> dict:
        """Serialize with manifest field names, omitting unset values."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        if self.storage is not None:
            data["storage"] = str(self.storage)
        return data



class RejectedEntry(BaseModel):
    """A manifest element that failed validation."""
    index: int
    id: Optional[int] = None
    reason: str


class Manifest(BaseModel):
    """Parsed manifest: valid entries in order plus rejected elements."""
    entries: List[ManifestEntry] = Field(default_factory=list)
    rejected: List[RejectedEntry] = Field(default_factory=list)

    @property
    def declared_ids(self) -> set:
        ids = {entry.id for entry in self.entries}
        ids.update(r.id for r in self.rejected if r.id is not None)
        return ids
