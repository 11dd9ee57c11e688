"""Configuration models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_CONFIG_PATH = "/etc/pvedsc/config.yaml"


class LockConfig(BaseModel):
    """Execution lock settings."""
    path: str = Field(default="/tmp/pvedsc.lock")
    wait_timeout: float = Field(default=300, ge=0)
    poll_interval: float = Field(default=1.0, gt=0)


class CommandConfig(BaseModel):
    """Platform command timeouts in seconds."""
    timeout: float = Field(default=20, gt=0)
    provision_timeout: float = Field(default=600, gt=0)
    shutdown_timeout: int = Field(default=15, ge=0)


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO")
    file: Optional[str] = Field(default="/var/log/pvedsc.log")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()


class AgentConfig(BaseModel):
    """Scheduling agent configuration."""
    interval: int = Field(default=120, ge=5)
    watch: bool = Field(default=True)


class PlatformConfig(BaseModel):
    """Host specific device and option names."""
    container_features: Optional[str] = Field(default="nesting=1")
    disk_device: str = Field(default="scsi0")
    cloudinit_device: str = Field(default="ide2")
    cloudinit_storage: str = Field(default="local-lvm")
    scsi_controller: str = Field(default="virtio-scsi-pci")


class DscConfig(BaseModel):
    """Main configuration model."""
    manifest: str = Field(default="/root/iac/state.json")
    lock: LockConfig = Field(default_factory=LockConfig)
    commands: CommandConfig = Field(default_factory=CommandConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    platform: PlatformConfig = Field(default_factory=PlatformConfig)

    model_config = ConfigDict(extra="ignore")
