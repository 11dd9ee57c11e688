"""Configuration and manifest loading."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from pvedsc.errors import DscError, ManifestInvalid, ManifestMissing
from pvedsc.models.config import DEFAULT_CONFIG_PATH, DscConfig
from pvedsc.models.manifest import Manifest, ManifestEntry, RejectedEntry


logger = logging.getLogger(__name__)

CONFIG_ENV = "PVEDSC_CONFIG"


class ConfigError(DscError):
    """The configuration file exists but cannot be used."""


def resolve_config_path(path: Optional[Path] = None) -> Path:
    """Explicit path, then ``$PVEDSC_CONFIG``, then the system default."""
    if path:
        return Path(path)
    return Path(os.environ.get(CONFIG_ENV, DEFAULT_CONFIG_PATH))


class ConfigManager:
    """Loads the engine configuration and the desired-state manifest."""

    def __init__(self, config_path: Optional[Path] = None, manifest_path: Optional[Path] = None):
        self.config_path = resolve_config_path(config_path)
        self._manifest_override = Path(manifest_path) if manifest_path else None
        self.yaml = YAML(typ="safe")
        self.config: DscConfig = DscConfig()

    def load(self) -> DscConfig:
        """Read the YAML configuration; defaults apply when the file is absent."""
        if not self.config_path.exists():
            logger.debug(f"No config file at {self.config_path}, using defaults")
            self.config = DscConfig()
        else:
            data = self._read_yaml(self.config_path)
            try:
                self.config = DscConfig(**data)
            except ValidationError as e:
                logger.error(f"Invalid config {self.config_path}: {e}")
                raise ConfigError(f"Invalid config {self.config_path}: {e}") from e
            logger.debug(f"Loaded config: {self.config_path}")

        if self._manifest_override is not None:
            self.config.manifest = str(self._manifest_override)
        return self.config

    def _read_yaml(self, file_path: Path) -> Dict[str, Any]:
        try:
            data = self.yaml.load(file_path.read_text())
        except (OSError, YAMLError) as e:
            raise ConfigError(f"Cannot read config {file_path}: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config {file_path} must be a mapping")
        return data

    @property
    def manifest_path(self) -> Path:
        return Path(self.config.manifest)

    def load_manifest(self) -> Manifest:
        return load_manifest(self.manifest_path)


def load_manifest(path: Path) -> Manifest:
    """Parse the manifest JSON array, validating each element on its own.

    Elements that fail validation are rejected and logged; their id, when
    readable, still counts as declared so the audit never reports it.
    """
    path = Path(path)
    if not path.exists():
        raise ManifestMissing(f"Manifest not found: {path}")

    try:
        data = json.loads(path.read_text())
    except (OSError, ValueError) as e:
        raise ManifestInvalid(f"Manifest {path} is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise ManifestInvalid(f"Manifest {path} must be a JSON array")

    manifest = Manifest()
    seen = set()
    for index, item in enumerate(data):
        raw_id = _raw_id(item)
        try:
            if not isinstance(item, dict):
                raise ValueError("entry is not an object")
            entry = ManifestEntry.model_validate(item)
            if entry.id in seen:
                raise ValueError(f"duplicate id {entry.id}")
        except (ValidationError, ValueError) as e:
            reason = _reason(e)
            logger.error(f"Rejected manifest entry #{index} (id {raw_id}): {reason}")
            manifest.rejected.append(RejectedEntry(index=index, id=raw_id, reason=reason))
            continue
        seen.add(entry.id)
        manifest.entries.append(entry)

    logger.info(
        f"Loaded manifest {path}: {len(manifest.entries)} entries, "
        f"{len(manifest.rejected)} rejected"
    )
    return manifest


def _raw_id(item: Any) -> Optional[int]:
    if not isinstance(item, dict):
        return None
    value = item.get("id", item.get("vmid"))
    try:
        vmid = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return vmid if vmid > 0 else None


def _reason(error: Exception) -> str:
    if isinstance(error, ValidationError):
        return "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'entry'}: {err['msg']}"
            for err in error.errors()
        )
    return str(error)
