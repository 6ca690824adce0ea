"""Dockyard runtime configuration and settings."""
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from dockyard.core.errors import ConfigError

# Default config search paths (ordered by proximity to current run)
CONFIG_PATHS = [
    "./dockyard.yml",
    str(Path.home() / ".config" / "dockyard" / "dockyard.yml"),
    "/etc/dockyard/dockyard.yml",
]

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class DockyardConfig:
    """Runtime configuration for Dockyard operations.

    Built once at startup and handed to the lifecycle controller and the
    services it drives.

    Attributes:
        base_dir: Directory holding one subdirectory per component
        timezone: Timezone passed to component payloads
        package_max_attempts: Tries per package-index strategy (default: 3)
        package_retry_delay: Seconds between package-index tries (default: 5)
        workload_max_attempts: Tries per workload bring-up strategy (default: 2)
        workload_retry_delay: Seconds between bring-up tries (default: 3)
        command_timeout: Timeout in seconds for a mutating command (default: 900)
        query_timeout: Timeout in seconds for a status query (default: 10)
        separate_data_confirmation: Ask again before deleting persisted data
        catalog_file: Alternative catalog YAML (default: built-in catalog)
        lock_file: Installer lock file
    """

    base_dir: Path = Path("/opt/docker-apps")
    timezone: str = "Europe/Berlin"

    # Retry tuning
    package_max_attempts: int = 3
    package_retry_delay: float = 5.0
    workload_max_attempts: int = 2
    workload_retry_delay: float = 3.0

    # Timeouts
    command_timeout: int = 900  # 15 minutes for package installs and image pulls
    query_timeout: int = 10

    separate_data_confirmation: bool = True
    catalog_file: Optional[Path] = None
    lock_file: Path = Path("/run/dockyard/installer.lock")

    @classmethod
    def from_env(cls) -> "DockyardConfig":
        """Create config from DOCKYARD_* environment variables.

        Returns:
            DockyardConfig instance with values from environment or defaults
        """
        values = {}
        for f in fields(cls):
            raw = os.getenv(f"DOCKYARD_{f.name.upper()}")
            if raw is not None:
                values[f.name] = raw
        if "catalog_file" not in values and os.getenv("DOCKYARD_CATALOG"):
            values["catalog_file"] = os.environ["DOCKYARD_CATALOG"]
        return cls()._with(values, source="environment")

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "DockyardConfig":
        """Create config from the environment, overlaid with a YAML file.

        Args:
            config_path: Explicit file. When omitted the usual locations are
                searched and a missing file means environment only.

        Raises:
            ConfigError: If the file cannot be parsed or holds unknown keys
        """
        config = cls.from_env()
        path = find_config(config_path)
        if path is None:
            return config

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config {path} must be a mapping, got {type(data).__name__}")

        return config._with(data, source=str(path))

    def _with(self, values: Dict[str, Any], source: str) -> "DockyardConfig":
        known = {f.name: f for f in fields(self)}
        unknown = sorted(set(values) - set(known))
        if unknown:
            raise ConfigError(f"Unknown setting(s) in {source}: {', '.join(unknown)}")

        converted = {}
        for name, raw in values.items():
            try:
                converted[name] = _coerce(name, raw, getattr(self, name))
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid value for {name} in {source}: {raw!r}") from e

        config = replace(self, **converted)
        config.validate()
        return config

    def validate(self) -> None:
        """Reject settings the retry machinery cannot work with."""
        if self.package_max_attempts < 1 or self.workload_max_attempts < 1:
            raise ConfigError("max_attempts settings must be at least 1")
        if self.package_retry_delay < 0 or self.workload_retry_delay < 0:
            raise ConfigError("retry delays cannot be negative")
        if not self.base_dir.is_absolute():
            raise ConfigError(f"base_dir must be an absolute path, got {self.base_dir}")


def _coerce(name: str, raw: Any, current: Any) -> Any:
    if name == "catalog_file":
        return Path(raw).expanduser() if raw not in (None, "") else None
    if name in ("base_dir", "lock_file"):
        return Path(str(raw)).expanduser()
    if isinstance(current, bool):
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ValueError(f"not a boolean: {raw}")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    return str(raw)


def find_config(config_path: Optional[str] = None) -> Optional[Path]:
    """Locate the active Dockyard configuration file."""
    if config_path:
        return Path(config_path)

    if env_config := os.environ.get("DOCKYARD_CONFIG"):
        return Path(env_config)

    for path in CONFIG_PATHS:
        if Path(path).exists():
            return Path(path)

    return None
