"""
Configuration management for iODO device diagnostics.

Provides persistent configuration storage, loading, and management
with JSON-based configuration files.
"""

import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, Dict, Any

from .logger import get_logger

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "iodo"


@dataclass
class DiagnosticsConfig:
    """Settings for a diagnostic run."""

    # Remote analysis
    analysis_origin: str = "http://localhost:8788"
    request_timeout: float = 10.0
    offline: bool = False

    # Probe inputs
    user_agent: Optional[str] = None
    network_probe_host: str = "1.1.1.1"
    network_probe_port: int = 443
    network_probe_timeout: float = 3.0
    command_timeout: int = 5

    # Logging
    debug: bool = False
    log_file: Optional[str] = None


class ConfigManager:
    """
    Manages application configuration with file persistence.

    Provides loading, saving, and default configuration handling
    with support for nested configuration structures.
    """

    def __init__(
        self,
        config_dir: Optional[Path] = None,
        config_file: str = "config.json"
    ):
        """
        Initialize the configuration manager.

        Args:
            config_dir: Configuration directory path
            config_file: Configuration file name
        """
        self.config_dir = Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR
        self.config_file = self.config_dir / config_file
        self._config: Dict[str, Any] = {}

    def load(self) -> Dict[str, Any]:
        """
        Load configuration from file.

        Returns:
            Configuration dictionary
        """
        logger = get_logger()

        if self.config_file.exists():
            try:
                with open(self.config_file) as f:
                    self._config = json.load(f)
                logger.debug(f"Loaded configuration from {self.config_file}")
            except json.JSONDecodeError as e:
                logger.warning(f"Invalid config file, using defaults: {e}")
                self._config = {}
            except OSError as e:
                logger.error(f"Error loading config: {e}")
                self._config = {}
        else:
            logger.debug("No config file found, using defaults")
            self._config = {}

        if not isinstance(self._config, dict):
            logger.warning("Config file does not hold an object, using defaults")
            self._config = {}

        return self._config

    def save(self, config: Optional[Dict[str, Any]] = None) -> bool:
        """
        Save configuration to file.

        Args:
            config: Configuration dictionary (uses internal if not provided)

        Returns:
            True if save successful
        """
        logger = get_logger()

        if config is not None:
            self._config = config

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w") as f:
                json.dump(self._config, f, indent=2)
            logger.debug(f"Saved configuration to {self.config_file}")
            return True
        except OSError as e:
            logger.error(f"Error saving config: {e}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key (supports dot notation)
            default: Default value if key not found
        """
        if not self._config:
            self.load()

        value = self._config
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value (dot notation creates nested sections)."""
        if not self._config:
            self.load()

        keys = key.split(".")
        target = self._config
        for k in keys[:-1]:
            if k not in target or not isinstance(target[k], dict):
                target[k] = {}
            target = target[k]
        target[keys[-1]] = value

    def get_diagnostics_config(self) -> DiagnosticsConfig:
        """
        Get the diagnostics configuration as a dataclass.

        Unknown keys in the ``app`` section are ignored.
        """
        if not self._config:
            self.load()

        app_data = self._config.get("app", {})
        if not isinstance(app_data, dict):
            app_data = {}
        return DiagnosticsConfig(**{
            k: v for k, v in app_data.items()
            if k in DiagnosticsConfig.__dataclass_fields__
        })

    def save_diagnostics_config(self, config: DiagnosticsConfig) -> bool:
        """Save diagnostics configuration under the ``app`` section."""
        self._config["app"] = asdict(config)
        return self.save()


# Module-level convenience functions
_default_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get or create the default configuration manager."""
    global _default_manager
    if _default_manager is None:
        _default_manager = ConfigManager()
    return _default_manager


def load_config() -> DiagnosticsConfig:
    """Load the diagnostics configuration using the default manager."""
    manager = get_config_manager()
    manager.load()
    return manager.get_diagnostics_config()
