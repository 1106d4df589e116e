"""Configuration management for plughost.

Handles loading .plughost.yaml files with directory traversal,
environment variable overrides, and default values.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from . import paths
from .errors import ConfigError
from .watch import DEFAULT_POLL_INTERVAL

CONFIG_FILENAME = ".plughost.yaml"
ENV_LOG_LEVEL = "PLUGHOST_LOG_LEVEL"
DEFAULT_OVERRIDE_KEY = "PLUGHOST_PLUGIN_DIR"

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass
class PluginsConfig:
    """Plugin directory settings."""

    directory: Path | None = None  # Explicit plugin directory
    override_key: str = DEFAULT_OVERRIDE_KEY  # Env var naming a plugin directory
    app_name: str = paths.DEFAULT_APP_NAME


@dataclass
class ResourcesConfig:
    """Resource resolution settings."""

    root: Path | None = None  # Local override root; cwd when unset
    watch: bool = True  # Watch local resources for changes
    poll_interval: float = DEFAULT_POLL_INTERVAL


@dataclass
class PlughostConfig:
    """Complete plughost configuration."""

    plugins: PluginsConfig = field(default_factory=PluginsConfig)
    resources: ResourcesConfig = field(default_factory=ResourcesConfig)
    log_level: str = "WARNING"
    config_path: Path | None = None  # Path where config was loaded from

    def validate(self) -> None:
        """Validate configuration.

        Raises:
            ConfigError: If configuration is invalid.
        """
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigError(
                f"Invalid log_level: {self.log_level}. "
                f"Must be one of: {', '.join(_LOG_LEVELS)}"
            )
        self.log_level = self.log_level.upper()

        if not self.plugins.override_key:
            raise ConfigError("plugins.override_key cannot be empty")
        if not self.plugins.app_name:
            raise ConfigError("plugins.app_name cannot be empty")

        if self.resources.poll_interval <= 0:
            raise ConfigError("resources.poll_interval must be positive")


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find .plughost.yaml by traversing up from start_path.

    Args:
        start_path: Directory to start searching from. Defaults to cwd.

    Returns:
        Path to config file if found, None otherwise.
    """
    if start_path is None:
        start_path = Path.cwd()
    else:
        start_path = Path(start_path).resolve()

    if start_path.is_file():
        start_path = start_path.parent

    current = start_path
    while True:
        config_path = current / CONFIG_FILENAME
        if config_path.is_file():
            return config_path

        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_config(
    config_path: Path | None = None,
    start_path: Path | None = None,
    log_level_override: str | None = None,
) -> PlughostConfig:
    """Load configuration from file, environment, and overrides.

    Priority (highest to lowest):
    1. Function arguments (log_level_override)
    2. Environment variables (PLUGHOST_LOG_LEVEL)
    3. Config file (.plughost.yaml)
    4. Defaults

    Args:
        config_path: Explicit path to config file. If None, searches.
        start_path: Directory to start config file search from.
        log_level_override: Override log level from CLI argument.

    Returns:
        Loaded and validated configuration.
    """
    config = PlughostConfig()

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
    else:
        config_path = find_config_file(start_path)

    if config_path is not None:
        config = _load_config_file(config_path)

    env_level = os.environ.get(ENV_LOG_LEVEL)
    if env_level:
        config.log_level = env_level

    if log_level_override is not None:
        config.log_level = log_level_override

    config.validate()
    return config


def _resolve_relative(value: Any, base: Path) -> Path:
    path = Path(str(value)).expanduser()
    if not path.is_absolute():
        path = base / path
    return path


def _load_config_file(config_path: Path) -> PlughostConfig:
    """Load configuration from a YAML file.

    Relative directories in the file are resolved against the
    directory containing it.

    Raises:
        ConfigError: If file cannot be read or parsed.
    """
    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    config = PlughostConfig(config_path=config_path)
    base = config_path.parent

    if "log_level" in data:
        config.log_level = str(data["log_level"])

    if "plugins" in data and isinstance(data["plugins"], dict):
        plugins_data = data["plugins"]
        directory = plugins_data.get("directory")
        config.plugins = PluginsConfig(
            directory=_resolve_relative(directory, base) if directory else None,
            override_key=str(
                plugins_data.get("override_key", config.plugins.override_key)
            ),
            app_name=str(plugins_data.get("app_name", config.plugins.app_name)),
        )

    if "resources" in data and isinstance(data["resources"], dict):
        resources_data = data["resources"]
        root = resources_data.get("root")
        try:
            poll_interval = float(
                resources_data.get("poll_interval", config.resources.poll_interval)
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid resources.poll_interval: {e}") from e
        config.resources = ResourcesConfig(
            root=_resolve_relative(root, base) if root else None,
            watch=bool(resources_data.get("watch", config.resources.watch)),
            poll_interval=poll_interval,
        )

    return config


def create_default_config(path: Path | None = None) -> Path:
    """Create a default .plughost.yaml config file.

    Args:
        path: Directory to create config in. Defaults to cwd.

    Returns:
        Path to created config file.

    Raises:
        ConfigError: If file already exists or cannot be written.
    """
    if path is None:
        path = Path.cwd()
    else:
        path = Path(path)

    config_path = path / CONFIG_FILENAME

    if config_path.exists():
        raise ConfigError(f"Config file already exists: {config_path}")

    config_content = f"""# plughost configuration

# Logging level: CRITICAL, ERROR, WARNING, INFO, DEBUG
# (or use {ENV_LOG_LEVEL} env var)
log_level: "WARNING"

plugins:
  # Explicit plugin directory (relative to this file). When unset, the
  # directory named by override_key is used, then the default search.
  # directory: "plugins"
  override_key: "{DEFAULT_OVERRIDE_KEY}"
  app_name: "{paths.DEFAULT_APP_NAME}"

resources:
  # Directory searched for local resource overrides (default: cwd)
  # root: "."
  watch: true
  poll_interval: {DEFAULT_POLL_INTERVAL}
"""

    try:
        config_path.write_text(config_content)
    except OSError as e:
        raise ConfigError(f"Cannot write config file: {e}") from e

    return config_path


def plugin_directory_for(
    config: PlughostConfig, env: paths.Environment | None = None
) -> Path:
    """Choose the plugin directory for ``config``.

    The configured directory wins, then the named override, then the
    default search.
    """
    if config.plugins.directory is not None:
        return config.plugins.directory
    if env is None:
        env = paths.Environment.from_process(app_name=config.plugins.app_name)
    return paths.resolve_from_named_override(config.plugins.override_key, env)


def resource_options_for(config: PlughostConfig) -> dict[str, Any]:
    """Keyword arguments for ``resolve_resources`` or ``add_stylesheets``.

    Example::

        add_stylesheets(sheets, Stylesheet.THEME, **resource_options_for(config))
    """
    return {
        "root": config.resources.root,
        "watch": config.resources.watch,
        "poll_interval": config.resources.poll_interval,
    }


def configure_logging(config: PlughostConfig) -> None:
    """Configure root logging at the configured level."""
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


def config_to_dict(config: PlughostConfig) -> dict[str, Any]:
    """Convert config to dictionary for display."""
    return {
        "log_level": config.log_level,
        "plugins": {
            "directory": str(config.plugins.directory)
            if config.plugins.directory
            else None,
            "override_key": config.plugins.override_key,
            "app_name": config.plugins.app_name,
        },
        "resources": {
            "root": str(config.resources.root) if config.resources.root else None,
            "watch": config.resources.watch,
            "poll_interval": config.resources.poll_interval,
        },
        "config_path": str(config.config_path) if config.config_path else None,
    }
