"""plughost - Locate and initialize a host application's plugin directory."""

__version__ = "0.1.0"

from .config import load_config, resource_options_for
from .context import PluginContext
from .discovery import ServiceLoader
from .errors import (
    AlreadyInitializedError,
    ConfigError,
    DirectoryCreationError,
    NotInitializedError,
    PlughostError,
    ResourceNotFoundError,
    WatcherStartError,
)
from .paths import Environment, resolve_default, resolve_from_named_override
from .registry import DirectoryRegistry
from .resources import Origin, ResourceDescriptor, resolve_resources
from .stylesheets import Stylesheet, add_stylesheets
from .watch import PollingWatcher

__all__ = [
    "PluginContext",
    "ServiceLoader",
    "load_config",
    "resource_options_for",
    "DirectoryRegistry",
    "Environment",
    "resolve_default",
    "resolve_from_named_override",
    "ResourceDescriptor",
    "Origin",
    "resolve_resources",
    "Stylesheet",
    "add_stylesheets",
    "PollingWatcher",
    "PlughostError",
    "AlreadyInitializedError",
    "NotInitializedError",
    "DirectoryCreationError",
    "ResourceNotFoundError",
    "WatcherStartError",
    "ConfigError",
    "__version__",
]
