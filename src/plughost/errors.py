"""Exceptions raised by plughost."""

from pathlib import Path


class PlughostError(Exception):
    """Base exception for plughost errors."""

    pass


class ConfigError(PlughostError):
    """Configuration file is missing, unreadable, or invalid."""

    pass


class AlreadyInitializedError(PlughostError):
    """The plugin context was already initialized.

    Attributes:
        directory: The plugin directory bound by the first successful call.
    """

    def __init__(self, directory: Path):
        self.directory = directory
        super().__init__(
            f"Plugin context has already been initialized with directory: {directory}"
        )


class NotInitializedError(PlughostError):
    """A discovery call was made before the plugin context was initialized."""

    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "Plugin context has not been initialized. Call initialize() first."
        )


class DirectoryCreationError(PlughostError):
    """The plugin directory could not be created."""

    def __init__(self, path: Path, reason: str = ""):
        self.path = path
        message = f"Failed to create plugin directory: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class ResourceNotFoundError(PlughostError):
    """A resource was found neither on disk nor in any packaged scope.

    Recorded as a diagnostic by the resource resolver, never raised by it.
    """

    def __init__(self, descriptor):
        self.descriptor = descriptor
        super().__init__(
            f"Resource '{descriptor.name}' not found at '{descriptor.fragment}' "
            f"or as packaged resource '{descriptor.resource_path}'"
        )


class WatcherStartError(PlughostError):
    """The change watcher could not be started."""

    pass
