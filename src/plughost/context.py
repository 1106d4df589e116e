"""One-shot plugin directory initialization.

A :class:`PluginContext` is created once at the application's composition
root and handed to everything that needs plugins. It moves from
uninitialized to initialized exactly once; the bound directory never
changes afterwards.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from . import paths
from .errors import AlreadyInitializedError, DirectoryCreationError, NotInitializedError
from .registry import DirectoryRegistry, ProviderRegistry

logger = logging.getLogger(__name__)

_UNINITIALIZED: tuple[bool, Path | None] = (False, None)


class PluginContext:
    """Holds the plugin directory and the registry configured with it.

    Args:
        registry: Provider registry to configure on initialization.
            Defaults to a new :class:`DirectoryRegistry`.
    """

    def __init__(self, registry: ProviderRegistry | None = None):
        self.registry = registry if registry is not None else DirectoryRegistry()
        self._lock = threading.Lock()
        # (initialized, directory) replaced as a whole so readers never lock
        self._state = _UNINITIALIZED

    @property
    def is_initialized(self) -> bool:
        return self._state[0]

    @property
    def directory(self) -> Path | None:
        return self._state[1]

    def get_directory(self) -> Path | None:
        """Return the bound plugin directory, or None before initialization."""
        return self._state[1]

    def initialize(self, path: Path | str) -> Path:
        """Create ``path`` if needed, configure the registry, and bind it.

        Args:
            path: Plugin directory.

        Returns:
            The bound plugin directory.

        Raises:
            AlreadyInitializedError: If a previous call succeeded.
            DirectoryCreationError: If the directory cannot be created. The
                context stays uninitialized and the call may be retried.
        """
        path = Path(path)
        with self._lock:
            initialized, bound = self._state
            if initialized:
                raise AlreadyInitializedError(bound)

            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.error("Failed to create plugin directory: %s", path)
                raise DirectoryCreationError(path, str(e)) from e

            logger.info(
                "Initializing plugin system with directory: %s", path.absolute()
            )
            self.registry.configure_directory(path)
            self._state = (True, path)

        logger.info("Plugin system initialized successfully")
        return path

    def initialize_default(self, env: paths.Environment | None = None) -> Path:
        """Initialize with the default directory for ``env``."""
        return self.initialize(paths.resolve_default(env))

    def initialize_from_named_override(
        self, key: str, env: paths.Environment | None = None
    ) -> Path:
        """Initialize with the directory named by ``key``, else the default."""
        return self.initialize(paths.resolve_from_named_override(key, env))

    def ensure_initialized(self) -> Path:
        """Return the bound directory.

        Raises:
            NotInitializedError: If the context is not initialized.
        """
        initialized, bound = self._state
        if not initialized:
            raise NotInitializedError()
        return bound

    def __repr__(self) -> str:
        initialized, bound = self._state
        if not initialized:
            return "PluginContext(uninitialized)"
        return f"PluginContext(directory={str(bound)!r})"
