"""Provider registry backed by a plugin directory.

A capability is any class (usually an ABC). Providers are its concrete
subclasses, found in two places:

    1. Classes registered in-process with :meth:`DirectoryRegistry.register`.
    2. Classes defined in ``.py`` files or packages in the configured
       plugin directory. Names starting with ``_`` are skipped. A package
       plugin also offers classes its ``__init__.py`` imports from its
       own submodules.

Plugin files are imported the first time a query iterates over them and
cached for later queries. A file that fails to import, or a class that
fails to instantiate, is logged and skipped.
"""

from __future__ import annotations

import hashlib
import importlib.util
import inspect
import logging
import sys
import threading
from pathlib import Path
from types import ModuleType
from typing import Generic, Iterable, Iterator, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MODULE_PREFIX = "plughost_plugin_"


class ProviderRegistry(Protocol):
    """What the plugin context and service loader need from a registry."""

    def configure_directory(self, path: Path) -> None: ...

    def query(self, capability: type[T]) -> Iterable[T]: ...


class ServiceSequence(Generic[T]):
    """Lazy, restartable view of the providers of one capability.

    Each iteration starts over and instantiates providers as it goes.
    """

    def __init__(self, registry: DirectoryRegistry, capability: type[T]):
        self._registry = registry
        self.capability = capability

    def __iter__(self) -> Iterator[T]:
        return self._registry._iter_providers(self.capability)

    def __repr__(self) -> str:
        return f"ServiceSequence({self.capability.__name__})"


class DirectoryRegistry:
    """Registry that discovers providers in a single plugin directory."""

    def __init__(self):
        self._directory: Path | None = None
        self._registered: list[type] = []
        self._modules: dict[Path, ModuleType] = {}
        self._lock = threading.Lock()

    @property
    def directory(self) -> Path | None:
        return self._directory

    def configure_directory(self, path: Path) -> None:
        """Set the directory scanned for plugin files."""
        self._directory = Path(path)
        logger.debug("Plugin registry directory set to %s", self._directory)

    def register(self, provider: type) -> type:
        """Register a provider class defined in-process.

        Returns the class so this can be used as a decorator.
        """
        if not inspect.isclass(provider):
            raise TypeError(f"Provider must be a class, got {provider!r}")
        self._registered.append(provider)
        return provider

    def query(self, capability: type[T]) -> ServiceSequence[T]:
        """Return the providers of ``capability``."""
        return ServiceSequence(self, capability)

    def _iter_providers(self, capability: type[T]) -> Iterator[T]:
        for provider in list(self._registered):
            if _is_provider(provider, capability):
                instance = _instantiate(provider, "registered")
                if instance is not None:
                    yield instance

        for source, module in self._iter_modules():
            seen: set[type] = set()
            for _name, obj in inspect.getmembers(module, inspect.isclass):
                if obj in seen or not _defined_in(obj, module):
                    continue
                seen.add(obj)
                if _is_provider(obj, capability):
                    instance = _instantiate(obj, source)
                    if instance is not None:
                        yield instance

    def _iter_modules(self) -> Iterator[tuple[Path, ModuleType]]:
        if self._directory is None or not self._directory.is_dir():
            return
        for source in plugin_sources(self._directory):
            module = self._load_module(source)
            if module is not None:
                yield source, module

    def _load_module(self, source: Path) -> ModuleType | None:
        with self._lock:
            module = self._modules.get(source)
            if module is not None:
                return module
            try:
                module = _import_source(source)
            except Exception:
                logger.warning("Failed to import plugin: %s", source, exc_info=True)
                return None
            self._modules[source] = module
            return module


def plugin_sources(directory: Path) -> list[Path]:
    """List importable plugin files and packages in ``directory``."""
    sources = []
    for entry in sorted(directory.iterdir()):
        if entry.name.startswith((".", "_")):
            continue
        if entry.is_file() and entry.suffix == ".py":
            sources.append(entry)
        elif entry.is_dir() and (entry / "__init__.py").is_file():
            sources.append(entry)
    return sources


def _defined_in(obj: type, module: ModuleType) -> bool:
    """True if ``obj`` was defined in ``module`` or one of its submodules."""
    owner = obj.__module__
    return owner == module.__name__ or owner.startswith(module.__name__ + ".")


def _is_provider(obj: type, capability: type) -> bool:
    return (
        issubclass(obj, capability)
        and obj is not capability
        and not inspect.isabstract(obj)
    )


def _instantiate(provider: type[T], source: object) -> T | None:
    try:
        return provider()
    except Exception:
        logger.warning(
            "Failed to instantiate provider %s from %s",
            provider.__name__,
            source,
            exc_info=True,
        )
        return None


def plugin_module_name(source: Path) -> str:
    """Name a plugin is imported under, unique per plugin directory."""
    directory = str(source.parent.absolute())
    digest = hashlib.sha1(directory.encode("utf-8")).hexdigest()[:8]
    return f"{_MODULE_PREFIX}{digest}_{source.stem}"


def _import_source(source: Path) -> ModuleType:
    """Import a plugin file or package without it being on sys.path."""
    module_name = plugin_module_name(source)
    if source.is_dir():
        spec = importlib.util.spec_from_file_location(
            module_name,
            source / "__init__.py",
            submodule_search_locations=[str(source)],
        )
    else:
        spec = importlib.util.spec_from_file_location(module_name, source)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot create module spec for {source}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise
    return module
