"""Resource resolution with filesystem overrides and packaged fallbacks.

Each resource is looked up first on disk, relative to a root directory
(the working directory by default), so a developer can edit it in place.
If it is not on disk, it is looked up as packaged data in four scopes, in
this order:

    context     the package bound with :func:`use_resource_context`
    component   the package that owns the resolver (``plughost``)
    absolute    the resource path read as ``package/.../file``
    module      the package named by the descriptor, with the file name

Packaged resources that sit on disk get a ``file://`` locator. Those
inside a zip archive or another non-filesystem loader get a
``resource://<package>/<path>`` locator that only
:meth:`ResolvedResource.read_text` can open.

Resources found on disk are handed to a watcher so edits can be picked up
while the application runs. Packaged resources are never watched.
"""

from __future__ import annotations

import contextlib
import enum
import logging
from contextvars import ContextVar
from dataclasses import dataclass, field
from importlib import resources as importlib_resources
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Iterable, Iterator

from .errors import ResourceNotFoundError, WatcherStartError
from .paths import path_exists
from .watch import DEFAULT_POLL_INTERVAL, PollingWatcher, ReloadCallback, Watcher

if TYPE_CHECKING:
    from importlib.resources.abc import Traversable

logger = logging.getLogger(__name__)

COMPONENT_PACKAGE = "plughost"
SCOPES = ("context", "component", "absolute", "module")
PACKAGED_SCHEME = "resource"

resource_context: ContextVar[str | None] = ContextVar(
    "plughost_resource_context", default=None
)


@contextlib.contextmanager
def use_resource_context(package: str) -> Iterator[None]:
    """Bind ``package`` as the context scope for lookups in this block."""
    token = resource_context.set(package)
    try:
        yield
    finally:
        resource_context.reset(token)


class Origin(enum.Enum):
    FILESYSTEM = "filesystem"
    PACKAGED = "packaged"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class ResourceDescriptor:
    """Where to look for one named resource.

    Attributes:
        name: Logical name, e.g. ``"theme.css"``.
        fragment: Path relative to the filesystem root, e.g. ``"css/theme.css"``.
        resource_path: Slash-separated packaged path, e.g. ``"css/theme.css"``.
            Defaults to ``fragment``.
        module: Package searched by the module scope. Defaults to the
            component package.
    """

    name: str
    fragment: str
    resource_path: str = ""
    module: str = COMPONENT_PACKAGE

    def __post_init__(self):
        if not self.resource_path:
            object.__setattr__(self, "resource_path", self.fragment)

    def filesystem_path(self, root: Path) -> Path:
        return Path(root) / self.fragment


@dataclass(frozen=True)
class PackagedHit:
    """A packaged lookup that succeeded."""

    scope: str
    package: str
    path: str
    resource: Traversable = field(compare=False, repr=False)

    @property
    def locator(self) -> str:
        if isinstance(self.resource, Path):
            return self.resource.absolute().as_uri()
        return f"{PACKAGED_SCHEME}://{self.package}/{self.path}"


@dataclass(frozen=True)
class ResolvedResource:
    """Result of resolving one descriptor."""

    descriptor: ResourceDescriptor
    origin: Origin
    locator: str | None = None
    path: Path | None = None
    scope: str | None = None
    packaged: PackagedHit | None = field(default=None, compare=False, repr=False)

    @property
    def name(self) -> str:
        return self.descriptor.name

    def read_text(self, encoding: str = "utf-8") -> str:
        """Read the resolved content.

        Raises:
            ResourceNotFoundError: If the resource was not resolved.
        """
        if self.origin is Origin.FILESYSTEM:
            return self.path.read_text(encoding=encoding)
        if self.origin is Origin.PACKAGED:
            return self.packaged.resource.read_text(encoding=encoding)
        raise ResourceNotFoundError(self.descriptor)


@dataclass
class ResolutionReport:
    """Results of a batch resolution, in descriptor order."""

    results: list[ResolvedResource] = field(default_factory=list)
    diagnostics: list[Exception] = field(default_factory=list)
    watched: bool = False

    @property
    def locators(self) -> list[str]:
        return [r.locator for r in self.results if r.locator is not None]

    def _with_origin(self, origin: Origin) -> list[ResolvedResource]:
        return [r for r in self.results if r.origin is origin]

    @property
    def filesystem(self) -> list[ResolvedResource]:
        return self._with_origin(Origin.FILESYSTEM)

    @property
    def packaged(self) -> list[ResolvedResource]:
        return self._with_origin(Origin.PACKAGED)

    @property
    def unresolved(self) -> list[ResolvedResource]:
        return self._with_origin(Origin.UNRESOLVED)


def _find_in_package(package: str, path: str) -> Traversable | None:
    try:
        candidate = importlib_resources.files(package)
    except (ImportError, TypeError, ValueError) as e:
        logger.debug("Package %r unavailable for %s: %s", package, path, e)
        return None
    for part in path.split("/"):
        candidate = candidate / part
    try:
        if candidate.is_file():
            return candidate
    except OSError as e:
        logger.debug("Cannot read %s in package %r: %s", path, package, e)
    return None


class PackagedNamespace:
    """Read-only packaged resource lookup across the four scopes.

    Args:
        component: Package that owns the resolver.
    """

    def __init__(self, component: str = COMPONENT_PACKAGE):
        self.component = component

    def lookup(self, descriptor: ResourceDescriptor) -> PackagedHit | None:
        """Return the first scope that has the resource, or None."""
        for scope in SCOPES:
            hit = getattr(self, f"find_{scope}")(descriptor)
            if hit is not None:
                logger.debug("Found '%s' in %s scope", descriptor.name, scope)
                return hit
            logger.debug("'%s' not in %s scope", descriptor.name, scope)
        return None

    def find_context(self, descriptor: ResourceDescriptor) -> PackagedHit | None:
        package = resource_context.get()
        if not package:
            return None
        return self._find("context", package, descriptor.resource_path)

    def find_component(self, descriptor: ResourceDescriptor) -> PackagedHit | None:
        return self._find("component", self.component, descriptor.resource_path)

    def find_absolute(self, descriptor: ResourceDescriptor) -> PackagedHit | None:
        parts = descriptor.resource_path.strip("/").split("/")
        # Longest importable package prefix anchors the rest of the path
        for i in range(len(parts) - 1, 0, -1):
            hit = self._find("absolute", ".".join(parts[:i]), "/".join(parts[i:]))
            if hit is not None:
                return hit
        return None

    def find_module(self, descriptor: ResourceDescriptor) -> PackagedHit | None:
        if not descriptor.module:
            return None
        file_name = PurePosixPath(descriptor.resource_path).name
        return self._find("module", descriptor.module, file_name)

    def _find(self, scope: str, package: str, path: str) -> PackagedHit | None:
        resource = _find_in_package(package, path)
        if resource is None:
            return None
        return PackagedHit(scope, package, path, resource)


def resolve_one(
    descriptor: ResourceDescriptor,
    root: Path,
    namespace: PackagedNamespace,
) -> ResolvedResource:
    """Resolve a single descriptor without touching any watcher."""
    path = descriptor.filesystem_path(root)
    if path_exists(path):
        path = path.absolute()
        logger.info("Loaded '%s' from local file system: %s", descriptor.name, path)
        return ResolvedResource(descriptor, Origin.FILESYSTEM, path.as_uri(), path=path)

    logger.debug("No local file for '%s' at %s", descriptor.name, path)
    hit = namespace.lookup(descriptor)
    if hit is not None:
        logger.info(
            "Loaded '%s' from %s resources: %s", descriptor.name, hit.scope, hit.locator
        )
        return ResolvedResource(
            descriptor, Origin.PACKAGED, hit.locator, scope=hit.scope, packaged=hit
        )
    return ResolvedResource(descriptor, Origin.UNRESOLVED)


def path_converter(resolved: Iterable[ResolvedResource]):
    """Build a converter mapping filesystem locators back to their files."""
    mapping = {
        r.locator: r.path for r in resolved if r.origin is Origin.FILESYSTEM
    }

    def convert(locator: str) -> Path | None:
        path = mapping.get(locator)
        if path is None:
            return None
        if not path.exists():
            logger.warning("Cannot find file to watch for %s: %s", locator, path)
            return None
        return path

    return convert


def resolve_resources(
    descriptors: Iterable[ResourceDescriptor],
    root: Path | str | None = None,
    *,
    namespace: PackagedNamespace | None = None,
    watcher: Watcher | None = None,
    watch: bool = False,
    on_reload: ReloadCallback | None = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> ResolutionReport:
    """Resolve each descriptor and watch the ones found on disk.

    A descriptor found nowhere is recorded as unresolved with a
    :class:`ResourceNotFoundError` diagnostic; the rest of the batch is
    still resolved. A watcher that fails to start is recorded as a
    :class:`WatcherStartError` diagnostic.

    Args:
        descriptors: Resources to resolve, in order.
        root: Filesystem root for local overrides. Defaults to cwd.
        namespace: Packaged resource lookup. Defaults to
            :class:`PackagedNamespace`.
        watcher: Watcher to register filesystem resources with.
        watch: Create a :class:`PollingWatcher` when ``watcher`` is None.
        on_reload: Reload callback for the created watcher.
        poll_interval: Poll interval for the created watcher.

    Returns:
        A report with one result per descriptor.
    """
    root = Path.cwd() if root is None else Path(root)
    if namespace is None:
        namespace = PackagedNamespace()
    logger.debug("Resolving resources against root: %s", root)

    report = ResolutionReport()
    for descriptor in descriptors:
        resolved = resolve_one(descriptor, root, namespace)
        if resolved.origin is Origin.UNRESOLVED:
            error = ResourceNotFoundError(descriptor)
            logger.warning("%s", error)
            report.diagnostics.append(error)
        report.results.append(resolved)

    local = report.filesystem
    if not local:
        return report
    if watcher is None:
        if not watch:
            return report
        watcher = PollingWatcher(on_reload, interval=poll_interval)

    try:
        watcher.add_converter(path_converter(local))
        watcher.watch([r.locator for r in local])
        watcher.start()
    except Exception as e:
        error = WatcherStartError(f"Failed to start resource watcher: {e}")
        logger.error("%s", error, exc_info=True)
        report.diagnostics.append(error)
        return report

    report.watched = True
    logger.info("Watching %d resource(s) for changes", len(local))
    return report
