"""Default plugin directory resolution.

The plugin directory depends on how the host application was deployed.
Each deployment layout contributes a candidate directory; candidates are
probed in a fixed order and the first one that exists wins:

    1. installer-runtime    <marker>/../../lib/plugins   (PLUGHOST_APP_PATH set)
    2. installer-alternate  <marker>/../plugins          (PLUGHOST_APP_PATH set)
    3. relocatable-image    <cwd>/../plugins
    4. build-nested         <cwd>/target/<app_name>/plugins
    5. build-flat           <cwd>/target/plugins
    6. system-install       platform install location

If nothing exists the fallback is ``<cwd>/../plugins`` (or
``<cwd>/target/plugins`` when the working directory has no parent), which
is returned without checking that it exists.

All functions take an explicit :class:`Environment` so the environment
lookup and the existence predicate can be swapped out in tests.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)

INSTALLER_MARKER_ENV = "PLUGHOST_APP_PATH"
DEFAULT_APP_NAME = "plughost"
PLUGINS_DIRNAME = "plugins"
BUILD_DIRNAME = "target"
FALLBACK_LABEL = "fallback"


def path_exists(path: Path) -> bool:
    """Like ``Path.exists``, but an unreadable or invalid path counts as missing."""
    try:
        return path.exists()
    except OSError as e:
        logger.debug("Cannot stat %s: %s", path, e)
        return False


@dataclass(frozen=True)
class Environment:
    """Process inputs consulted during resolution."""

    cwd: Path
    home: Path
    platform: str = sys.platform
    app_name: str = DEFAULT_APP_NAME
    getenv: Callable[[str], str | None] = field(default=os.environ.get)
    exists: Callable[[Path], bool] = field(default=path_exists)

    @classmethod
    def from_process(cls, app_name: str = DEFAULT_APP_NAME) -> Environment:
        """Build an environment from the running process."""
        return cls(
            cwd=Path.cwd(),
            home=Path.home(),
            platform=sys.platform,
            app_name=app_name,
        )


@dataclass(frozen=True)
class Candidate:
    """One probed location: where it is and whether it existed."""

    label: str
    path: Path
    found: bool


@dataclass(frozen=True)
class Resolution:
    """Outcome of default resolution.

    Attributes:
        path: The selected directory.
        label: Label of the winning candidate, or ``"fallback"``.
        candidates: Every probed candidate, in probe order.
    """

    path: Path
    label: str
    candidates: tuple[Candidate, ...]

    @property
    def is_fallback(self) -> bool:
        return self.label == FALLBACK_LABEL


def _has_parent(path: Path) -> bool:
    return path.parent != path


def candidate_locations(env: Environment) -> list[tuple[str, Path]]:
    """Return the ordered (label, path) locations for this environment.

    Locations that repeat an earlier path are dropped.
    """
    locations: list[tuple[str, Path]] = []

    marker = env.getenv(INSTALLER_MARKER_ENV)
    if marker:
        launcher = Path(marker)
        locations.append(
            ("installer-runtime", launcher.parent.parent / "lib" / PLUGINS_DIRNAME)
        )
        locations.append(("installer-alternate", launcher.parent / PLUGINS_DIRNAME))

    if _has_parent(env.cwd):
        locations.append(("relocatable-image", env.cwd.parent / PLUGINS_DIRNAME))

    build_dir = env.cwd / BUILD_DIRNAME
    locations.append(("build-nested", build_dir / env.app_name / PLUGINS_DIRNAME))
    locations.append(("build-flat", build_dir / PLUGINS_DIRNAME))

    installed = system_install_path(env)
    if installed is not None:
        locations.append(("system-install", installed))

    seen: set[Path] = set()
    unique = []
    for label, path in locations:
        if path in seen:
            continue
        seen.add(path)
        unique.append((label, path))
    return unique


def system_install_path(env: Environment) -> Path | None:
    """Return the conventional install location for the platform.

    Returns None on Windows when ``ProgramFiles`` is not set.
    """
    if env.platform == "darwin":
        return (
            Path("/Applications") / f"{env.app_name}.app" / "Contents" / PLUGINS_DIRNAME
        )
    if env.platform.startswith("win"):
        program_files = env.getenv("ProgramFiles")
        if not program_files:
            return None
        return Path(program_files) / env.app_name / PLUGINS_DIRNAME
    return Path("/opt") / env.app_name / PLUGINS_DIRNAME


def probe_candidates(env: Environment) -> list[Candidate]:
    """Check each candidate location for existence, in order."""
    candidates = []
    for label, path in candidate_locations(env):
        found = bool(env.exists(path))
        logger.debug("Probed %s plugin directory %s: %s", label, path, found)
        candidates.append(Candidate(label, path, found))
    return candidates


def fallback_path(env: Environment) -> Path:
    """Return the directory used when no candidate exists."""
    if _has_parent(env.cwd):
        return env.cwd.parent / PLUGINS_DIRNAME
    return env.cwd / BUILD_DIRNAME / PLUGINS_DIRNAME


def select(candidates: list[Candidate], fallback: Path) -> Resolution:
    """Pick the first found candidate, else the fallback."""
    for candidate in candidates:
        if candidate.found:
            return Resolution(candidate.path, candidate.label, tuple(candidates))
    return Resolution(fallback, FALLBACK_LABEL, tuple(candidates))


def explain_default(env: Environment | None = None) -> Resolution:
    """Resolve the default plugin directory, keeping every probe result."""
    if env is None:
        env = Environment.from_process()
    resolution = select(probe_candidates(env), fallback_path(env))
    logger.debug(
        "Resolved default plugin directory (%s): %s", resolution.label, resolution.path
    )
    return resolution


def resolve_default(env: Environment | None = None) -> Path:
    """Return the default plugin directory for this environment.

    Only existence checks are performed; the returned directory may not
    exist when it is the fallback.
    """
    return explain_default(env).path


def resolve_from_named_override(key: str, env: Environment | None = None) -> Path:
    """Return the path named by ``key``, or the default directory.

    A present, non-empty value is returned as a path without probing.

    Args:
        key: Name of the environment value holding a directory path.
        env: Environment to consult. Defaults to the running process.

    Returns:
        The override path, or :func:`resolve_default`.
    """
    if env is None:
        env = Environment.from_process()
    value = env.getenv(key)
    if not value:
        logger.warning("'%s' not set, using default plugin directory", key)
        return resolve_default(env)
    logger.info("Using plugin directory from '%s': %s", key, value)
    return Path(value)
