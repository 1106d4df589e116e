"""Stylesheets shipped with plughost and a helper to apply them.

Each stylesheet is looked up as ``css/<file>`` under the working directory
first, so it can be edited live during development, and falls back to the
copy packaged in ``plughost/css``.

Example::

    from plughost.stylesheets import Stylesheet, add_stylesheets

    sheets = []
    add_stylesheets(sheets, Stylesheet.THEME, Stylesheet.PLUGINS, watch=True)
"""

import enum
import logging
from pathlib import Path

from .resources import (
    COMPONENT_PACKAGE,
    ResolutionReport,
    ResourceDescriptor,
    resolve_resources,
)

logger = logging.getLogger(__name__)

CSS_DIRNAME = "css"


class Stylesheet(enum.Enum):
    """Known stylesheets, by file name."""

    THEME = "theme.css"
    PLUGINS = "plugins.css"

    @property
    def file_name(self) -> str:
        return self.value

    @property
    def descriptor(self) -> ResourceDescriptor:
        return ResourceDescriptor(
            name=self.value,
            fragment=f"{CSS_DIRNAME}/{self.value}",
            resource_path=f"{COMPONENT_PACKAGE}/{CSS_DIRNAME}/{self.value}",
            module=f"{COMPONENT_PACKAGE}.{CSS_DIRNAME}",
        )

    @classmethod
    def from_name(cls, name: str) -> "Stylesheet":
        """Look up a stylesheet by file name or member name."""
        for sheet in cls:
            if name in (sheet.value, sheet.name, sheet.name.lower()):
                return sheet
        raise ValueError(f"Unknown stylesheet: {name}")


def add_stylesheets(
    stylesheets: list[str],
    *sheets: Stylesheet,
    root: Path | None = None,
    **resolve_options,
) -> ResolutionReport:
    """Resolve ``sheets`` and append their locators to ``stylesheets``.

    Args:
        stylesheets: The host's stylesheet list, modified in place.
        *sheets: Stylesheets to add, in order.
        root: Directory searched for local overrides. Defaults to cwd.
        **resolve_options: Passed to :func:`~plughost.resources.resolve_resources`
            (``watcher``, ``watch``, ``on_reload``, ``poll_interval``).

    Returns:
        The resolution report.
    """
    if not sheets:
        logger.warning("No stylesheets provided to add_stylesheets.")
        return ResolutionReport()

    report = resolve_resources(
        [sheet.descriptor for sheet in sheets], root, **resolve_options
    )
    locators = report.locators
    if locators:
        stylesheets.extend(locators)
        logger.info("Added %d stylesheet(s).", len(locators))
    else:
        logger.warning("No stylesheets were added.")
    return report
