"""Service lookup over an initialized plugin context."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, TypeVar

from .context import PluginContext

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class ServiceLoader:
    """Finds capability implementations through a :class:`PluginContext`.

    Every method raises :class:`~plughost.errors.NotInitializedError` until
    the context has been initialized. Calls block on the registry for as
    long as it takes to import and instantiate plugins.
    """

    def __init__(self, context: PluginContext):
        self.context = context

    def load_services(self, capability: type[T]) -> Iterable[T]:
        """Return every provider of ``capability``, as the registry yields them."""
        self.context.ensure_initialized()
        logger.debug("Loading plugin services for type: %s", capability.__name__)
        return self.context.registry.query(capability)

    def find_first(self, capability: type[T]) -> T | None:
        """Return the first provider of ``capability``, or None."""
        return next(iter(self.load_services(capability)), None)

    def with_service(
        self,
        capability: type[T],
        action: Callable[[T], R],
        empty_action: Callable[[], R],
    ) -> R:
        """Call ``action`` with the first provider, or ``empty_action`` if none.

        Args:
            capability: Capability to look up.
            action: Called with the provider when one is found.
            empty_action: Called with no arguments when none is found.

        Returns:
            Whatever the called action returns.
        """
        service = self.find_first(capability)
        if service is None:
            return empty_action()
        return action(service)
