"""Change notification for filesystem resources.

Watchers receive resource locators (URIs), translate them to files with
converters, and call a reload callback when one of those files changes.
The callback runs on the watcher's own thread.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Iterable, Protocol

logger = logging.getLogger(__name__)

Converter = Callable[[str], "Path | None"]
ReloadCallback = Callable[[str, Path], None]

DEFAULT_POLL_INTERVAL = 0.5


class Watcher(Protocol):
    """Registration contract used by the resource resolver."""

    def add_converter(self, converter: Converter) -> Watcher: ...

    def watch(self, locators: Iterable[str]) -> None: ...

    def start(self) -> None: ...


def _signature(path: Path) -> tuple[int, int] | None:
    try:
        st = path.stat()
    except OSError:
        return None
    return st.st_mtime_ns, st.st_size


class PollingWatcher:
    """Watcher that polls file modification time and size.

    Args:
        on_reload: Called as ``on_reload(locator, path)`` once per observed
            change. Exceptions it raises are logged.
        interval: Seconds between polls on the background thread.
    """

    def __init__(
        self,
        on_reload: ReloadCallback | None = None,
        interval: float = DEFAULT_POLL_INTERVAL,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.on_reload = on_reload
        self.interval = interval
        self._converters: list[Converter] = []
        self._watched: dict[str, tuple[Path, tuple[int, int] | None]] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def watched(self) -> dict[str, Path]:
        """Locators currently watched, mapped to their files."""
        with self._lock:
            return {locator: path for locator, (path, _) in self._watched.items()}

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def add_converter(self, converter: Converter) -> PollingWatcher:
        self._converters.append(converter)
        return self

    def convert(self, locator: str) -> Path | None:
        """Return the file for ``locator`` from the first converter that knows it."""
        for converter in self._converters:
            path = converter(locator)
            if path is not None:
                return Path(path)
        return None

    def watch(self, locators: Iterable[str]) -> None:
        """Start tracking ``locators`` that convert to existing files."""
        for locator in locators:
            path = self.convert(locator)
            if path is None:
                logger.debug("No converter maps %s to a file", locator)
                continue
            signature = _signature(path)
            if signature is None:
                logger.warning("Cannot watch missing file for %s: %s", locator, path)
                continue
            with self._lock:
                self._watched[locator] = (path, signature)
            logger.debug("Watching %s for changes", path)

    def start(self) -> None:
        """Start polling on a daemon thread. Does nothing if already running."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="plughost-watcher", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Stop the polling thread and wait for it to finish."""
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None

    def poll(self) -> list[str]:
        """Check every watched file once and fire callbacks for changes.

        Returns:
            Locators whose files changed since the previous check.
        """
        changed: list[tuple[str, Path]] = []
        with self._lock:
            for locator, (path, previous) in self._watched.items():
                current = _signature(path)
                if current == previous:
                    continue
                self._watched[locator] = (path, current)
                if current is None:
                    logger.debug("Watched file disappeared: %s", path)
                    continue
                changed.append((locator, path))

        for locator, path in changed:
            logger.info("Detected change in %s", path)
            if self.on_reload is None:
                continue
            try:
                self.on_reload(locator, path)
            except Exception:
                logger.exception("Reload callback failed for %s", locator)
        return [locator for locator, _ in changed]

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.poll()
