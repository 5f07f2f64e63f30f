from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from .events import CaptureEvent, EventKind
from .interfaces import DirectoryMonitor

logger = logging.getLogger(__name__)

# Raw kind reported when a new entry appears in the directory.
RENAME = "rename"

MonitorFactory = Callable[[], DirectoryMonitor]


class DirectoryWatcher:
    """Turns raw directory notifications into capture events."""

    def __init__(self, monitor_factory: MonitorFactory) -> None:
        self._monitor_factory = monitor_factory
        self._monitor: Optional[DirectoryMonitor] = None
        self._on_event: Optional[Callable[[CaptureEvent], None]] = None

    @property
    def subscribed(self) -> bool:
        return self._monitor is not None

    def subscribe(self, directory: str, on_event: Callable[[CaptureEvent], None]) -> None:
        self.unsubscribe()
        self._on_event = on_event
        monitor = self._monitor_factory()
        self._monitor = monitor
        monitor.watch(directory, self._handle_raw)
        logger.debug("Watching %s", directory)

    def drain(self) -> None:
        if self._monitor is not None:
            self._monitor.refresh()

    def unsubscribe(self) -> None:
        monitor, self._monitor = self._monitor, None
        self._on_event = None
        if monitor is not None:
            monitor.close()

    def _handle_raw(self, kind: str, name: str) -> None:
        if self._on_event is None:
            return
        if kind == RENAME:
            event = CaptureEvent(kind=EventKind.READ.value, timestamp=datetime.now(), filename=name)
        else:
            logger.debug("watcher event %s: %s", kind, name)
            event = CaptureEvent(kind=kind, timestamp=datetime.now(), filename=name)
        self._on_event(event)
