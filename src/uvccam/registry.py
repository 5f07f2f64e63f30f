"""Process-wide guard allowing a single capture to run at a time."""

from __future__ import annotations

import atexit
import logging
import threading
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class CaptureHolder(Protocol):
    def terminate(self) -> None:
        """Kill the running capture without emitting events."""


class CaptureRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._holder: Optional[CaptureHolder] = None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._holder is not None

    def holds(self, holder: CaptureHolder) -> bool:
        with self._lock:
            return self._holder is holder

    def try_acquire(self, holder: CaptureHolder) -> bool:
        with self._lock:
            if self._holder is not None:
                return False
            self._holder = holder
            return True

    def release(self, holder: CaptureHolder) -> None:
        with self._lock:
            if self._holder is holder:
                self._holder = None

    def shutdown(self) -> None:
        with self._lock:
            holder, self._holder = self._holder, None
        if holder is not None:
            logger.info("Terminating capture still running at shutdown")
            holder.terminate()


_default_registry = CaptureRegistry()
atexit.register(_default_registry.shutdown)


def default_registry() -> CaptureRegistry:
    return _default_registry
