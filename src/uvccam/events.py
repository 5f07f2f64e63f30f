from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, DefaultDict, List, Optional

ERROR_ALREADY_RUNNING = "Error: a capture process is already running"
ERROR_INVALID_MODE = "Error: mode must be photo, timelapse or video"
ERROR_TIMELAPSE_FREQUENCY = "Error: must specify timelapse frequency option"
ERROR_NOT_RUNNING = "Error: no process was running"


class EventKind(str, Enum):
    START = "start"
    READ = "read"
    STOP = "stop"
    EXIT = "exit"


@dataclass(frozen=True)
class CaptureEvent:
    """One lifecycle notification.

    ``kind`` is an :class:`EventKind` value or a raw filesystem event kind.
    A failed ``exit`` carries its diagnostic in ``error`` and no timestamp.
    """

    kind: str
    timestamp: Optional[datetime]
    error: Optional[str] = None
    filename: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


EventHandler = Callable[[CaptureEvent], None]


def _kind_key(kind: str | EventKind) -> str:
    return kind.value if isinstance(kind, EventKind) else str(kind)


class EventBus:
    """Delivers events to the handlers registered for their kind, in registration order."""

    def __init__(self) -> None:
        self._handlers: DefaultDict[str, List[EventHandler]] = defaultdict(list)

    def on(self, kind: str | EventKind, handler: EventHandler) -> None:
        self._handlers[_kind_key(kind)].append(handler)

    def off(self, kind: str | EventKind, handler: EventHandler) -> None:
        handlers = self._handlers.get(_kind_key(kind), [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: CaptureEvent) -> None:
        for handler in list(self._handlers.get(event.kind, ())):
            handler(event)

    def emit_kind(
        self,
        kind: str | EventKind,
        error: Optional[str] = None,
        filename: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> CaptureEvent:
        event = CaptureEvent(
            kind=_kind_key(kind),
            timestamp=timestamp or datetime.now(),
            error=error,
            filename=filename,
        )
        self.emit(event)
        return event
