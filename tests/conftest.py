from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Tuple

import pytest

from uvccam.events import CaptureEvent
from uvccam.interfaces import ProcessResult
from uvccam.registry import CaptureRegistry


class FakeProcessRunner:
    def __init__(self) -> None:
        self.program: Optional[str] = None
        self.arguments: List[str] = []
        self.on_finished: Optional[Callable[[ProcessResult], None]] = None
        self.killed = False

    def start(self, program: str, arguments: Sequence[str], on_finished: Callable[[ProcessResult], None]) -> None:
        self.program = program
        self.arguments = list(arguments)
        self.on_finished = on_finished

    def kill(self) -> None:
        self.killed = True

    def finish(self, result: Optional[ProcessResult] = None) -> None:
        assert self.on_finished is not None
        self.on_finished(result or ProcessResult(exit_code=0))


class FakeDirectoryMonitor:
    def __init__(self) -> None:
        self.directory: Optional[str] = None
        self.callback: Optional[Callable[[str, str], None]] = None
        self.closed = False
        self.pending: List[Tuple[str, str]] = []

    def watch(self, directory: str, callback: Callable[[str, str], None]) -> None:
        self.directory = directory
        self.callback = callback

    def refresh(self) -> None:
        pending, self.pending = self.pending, []
        for kind, name in pending:
            self.notify(kind, name)

    def close(self) -> None:
        self.closed = True
        self.callback = None

    def notify(self, kind: str, name: str) -> None:
        if self.callback is not None:
            self.callback(kind, name)


class FakeBackend:
    """Hands out fake runners and monitors and remembers every one created."""

    def __init__(self) -> None:
        self.runners: List[FakeProcessRunner] = []
        self.monitors: List[FakeDirectoryMonitor] = []

    def runner_factory(self) -> FakeProcessRunner:
        runner = FakeProcessRunner()
        self.runners.append(runner)
        return runner

    def monitor_factory(self) -> FakeDirectoryMonitor:
        monitor = FakeDirectoryMonitor()
        self.monitors.append(monitor)
        return monitor

    @property
    def runner(self) -> FakeProcessRunner:
        return self.runners[-1]

    @property
    def monitor(self) -> FakeDirectoryMonitor:
        return self.monitors[-1]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def registry() -> CaptureRegistry:
    return CaptureRegistry()


@pytest.fixture
def recorded() -> List[CaptureEvent]:
    return []
