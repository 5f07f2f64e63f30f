from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional

from .config import INFINITY_MS, CaptureMode, CaptureOptions, DerivedPaths
from .events import (
    ERROR_ALREADY_RUNNING,
    ERROR_INVALID_MODE,
    ERROR_NOT_RUNNING,
    ERROR_TIMELAPSE_FREQUENCY,
    CaptureEvent,
    EventBus,
    EventKind,
)
from .interfaces import ProcessResult, ProcessRunner
from .registry import CaptureRegistry, default_registry
from .watcher import DirectoryWatcher

logger = logging.getLogger(__name__)

UVCCAPTURE = "/usr/bin/uvccapture"

# Video capture is not supported by uvccapture.
PROGRAMS: Dict[CaptureMode, Optional[str]] = {
    CaptureMode.PHOTO: UVCCAPTURE,
    CaptureMode.TIMELAPSE: UVCCAPTURE,
    CaptureMode.VIDEO: None,
}

RunnerFactory = Callable[[], ProcessRunner]


class SupervisorState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


def build_arguments(options: CaptureOptions) -> List[str]:
    """Render options as uvccapture flags with the value appended to the flag name."""

    arguments: List[str] = []
    for name, value in options.flags().items():
        if isinstance(value, bool):
            arguments.append(f"-{name}")
        else:
            arguments.append(f"-{name}{value}")
    return arguments


def resolve_program(mode: str) -> Optional[str]:
    try:
        return PROGRAMS[CaptureMode(mode)]
    except ValueError:
        return None


class ProcessSupervisor:
    """Launches the capture program and reports its lifecycle on the event bus."""

    def __init__(
        self,
        bus: EventBus,
        watcher: DirectoryWatcher,
        runner_factory: RunnerFactory,
        registry: Optional[CaptureRegistry] = None,
    ) -> None:
        self.bus = bus
        self.watcher = watcher
        self.runner_factory = runner_factory
        self.registry = registry or default_registry()
        self._process: Optional[ProcessRunner] = None
        self._launching = False
        self._deferred: Optional[ProcessResult] = None

    @property
    def state(self) -> SupervisorState:
        return SupervisorState.RUNNING if self._process is not None else SupervisorState.IDLE

    def launch(self, options: CaptureOptions, paths: DerivedPaths) -> bool:
        if self.registry.is_running:
            return self._reject(ERROR_ALREADY_RUNNING)

        program = resolve_program(options.mode)
        if program is None:
            return self._reject(ERROR_INVALID_MODE)

        if options.mode == CaptureMode.TIMELAPSE.value:
            if options.timelapse is None:
                return self._reject(ERROR_TIMELAPSE_FREQUENCY)
            if options.timeout is None:
                options.timeout = INFINITY_MS

        if not self.registry.try_acquire(self):
            return self._reject(ERROR_ALREADY_RUNNING)

        self.watcher.subscribe(paths.directory, self.bus.emit)

        arguments = build_arguments(options)
        logger.info("Starting %s capture into %s", options.mode, paths.directory)
        logger.debug("Command: %s %s", program, " ".join(arguments))

        runner = self.runner_factory()
        self._process = runner
        self._launching = True
        try:
            runner.start(program, arguments, lambda result: self._handle_finished(runner, result))
        except OSError as exc:
            self._deferred = ProcessResult(exit_code=None, error=str(exc))
        finally:
            self._launching = False

        self.bus.emit_kind(EventKind.START)

        deferred, self._deferred = self._deferred, None
        if deferred is not None:
            self._handle_finished(runner, deferred)
        return True

    def stop(self) -> bool:
        self.watcher.unsubscribe()

        process = self._process
        if process is None or not self.registry.holds(self):
            logger.warning("Stop requested but no capture process is running")
            self.bus.emit_kind(EventKind.STOP, error=ERROR_NOT_RUNNING)
            return False

        self._process = None
        process.kill()
        self.registry.release(self)
        logger.info("Capture process stopped")
        self.bus.emit_kind(EventKind.STOP)
        return True

    def terminate(self) -> None:
        process, self._process = self._process, None
        self.watcher.unsubscribe()
        self.registry.release(self)
        if process is not None:
            process.kill()

    def _reject(self, message: str) -> bool:
        logger.warning("Capture not started: %s", message)
        self.bus.emit_kind(EventKind.START, error=message)
        return False

    def _handle_finished(self, runner: ProcessRunner, result: ProcessResult) -> None:
        if runner is not self._process:
            logger.debug("Ignoring completion of a process that was already stopped")
            return
        if self._launching:
            self._deferred = result
            return

        self.watcher.drain()
        self.watcher.unsubscribe()
        self._process = None
        self.registry.release(self)

        diagnostic = result.diagnostic
        if diagnostic is not None:
            logger.error("Capture process failed: %s", diagnostic)
            self.bus.emit(CaptureEvent(kind=EventKind.EXIT.value, timestamp=None, error=diagnostic))
        else:
            logger.info("Capture process exited")
            self.bus.emit_kind(EventKind.EXIT, timestamp=datetime.now())
