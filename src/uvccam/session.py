from __future__ import annotations

import logging
from typing import Mapping, Optional

from .compat import EMULATE_RASPICAM, translate_raspicam_options
from .config import CaptureOptions, DerivedPaths
from .events import EventBus, EventHandler, EventKind
from .output import OutputPathManager
from .registry import CaptureRegistry
from .supervisor import ProcessSupervisor, RunnerFactory, SupervisorState
from .watcher import DirectoryWatcher, MonitorFactory

logger = logging.getLogger(__name__)

REQUIRED_OPTIONS = ("mode", "output")


def _qt_runner_factory() -> RunnerFactory:
    from .platform.qt import QtProcessRunner

    return QtProcessRunner


def _qt_monitor_factory() -> MonitorFactory:
    from .platform.qt import QtDirectoryMonitor

    return QtDirectoryMonitor


class CaptureSession:
    """One configured capture: owns the options and emits start/read/stop/exit events."""

    def __init__(
        self,
        options: CaptureOptions,
        runner_factory: Optional[RunnerFactory] = None,
        monitor_factory: Optional[MonitorFactory] = None,
        registry: Optional[CaptureRegistry] = None,
    ) -> None:
        self.options = options
        self.bus = EventBus()
        self.path_manager = OutputPathManager(options.output)
        self.path_manager.prepare_directory()
        self.watcher = DirectoryWatcher(monitor_factory or _qt_monitor_factory())
        self.supervisor = ProcessSupervisor(
            bus=self.bus,
            watcher=self.watcher,
            runner_factory=runner_factory or _qt_runner_factory(),
            registry=registry,
        )

    @property
    def paths(self) -> DerivedPaths:
        return self.path_manager.paths

    @property
    def directory(self) -> str:
        return self.path_manager.directory

    @property
    def filename(self) -> str:
        return self.path_manager.filename

    @property
    def is_running(self) -> bool:
        return self.supervisor.state is SupervisorState.RUNNING

    def on(self, kind: str | EventKind, handler: EventHandler) -> None:
        self.bus.on(kind, handler)

    def off(self, kind: str | EventKind, handler: EventHandler) -> None:
        self.bus.off(kind, handler)

    def get(self, key: str) -> object:
        return self.options.get(key)

    def set(self, key: str, value: object) -> None:
        self.options.set(key, value)
        if key == "output":
            self.path_manager.update(self.options.output)

    def start(self) -> bool:
        return self.supervisor.launch(self.options, self.paths)

    def stop(self) -> bool:
        return self.supervisor.stop()


def open_session(
    options: Mapping[str, object],
    runner_factory: Optional[RunnerFactory] = None,
    monitor_factory: Optional[MonitorFactory] = None,
    registry: Optional[CaptureRegistry] = None,
) -> Optional[CaptureSession]:
    """Build a session from raw options, or return None when they are unusable.

    ``mode`` and ``output`` are required. Options given in the raspistill
    vocabulary are translated when ``emulateraspicam`` is present.
    """

    missing = [name for name in REQUIRED_OPTIONS if options.get(name) is None]
    if missing:
        logger.error("CaptureSession: must define %s", " and ".join(REQUIRED_OPTIONS))
        return None

    raw = dict(options)
    if EMULATE_RASPICAM in raw:
        raw = translate_raspicam_options(raw)

    try:
        capture_options = CaptureOptions.from_dict(raw)
    except (TypeError, ValueError) as exc:
        logger.error("CaptureSession: invalid options: %s", exc)
        return None

    return CaptureSession(
        capture_options,
        runner_factory=runner_factory,
        monitor_factory=monitor_factory,
        registry=registry,
    )
