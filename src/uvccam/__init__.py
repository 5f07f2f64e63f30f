"""uvccam core library."""

from .compat import translate_raspicam_options
from .config import INFINITY_MS, CaptureMode, CaptureOptions, DerivedPaths, PresetRepository, derive_paths
from .events import CaptureEvent, EventBus, EventKind
from .registry import CaptureRegistry, default_registry
from .session import CaptureSession, open_session
from .supervisor import ProcessSupervisor, SupervisorState, build_arguments
from .watcher import DirectoryWatcher

__all__ = [
    "INFINITY_MS",
    "CaptureMode",
    "CaptureOptions",
    "DerivedPaths",
    "PresetRepository",
    "derive_paths",
    "translate_raspicam_options",
    "CaptureEvent",
    "EventBus",
    "EventKind",
    "CaptureRegistry",
    "default_registry",
    "CaptureSession",
    "open_session",
    "ProcessSupervisor",
    "SupervisorState",
    "build_arguments",
    "DirectoryWatcher",
]
