"""PySide6 backed process and directory monitoring services."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from PySide6.QtCore import QFileSystemWatcher, QProcess

from ..interfaces import DirectoryMonitor, ProcessResult, ProcessRunner, RawEventCallback
from ..watcher import RENAME

logger = logging.getLogger(__name__)

CHANGE = "change"
REMOVE = "remove"

KILL_WAIT_MS = 1000

_Stamp = Tuple[int, int]


def _snapshot(directory: Path) -> Dict[str, _Stamp]:
    entries: Dict[str, _Stamp] = {}
    try:
        with os.scandir(directory) as it:
            for entry in it:
                try:
                    stat = entry.stat(follow_symlinks=False)
                except FileNotFoundError:
                    continue
                entries[entry.name] = (stat.st_mtime_ns, stat.st_size)
    except FileNotFoundError:
        logger.warning("Watched directory %s no longer exists", directory)
    return entries


def _decode(data) -> str:
    return bytes(data.data()).decode("utf-8", errors="replace")


class QtProcessRunner(ProcessRunner):
    """Runs one program through QProcess; completion arrives on the Qt event loop."""

    def __init__(self) -> None:
        self._process: Optional[QProcess] = None
        self._on_finished: Optional[Callable[[ProcessResult], None]] = None
        self._reported = False

    def start(
        self,
        program: str,
        arguments: Sequence[str],
        on_finished: Callable[[ProcessResult], None],
    ) -> None:
        process = QProcess()
        process.finished.connect(self._handle_finished)
        process.errorOccurred.connect(self._handle_error)
        self._process = process
        self._on_finished = on_finished
        self._reported = False
        process.start(program, list(arguments))

    def kill(self) -> None:
        if not self.is_running():
            return
        assert self._process is not None
        self._process.kill()
        self._process.waitForFinished(KILL_WAIT_MS)

    def is_running(self) -> bool:
        return self._process is not None and self._process.state() != QProcess.ProcessState.NotRunning

    def wait_for_started(self, msecs: int = 30000) -> bool:
        if self._process is None:
            return False
        return self._process.waitForStarted(msecs)

    def wait_for_finished(self, msecs: int = 30000) -> bool:
        if self._process is None:
            return True
        return self._process.waitForFinished(msecs)

    def _handle_finished(self, exit_code: int, exit_status: QProcess.ExitStatus) -> None:
        process = self._process
        if process is None:
            return
        error = "Process crashed" if exit_status == QProcess.ExitStatus.CrashExit else None
        stdout = _decode(process.readAllStandardOutput())
        stderr = _decode(process.readAllStandardError())
        if stdout:
            logger.debug("stdout = %s", stdout.rstrip())
        if stderr:
            logger.debug("stderr = %s", stderr.rstrip())
        self._report(ProcessResult(exit_code=exit_code, stdout=stdout, stderr=stderr, error=error))

    def _handle_error(self, error: QProcess.ProcessError) -> None:
        process = self._process
        if process is None:
            return
        if error == QProcess.ProcessError.FailedToStart:
            self._report(ProcessResult(exit_code=None, error=process.errorString()))
        else:
            logger.debug("QProcess error %s: %s", error, process.errorString())

    def _report(self, result: ProcessResult) -> None:
        if self._reported or self._on_finished is None:
            return
        self._reported = True
        self._on_finished(result)


class QtDirectoryMonitor(DirectoryMonitor):
    """Reports entries appearing, changing or vanishing in one directory.

    QFileSystemWatcher only says that the directory or one of its files
    changed, so each notification is resolved by comparing against the
    previous listing. Every regular file is watched as well, since
    rewriting an existing file does not touch the directory.
    """

    def __init__(self) -> None:
        self._watcher: Optional[QFileSystemWatcher] = None
        self._directory: Optional[Path] = None
        self._callback: Optional[RawEventCallback] = None
        self._entries: Dict[str, _Stamp] = {}

    def watch(self, directory: str, callback: RawEventCallback) -> None:
        self.close()
        self._directory = Path(directory)
        self._callback = callback
        self._entries = _snapshot(self._directory)
        watcher = QFileSystemWatcher()
        watcher.directoryChanged.connect(self._on_changed)
        watcher.fileChanged.connect(self._on_changed)
        if not watcher.addPath(str(self._directory)):
            logger.warning("Unable to watch %s", self._directory)
        self._watcher = watcher
        self._track_files()

    def refresh(self) -> None:
        if self._directory is None:
            return
        current = _snapshot(self._directory)
        previous, self._entries = self._entries, current
        self._track_files()

        pending: List[Tuple[str, str]] = []
        for name in sorted(current):
            if name not in previous:
                pending.append((RENAME, name))
            elif previous[name] != current[name]:
                pending.append((CHANGE, name))
        for name in sorted(previous):
            if name not in current:
                pending.append((REMOVE, name))

        for kind, name in pending:
            # A handler may close the monitor part way through.
            if self._callback is None:
                break
            self._callback(kind, name)

    def close(self) -> None:
        watcher, self._watcher = self._watcher, None
        self._callback = None
        self._directory = None
        self._entries = {}
        if watcher is not None:
            paths = watcher.directories() + watcher.files()
            if paths:
                watcher.removePaths(paths)

    def _track_files(self) -> None:
        watcher, directory = self._watcher, self._directory
        if watcher is None or directory is None:
            return
        # A file replaced by rename drops out of the watch list, so re-add it.
        wanted = {str(directory / name) for name in self._entries if (directory / name).is_file()}
        watched = set(watcher.files())
        stale = sorted(watched - wanted)
        if stale:
            watcher.removePaths(stale)
        missing = sorted(wanted - watched)
        if missing:
            watcher.addPaths(missing)

    def _on_changed(self, path: str) -> None:
        self.refresh()
