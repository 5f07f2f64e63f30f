from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence


@dataclass(frozen=True)
class ProcessResult:
    exit_code: Optional[int]
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None

    @property
    def diagnostic(self) -> Optional[str]:
        """Text describing why the run failed, or None for a clean exit."""

        if self.error:
            return self.error
        stderr = self.stderr.strip()
        if stderr:
            return stderr
        if self.exit_code not in (None, 0):
            return f"Process exited with status {self.exit_code}"
        return None


RawEventCallback = Callable[[str, str], None]


class ProcessRunner(Protocol):
    def start(
        self,
        program: str,
        arguments: Sequence[str],
        on_finished: Callable[[ProcessResult], None],
    ) -> None:
        """Spawn the program and call ``on_finished`` once it has terminated."""

    def kill(self) -> None:
        """Forcibly terminate the running program."""


class DirectoryMonitor(Protocol):
    def watch(self, directory: str, callback: RawEventCallback) -> None:
        """Report raw ``(kind, entry_name)`` notifications for ``directory``."""

    def refresh(self) -> None:
        """Deliver any pending notifications synchronously."""

    def close(self) -> None:
        """Stop reporting notifications. Safe to call repeatedly."""
