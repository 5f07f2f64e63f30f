"""Platform-specific service implementations."""

from .qt import QtDirectoryMonitor, QtProcessRunner

__all__ = [
    "QtDirectoryMonitor",
    "QtProcessRunner",
]
