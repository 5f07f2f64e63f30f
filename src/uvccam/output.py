from __future__ import annotations

import logging
from pathlib import Path

from .config import DerivedPaths, derive_paths

logger = logging.getLogger(__name__)

DIRECTORY_MODE = 0o755


class OutputPathManager:
    """Derives the output directory and filename and makes sure the directory exists."""

    def __init__(self, output: str) -> None:
        self.paths: DerivedPaths = derive_paths(output)

    @property
    def directory(self) -> str:
        return self.paths.directory

    @property
    def filename(self) -> str:
        return self.paths.filename

    def update(self, output: str) -> DerivedPaths:
        self.paths = derive_paths(output)
        return self.paths

    def prepare_directory(self) -> Path:
        directory = Path(self.paths.directory)
        if not directory.exists():
            directory.mkdir(parents=True, exist_ok=True)
            directory.chmod(DIRECTORY_MODE)
            logger.info("Created output directory %s", directory)
        return directory
