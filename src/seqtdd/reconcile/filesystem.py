# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""File-system access used by the reconciler."""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


class FileSystemAdapter(Protocol):
    """Minimal file access over paths relative to a target root.

    Implementations raise ``OSError`` for failed reads and writes.
    """

    def exists(self, path: str) -> bool: ...

    def read_text(self, path: str) -> str: ...

    def write_text(self, path: str, content: str) -> None: ...

    def remove(self, path: str) -> None: ...


class LocalFileSystem:
    """FileSystemAdapter over a directory on disk.

    Writes go to a temporary file beside the target that is then renamed
    over it, so a failed write leaves the previous content in place.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def _resolve(self, path: str) -> Path:
        return self.root / path

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def read_text(self, path: str) -> str:
        return self._resolve(path).read_text(encoding="utf-8")

    def write_text(self, path: str, content: str) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        mode = stat.S_IMODE(target.stat().st_mode) if target.is_file() else None

        fd = None
        temp_path = None
        try:
            fd, temp_path = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                fd = None  # owned by the file object now
                f.write(content)
            if mode is not None:
                os.chmod(temp_path, mode)
            os.replace(temp_path, target)
            temp_path = None
        except OSError:
            if fd is not None:
                try:
                    os.close(fd)
                except OSError as close_error:
                    logger.debug("Failed to close temp fd: %s", close_error)
            if temp_path is not None and os.path.exists(temp_path):
                try:
                    os.unlink(temp_path)
                except OSError as unlink_error:
                    logger.warning("Failed to clean up temp file %s: %s", temp_path, unlink_error)
            raise

    def remove(self, path: str) -> None:
        self._resolve(path).unlink(missing_ok=True)
