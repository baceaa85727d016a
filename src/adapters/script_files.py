"""Filesystem script source.

Implements the core ScriptSource port, resolving relative script paths
against a root directory (normally the directory holding the config file).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

LOGGER = logging.getLogger(__name__)


class FileScriptSource:
    """Read Lua scripts from disk."""

    def __init__(self, root: Optional[Union[str, Path]] = None) -> None:
        self._root = Path(root) if root is not None else None

    def resolve(self, path: Path) -> Path:
        path = Path(path)
        if self._root is None or path.is_absolute():
            return path
        return self._root / path

    def read(self, path: Path) -> str:
        resolved = self.resolve(path)
        LOGGER.debug("Reading filter script %s", resolved)
        return resolved.read_text(encoding="utf-8")
