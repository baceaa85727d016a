"""Ports (interfaces) used by the core runtime.

Ports define the minimal contracts for script retrieval so that the core can
be reused with different backends.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class ScriptSource(Protocol):
    """Fetch the Lua source for a declared script path."""

    def read(self, path: Path) -> str:
        ...
