"""Error types raised by the filter engine.

Every error is surfaced to the immediate caller. The core never retries or
downgrades a failure to a default keep/drop decision.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class FilterError(Exception):
    """Base class for all filter engine failures."""


class ConfigError(FilterError):
    """The configuration document does not have the expected shape."""


class ScriptLoadError(FilterError):
    """A script could not be read, compiled, or evaluated to a module table."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None) -> None:
        super().__init__(message)
        self.path = path


class ScriptRuntimeError(FilterError):
    """A predicate raised or returned something other than a boolean."""

    def __init__(self, message: str, filter_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.filter_name = filter_name


class ConversionError(FilterError):
    """A host value cannot be represented as a Lua value."""
