"""Lua runtime handle that owns every compiled filter.

One FilterRuntime backs one FilterSystem. Filters only keep a weak reference
to the runtime, so the runtime decides when compiled predicates stop being
usable (close() or garbage collection).
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

import lupa

from core.config import Config
from core.errors import ScriptLoadError, ScriptRuntimeError
from core.filters import Filter
from core.marshal import describe, to_lua
from core.ports import ScriptSource
from core.system import FilterSystem

LOGGER = logging.getLogger(__name__)

# Runs a predicate under a count hook. Once the budget is spent the hook fires
# on every instruction outside the guard, so a script-level pcall cannot keep
# the call alive; the guard clears the hook before re-raising.
_INSTRUCTION_GUARD = """
local limit = ...
local message = "instruction budget of " .. limit .. " exceeded"
local exhausted = false
local guard

local function trip()
    if debug.getinfo(2, "f").func == guard then
        if exhausted then
            debug.sethook()
        end
        return
    end
    if not exhausted then
        exhausted = true
        debug.sethook(trip, "", 1)
    end
    error(message)
end

guard = function(fn, value)
    exhausted = false
    debug.sethook(trip, "", limit)
    local results = table.pack(pcall(fn, value))
    debug.sethook()
    if exhausted then
        error(message, 0)
    end
    if not results[1] then
        error(results[2], 0)
    end
    return table.unpack(results, 2, results.n)
end

return guard
"""


class FilterRuntime:
    """Owns one Lua interpreter and compiles filter scripts into it."""

    def __init__(
        self,
        scripts: Optional[ScriptSource] = None,
        instruction_limit: Optional[int] = None,
        memory_limit: Optional[int] = None,
    ) -> None:
        options: dict[str, Any] = {"unpack_returned_tuples": False}
        if memory_limit:
            options["max_memory"] = int(memory_limit)
        self._lua: Any = lupa.LuaRuntime(**options)
        self._scripts = scripts
        self._guard: Any = None
        if instruction_limit:
            self._guard = self._lua.execute(_INSTRUCTION_GUARD, int(instruction_limit))
        self.instruction_limit = instruction_limit
        self.memory_limit = memory_limit
        # Serializes load and evaluation; LuaRuntime must have a single owner at a time.
        self.lock = threading.RLock()

    def __enter__(self) -> "FilterRuntime":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._lua is None

    def close(self) -> None:
        """Release the interpreter; filters compiled by it become unusable."""

        with self.lock:
            self._lua = None
            self._guard = None

    def _require_open(self) -> Any:
        if self._lua is None:
            raise ScriptRuntimeError("Filter runtime has been closed")
        return self._lua

    def to_lua(self, value: Any) -> Any:
        return to_lua(self._require_open(), value)

    def invoke(self, function: Any, argument: Any) -> Any:
        """Call a compiled predicate, under the instruction budget if one is set."""

        self._require_open()
        if self._guard is not None:
            return self._guard(function, argument)
        return function(argument)

    def compile_module(self, source: str, origin: Union[str, Path] = "<string>") -> List[Tuple[str, Any]]:
        """Execute a script chunk and return its exported functions.

        The chunk must return a table. Entries whose key is not a string or
        whose value is not a function are skipped. Exports come back sorted
        by name because Lua table iteration order is not stable.
        """

        lua = self._require_open()
        try:
            module = lua.execute(source)
        except lupa.LuaError as exc:
            raise ScriptLoadError(f"Failed to evaluate {origin}: {exc}", origin) from exc

        if lupa.lua_type(module) != "table":
            raise ScriptLoadError(
                f"{origin} must return a table of filter functions, got {describe(module)}",
                origin,
            )

        exports: List[Tuple[str, Any]] = []
        for key, value in module.items():
            if not isinstance(key, str) or lupa.lua_type(value) != "function":
                LOGGER.debug("Skipping export %r from %s: not a named function", key, origin)
                continue
            exports.append((key, value))
        exports.sort(key=lambda pair: pair[0])
        return exports

    def _read_script(self, path: Path) -> str:
        try:
            if self._scripts is not None:
                return self._scripts.read(path)
            return Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ScriptLoadError(f"Cannot read script {path}: {exc}", path) from exc

    def load(self, config: Config) -> FilterSystem:
        """Compile every script in the configuration into a ready FilterSystem.

        Chains are flattened: the returned system evaluates every filter
        against every record unless a chain is requested explicitly. Loading
        is atomic, any failure raises and no system is returned.
        """

        with self.lock:
            system = FilterSystem(self)
            for chain, declarations in config.chains.items():
                for declaration in declarations:
                    source = self._read_script(declaration.script)
                    exports = self.compile_module(source, declaration.script)
                    for name, function in exports:
                        system.add(Filter(name, function, self, chain=chain, label=declaration.name))
                    LOGGER.info(
                        "Loaded %s (%s) into chain %s: %s",
                        declaration.name,
                        declaration.script,
                        chain,
                        ", ".join(name for name, _ in exports) or "no filters",
                    )
            system.seal()

        LOGGER.info("%s filters are loaded from %s chains", len(system), len(config.chains))
        return system
