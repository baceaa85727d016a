"""A single named predicate backed by a Lua function."""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, Any, Optional

import lupa

from core.errors import ScriptRuntimeError
from core.marshal import as_decision

if TYPE_CHECKING:
    from core.runtime import FilterRuntime


class Filter:
    """Compiled predicate bound to the runtime that compiled it.

    ``name`` is the key the script exported the function under; ``label``
    is the name declared in the configuration and is only used for display.
    """

    def __init__(
        self,
        name: str,
        function: Any,
        runtime: "FilterRuntime",
        chain: Optional[str] = None,
        label: Optional[str] = None,
    ) -> None:
        if runtime.closed:
            raise ValueError(f"Cannot bind filter {name!r} to a closed runtime")
        if lupa.lua_type(function) != "function":
            raise TypeError(f"Filter {name!r} must wrap a Lua function")
        self.name = name
        self.chain = chain
        self.label = label or name
        self._function = function
        self._runtime = weakref.ref(runtime)

    def __repr__(self) -> str:
        return f"Filter(name={self.name!r}, chain={self.chain!r}, label={self.label!r})"

    @property
    def runtime(self) -> Optional["FilterRuntime"]:
        return self._runtime()

    def evaluate(self, value: Any) -> bool:
        """Run the predicate against one record and return its decision.

        The record is converted afresh for every call, so one script cannot
        change what the next filter sees and the host value is never touched.
        """

        runtime = self._runtime()
        if runtime is None or runtime.closed:
            raise ScriptRuntimeError(f"Filter {self.name!r} outlived its runtime", self.name)

        argument = runtime.to_lua(value)
        try:
            result = runtime.invoke(self._function, argument)
        except lupa.LuaError as exc:
            raise ScriptRuntimeError(f"Filter {self.name!r} failed: {exc}", self.name) from exc
        return as_decision(result, self.name)
