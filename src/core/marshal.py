"""Conversion between host values and Lua values.

Records are converted structurally: field names and nesting are preserved,
and there is no per-field logic at this boundary. Predicate results go the
other way through as_decision, which accepts booleans only.
"""

from __future__ import annotations

import dataclasses
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Mapping, Tuple

import lupa

from core.errors import ConversionError, ScriptRuntimeError

_SCALARS = (bool, int, float, str, bytes)
_LUA_INTEGER_RANGE = (-(2**63), 2**63 - 1)


def _dataclass_items(value: Any) -> Iterable[Tuple[str, Any]]:
    for item in dataclasses.fields(value):
        yield item.metadata.get("name", item.name), getattr(value, item.name)


def _scalar(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        low, high = _LUA_INTEGER_RANGE
        if not low <= value <= high:
            raise ConversionError(f"Integer {value} does not fit in a Lua integer")
    elif isinstance(value, str):
        # lone surrogates cannot be encoded for Lua
        value.encode("utf-8")
    return value


def _table(lua: Any, items: Iterable[Tuple[Any, Any]]) -> Any:
    table = lua.table()
    for key, item in items:
        if isinstance(key, bool) or not isinstance(key, (str, int)):
            raise ConversionError(f"Unsupported key type {type(key).__name__}: {key!r}")
        table[_scalar(key)] = _convert(lua, item)
    return table


def _convert(lua: Any, value: Any) -> Any:
    if value is None or isinstance(value, _SCALARS):
        return _scalar(value)
    if isinstance(value, Enum):
        return _convert(lua, value.value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()

    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return _convert(lua, to_dict())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _table(lua, _dataclass_items(value))
    if isinstance(value, Mapping):
        return _table(lua, value.items())
    if isinstance(value, (list, tuple)):
        return lua.table(*[_convert(lua, item) for item in value])

    raise ConversionError(f"Cannot convert {type(value).__name__} to a Lua value")


def to_lua(lua: Any, value: Any) -> Any:
    """Convert a host record into a fresh Lua value owned by ``lua``."""

    try:
        return _convert(lua, value)
    except ConversionError:
        raise
    except RecursionError as exc:
        raise ConversionError("Record contains a reference cycle") from exc
    except (OverflowError, TypeError, ValueError) as exc:
        raise ConversionError(f"Cannot convert record: {exc}") from exc


def describe(value: Any) -> str:
    """Name a returned value the way a Lua author would recognise it."""

    if value is None:
        return "nil"
    if isinstance(value, tuple):
        return f"{len(value)} values"
    return lupa.lua_type(value) or type(value).__name__


def as_decision(result: Any, filter_name: str) -> bool:
    """Classify a predicate result as keep/drop.

    Only a Lua boolean is a decision; nil, numbers, strings, tables and
    multiple return values are errors rather than truthy/falsy coercions.
    """

    if isinstance(result, bool):
        return result
    raise ScriptRuntimeError(
        f"Filter {filter_name!r} returned {describe(result)} instead of a boolean",
        filter_name,
    )
