"""Filter collection and keep/drop aggregation (core domain)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Iterator, List, Optional, Tuple

from core.filters import Filter

if TYPE_CHECKING:
    from core.runtime import FilterRuntime

LOGGER = logging.getLogger(__name__)


class FilterSystem:
    """Ordered filters compiled by one runtime.

    The system is built by FilterRuntime.load (filters are appended) and is
    sealed before it is returned; a sealed system is read-only. A new
    configuration needs a new system.
    """

    def __init__(self, runtime: "FilterRuntime") -> None:
        self._runtime = runtime
        self._filters: List[Filter] = []
        self._ready = False

    def __len__(self) -> int:
        return len(self._filters)

    def __iter__(self) -> Iterator[Filter]:
        return iter(self._filters)

    @property
    def runtime(self) -> "FilterRuntime":
        return self._runtime

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def filters(self) -> Tuple[Filter, ...]:
        return tuple(self._filters)

    @property
    def chains(self) -> List[str]:
        """Chain names that contributed at least one filter, in load order."""

        seen: List[str] = []
        for item in self._filters:
            if item.chain is not None and item.chain not in seen:
                seen.append(item.chain)
        return seen

    def add(self, filter_: Filter) -> None:
        if self._ready:
            raise RuntimeError("Filter system is sealed; load a new configuration instead")
        if filter_.runtime is not self._runtime:
            raise ValueError(f"Filter {filter_.name!r} was compiled by a different runtime")
        self._filters.append(filter_)

    def seal(self) -> None:
        self._ready = True

    def _selected(self, chain: Optional[str]) -> List[Filter]:
        if not self._ready:
            raise RuntimeError("Filter system is still loading")
        if chain is None:
            return self._filters
        return [item for item in self._filters if item.chain == chain]

    def filter_one(self, value: Any, chain: Optional[str] = None) -> bool:
        """Return True if any filter keeps the value.

        Matching logic:
        - Every selected filter runs, in load order, even after one matched.
        - With ``chain`` set only that chain's filters are considered;
          otherwise all loaded filters apply regardless of chain.
        - No filters means nothing is kept.
        The first failing filter aborts evaluation and its error propagates.
        """

        filtered = False
        with self._runtime.lock:
            for item in self._selected(chain):
                if item.evaluate(value):
                    filtered = True
        return filtered

    def filter(self, values: Iterable[Any], chain: Optional[str] = None) -> List[Any]:
        """Return the values kept by filter_one, in their original order.

        A failure on any value aborts the whole batch; no partial result is
        returned.
        """

        kept: List[Any] = []
        with self._runtime.lock:
            for value in values:
                if self.filter_one(value, chain):
                    kept.append(value)
        LOGGER.debug("Kept %s values", len(kept))
        return kept
