"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

from core.errors import ConfigError


@dataclass(frozen=True)
class FilterConfig:
    """One script declaration inside a chain."""

    name: str
    script: Path


@dataclass(frozen=True)
class Config:
    """Chains of filter declarations, keyed by chain name."""

    chains: Mapping[str, Tuple[FilterConfig, ...]] = field(default_factory=dict)


def _build_filter_config(chain: str, index: int, entry: Any) -> FilterConfig:
    where = f"chains.{chain}[{index}]"
    if not isinstance(entry, Mapping):
        raise ConfigError(f"{where} must be a mapping with 'name' and 'script'")

    name = entry.get("name")
    script = entry.get("script")
    if not isinstance(name, str) or not name.strip():
        raise ConfigError(f"{where}.name must be a non-empty string")
    if not isinstance(script, (str, Path)) or not str(script).strip():
        raise ConfigError(f"{where}.script must be a non-empty path")
    return FilterConfig(name=name, script=Path(script))


def build_config(raw: Mapping[str, Any]) -> Config:
    """Validate a parsed configuration document and freeze it.

    Only the structure is checked here. Whether script paths exist is
    discovered when the configuration is loaded into a runtime.
    """

    if not isinstance(raw, Mapping):
        raise ConfigError("Configuration document must be a mapping")

    raw_chains = raw.get("chains")
    if raw_chains is None:
        raw_chains = {}
    if not isinstance(raw_chains, Mapping):
        raise ConfigError("'chains' must map chain names to filter lists")

    chains: Dict[str, Tuple[FilterConfig, ...]] = {}
    for chain, entries in raw_chains.items():
        if entries is None:
            entries = []
        if not isinstance(entries, list):
            raise ConfigError(f"chains.{chain} must be a list of filters")
        chains[str(chain)] = tuple(
            _build_filter_config(str(chain), index, entry) for index, entry in enumerate(entries)
        )
    return Config(chains=chains)
