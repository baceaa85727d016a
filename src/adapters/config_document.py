"""Configuration document adapter.

Parses the on-disk YAML or JSON document into the raw mapping the core's
build_config expects, keeping file formats out of the core.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Union

import yaml

from core.config import Config, build_config
from core.errors import ConfigError

YAML_SUFFIXES = {".yaml", ".yml"}


def parse_document(text: str, fmt: str = "yaml") -> dict[str, Any]:
    """Parse configuration text; an empty document is an empty mapping."""

    try:
        if fmt == "json":
            document = json.loads(text) if text.strip() else {}
        elif fmt == "yaml":
            document = yaml.safe_load(text)
        else:
            raise ValueError(f"Unsupported config format: {fmt}")
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Invalid {fmt} configuration: {exc}") from exc

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ConfigError("Configuration document must be a mapping at the top level")
    return document


def read_document(path: Union[str, Path]) -> dict[str, Any]:
    """Read a configuration file, picking the parser from its extension."""

    path = Path(path)
    fmt = "yaml" if path.suffix.lower() in YAML_SUFFIXES else "json"
    with open(path, "r", encoding="utf-8") as handle:
        return parse_document(handle.read(), fmt)


def load_config(path: Union[str, Path]) -> Config:
    return build_config(read_document(path))
