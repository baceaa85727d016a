"""Static configuration for luasieve.

Filter chains, runtime budgets, and logging live in a single YAML (or JSON)
document so operators can change filtering rules without touching Python.
"""

import os

from dotenv import load_dotenv

from adapters.config_document import read_document

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

load_dotenv()

# The config path can be overridden per deployment via .env or the environment.
CONFIG_PATH = os.path.abspath(os.getenv("LUASIEVE_CONFIG", os.path.join(PROJECT_ROOT, "config.yaml")))


def _load_config() -> dict:
    """Load the config document with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")
    return read_document(CONFIG_PATH)


_CONFIG = _load_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Chains are handed to core.config.build_config by the app.
CHAINS_CONFIG = {"chains": _CONFIG.get("chains")}

# Relative script paths are resolved next to the config file.
SCRIPTS_ROOT = os.path.dirname(CONFIG_PATH)

# Optional budgets for misbehaving scripts.
# - INSTRUCTION_LIMIT: Lua VM instructions per predicate call
# - MEMORY_LIMIT: bytes the interpreter may allocate in total
_runtime = _CONFIG.get("runtime") or {}
INSTRUCTION_LIMIT = _runtime.get("instruction_limit")
MEMORY_LIMIT = _runtime.get("memory_limit")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging") or {}
