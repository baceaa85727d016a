"""Adapters that connect the core engine to files, formats, and streams."""
