"""Core domain package for luasieve.

Core contains filter loading, value marshaling, and evaluation logic without
any file-format or CLI-specific code, keeping the engine embeddable.
"""
