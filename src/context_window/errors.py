from __future__ import annotations


class ContextWindowError(Exception):
    """Base class for errors raised by the context window package."""


class ConfigError(ContextWindowError):
    """Configuration could not be read or failed validation."""
