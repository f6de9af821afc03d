"""Exception types shared across the package."""
from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when a rule, predicate or rule set is authored incorrectly."""


__all__ = ["ConfigurationError"]
