"""Exception hierarchy for simstats."""

from __future__ import annotations

__all__ = ["InvalidConfigurationError", "SimStatsError"]


class SimStatsError(Exception):
    """Base class for all errors raised by simstats."""


class InvalidConfigurationError(SimStatsError, ValueError):
    """A parameter is outside its admissible range.

    Raised synchronously by constructors, setters and config validation.
    Subclasses ``ValueError`` so callers that only know about the builtin
    still catch it.
    """
