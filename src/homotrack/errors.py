# errors.py
"""
Exceptions for programmer errors.

Numerical outcomes (failed solves, divergence, exhausted budgets) are never
raised; they travel as `SuccessCode` values.
"""


class HomotrackError(Exception):
    """Base class for all homotrack exceptions."""


class ConfigurationError(HomotrackError, ValueError):
    """A config value is outside its admissible range."""


class PrecisionMismatchError(HomotrackError, TypeError):
    """Real and complex dtypes do not share the same underlying real type."""


class DimensionMismatchError(HomotrackError, ValueError):
    """A space point does not match the system's variable count."""
