"""Exceptions raised for structurally invalid design input.

Soft, recoverable conditions are never raised: they are reported through the
`warnings` list of a design result instead.
"""
from __future__ import annotations


class FilterDesignError(ValueError):
    """Base class for all design errors raised by this package."""


class InvalidParameterError(FilterDesignError):
    """A parameter is out of range (e.g. sample rate <= 0, Q <= 0)."""


class InvalidInputError(FilterDesignError):
    """An input buffer or document has the wrong shape or content."""


class MissingParameterError(FilterDesignError):
    """A parameter required by the chosen design shape was not given."""


def check_sample_rate(sample_rate: float) -> float:
    """Return `sample_rate` as float, raising if it is not a finite positive number."""
    try:
        sr = float(sample_rate)
    except (TypeError, ValueError) as e:
        raise InvalidParameterError(f"sample_rate must be a number (got {sample_rate!r})") from e
    if not sr > 0 or sr == float("inf"):
        raise InvalidParameterError(f"sample_rate must be > 0 (got {sample_rate!r})")
    return sr
