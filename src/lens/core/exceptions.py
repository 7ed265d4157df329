# src/lens/core/exceptions.py
"""Exception hierarchy raised while building and running descriptor queries."""


class LensError(Exception):
    """Base class for every error raised by lens."""


class LogicError(LensError):
    """The caller asked for something that can never be satisfied."""


class InvalidArgumentError(LogicError, ValueError):
    """Malformed descriptor input (bad filter key syntax, wrong input type...)."""


class BadMethodCallError(LogicError, AttributeError):
    """A filter referenced an operator that is not registered."""
