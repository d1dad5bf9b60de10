"""
Estimator Error Taxonomy

All errors raised by estimators derive from EstimatorError so host pipelines
can catch them at a single point. Each concrete error also derives from the
matching built-in exception (ValueError / RuntimeError).

- ConfigurationError: deferred, raised by validate() on a missing or
  malformed model
- DimensionError: immediate, raised when a vector does not match the
  dimension fixed by the configured models
- NotValidatedError: raised by estimate() while the filter is dirty
"""

from typing import Optional, Tuple


class EstimatorError(Exception):
    """Base class for all estimator errors."""


class ConfigurationError(EstimatorError, ValueError):
    """
    Missing or inconsistently shaped model item.

    Parameters
    ----------
    item : str
        Name of the offending model item (e.g. 'state transition model')
    reason : str
        'missing', 'shape' or 'unknown'
    detail : str, optional
        Human-readable explanation appended to the message
    """

    MISSING = 'missing'
    SHAPE = 'shape'
    UNKNOWN = 'unknown'

    def __init__(self, item: str, reason: str, detail: str = ""):
        self.item = item
        self.reason = reason
        if reason == self.MISSING:
            message = f"{item} missing"
        elif reason == self.UNKNOWN:
            message = f"unknown parameter {item!r}"
        else:
            message = f"{item} has invalid size"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class DimensionError(EstimatorError, ValueError):
    """
    Vector length does not match the configured model dimension.

    Parameters
    ----------
    name : str
        Name of the offending vector
    expected : int
        Required length
    actual : int
        Supplied length
    """

    def __init__(self, name: str, expected: int, actual: int):
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(f"{name} has length {actual}, expected {expected}")


class NotValidatedError(EstimatorError, RuntimeError):
    """Estimation requested while the configuration is not validated."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "estimator not validated; call validate() first")


def shape_str(shape: Tuple[int, ...]) -> str:
    """Format an array shape as 'rows x cols'."""
    return " x ".join(str(s) for s in shape)
