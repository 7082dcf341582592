"""
errors.py - Exception Hierarchy for Factor Engine

Every failure raised by factor_engine derives from FactorEngineError. The
concrete classes double as the matching built-in exceptions (ValueError,
numpy.linalg.LinAlgError) so callers that only know about the standard
library or numpy can still catch them.

Recoverability:
--------------
Each class carries a ``recoverable`` flag. Recoverable errors describe a
problem with one cross-section's data (bad shapes, too few observations, a
singular design). The panel estimator turns these into a skipped date.
Non-recoverable errors describe a request that is invalid for every date
(bad percentile, no sectors) and always propagate.

Example Usage:
-------------
    >>> from factor_engine.errors import SingularMatrix
    >>> try:
    ...     solve_linear_system(A, b)
    ... except SingularMatrix:
    ...     ...
"""

from __future__ import annotations

import numpy as np


class FactorEngineError(Exception):
    """Base class for all factor_engine errors."""

    recoverable: bool = False


class DimensionMismatch(FactorEngineError, ValueError):
    """
    Array shapes do not line up.

    Parameters
    ----------
    expected : int
        The length or row count that was required.
    actual : int
        The length or row count that was supplied.
    context : str
        Which input was wrong (e.g. "weights", "sector_exposures").
    """

    recoverable = True

    def __init__(self, expected: int, actual: int, context: str = ""):
        self.expected = expected
        self.actual = actual
        self.context = context
        where = f" for {context}" if context else ""
        super().__init__(
            f"dimension mismatch{where}: expected {expected}, got {actual}"
        )


class EmptyData(FactorEngineError, ValueError):
    """An operation that needs at least one observation received none."""

    recoverable = True

    def __init__(self, message: str = "empty data provided"):
        super().__init__(message)


class InvalidPercentile(FactorEngineError, ValueError):
    """Winsorization percentile outside the open interval (0, 0.5)."""

    def __init__(self, value: float):
        self.value = value
        super().__init__(f"invalid percentile: {value} (must be in (0, 0.5))")


class SingularMatrix(FactorEngineError, np.linalg.LinAlgError):
    """The linear system has no unique solution (pivot below threshold)."""

    recoverable = True

    def __init__(self, message: str = "matrix is singular or nearly singular"):
        super().__init__(message)


class InsufficientData(FactorEngineError, ValueError):
    """Fewer observations than the regression needs."""

    recoverable = True

    def __init__(self, required: int, actual: int):
        self.required = required
        self.actual = actual
        super().__init__(
            f"insufficient data: need at least {required} observations, "
            f"got {actual}"
        )


class InvalidConfiguration(FactorEngineError, ValueError):
    """A setting that makes the request invalid regardless of the data."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"invalid configuration: {message}")
