"""
linalg.py - Dense Linear Solver and Weighted Least Squares
==========================================================

Provides the two numerical primitives under the factor regression:
- solve_linear_system: Gaussian elimination with partial pivoting
- weighted_least_squares: weighted normal equations solved with the above

Singularity is a hard failure. No pseudo-inverse or SVD fallback is tried;
callers that can tolerate a degenerate cross-section catch SingularMatrix.
"""

from __future__ import annotations

import numpy as np
from loguru import logger

from .errors import DimensionMismatch, EmptyData, SingularMatrix
from .types import WLSResult

# Pivots with absolute value below this are treated as zero.
SINGULARITY_THRESHOLD = 1e-14


# =============================================================================
# LINEAR SOLVER
# =============================================================================

def solve_linear_system(A: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Solve A @ x = b by Gaussian elimination with partial pivoting.

    Parameters
    ----------
    A : ndarray (n, n)
        Square coefficient matrix. Not modified.
    b : ndarray (n,)
        Right-hand side. Not modified.

    Returns
    -------
    x : ndarray (n,)
        Solution vector.

    Raises
    ------
    EmptyData
        If n == 0.
    DimensionMismatch
        If A is not square or b does not have length n.
    SingularMatrix
        If any pivot has absolute value below SINGULARITY_THRESHOLD.

    Notes
    -----
    At each column the row with the largest absolute entry among the rows
    not yet used is swapped into the pivot position; the first such row
    wins ties.
    """
    A = np.asarray(A, dtype=float)
    b = np.asarray(b, dtype=float)

    if A.ndim != 2:
        raise DimensionMismatch(expected=2, actual=A.ndim, context="A dimensions")

    n = A.shape[0]
    if n == 0:
        raise EmptyData("cannot solve an empty linear system")
    if A.shape[1] != n:
        raise DimensionMismatch(expected=n, actual=A.shape[1], context="A columns")
    if b.ndim != 1 or b.shape[0] != n:
        raise DimensionMismatch(expected=n, actual=b.size, context="b")

    # Augmented matrix [A | b]; scratch copy, inputs stay untouched
    aug = np.empty((n, n + 1))
    aug[:, :n] = A
    aug[:, n] = b

    for col in range(n):
        pivot_row = col + int(np.argmax(np.abs(aug[col:, col])))
        pivot = aug[pivot_row, col]

        if abs(pivot) < SINGULARITY_THRESHOLD:
            raise SingularMatrix(
                f"matrix is singular or nearly singular "
                f"(pivot {abs(pivot):.3e} in column {col})"
            )

        if pivot_row != col:
            aug[[col, pivot_row]] = aug[[pivot_row, col]]

        if col + 1 < n:
            factors = aug[col + 1:, col] / aug[col, col]
            aug[col + 1:, col:] -= np.outer(factors, aug[col, col:])

    # Back substitution
    x = np.zeros(n)
    for i in range(n - 1, -1, -1):
        x[i] = (aug[i, n] - aug[i, i + 1:n] @ x[i + 1:]) / aug[i, i]

    return x


# =============================================================================
# WEIGHTED LEAST SQUARES
# =============================================================================

def weighted_least_squares(
    y: np.ndarray,
    X: np.ndarray,
    weights: np.ndarray,
) -> WLSResult:
    """
    Fit y ~ X @ beta with row weights via the normal equations.

    Each row of X and entry of y is multiplied by its weight, turning the
    weighted problem into ordinary least squares on the scaled data, and
    (Xw.T @ Xw) beta = Xw.T @ yw is solved with solve_linear_system.

    Parameters
    ----------
    y : ndarray (n,)
        Response vector.
    X : ndarray (n, p)
        Design matrix.
    weights : ndarray (n,)
        Non-negative row weights. Pass root-weights (e.g. sqrt of market
        cap): the minimized objective is sum((w_i * r_i) ** 2).

    Returns
    -------
    WLSResult
        Coefficients, unweighted residuals y - X @ beta and R-squared
        computed around the unweighted mean of y.

    Raises
    ------
    DimensionMismatch
        If X or weights do not have n rows.
    EmptyData
        If n == 0 or X has no columns.
    SingularMatrix
        If the weighted design is rank deficient.

    Examples
    --------
    >>> y = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
    >>> X = np.column_stack([np.ones(5), np.arange(1.0, 6.0)])
    >>> res = weighted_least_squares(y, X, np.ones(5))
    >>> res.coefficients  # ~[0.0, 1.0]
    >>> res.r_squared     # ~1.0
    """
    y = np.asarray(y, dtype=float).ravel()
    X = np.asarray(X, dtype=float)
    weights = np.asarray(weights, dtype=float).ravel()

    n = y.shape[0]
    if X.ndim != 2:
        raise DimensionMismatch(expected=2, actual=X.ndim, context="X dimensions")
    if X.shape[0] != n:
        raise DimensionMismatch(expected=n, actual=X.shape[0], context="X rows")
    if weights.shape[0] != n:
        raise DimensionMismatch(expected=n, actual=weights.shape[0], context="weights")
    if n == 0:
        raise EmptyData("weighted least squares needs at least one observation")

    Xw = X * weights[:, None]
    yw = y * weights

    logger.debug(f"Solving WLS normal equations | n={n}, p={X.shape[1]}")
    coefficients = solve_linear_system(Xw.T @ Xw, Xw.T @ yw)

    residuals = y - X @ coefficients

    ss_tot = float(np.sum((y - y.mean()) ** 2))
    ss_res = float(np.sum(residuals ** 2))
    r_squared = 1.0 - ss_res / ss_tot if ss_tot > 0.0 else 0.0

    return WLSResult(
        coefficients=coefficients,
        residuals=residuals,
        r_squared=r_squared,
    )
