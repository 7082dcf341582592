"""
winsorize.py - Outlier Clipping to Empirical Quantile Bounds

Clips a cross-section of values to its own [p, 1 - p] empirical quantiles.
Bounds come from the sorted finite values by index (no interpolation):

    lower = sorted[floor(n * p)]
    upper = sorted[clip(ceil(n * (1 - p)) - 1, lower_index, n - 1)]

Non-finite values (NaN, +inf, -inf) are left out of the bound computation
and passed through unchanged. Applying the same percentile twice is a no-op.

Example Usage:
-------------
    >>> from factor_engine.winsorize import winsorize, Winsorizer
    >>> winsorize(np.array([1.0, 2.0, 3.0, 4.0, 100.0]), 0.2)
    array([2., 2., 3., 4., 4.])
    >>>
    >>> w = Winsorizer(0.05)
    >>> clean = w.apply(daily_returns)
"""

from __future__ import annotations

import math
from typing import Optional, Tuple

import numpy as np

from .errors import InvalidPercentile


def _check_percentile(percentile: float) -> None:
    if not (0.0 < percentile < 0.5):
        raise InvalidPercentile(percentile)


def winsorize_bounds(
    data: np.ndarray, percentile: float
) -> Optional[Tuple[float, float]]:
    """
    Compute the (lower, upper) clipping bounds for ``data``.

    Parameters
    ----------
    data : ndarray
        Values to inspect. Non-finite entries are ignored.
    percentile : float
        Symmetric percentile in (0, 0.5).

    Returns
    -------
    (lower, upper) or None
        None when ``data`` holds no finite values. ``lower <= upper``
        always holds; should the index rule ever produce an inverted pair,
        the upper bound is raised to the lower bound.

    Raises
    ------
    InvalidPercentile
        If percentile is not strictly between 0 and 0.5.
    """
    _check_percentile(percentile)

    values = np.asarray(data, dtype=float).ravel()
    finite = np.sort(values[np.isfinite(values)])
    n = finite.shape[0]
    if n == 0:
        return None

    lower_idx = int(math.floor(n * percentile))
    upper_idx = int(math.ceil(n * (1.0 - percentile))) - 1
    upper_idx = min(max(upper_idx, lower_idx), n - 1)

    lower = float(finite[lower_idx])
    upper = float(finite[upper_idx])
    if lower > upper:
        upper = lower
    return lower, upper


def winsorize(data: np.ndarray, percentile: float) -> np.ndarray:
    """
    Clip extreme values to the empirical [p, 1 - p] quantile bounds.

    Parameters
    ----------
    data : ndarray
        Input values. Not modified.
    percentile : float
        Symmetric percentile in (0, 0.5), e.g. 0.05 for 5th/95th.

    Returns
    -------
    ndarray
        Same shape as ``data``; finite values clipped into the bounds,
        non-finite values untouched. Empty input gives empty output.

    Raises
    ------
    InvalidPercentile
        If percentile is not strictly between 0 and 0.5.
    """
    bounds = winsorize_bounds(data, percentile)
    out = np.array(data, dtype=float, copy=True)
    if bounds is None:
        return out

    lower, upper = bounds
    finite = np.isfinite(out)
    out[finite] = np.clip(out[finite], lower, upper)
    return out


class Winsorizer:
    """
    A validated, reusable winsorization transform.

    Parameters
    ----------
    percentile : float
        Symmetric percentile in (0, 0.5).

    Raises
    ------
    InvalidPercentile
        On construction, if percentile is out of range.
    """

    def __init__(self, percentile: float):
        _check_percentile(percentile)
        self._percentile = float(percentile)

    @property
    def percentile(self) -> float:
        return self._percentile

    def bounds(self, data: np.ndarray) -> Optional[Tuple[float, float]]:
        return winsorize_bounds(data, self._percentile)

    def apply(self, data: np.ndarray) -> np.ndarray:
        return winsorize(data, self._percentile)

    __call__ = apply

    def __repr__(self) -> str:
        return f"Winsorizer(percentile={self._percentile})"
