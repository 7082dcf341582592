"""
regression.py - Sector-Constrained Factor Regression
====================================================

Estimates market, sector and style returns for one cross-section while
forcing the sector returns to sum to zero.

Why a constraint?
An all-ones market column plus a full set of one-hot sector columns is
linearly dependent (the sector columns sum to the market column), so the
unconstrained normal equations are singular. Requiring sum(sector) == 0
makes the market return identifiable: sector returns are then relative to
the market.

How?
By change of basis, not by a penalty or Lagrange multiplier. The last
sector is the reference: the reduced design is

    [1, S_1 - S_k, ..., S_{k-1} - S_k, F_1, ..., F_m]

and after the fit the reference sector's return is minus the sum of the
others, so the zero sum holds exactly.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import numpy as np
from loguru import logger

from .errors import DimensionMismatch, InvalidConfiguration
from .linalg import weighted_least_squares
from .types import ConstrainedWLSResult


# =============================================================================
# DESIGN CONSTRUCTION
# =============================================================================

def build_constrained_design(
    sector_exposures: np.ndarray,
    style_exposures: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Build the reduced design matrix encoding the zero-sum sector constraint.

    Parameters
    ----------
    sector_exposures : ndarray (n, k)
        Sector exposures, k >= 1.
    style_exposures : ndarray (n, m), optional
        Style exposures; None means m = 0.

    Returns
    -------
    X : ndarray (n, 1 + (k - 1) + m)
        Columns: market (ones), k - 1 differenced sectors, m styles.

    Raises
    ------
    InvalidConfiguration
        If k == 0.
    DimensionMismatch
        If the style matrix row count differs from the sector matrix.
    """
    S = np.asarray(sector_exposures, dtype=float)
    if S.ndim != 2:
        raise DimensionMismatch(expected=2, actual=S.ndim, context="sector_exposures dimensions")

    n, k = S.shape
    if k == 0:
        logger.error("Constrained regression requested with zero sector columns")
        raise InvalidConfiguration("must have at least one sector")

    F = np.empty((n, 0)) if style_exposures is None else np.asarray(style_exposures, dtype=float)
    if F.ndim != 2:
        raise DimensionMismatch(expected=2, actual=F.ndim, context="style_exposures dimensions")
    if F.shape[0] != n:
        raise DimensionMismatch(expected=n, actual=F.shape[0], context="style_exposures")

    market = np.ones((n, 1))
    sectors = S[:, :-1] - S[:, -1:]
    return np.hstack([market, sectors, F])


# =============================================================================
# CONSTRAINED REGRESSION
# =============================================================================

def constrained_wls(
    returns: np.ndarray,
    weights: np.ndarray,
    sector_exposures: np.ndarray,
    style_exposures: Optional[np.ndarray] = None,
) -> ConstrainedWLSResult:
    """
    Fit one cross-section with sector returns constrained to sum to zero.

    Parameters
    ----------
    returns : ndarray (n,)
        Asset returns.
    weights : ndarray (n,)
        Already-transformed regression weights (e.g. sqrt of market cap).
    sector_exposures : ndarray (n, k)
        Sector exposures, k >= 1.
    style_exposures : ndarray (n, m), optional
        Style exposures; None means m = 0.

    Returns
    -------
    ConstrainedWLSResult
        market_return, sector_returns (k,), style_returns (m,), residuals
        (n,) and the R-squared of the underlying fit.

    Raises
    ------
    InvalidConfiguration
        If k == 0. Checked before any matrix is built.
    DimensionMismatch, EmptyData, SingularMatrix
        Propagated unchanged from input checks and weighted_least_squares.

    Notes
    -----
    With k == 1 there are no differenced columns and the single sector's
    return is exactly 0.
    """
    returns = np.asarray(returns, dtype=float).ravel()
    weights = np.asarray(weights, dtype=float).ravel()
    S = np.asarray(sector_exposures, dtype=float)

    if S.ndim == 2 and S.shape[1] == 0:
        logger.error("Constrained regression requested with zero sector columns")
        raise InvalidConfiguration("must have at least one sector")

    n = returns.shape[0]
    if weights.shape[0] != n:
        raise DimensionMismatch(expected=n, actual=weights.shape[0], context="weights")
    if S.ndim == 2 and S.shape[0] != n:
        raise DimensionMismatch(expected=n, actual=S.shape[0], context="sector_exposures")

    X = build_constrained_design(S, style_exposures)
    k = S.shape[1]

    fit = weighted_least_squares(returns, X, weights)
    beta = fit.coefficients

    sector_returns = np.zeros(k)
    sector_returns[:k - 1] = beta[1:k]
    sector_returns[k - 1] = -sector_returns[:k - 1].sum()

    return ConstrainedWLSResult(
        market_return=float(beta[0]),
        sector_returns=sector_returns,
        style_returns=beta[k:].copy(),
        residuals=fit.residuals,
        r_squared=fit.r_squared,
    )


class ConstrainedFactorRegression:
    """
    Named front end for the sector-constrained regression.

    Holds the factor names for a cross-section layout and attaches them to
    fitted returns.

    Parameters
    ----------
    sector_names : Sequence[str]
        One name per sector column; the last one is the reference sector.
    style_names : Sequence[str], optional
        One name per style column.
    market_name : str, default="market"
        Name of the intercept factor.

    Examples
    --------
    >>> reg = ConstrainedFactorRegression(["tech", "energy"], ["momentum"])
    >>> res = reg.fit(returns, np.sqrt(caps), sectors, styles)
    >>> reg.labelled(res)
    {'market': ..., 'tech': ..., 'energy': ..., 'momentum': ...}
    """

    def __init__(
        self,
        sector_names: Sequence[str],
        style_names: Optional[Sequence[str]] = None,
        market_name: str = "market",
    ):
        self.sector_names = list(sector_names)
        self.style_names = list(style_names) if style_names is not None else []
        self.market_name = market_name

        if not self.sector_names:
            raise InvalidConfiguration("must have at least one sector")

    @property
    def factor_names(self) -> List[str]:
        return [self.market_name] + self.sector_names + self.style_names

    @property
    def reference_sector(self) -> str:
        """The sector whose column every other sector is differenced against."""
        return self.sector_names[-1]

    def fit(
        self,
        returns: np.ndarray,
        weights: np.ndarray,
        sector_exposures: np.ndarray,
        style_exposures: Optional[np.ndarray] = None,
    ) -> ConstrainedWLSResult:
        S = np.asarray(sector_exposures, dtype=float)
        F = None if style_exposures is None else np.asarray(style_exposures, dtype=float)
        n_styles = 0 if F is None else F.shape[1]

        if S.ndim != 2 or S.shape[1] != len(self.sector_names):
            raise InvalidConfiguration(
                f"expected {len(self.sector_names)} sector columns, got shape {S.shape}"
            )
        if n_styles != len(self.style_names):
            raise InvalidConfiguration(
                f"expected {len(self.style_names)} style columns, got {n_styles}"
            )

        logger.debug(f"Constrained fit against reference sector '{self.reference_sector}'")
        return constrained_wls(returns, weights, S, F)

    def labelled(self, result: ConstrainedWLSResult) -> Dict[str, float]:
        """Map each factor name to its fitted return."""
        return dict(zip(self.factor_names, result.factor_returns.tolist()))
