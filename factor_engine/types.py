"""
types.py - Core Data Structures and Type Definitions for Factor Engine

This module defines the data structures that flow through factor_engine:
- CrossSection / Panel: the numeric inputs, one date at a time
- FactorReturnRecord / ResidualRecord: the two output series
- DateOutcome: the per-date result value (committed or skipped)
- EstimatorConfig: settings for a panel run
- WLSResult / ConstrainedWLSResult: single cross-section regression outputs
- FactorContribution / AttributionResult: per-asset return decomposition

Design Principles:
-----------------
1. Immutability where practical (frozen dataclasses for value objects)
2. Validation at construction time for configuration (fail-fast)
3. Row alignment is checked per date, so that one malformed date can be
   skipped without rejecting the whole panel
4. Numpy-style docstrings throughout

Example Usage:
-------------
    >>> import numpy as np
    >>> from factor_engine.types import CrossSection
    >>>
    >>> xs = CrossSection(
    ...     date="2024-01-02",
    ...     asset_ids=["A", "B", "C", "D"],
    ...     returns=np.array([0.01, 0.02, -0.01, 0.00]),
    ...     weights=np.array([100.0, 50.0, 80.0, 20.0]),
    ...     sector_exposures=np.array([[1, 0], [1, 0], [0, 1], [0, 1]]),
    ...     sector_names=["tech", "energy"],
    ... )
    >>> xs.n_free_parameters
    2
"""

from __future__ import annotations

import numpy as np
from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, Hashable, Iterator, List, Optional, Sequence, Tuple
from enum import Enum

from .errors import DimensionMismatch, InvalidConfiguration, InvalidPercentile


# =============================================================================
# FACTOR KINDS
# =============================================================================

class FactorKind(str, Enum):
    """
    The closed set of factor families attached to output records.

    MARKET: the intercept shared by every asset.
    SECTOR: one indicator-style factor per sector column.
    STYLE: one continuous factor per style column.
    """
    MARKET = "market"
    SECTOR = "sector"
    STYLE = "style"


# =============================================================================
# INPUTS
# =============================================================================

def _as_column_matrix(values: Optional[np.ndarray], n_rows: int) -> np.ndarray:
    """Coerce exposures to a float (n, c) matrix; None or empty means c = 0."""
    if values is None:
        return np.empty((n_rows, 0))
    arr = np.asarray(values, dtype=float)
    if arr.ndim == 1:
        if arr.size == 0:
            return np.empty((n_rows, 0))
        return arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise DimensionMismatch(expected=2, actual=arr.ndim, context="exposures dimensions")
    return arr


def _check_names(names: Sequence[str], n_cols: int, label: str) -> Tuple[str, ...]:
    names = tuple(str(name) for name in names)
    if len(names) != n_cols:
        raise InvalidConfiguration(
            f"{label} has {len(names)} names for {n_cols} columns"
        )
    if len(set(names)) != len(names):
        raise InvalidConfiguration(f"{label} names must be unique, got {list(names)}")
    return names


@dataclass
class CrossSection:
    """
    All asset observations at a single date.

    Parameters
    ----------
    date : Hashable
        Label for the date (``datetime.date``, string, ...).
    asset_ids : Sequence[str]
        One identifier per row.
    returns : np.ndarray
        Asset returns with shape (n,).
    weights : np.ndarray
        Raw regression weights with shape (n,), typically market caps.
        Negative values are floored to zero by the estimator.
    sector_exposures : np.ndarray
        Sector exposure matrix with shape (n, k). A 1D array is read as a
        single sector column.
    style_exposures : np.ndarray, optional
        Style exposure matrix with shape (n, m). None means m = 0.
    sector_names, style_names : Sequence[str], optional
        Column names. Defaults are ``sector_0, sector_1, ...`` and
        ``style_0, style_1, ...``.

    Notes
    -----
    Construction only checks column naming. Row alignment between the
    vectors and matrices is checked by ``validate_rows()``, which the
    estimator calls per date so a malformed date is skipped rather than
    rejecting the whole panel.
    """
    date: Hashable
    asset_ids: Sequence[str]
    returns: np.ndarray
    weights: np.ndarray
    sector_exposures: np.ndarray
    style_exposures: Optional[np.ndarray] = None
    sector_names: Optional[Sequence[str]] = None
    style_names: Optional[Sequence[str]] = None

    def __post_init__(self):
        self.returns = np.asarray(self.returns, dtype=float).ravel()
        self.weights = np.asarray(self.weights, dtype=float).ravel()
        self.asset_ids = tuple(self.asset_ids)
        n = self.returns.shape[0]

        self.sector_exposures = _as_column_matrix(self.sector_exposures, n)
        self.style_exposures = _as_column_matrix(self.style_exposures, n)

        k = self.sector_exposures.shape[1]
        m = self.style_exposures.shape[1]
        if self.sector_names is None:
            self.sector_names = [f"sector_{j}" for j in range(k)]
        if self.style_names is None:
            self.style_names = [f"style_{j}" for j in range(m)]
        self.sector_names = _check_names(self.sector_names, k, "sector_exposures")
        self.style_names = _check_names(self.style_names, m, "style_exposures")

        overlap = set(self.sector_names) & set(self.style_names)
        if overlap:
            raise InvalidConfiguration(
                f"sector and style names overlap: {sorted(overlap)}"
            )

    @property
    def n_assets(self) -> int:
        """Number of observations (rows) at this date."""
        return self.returns.shape[0]

    @property
    def n_sectors(self) -> int:
        return self.sector_exposures.shape[1]

    @property
    def n_styles(self) -> int:
        return self.style_exposures.shape[1]

    @property
    def n_free_parameters(self) -> int:
        """Unknowns in the constrained regression: 1 + (k - 1) + m."""
        return 1 + (self.n_sectors - 1) + self.n_styles

    def factor_names(self, market: str = "market") -> Tuple[str, ...]:
        """Output factor names in record order: market, sectors, styles."""
        return (market,) + tuple(self.sector_names) + tuple(self.style_names)

    def validate_rows(self) -> None:
        """
        Check that every per-asset input has one row per return.

        Raises
        ------
        DimensionMismatch
            If asset_ids, weights, sector_exposures or style_exposures do
            not have ``n_assets`` rows.
        """
        n = self.n_assets
        checks = (
            ("asset_ids", len(self.asset_ids)),
            ("weights", self.weights.shape[0]),
            ("sector_exposures", self.sector_exposures.shape[0]),
            ("style_exposures", self.style_exposures.shape[0]),
        )
        for context, rows in checks:
            if rows != n:
                raise DimensionMismatch(expected=n, actual=rows, context=context)


@dataclass
class Panel:
    """
    An ordered sequence of cross-sections, one per date.

    Parameters
    ----------
    cross_sections : List[CrossSection]
        Cross-sections in processing order. Dates must be unique.

    Examples
    --------
    >>> panel = Panel.from_sector_labels(
    ...     dates=long_df_dates,
    ...     asset_ids=symbols,
    ...     returns=rets,
    ...     weights=caps,
    ...     sector_labels=gics,
    ...     style_exposures=scores,
    ...     style_names=["mom", "val", "size"],
    ... )
    >>> len(panel), panel.dates[:2]
    """
    cross_sections: List[CrossSection] = field(default_factory=list)

    def __post_init__(self):
        self.cross_sections = list(self.cross_sections)
        seen = set()
        for xs in self.cross_sections:
            if xs.date in seen:
                raise InvalidConfiguration(f"duplicate date in panel: {xs.date!r}")
            seen.add(xs.date)

    def __len__(self) -> int:
        return len(self.cross_sections)

    def __iter__(self) -> Iterator[CrossSection]:
        return iter(self.cross_sections)

    def __getitem__(self, index: int) -> CrossSection:
        return self.cross_sections[index]

    @property
    def dates(self) -> List[Hashable]:
        return [xs.date for xs in self.cross_sections]

    @classmethod
    def from_long_arrays(
        cls,
        dates: Sequence[Hashable],
        asset_ids: Sequence[str],
        returns: np.ndarray,
        weights: np.ndarray,
        sector_exposures: np.ndarray,
        style_exposures: Optional[np.ndarray] = None,
        sector_names: Optional[Sequence[str]] = None,
        style_names: Optional[Sequence[str]] = None,
    ) -> "Panel":
        """
        Group long-format arrays (one row per date/asset) into a panel.

        Dates keep their first-appearance order; rows within a date keep
        their input order.

        Raises
        ------
        DimensionMismatch
            If any long array does not have one row per date entry.
        """
        date_labels = np.asarray(dates).tolist()
        n_obs = len(date_labels)

        returns = np.asarray(returns, dtype=float).ravel()
        weights = np.asarray(weights, dtype=float).ravel()
        asset_ids = np.asarray(asset_ids)
        sector_exposures = _as_column_matrix(sector_exposures, n_obs)
        style_exposures = _as_column_matrix(style_exposures, n_obs)

        for context, rows in (
            ("asset_ids", asset_ids.shape[0]),
            ("returns", returns.shape[0]),
            ("weights", weights.shape[0]),
            ("sector_exposures", sector_exposures.shape[0]),
            ("style_exposures", style_exposures.shape[0]),
        ):
            if rows != n_obs:
                raise DimensionMismatch(expected=n_obs, actual=rows, context=context)

        groups: Dict[Hashable, List[int]] = {}
        for i, label in enumerate(date_labels):
            groups.setdefault(label, []).append(i)

        cross_sections = []
        for label, rows in groups.items():
            idx = np.asarray(rows)
            cross_sections.append(
                CrossSection(
                    date=label,
                    asset_ids=asset_ids[idx].tolist(),
                    returns=returns[idx],
                    weights=weights[idx],
                    sector_exposures=sector_exposures[idx],
                    style_exposures=style_exposures[idx],
                    sector_names=sector_names,
                    style_names=style_names,
                )
            )
        return cls(cross_sections)

    @classmethod
    def from_sector_labels(
        cls,
        dates: Sequence[Hashable],
        asset_ids: Sequence[str],
        returns: np.ndarray,
        weights: np.ndarray,
        sector_labels: Sequence[str],
        style_exposures: Optional[np.ndarray] = None,
        style_names: Optional[Sequence[str]] = None,
    ) -> "Panel":
        """
        Like ``from_long_arrays`` but builds one-hot sector exposures.

        Sector columns are the sorted unique labels.
        """
        labels = np.asarray(sector_labels).astype(str)
        names = np.unique(labels)
        one_hot = (labels[:, None] == names[None, :]).astype(float)
        return cls.from_long_arrays(
            dates=dates,
            asset_ids=asset_ids,
            returns=returns,
            weights=weights,
            sector_exposures=one_hot,
            style_exposures=style_exposures,
            sector_names=names.tolist(),
            style_names=style_names,
        )


# =============================================================================
# OUTPUT RECORDS
# =============================================================================

@dataclass(frozen=True)
class FactorReturnRecord:
    """One factor's estimated return at one date."""
    date: Hashable
    factor: str
    value: float
    kind: FactorKind


@dataclass(frozen=True)
class ResidualRecord:
    """One asset's idiosyncratic (residual) return at one date."""
    date: Hashable
    asset: str
    value: float


class OutcomeStatus(str, Enum):
    """Terminal state of one date in a panel run."""
    COMMITTED = "committed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class DateOutcome:
    """
    Per-date result value produced by the panel estimator.

    A committed outcome carries that date's records; a skipped outcome
    carries none, only the reason.

    Parameters
    ----------
    date : Hashable
        The cross-section's date.
    status : OutcomeStatus
        COMMITTED or SKIPPED.
    factor_returns : Tuple[FactorReturnRecord, ...]
        Market, sector and style records, in that order.
    residuals : Tuple[ResidualRecord, ...]
        One record per asset in input row order.
    reason : str, optional
        Why the date was skipped.
    r_squared : float, optional
        Fit quality of the committed regression.
    """
    date: Hashable
    status: OutcomeStatus
    factor_returns: Tuple[FactorReturnRecord, ...] = ()
    residuals: Tuple[ResidualRecord, ...] = ()
    reason: Optional[str] = None
    r_squared: Optional[float] = None

    def __post_init__(self):
        if self.status == OutcomeStatus.SKIPPED and (self.factor_returns or self.residuals):
            raise ValueError("skipped outcome cannot carry records")

    @property
    def is_committed(self) -> bool:
        return self.status == OutcomeStatus.COMMITTED

    @classmethod
    def skip(cls, date: Hashable, reason: str) -> "DateOutcome":
        return cls(date=date, status=OutcomeStatus.SKIPPED, reason=reason)


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class EstimatorConfig:
    """
    Settings for a panel estimation run.

    Parameters
    ----------
    winsor_percentile : float or None, default=0.05
        Symmetric percentile for clipping each date's returns before the
        regression. None disables winsorization.
    styles_orthogonalized : bool, default=True
        Whether style exposures were orthogonalized against sectors
        upstream. Recorded for downstream consumers; not acted on here.
    market_factor_name : str, default="market"
        Name used for the market factor in output records.
    max_workers : int, optional
        Run dates on a thread pool with this many workers. None or 1 runs
        sequentially.
    date_timeout : float, optional
        Per-date wall-clock budget in seconds when running on the pool.
        A date that exceeds it is skipped.

    Raises
    ------
    InvalidPercentile
        If winsor_percentile is not in (0, 0.5).
    InvalidConfiguration
        For any other invalid setting.
    """
    winsor_percentile: Optional[float] = 0.05
    styles_orthogonalized: bool = True
    market_factor_name: str = "market"
    max_workers: Optional[int] = None
    date_timeout: Optional[float] = None

    def __post_init__(self):
        p = self.winsor_percentile
        if p is not None and not (0.0 < p < 0.5):
            raise InvalidPercentile(p)
        if not self.market_factor_name:
            raise InvalidConfiguration("market_factor_name must be non-empty")
        if self.max_workers is not None and self.max_workers < 1:
            raise InvalidConfiguration(
                f"max_workers must be at least 1, got {self.max_workers}"
            )
        if self.date_timeout is not None and self.date_timeout <= 0:
            raise InvalidConfiguration(
                f"date_timeout must be positive, got {self.date_timeout}"
            )

    @property
    def parallel(self) -> bool:
        return self.max_workers is not None and self.max_workers > 1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EstimatorConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise InvalidConfiguration(f"unknown config keys: {sorted(unknown)}")
        return cls(**data)


# =============================================================================
# REGRESSION RESULTS
# =============================================================================

@dataclass(frozen=True)
class WLSResult:
    """
    Result of a weighted least squares fit.

    Parameters
    ----------
    coefficients : np.ndarray
        Fitted coefficients with shape (p,).
    residuals : np.ndarray
        Unweighted residuals y - X @ coefficients with shape (n,).
    r_squared : float
        1 - SS_res / SS_tot around the unweighted mean of y; 0 when
        SS_tot is 0.
    """
    coefficients: np.ndarray
    residuals: np.ndarray
    r_squared: float


@dataclass(frozen=True)
class ConstrainedWLSResult:
    """
    Result of the sector-constrained factor regression for one date.

    ``sector_returns`` sums to zero by construction.
    """
    market_return: float
    sector_returns: np.ndarray
    style_returns: np.ndarray
    residuals: np.ndarray
    r_squared: float = 0.0

    @property
    def factor_returns(self) -> np.ndarray:
        """All factor returns as [market, sectors..., styles...]."""
        return np.concatenate(
            [[self.market_return], self.sector_returns, self.style_returns]
        )


# =============================================================================
# PANEL RESULTS
# =============================================================================

@dataclass
class EstimationResult:
    """
    Output of a panel run: two record series plus the per-date outcomes.

    Parameters
    ----------
    factor_returns : List[FactorReturnRecord]
        Records for committed dates, grouped by date in processing order.
    residuals : List[ResidualRecord]
        Records for committed dates, grouped by date in processing order.
    outcomes : List[DateOutcome]
        One outcome per input date, in processing order.
    config : EstimatorConfig
        The configuration the run used.
    """
    factor_returns: List[FactorReturnRecord] = field(default_factory=list)
    residuals: List[ResidualRecord] = field(default_factory=list)
    outcomes: List[DateOutcome] = field(default_factory=list)
    config: EstimatorConfig = field(default_factory=EstimatorConfig)

    @classmethod
    def from_outcomes(
        cls, outcomes: Sequence[DateOutcome], config: EstimatorConfig
    ) -> "EstimationResult":
        result = cls(outcomes=list(outcomes), config=config)
        for outcome in result.outcomes:
            result.factor_returns.extend(outcome.factor_returns)
            result.residuals.extend(outcome.residuals)
        return result

    @property
    def committed_dates(self) -> List[Hashable]:
        return [o.date for o in self.outcomes if o.is_committed]

    @property
    def skipped_dates(self) -> List[Hashable]:
        return [o.date for o in self.outcomes if not o.is_committed]

    def factor_returns_for(self, date: Hashable) -> List[FactorReturnRecord]:
        return [r for r in self.factor_returns if r.date == date]

    def residuals_for(self, date: Hashable) -> List[ResidualRecord]:
        return [r for r in self.residuals if r.date == date]

    def factor_return_matrix(self) -> Tuple[List[Hashable], List[str], np.ndarray]:
        """
        Pivot factor-return records into a (dates, factors) matrix.

        Returns
        -------
        dates : List[Hashable]
            Committed dates in processing order.
        factor_names : List[str]
            Factor names in first-appearance order.
        matrix : np.ndarray
            Shape (len(dates), len(factor_names)); NaN where a factor has
            no record for a date.
        """
        dates = self.committed_dates
        names: List[str] = []
        for record in self.factor_returns:
            if record.factor not in names:
                names.append(record.factor)

        row_of = {d: i for i, d in enumerate(dates)}
        col_of = {name: j for j, name in enumerate(names)}
        matrix = np.full((len(dates), len(names)), np.nan)
        for record in self.factor_returns:
            matrix[row_of[record.date], col_of[record.factor]] = record.value
        return dates, names, matrix


# =============================================================================
# ATTRIBUTION
# =============================================================================

@dataclass(frozen=True)
class FactorContribution:
    """One factor's share of an asset's return over a period."""
    factor: str
    kind: FactorKind
    exposure: float
    factor_return: float
    contribution: float


@dataclass(frozen=True)
class AttributionResult:
    """
    Decomposition of one asset's return into factor and residual parts.

    Parameters
    ----------
    asset : str
        The asset analysed.
    start_date, end_date : Hashable
        First and last committed date the asset appears on.
    n_dates : int
        Number of committed dates covered.
    total_return : float
        Factor-explained return plus the idiosyncratic part.
    market_contribution : float
        Summed market return (exposure 1 on every date).
    sector_contributions, style_contributions : Tuple[FactorContribution, ...]
        Average exposure times summed factor return, per factor.
    idiosyncratic_contribution : float
        Summed residual return.
    r_squared : float
        ``min(|explained / total|, 1)``; 0 when the total is negligible.
    """
    asset: str
    start_date: Hashable
    end_date: Hashable
    n_dates: int
    total_return: float
    market_contribution: float
    sector_contributions: Tuple[FactorContribution, ...]
    style_contributions: Tuple[FactorContribution, ...]
    idiosyncratic_contribution: float
    r_squared: float

    @property
    def factor_explained_return(self) -> float:
        """Market, sector and style contributions combined."""
        return (
            self.market_contribution
            + sum(c.contribution for c in self.sector_contributions)
            + sum(c.contribution for c in self.style_contributions)
        )
