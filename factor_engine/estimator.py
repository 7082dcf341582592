"""
estimator.py - Cross-Sectional Factor Return Estimation over a Panel
====================================================================

Runs the sector-constrained regression once per date and assembles the
factor-return and residual series.

Per date:

    Pending -> (winsorize, if enabled) -> Regress -> Committed | Skipped

A date is skipped, never aborting the run, when its data cannot support
the regression: misaligned rows, fewer observations than free parameters,
or a singular weighted design. Configuration errors (no sectors, factor
name collisions) are raised because they would fail on every date.

Dates are independent, so they may be run on a thread pool; output order
always follows the panel's date order.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from typing import Iterable, List, Optional, Union

import numpy as np
from loguru import logger

from .errors import FactorEngineError, InsufficientData, InvalidConfiguration
from .regression import constrained_wls
from .types import (
    ConstrainedWLSResult,
    CrossSection,
    DateOutcome,
    EstimationResult,
    EstimatorConfig,
    FactorKind,
    FactorReturnRecord,
    OutcomeStatus,
    Panel,
    ResidualRecord,
)
from .winsorize import Winsorizer


class CrossSectionalEstimator:
    """
    Estimates market, sector and style returns for every date of a panel.

    Parameters
    ----------
    config : EstimatorConfig, optional
        Run settings. Defaults to ``EstimatorConfig()`` (5% winsorization,
        sequential execution).

    Examples
    --------
    >>> from factor_engine import CrossSectionalEstimator, EstimatorConfig
    >>>
    >>> estimator = CrossSectionalEstimator(EstimatorConfig(winsor_percentile=0.05))
    >>> result = estimator.estimate(panel)
    >>> dates, factors, F = result.factor_return_matrix()
    >>> result.skipped_dates
    []

    Notes
    -----
    Raw weights are floored at zero and square-rooted before the fit, so
    with market caps as weights the regression is cap-weighted.
    """

    def __init__(self, config: Optional[EstimatorConfig] = None):
        self.config = config if config is not None else EstimatorConfig()
        p = self.config.winsor_percentile
        self._winsorizer = Winsorizer(p) if p is not None else None

    # -------------------------------------------------------------------------
    # Single date
    # -------------------------------------------------------------------------

    def estimate_date(self, xs: CrossSection) -> DateOutcome:
        """
        Estimate one cross-section.

        Returns
        -------
        DateOutcome
            COMMITTED with its records, or SKIPPED with the reason.

        Raises
        ------
        InvalidConfiguration
            If the cross-section has no sector columns or a sector/style
            name collides with the market factor name.
        """
        self._check_layout(xs)

        try:
            fit = self._regress(xs)
        except FactorEngineError as e:
            if not e.recoverable:
                raise
            logger.warning(f"Skipping date {xs.date}: {e}")
            return DateOutcome.skip(xs.date, str(e))

        logger.debug(
            f"Committed date {xs.date} | n={xs.n_assets}, R²={fit.r_squared:.4f}"
        )
        return self._commit(xs, fit)

    def _check_layout(self, xs: CrossSection) -> None:
        if xs.n_sectors == 0:
            logger.error(f"Cross-section {xs.date} has no sector columns")
            raise InvalidConfiguration("must have at least one sector")

        market = self.config.market_factor_name
        if market in xs.sector_names or market in xs.style_names:
            logger.error(f"Factor name '{market}' is used by a sector or style column")
            raise InvalidConfiguration(
                f"market factor name '{market}' collides with an exposure column"
            )

    def _regress(self, xs: CrossSection) -> ConstrainedWLSResult:
        xs.validate_rows()

        required = xs.n_free_parameters + 1
        if xs.n_assets < required:
            raise InsufficientData(required=required, actual=xs.n_assets)

        returns = xs.returns
        if self._winsorizer is not None:
            returns = self._winsorizer.apply(returns)

        weights = np.sqrt(np.maximum(xs.weights, 0.0))

        return constrained_wls(
            returns, weights, xs.sector_exposures, xs.style_exposures
        )

    def _commit(self, xs: CrossSection, fit: ConstrainedWLSResult) -> DateOutcome:
        names = xs.factor_names(self.config.market_factor_name)
        kinds = (
            [FactorKind.MARKET]
            + [FactorKind.SECTOR] * xs.n_sectors
            + [FactorKind.STYLE] * xs.n_styles
        )

        factor_records = tuple(
            FactorReturnRecord(date=xs.date, factor=name, value=float(value), kind=kind)
            for name, value, kind in zip(names, fit.factor_returns, kinds)
        )
        residual_records = tuple(
            ResidualRecord(date=xs.date, asset=asset, value=float(value))
            for asset, value in zip(xs.asset_ids, fit.residuals)
        )

        return DateOutcome(
            date=xs.date,
            status=OutcomeStatus.COMMITTED,
            factor_returns=factor_records,
            residuals=residual_records,
            r_squared=fit.r_squared,
        )

    # -------------------------------------------------------------------------
    # Panel
    # -------------------------------------------------------------------------

    def estimate(self, panel: Union[Panel, Iterable[CrossSection]]) -> EstimationResult:
        """
        Estimate every date of a panel.

        Parameters
        ----------
        panel : Panel or iterable of CrossSection
            Dates in processing order.

        Returns
        -------
        EstimationResult
            Records for committed dates plus one outcome per input date.
        """
        if not isinstance(panel, Panel):
            panel = Panel(list(panel))

        mode = f"{self.config.max_workers} workers" if self.config.parallel else "sequential"
        logger.info(f"Estimating factor returns for {len(panel)} dates ({mode})")

        if self.config.parallel:
            outcomes = self._estimate_parallel(panel.cross_sections)
        else:
            outcomes = [self.estimate_date(xs) for xs in panel]

        result = EstimationResult.from_outcomes(outcomes, self.config)

        n_skipped = len(result.skipped_dates)
        if n_skipped:
            logger.warning(f"{n_skipped} of {len(panel)} dates skipped")
        logger.success(
            f"Estimation complete. Committed {len(result.committed_dates)} dates, "
            f"{len(result.factor_returns)} factor returns, "
            f"{len(result.residuals)} residuals"
        )
        return result

    def _estimate_parallel(self, cross_sections: List[CrossSection]) -> List[DateOutcome]:
        """
        Run dates on a thread pool, collecting outcomes in date order.

        The timeout budget starts when a worker picks the date up, so time
        spent queued behind other dates does not count against it. A date
        whose own run exceeds the budget is skipped even if it finished.
        """
        budget = self.config.date_timeout
        started = [threading.Event() for _ in cross_sections]
        start_times = [0.0] * len(cross_sections)

        def run(i: int, xs: CrossSection):
            start_times[i] = time.monotonic()
            started[i].set()
            outcome = self.estimate_date(xs)
            return outcome, time.monotonic() - start_times[i]

        outcomes: List[DateOutcome] = []
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            futures = [pool.submit(run, i, xs) for i, xs in enumerate(cross_sections)]
            for i, (xs, future) in enumerate(zip(cross_sections, futures)):
                if budget is None:
                    outcomes.append(future.result()[0])
                    continue

                started[i].wait()
                remaining = start_times[i] + budget - time.monotonic()
                try:
                    outcome, elapsed = future.result(timeout=max(remaining, 0.0))
                except FuturesTimeout:
                    outcome, elapsed = None, None

                if elapsed is None or elapsed > budget:
                    logger.warning(f"Skipping date {xs.date}: exceeded {budget}s budget")
                    outcome = DateOutcome.skip(xs.date, "timeout")
                outcomes.append(outcome)
        return outcomes


def estimate_factor_returns(
    panel: Union[Panel, Iterable[CrossSection]],
    config: Optional[EstimatorConfig] = None,
) -> EstimationResult:
    """Convenience wrapper: ``CrossSectionalEstimator(config).estimate(panel)``."""
    return CrossSectionalEstimator(config).estimate(panel)
