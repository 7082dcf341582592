"""
attribution.py - Per-Asset Return Attribution
=============================================

Splits one asset's return over the committed dates of a run into factor
contributions and an idiosyncratic part:

    contribution_f = mean(exposure_f) * sum(factor_return_f)
    idiosyncratic  = sum(residual)
    total          = market + sum(sectors) + sum(styles) + idiosyncratic

Exposures are averaged over the dates the asset was estimated on, so the
decomposition is approximate whenever exposures vary through time.

Example Usage:
-------------
    >>> from factor_engine import estimate_factor_returns
    >>> from factor_engine.attribution import compute_attribution
    >>>
    >>> result = estimate_factor_returns(panel)
    >>> attr = compute_attribution(result, panel, "AAPL")
    >>> attr.factor_explained_return, attr.idiosyncratic_contribution
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Union

import numpy as np
from loguru import logger

from .errors import EmptyData, InvalidConfiguration
from .types import (
    AttributionResult,
    CrossSection,
    EstimationResult,
    FactorContribution,
    FactorKind,
    Panel,
)

# Totals smaller than this give r_squared = 0.
TOTAL_RETURN_TOLERANCE = 1e-10


def compute_attribution(
    result: EstimationResult,
    panel: Union[Panel, Iterable[CrossSection]],
    asset: str,
) -> AttributionResult:
    """
    Attribute one asset's return to the factors of a run.

    Parameters
    ----------
    result : EstimationResult
        Output of the estimator. Only committed dates carrying a residual
        for ``asset`` are used.
    panel : Panel or iterable of CrossSection
        The inputs the result was estimated from; supplies exposures.
    asset : str
        Asset identifier.

    Returns
    -------
    AttributionResult

    Raises
    ------
    EmptyData
        If the result holds no residual for ``asset``.
    InvalidConfiguration
        If a date of the asset's residuals is missing from the panel, or
        the asset is missing from that date's cross-section.
    """
    residuals = [r for r in result.residuals if r.asset == asset]
    if not residuals:
        raise EmptyData(f"no residuals for asset {asset!r}")

    dates = [r.date for r in residuals]
    date_set = set(dates)
    cross_sections = {xs.date: xs for xs in panel}

    exposures: Dict[str, List[float]] = {}
    for date in dates:
        xs = cross_sections.get(date)
        if xs is None:
            logger.error(f"Date {date} has residuals but is not in the panel")
            raise InvalidConfiguration(f"date {date!r} is not in the panel")
        if asset not in xs.asset_ids:
            raise InvalidConfiguration(f"asset {asset!r} is not in the panel at {date!r}")

        row = xs.asset_ids.index(asset)
        for name, value in zip(xs.sector_names, xs.sector_exposures[row]):
            exposures.setdefault(name, []).append(float(value))
        for name, value in zip(xs.style_names, xs.style_exposures[row]):
            exposures.setdefault(name, []).append(float(value))

    # Summed factor returns over the asset's dates, in first-appearance order
    summed: Dict[str, float] = {}
    kinds: Dict[str, FactorKind] = {}
    for record in result.factor_returns:
        if record.date not in date_set:
            continue
        summed[record.factor] = summed.get(record.factor, 0.0) + record.value
        kinds[record.factor] = record.kind

    market = 0.0
    sectors: List[FactorContribution] = []
    styles: List[FactorContribution] = []
    for name, factor_return in summed.items():
        kind = kinds[name]
        if kind == FactorKind.MARKET:
            market += factor_return
            continue

        exposure = float(np.mean(exposures[name])) if name in exposures else 0.0
        contribution = FactorContribution(
            factor=name,
            kind=kind,
            exposure=exposure,
            factor_return=factor_return,
            contribution=exposure * factor_return,
        )
        (sectors if kind == FactorKind.SECTOR else styles).append(contribution)

    idio = float(sum(r.value for r in residuals))
    explained = market + sum(c.contribution for c in sectors) + sum(c.contribution for c in styles)
    total = explained + idio

    if abs(total) > TOTAL_RETURN_TOLERANCE:
        r_squared = min(abs(explained / total), 1.0)
    else:
        r_squared = 0.0

    logger.debug(
        f"Attribution for {asset} over {len(dates)} dates | "
        f"explained={explained:.6f}, idio={idio:.6f}"
    )

    return AttributionResult(
        asset=asset,
        start_date=dates[0],
        end_date=dates[-1],
        n_dates=len(dates),
        total_return=total,
        market_contribution=market,
        sector_contributions=tuple(sectors),
        style_contributions=tuple(styles),
        idiosyncratic_contribution=idio,
        r_squared=r_squared,
    )
