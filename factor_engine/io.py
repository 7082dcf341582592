"""
io.py - Estimation Result Serialization and Deserialization

This module handles saving and loading EstimationResult to/from disk.
Supported formats:
- NPZ: NumPy's archive format (default, columnar, compact)
- JSON: Human-readable format, one entry per date

Both formats keep the factor-return records, residual records, per-date
outcomes and the run configuration. Dates are written as strings together
with a type tag (date, datetime, int or str), so each date loads back as the
type it was saved with.

Example Usage:
-------------
    >>> from factor_engine.io import save_results, load_results
    >>>
    >>> # Save a run; the suffix picks the format
    >>> save_results(result, "factor_returns.npz")
    >>>
    >>> # Load it back
    >>> loaded = load_results("factor_returns.npz")
"""

from __future__ import annotations

import datetime as dt
import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Hashable, List, Optional, Union

import numpy as np

from .types import (
    DateOutcome,
    EstimationResult,
    EstimatorConfig,
    FactorKind,
    FactorReturnRecord,
    OutcomeStatus,
    ResidualRecord,
)


class ResultFormat(str, Enum):
    """Supported result file formats."""
    NPZ = "npz"
    JSON = "json"


def save_results(
    result: EstimationResult,
    path: Union[str, Path],
    format: Optional[ResultFormat] = None
) -> None:
    """
    Save an estimation result to disk.

    Parameters
    ----------
    result : EstimationResult
        The panel run to save.
    path : str or Path
        Destination file path, ending in ``.npz`` or ``.json``.
    format : ResultFormat, optional
        Output format. Inferred from the suffix when omitted; when given it
        must agree with the suffix.

    Raises
    ------
    ValueError
        If the suffix is not a known format or contradicts ``format``.

    Examples
    --------
    >>> save_results(result, "run.npz")
    >>> save_results(result, "run.json")
    """
    path = Path(path)

    suffix_format = _SUFFIX_FORMATS.get(path.suffix)
    if suffix_format is None:
        raise ValueError(f"Unknown result format: {path.suffix}")
    if format is not None and ResultFormat(format) != suffix_format:
        raise ValueError(
            f"Format {ResultFormat(format).value} does not match suffix {path.suffix}"
        )

    if suffix_format == ResultFormat.NPZ:
        _save_npz(result, path)
    else:
        _save_json(result, path)


def load_results(path: Union[str, Path]) -> EstimationResult:
    """
    Load an estimation result from disk.

    Parameters
    ----------
    path : str or Path
        Source file path. Format is inferred from extension.

    Returns
    -------
    EstimationResult
        The loaded result.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the file format is not recognized.
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Result file not found: {path}")

    suffix_format = _SUFFIX_FORMATS.get(path.suffix)
    if suffix_format == ResultFormat.NPZ:
        return _load_npz(path)
    elif suffix_format == ResultFormat.JSON:
        return _load_json(path)
    else:
        raise ValueError(f"Unknown result format: {path.suffix}")


# =============================================================================
# HELPERS
# =============================================================================

_SUFFIX_FORMATS = {
    ".npz": ResultFormat.NPZ,
    ".json": ResultFormat.JSON,
}


def _date_to_str(date: Hashable) -> str:
    if isinstance(date, dt.date):
        return date.isoformat()
    return str(date)


def _date_kind(date: Hashable) -> str:
    """Type tag stored beside each date string so labels load back as written."""
    if isinstance(date, dt.datetime):
        return "datetime"
    if isinstance(date, dt.date):
        return "date"
    if isinstance(date, (int, np.integer)) and not isinstance(date, bool):
        return "int"
    return "str"


def _parse_date(text: str, kind: str) -> Hashable:
    if kind == "datetime":
        return dt.datetime.fromisoformat(text)
    if kind == "date":
        return dt.date.fromisoformat(text)
    if kind == "int":
        return int(text)
    return text


def _assemble(
    outcome_rows: List[Dict[str, Any]],
    factor_rows: List[Dict[str, Any]],
    residual_rows: List[Dict[str, Any]],
    config: EstimatorConfig,
) -> EstimationResult:
    """Regroup flat record rows under their dates' outcomes."""
    date_of = {
        row["date"]: _parse_date(row["date"], row.get("date_kind", "str"))
        for row in outcome_rows
    }

    factors_by_date: Dict[str, List[FactorReturnRecord]] = {}
    for row in factor_rows:
        record = FactorReturnRecord(
            date=date_of[row["date"]],
            factor=row["factor"],
            value=float(row["value"]),
            kind=FactorKind(row["kind"]),
        )
        factors_by_date.setdefault(row["date"], []).append(record)

    residuals_by_date: Dict[str, List[ResidualRecord]] = {}
    for row in residual_rows:
        record = ResidualRecord(
            date=date_of[row["date"]],
            asset=row["asset"],
            value=float(row["value"]),
        )
        residuals_by_date.setdefault(row["date"], []).append(record)

    outcomes = []
    for row in outcome_rows:
        key = row["date"]
        status = OutcomeStatus(row["status"])
        r_squared = row.get("r_squared")
        if r_squared is not None and np.isnan(r_squared):
            r_squared = None
        outcomes.append(
            DateOutcome(
                date=date_of[key],
                status=status,
                factor_returns=tuple(factors_by_date.get(key, ())),
                residuals=tuple(residuals_by_date.get(key, ())),
                reason=row.get("reason") or None,
                r_squared=r_squared,
            )
        )

    return EstimationResult.from_outcomes(outcomes, config)


# =============================================================================
# NPZ
# =============================================================================

def _save_npz(result: EstimationResult, path: Path) -> None:
    """Save result to NPZ format as parallel columns."""
    data = {
        "factor_date": np.array([_date_to_str(r.date) for r in result.factor_returns], dtype=str),
        "factor_name": np.array([r.factor for r in result.factor_returns], dtype=str),
        "factor_kind": np.array([r.kind.value for r in result.factor_returns], dtype=str),
        "factor_value": np.array([r.value for r in result.factor_returns], dtype=float),
        "residual_date": np.array([_date_to_str(r.date) for r in result.residuals], dtype=str),
        "residual_asset": np.array([str(r.asset) for r in result.residuals], dtype=str),
        "residual_value": np.array([r.value for r in result.residuals], dtype=float),
        "outcome_date": np.array([_date_to_str(o.date) for o in result.outcomes], dtype=str),
        "outcome_date_kind": np.array([_date_kind(o.date) for o in result.outcomes], dtype=str),
        "outcome_status": np.array([o.status.value for o in result.outcomes], dtype=str),
        "outcome_reason": np.array([o.reason or "" for o in result.outcomes], dtype=str),
        "outcome_r_squared": np.array(
            [np.nan if o.r_squared is None else o.r_squared for o in result.outcomes],
            dtype=float,
        ),
        "config": np.array(json.dumps(result.config.to_dict())),
    }

    np.savez(path, **data)


def _load_npz(path: Path) -> EstimationResult:
    """Load result from NPZ format."""
    with np.load(path, allow_pickle=False) as data:
        factor_rows = [
            {"date": d, "factor": f, "kind": k, "value": v}
            for d, f, k, v in zip(
                data["factor_date"].tolist(),
                data["factor_name"].tolist(),
                data["factor_kind"].tolist(),
                data["factor_value"].tolist(),
            )
        ]
        residual_rows = [
            {"date": d, "asset": a, "value": v}
            for d, a, v in zip(
                data["residual_date"].tolist(),
                data["residual_asset"].tolist(),
                data["residual_value"].tolist(),
            )
        ]
        outcome_rows = [
            {"date": d, "date_kind": kd, "status": s, "reason": r, "r_squared": q}
            for d, kd, s, r, q in zip(
                data["outcome_date"].tolist(),
                data["outcome_date_kind"].tolist(),
                data["outcome_status"].tolist(),
                data["outcome_reason"].tolist(),
                data["outcome_r_squared"].tolist(),
            )
        ]
        config = EstimatorConfig.from_dict(json.loads(str(data["config"])))

    return _assemble(outcome_rows, factor_rows, residual_rows, config)


# =============================================================================
# JSON
# =============================================================================

def _save_json(result: EstimationResult, path: Path) -> None:
    """Save result to JSON format, nested by date."""
    outcomes = []
    for outcome in result.outcomes:
        outcomes.append({
            "date": _date_to_str(outcome.date),
            "date_kind": _date_kind(outcome.date),
            "status": outcome.status.value,
            "reason": outcome.reason,
            "r_squared": outcome.r_squared,
            "factor_returns": [
                {"factor": r.factor, "kind": r.kind.value, "value": r.value}
                for r in outcome.factor_returns
            ],
            "residuals": [
                {"asset": str(r.asset), "value": r.value}
                for r in outcome.residuals
            ],
        })

    data = {
        "config": result.config.to_dict(),
        "outcomes": outcomes,
    }

    with open(path, "w") as f:
        json.dump(data, f, indent=2)


def _load_json(path: Path) -> EstimationResult:
    """Load result from JSON format."""
    with open(path, "r") as f:
        data = json.load(f)

    factor_rows, residual_rows = [], []
    for entry in data["outcomes"]:
        for r in entry["factor_returns"]:
            factor_rows.append({"date": entry["date"], **r})
        for r in entry["residuals"]:
            residual_rows.append({"date": entry["date"], **r})

    config = EstimatorConfig.from_dict(data["config"])
    return _assemble(data["outcomes"], factor_rows, residual_rows, config)
