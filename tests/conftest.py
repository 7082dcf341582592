"""
conftest.py - Pytest Configuration and Shared Fixtures

This file contains fixtures used across all test modules. Fixtures are
organized by category:
- Random number generators (for reproducibility)
- Single cross-sections (hand-built, small)
- Panels (simulated, with known factor returns)
"""

import datetime as dt

import pytest
import numpy as np

from factor_engine import (
    CrossSection,
    PanelSimulator,
)


# =============================================================================
# RANDOM NUMBER GENERATORS
# =============================================================================

@pytest.fixture
def rng():
    """
    Provide a seeded random number generator for reproducible tests.

    All tests should use this fixture (or derive from it) to ensure
    reproducibility across runs.
    """
    return np.random.default_rng(seed=42)


# =============================================================================
# CROSS-SECTIONS
# =============================================================================

@pytest.fixture
def two_sector_arrays():
    """
    Six assets, two sectors (three each), one style.

    Returns (returns, weights, sectors, styles).
    """
    returns = np.array([0.01, 0.02, 0.015, 0.025, 0.03, 0.01])
    weights = np.ones(6)
    sectors = np.array([
        [1.0, 0.0],
        [1.0, 0.0],
        [1.0, 0.0],
        [0.0, 1.0],
        [0.0, 1.0],
        [0.0, 1.0],
    ])
    styles = np.array([[0.5], [0.3], [0.2], [-0.2], [-0.3], [-0.5]])
    return returns, weights, sectors, styles


@pytest.fixture
def separable_cross_section():
    """
    Six assets whose returns are exactly market + sector + style.

    True values: market 0.01, sectors (+0.004, -0.004), style 0.02.
    """
    sectors = np.array([
        [1.0, 0.0],
        [1.0, 0.0],
        [1.0, 0.0],
        [0.0, 1.0],
        [0.0, 1.0],
        [0.0, 1.0],
    ])
    styles = np.array([[0.5], [-0.1], [0.2], [0.3], [-0.4], [-0.5]])
    returns = 0.01 + sectors @ np.array([0.004, -0.004]) + styles[:, 0] * 0.02
    return CrossSection(
        date=dt.date(2024, 1, 2),
        asset_ids=["AAA", "BBB", "CCC", "DDD", "EEE", "FFF"],
        returns=returns,
        weights=np.array([400.0, 100.0, 225.0, 900.0, 49.0, 64.0]),
        sector_exposures=sectors,
        style_exposures=styles,
        sector_names=["tech", "energy"],
        style_names=["momentum"],
    )


def make_cross_section(date, n_assets, rng, sector_names=("s0", "s1"), style_names=("mom",)):
    """Random cross-section with one-hot sectors (every sector populated)."""
    k, m = len(sector_names), len(style_names)
    membership = np.arange(n_assets) % k
    return CrossSection(
        date=date,
        asset_ids=[f"X{i}" for i in range(n_assets)],
        returns=rng.normal(0.0, 0.02, n_assets),
        weights=rng.uniform(1.0, 100.0, n_assets),
        sector_exposures=np.eye(k)[membership],
        style_exposures=rng.standard_normal((n_assets, m)),
        sector_names=list(sector_names),
        style_names=list(style_names),
    )


@pytest.fixture
def cross_section_factory(rng):
    """Build random cross-sections: ``factory(date, n_assets)``."""
    def factory(date, n_assets, **kwargs):
        return make_cross_section(date, n_assets, rng, **kwargs)
    return factory


# =============================================================================
# PANELS
# =============================================================================

@pytest.fixture
def noiseless_panel(rng):
    """
    A 12-date, 40-asset panel with no idiosyncratic noise.

    The model fits it exactly, so estimates must match the truth.
    """
    sim = PanelSimulator(
        n_assets=40,
        sector_names=["tech", "energy", "health"],
        style_names=["momentum", "value"],
        rng=rng,
    )
    return sim.simulate(n_dates=12)


@pytest.fixture
def noisy_panel(rng):
    """A 30-date, 300-asset panel with 1% idiosyncratic noise."""
    sim = PanelSimulator(
        n_assets=300,
        sector_names=["a", "b", "c", "d", "e"],
        style_names=["momentum", "value", "size"],
        rng=rng,
    )
    return sim.simulate(n_dates=30, idio_vol=0.01)


# =============================================================================
# HELPER FIXTURES
# =============================================================================

@pytest.fixture
def tolerance():
    """Standard numerical tolerance for float comparisons."""
    return {"rtol": 1e-7, "atol": 1e-10}
