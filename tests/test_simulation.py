"""
test_simulation.py - Tests for Synthetic Panel Generation

Tests cover:
- Shapes and dates of the generated panel
- Zero-sum sector returns and populated sectors
- Exactness of the noiseless model
- Reproducibility with a seeded RNG
- Parameter validation
"""

import datetime as dt

import pytest
import numpy as np

from factor_engine import (
    PanelSimulator,
    SimulatedPanel,
    InvalidConfiguration,
    simulate_panel,
)


class TestPanelSimulator:
    """Tests for PanelSimulator."""

    def test_shapes(self, rng):
        truth = simulate_panel(
            n_dates=5, n_assets=30, sector_names=["a", "b", "c"],
            style_names=["mom", "val"], rng=rng,
        )

        assert isinstance(truth, SimulatedPanel)
        assert len(truth.panel) == 5
        assert truth.market_returns.shape == (5,)
        assert truth.sector_returns.shape == (5, 3)
        assert truth.style_returns.shape == (5, 2)
        assert truth.idio_returns.shape == (5, 30)
        assert truth.factor_returns.shape == (5, 6)

    def test_consecutive_dates(self, rng):
        truth = simulate_panel(3, 10, ["a", "b"], rng=rng, start=dt.date(2024, 2, 28))
        assert truth.panel.dates == [
            dt.date(2024, 2, 28), dt.date(2024, 2, 29), dt.date(2024, 3, 1)
        ]

    def test_sector_returns_sum_to_zero(self, rng):
        truth = simulate_panel(20, 50, ["a", "b", "c", "d"], rng=rng)
        np.testing.assert_allclose(truth.sector_returns.sum(axis=1), 0.0, atol=1e-15)

    def test_every_sector_populated(self, rng):
        sim = PanelSimulator(7, ["a", "b", "c"], rng=rng)
        counts = sim.sector_exposures.sum(axis=0)
        assert counts.tolist() == [3.0, 2.0, 2.0]
        np.testing.assert_array_equal(sim.sector_exposures.sum(axis=1), 1.0)

    def test_noiseless_returns_follow_model(self, noiseless_panel):
        for t, xs in enumerate(noiseless_panel.panel):
            expected = (
                noiseless_panel.market_returns[t]
                + xs.sector_exposures @ noiseless_panel.sector_returns[t]
                + xs.style_exposures @ noiseless_panel.style_returns[t]
            )
            np.testing.assert_allclose(xs.returns, expected, atol=1e-15)
        assert not noiseless_panel.idio_returns.any()

    def test_styles_standardized(self, noiseless_panel):
        scores = noiseless_panel.panel[0].style_exposures
        np.testing.assert_allclose(scores.mean(axis=0), 0.0, atol=1e-12)
        np.testing.assert_allclose(scores.std(axis=0), 1.0)

    def test_weights_positive(self, noisy_panel):
        for xs in noisy_panel.panel:
            assert (xs.weights > 0).all()

    def test_no_styles(self, rng):
        truth = simulate_panel(2, 8, ["a", "b"], rng=rng)
        assert truth.panel[0].n_styles == 0
        assert truth.style_returns.shape == (2, 0)

    def test_reproducible(self):
        a = simulate_panel(4, 20, ["a", "b"], ["m"], rng=np.random.default_rng(3))
        b = simulate_panel(4, 20, ["a", "b"], ["m"], rng=np.random.default_rng(3))
        np.testing.assert_array_equal(a.factor_returns, b.factor_returns)
        np.testing.assert_array_equal(a.panel[2].returns, b.panel[2].returns)

    @pytest.mark.parametrize("kwargs", [
        {"n_assets": 10, "sector_names": []},
        {"n_assets": 2, "sector_names": ["a", "b", "c"]},
    ])
    def test_invalid_setup(self, kwargs):
        with pytest.raises(InvalidConfiguration):
            PanelSimulator(**kwargs)

    def test_invalid_n_dates(self, rng):
        with pytest.raises(InvalidConfiguration):
            PanelSimulator(10, ["a"], rng=rng).simulate(0)
