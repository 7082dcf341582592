"""
test_examples.py - Smoke Tests for the Example Scripts
"""

import sys
from pathlib import Path

import pytest
import numpy as np

# =============================================================================
# PATH SETUP
# =============================================================================
project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from examples import list_examples, run_example  # noqa: E402


class TestExamples:
    def test_list_examples(self):
        assert set(list_examples()) == {"estimate_synthetic", "robust_estimation"}

    def test_unknown_example(self):
        with pytest.raises(ValueError, match="Unknown example"):
            run_example("nope")

    def test_estimate_synthetic(self, capsys):
        result, truth = run_example(
            "estimate_synthetic", n_dates=4, n_assets=40, idio_vol=0.0
        )

        assert result.skipped_dates == []
        _, _, estimated = result.factor_return_matrix()
        np.testing.assert_allclose(estimated, truth.factor_returns, atol=1e-9)
        assert "Synthetic estimation complete!" in capsys.readouterr().out

    def test_robust_estimation(self, tmp_path):
        result, reloaded = run_example(
            "robust_estimation", n_dates=4, n_assets=30, output_dir=tmp_path
        )

        assert set(result.skipped_dates) == {"thin-day", "halted-day"}
        assert len(result.committed_dates) == 4
        assert (tmp_path / "factor_returns.npz").exists()
        assert reloaded.factor_returns == result.factor_returns
