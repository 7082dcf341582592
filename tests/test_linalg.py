"""
test_linalg.py - Tests for the Linear Solver and Weighted Least Squares

Tests cover:
- Gaussian elimination accuracy against scipy.linalg.solve
- Partial pivoting on systems with a zero leading entry
- Singular, empty and mis-shaped systems
- WLS coefficient recovery, R-squared and weighting behaviour
"""

import pytest
import numpy as np
import scipy.linalg

from factor_engine import (
    solve_linear_system,
    weighted_least_squares,
    SINGULARITY_THRESHOLD,
    DimensionMismatch,
    EmptyData,
    SingularMatrix,
    WLSResult,
)


# =============================================================================
# LINEAR SOLVER
# =============================================================================

class TestSolveLinearSystem:
    """Tests for solve_linear_system."""

    def test_identity(self):
        b = np.array([1.0, -2.0, 3.0])
        np.testing.assert_allclose(solve_linear_system(np.eye(3), b), b)

    def test_small_known_system(self):
        A = np.array([[2.0, 1.0], [1.0, 3.0]])
        b = np.array([3.0, 5.0])
        np.testing.assert_allclose(solve_linear_system(A, b), [0.8, 1.4])

    @pytest.mark.parametrize("n", [1, 2, 5, 20, 60])
    def test_residual_small_for_well_conditioned(self, rng, n):
        """A @ x - b is tiny for diagonally dominant random systems."""
        A = rng.standard_normal((n, n)) + n * np.eye(n)
        b = rng.standard_normal(n)

        x = solve_linear_system(A, b)

        assert np.linalg.norm(A @ x - b) < 1e-10

    def test_matches_scipy(self, rng):
        A = rng.standard_normal((8, 8)) + 4 * np.eye(8)
        b = rng.standard_normal(8)

        np.testing.assert_allclose(
            solve_linear_system(A, b), scipy.linalg.solve(A, b), rtol=1e-10
        )

    def test_pivoting_handles_zero_leading_entry(self):
        """Without row exchange the first pivot would be zero."""
        A = np.array([[0.0, 1.0], [1.0, 0.0]])
        b = np.array([2.0, 3.0])
        np.testing.assert_allclose(solve_linear_system(A, b), [3.0, 2.0])

    def test_pivoting_small_leading_entry(self):
        """Tiny (but non-zero) leading pivot is swapped out for stability."""
        A = np.array([[1e-12, 1.0], [1.0, 1.0]])
        b = np.array([1.0, 2.0])
        x = solve_linear_system(A, b)
        np.testing.assert_allclose(x, scipy.linalg.solve(A, b), rtol=1e-9)

    def test_inputs_not_mutated(self, rng):
        A = rng.standard_normal((4, 4)) + 4 * np.eye(4)
        b = rng.standard_normal(4)
        A_before, b_before = A.copy(), b.copy()

        solve_linear_system(A, b)

        np.testing.assert_array_equal(A, A_before)
        np.testing.assert_array_equal(b, b_before)

    def test_singular_raises(self):
        A = np.array([[1.0, 2.0], [2.0, 4.0]])
        with pytest.raises(SingularMatrix):
            solve_linear_system(A, np.array([1.0, 2.0]))

    def test_zero_matrix_raises(self):
        with pytest.raises(SingularMatrix):
            solve_linear_system(np.zeros((3, 3)), np.ones(3))

    def test_pivot_below_threshold_raises(self):
        A = np.diag([1.0, SINGULARITY_THRESHOLD / 10])
        with pytest.raises(SingularMatrix, match="singular"):
            solve_linear_system(A, np.ones(2))

    def test_singular_is_linalg_error(self):
        """Callers catching numpy's LinAlgError also catch SingularMatrix."""
        with pytest.raises(np.linalg.LinAlgError):
            solve_linear_system(np.zeros((2, 2)), np.ones(2))

    def test_empty_raises(self):
        with pytest.raises(EmptyData):
            solve_linear_system(np.empty((0, 0)), np.empty(0))

    def test_non_square_raises(self):
        with pytest.raises(DimensionMismatch):
            solve_linear_system(np.ones((2, 3)), np.ones(2))

    def test_rhs_length_mismatch_raises(self):
        with pytest.raises(DimensionMismatch) as exc_info:
            solve_linear_system(np.eye(3), np.ones(2))
        assert exc_info.value.expected == 3
        assert exc_info.value.actual == 2


# =============================================================================
# WEIGHTED LEAST SQUARES
# =============================================================================

@pytest.fixture
def line_design():
    """Rows [1, i] for i = 1..5."""
    return np.column_stack([np.ones(5), np.arange(1.0, 6.0)])


class TestWeightedLeastSquares:
    """Tests for weighted_least_squares."""

    def test_exact_fit(self, line_design):
        y = np.array([1.0, 2.0, 3.0, 4.0, 5.0])

        res = weighted_least_squares(y, line_design, np.ones(5))

        assert isinstance(res, WLSResult)
        np.testing.assert_allclose(res.coefficients, [0.0, 1.0], atol=1e-10)
        np.testing.assert_allclose(res.residuals, 0.0, atol=1e-10)
        assert res.r_squared == pytest.approx(1.0, abs=1e-10)

    def test_downweighted_outlier(self, line_design):
        """A near-zero weight on the outlier keeps the slope near 1."""
        y = np.array([1.0, 2.0, 3.0, 4.0, 100.0])
        w = np.array([1.0, 1.0, 1.0, 1.0, 0.001])

        res = weighted_least_squares(y, line_design, w)

        assert res.coefficients[1] == pytest.approx(1.0, abs=0.1)

    def test_equal_weights_match_ols(self, rng):
        X = np.column_stack([np.ones(50), rng.standard_normal((50, 3))])
        y = X @ np.array([0.5, 1.0, -2.0, 0.3]) + rng.normal(0, 0.1, 50)

        res = weighted_least_squares(y, X, np.ones(50))
        expected, *_ = scipy.linalg.lstsq(X, y)

        np.testing.assert_allclose(res.coefficients, expected, rtol=1e-8)

    def test_weights_scale_rows(self, rng):
        """Equivalent to OLS on rows multiplied by the weights."""
        X = np.column_stack([np.ones(30), rng.standard_normal(30)])
        y = rng.standard_normal(30)
        w = rng.uniform(0.5, 3.0, 30)

        res = weighted_least_squares(y, X, w)
        expected, *_ = scipy.linalg.lstsq(X * w[:, None], y * w)

        np.testing.assert_allclose(res.coefficients, expected, rtol=1e-8)

    def test_residuals_are_unweighted(self, rng):
        X = np.column_stack([np.ones(10), rng.standard_normal(10)])
        y = rng.standard_normal(10)
        w = rng.uniform(1.0, 5.0, 10)

        res = weighted_least_squares(y, X, w)

        np.testing.assert_allclose(res.residuals, y - X @ res.coefficients)

    def test_r_squared_uses_unweighted_mean(self, rng):
        X = np.column_stack([np.ones(20), rng.standard_normal(20)])
        y = X @ np.array([1.0, 2.0]) + rng.normal(0, 0.5, 20)
        w = rng.uniform(0.1, 2.0, 20)

        res = weighted_least_squares(y, X, w)
        ss_tot = np.sum((y - y.mean()) ** 2)
        expected = 1 - np.sum(res.residuals ** 2) / ss_tot

        assert res.r_squared == pytest.approx(expected)

    def test_constant_response_r_squared_zero(self, line_design):
        """SS_tot == 0 gives R² = 0 rather than a division by zero."""
        res = weighted_least_squares(np.full(5, 2.0), line_design, np.ones(5))
        assert res.r_squared == 0.0

    def test_collinear_design_raises(self):
        X = np.column_stack([np.ones(4), 2 * np.ones(4)])
        with pytest.raises(SingularMatrix):
            weighted_least_squares(np.arange(4.0), X, np.ones(4))

    def test_all_zero_weights_raise(self, line_design):
        with pytest.raises(SingularMatrix):
            weighted_least_squares(np.arange(5.0), line_design, np.zeros(5))

    def test_x_rows_mismatch(self, line_design):
        with pytest.raises(DimensionMismatch, match="X rows"):
            weighted_least_squares(np.ones(4), line_design, np.ones(4))

    def test_weights_length_mismatch(self, line_design):
        with pytest.raises(DimensionMismatch, match="weights"):
            weighted_least_squares(np.ones(5), line_design, np.ones(3))

    def test_empty_raises(self):
        with pytest.raises(EmptyData):
            weighted_least_squares(np.empty(0), np.empty((0, 2)), np.empty(0))

    def test_no_columns_raises(self):
        with pytest.raises(EmptyData):
            weighted_least_squares(np.ones(3), np.empty((3, 0)), np.ones(3))
