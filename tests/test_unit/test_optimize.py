"""
Unit tests for optimizers, convergence tracking and numerical derivatives.
"""

import numpy as np
import pytest

from substml.optimize import (
    ConvergenceTracker,
    MultivariateFunction,
    MultivariateSearch,
    OrthogonalSearch,
    diagonal_hessian,
    select_optimizer,
)


class Quadratic(MultivariateFunction):
    """sum_i w_i (x_i - c_i)^2 on a box."""

    def __init__(self, centre, weights, lower, upper):
        self.centre = np.asarray(centre, dtype=float)
        self.weights = np.asarray(weights, dtype=float)
        self.lower = lower
        self.upper = upper
        self.n_calls = 0

    def evaluate(self, params):
        self.n_calls += 1
        return float(np.sum(self.weights * (params - self.centre) ** 2))

    @property
    def n_arguments(self):
        return len(self.centre)

    def lower_bound(self, i):
        return self.lower

    def upper_bound(self, i):
        return self.upper


class TestConvergenceTracker:
    """Test the immutable convergence tracker."""

    def test_converged_when_both_stable(self):
        tracker = ConvergenceTracker.seed(10.0, np.array([1.0, 2.0]))
        converged, _ = tracker.check(10.00001, np.array([1.00001, 2.0]), 1e-4, 1e-4)

        assert converged

    def test_value_change_blocks_convergence(self):
        tracker = ConvergenceTracker.seed(10.0, np.array([1.0]))
        converged, _ = tracker.check(9.0, np.array([1.0]), 1e-4, 1e-4)

        assert not converged

    def test_parameter_change_blocks_convergence(self):
        tracker = ConvergenceTracker.seed(10.0, np.array([1.0]))
        converged, _ = tracker.check(10.0, np.array([1.01]), 1e-4, 1e-4)

        assert not converged

    def test_check_returns_new_tracker(self):
        tracker = ConvergenceTracker.seed(10.0, np.array([1.0]))
        _, following = tracker.check(9.0, np.array([1.5]), 1e-4, 1e-4)

        assert tracker.previous_value == 10.0
        assert following.previous_value == 9.0
        assert following.previous_params == (1.5,)

    def test_empty_parameter_vector(self):
        tracker = ConvergenceTracker.seed(5.0, np.array([]))
        converged, _ = tracker.check(5.0, np.array([]), 1e-4, 1e-4)

        assert converged

    def test_frozen(self):
        tracker = ConvergenceTracker.seed(5.0, np.array([1.0]))
        with pytest.raises(AttributeError):
            tracker.previous_value = 1.0


class TestOptimizers:
    """Test bounded minimisers."""

    def test_select_optimizer(self):
        assert isinstance(select_optimizer(1), OrthogonalSearch)
        assert isinstance(select_optimizer(2), MultivariateSearch)
        assert isinstance(select_optimizer(6), MultivariateSearch)

    def test_orthogonal_search_one_dimension(self):
        f = Quadratic([2.5], [3.0], 0.0, 10.0)
        x = np.array([8.0])

        OrthogonalSearch().optimize(f, x, 1e-6, 1e-6)

        assert x[0] == pytest.approx(2.5, abs=1e-5)

    def test_orthogonal_search_several_dimensions(self):
        f = Quadratic([1.0, 4.0, 7.0], [1.0, 2.0, 0.5], 0.0, 10.0)
        x = np.array([5.0, 5.0, 5.0])

        OrthogonalSearch().optimize(f, x, 1e-8, 1e-6)

        np.testing.assert_allclose(x, [1.0, 4.0, 7.0], atol=1e-4)

    def test_multivariate_search(self):
        f = Quadratic([1.0, 4.0, 7.0], [1.0, 2.0, 0.5], 0.0, 10.0)
        x = np.array([5.0, 5.0, 5.0])

        MultivariateSearch().optimize(f, x, 1e-8, 1e-6)

        np.testing.assert_allclose(x, [1.0, 4.0, 7.0], atol=1e-3)

    @pytest.mark.parametrize("optimizer", [OrthogonalSearch(), MultivariateSearch()])
    def test_bounds_respected(self, optimizer):
        """Minimum outside the box ends on the boundary."""
        f = Quadratic([-3.0, 20.0], [1.0, 1.0], 0.0, 10.0)
        x = np.array([5.0, 5.0])

        optimizer.optimize(f, x, 1e-8, 1e-6)

        assert np.all(x >= 0.0) and np.all(x <= 10.0)
        np.testing.assert_allclose(x, [0.0, 10.0], atol=1e-3)

    def test_start_outside_bounds_is_clipped(self):
        f = Quadratic([2.0, 2.0], [1.0, 1.0], 0.0, 10.0)
        x = np.array([-5.0, 50.0])

        MultivariateSearch().optimize(f, x, 1e-8, 1e-6)

        np.testing.assert_allclose(x, [2.0, 2.0], atol=1e-3)

    def test_stop_condition_delegates_to_tracker(self):
        tracker = ConvergenceTracker.seed(1.0, np.array([0.5]))
        converged, following = OrthogonalSearch().stop_condition(
            tracker, 1.0, np.array([0.5]), 1e-4, 1e-4
        )

        assert converged
        assert isinstance(following, ConvergenceTracker)


class TestDiagonalHessian:
    """Test finite-difference second derivatives."""

    def test_quadratic(self):
        f = lambda p: 3.0 * p[0] ** 2 + p[1] ** 2 + 5.0 * p[0] * p[1]
        hessian = diagonal_hessian(f, np.array([1.0, 2.0]))

        np.testing.assert_allclose(hessian, [6.0, 2.0], rtol=1e-4)

    def test_one_sided_near_bounds(self):
        """Points at a bound are never stepped over it."""
        visited = []

        def f(p):
            visited.append(p.copy())
            return float(np.sum(p ** 2))

        hessian = diagonal_hessian(f, np.array([0.0, 1.0]), lower=[0.0, 0.0], upper=[5.0, 1.0])

        np.testing.assert_allclose(hessian, [2.0, 2.0], rtol=1e-4)
        visited = np.array(visited)
        assert np.all(visited[:, 0] >= 0.0)
        assert np.all(visited[:, 1] <= 1.0)

    def test_input_not_modified(self):
        x = np.array([1.0, 2.0])
        diagonal_hessian(lambda p: float(np.sum(p ** 3)), x)

        np.testing.assert_array_equal(x, [1.0, 2.0])

    def test_concave_direction_is_negative(self):
        hessian = diagonal_hessian(lambda p: -p[0] ** 2, np.array([0.3]))
        assert hessian[0] == pytest.approx(-2.0, rel=1e-4)
