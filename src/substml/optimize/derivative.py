"""
Finite-difference second derivatives.
"""

from typing import Callable, Optional, Sequence

import numpy as np

RELATIVE_STEP = 1e-4


def diagonal_hessian(
    function: Callable[[np.ndarray], float],
    x: np.ndarray,
    lower: Optional[Sequence[float]] = None,
    upper: Optional[Sequence[float]] = None,
) -> np.ndarray:
    """
    Second partial derivatives d2f/dx_i2 at `x`, ignoring cross terms.

    Central differences with step ``RELATIVE_STEP * max(|x_i|, 1)``. When a
    central step would leave [lower_i, upper_i] a one-sided second difference
    is used instead, so the function is never evaluated out of bounds.

    Parameters
    ----------
    function : callable
        Maps a parameter vector to a float
    x : np.ndarray
        Point of evaluation (not modified)
    lower, upper : sequence of float, optional
        Box constraints

    Returns
    -------
    np.ndarray, shape (len(x),)

    Examples
    --------
    >>> f = lambda p: 3.0 * p[0] ** 2 + p[1] ** 2
    >>> np.round(diagonal_hessian(f, np.array([1.0, 2.0])), 3)
    array([6., 2.])
    """
    x = np.asarray(x, dtype=np.float64)
    n = len(x)
    lower = np.full(n, -np.inf) if lower is None else np.asarray(lower, dtype=np.float64)
    upper = np.full(n, np.inf) if upper is None else np.asarray(upper, dtype=np.float64)

    f0 = function(x.copy())
    hessian = np.zeros(n)

    for i in range(n):
        h = RELATIVE_STEP * max(abs(x[i]), 1.0)

        def f_at(offset: float) -> float:
            point = x.copy()
            point[i] += offset
            return function(point)

        if x[i] - h >= lower[i] and x[i] + h <= upper[i]:
            hessian[i] = (f_at(h) - 2.0 * f0 + f_at(-h)) / (h * h)
        elif x[i] - h < lower[i]:
            hessian[i] = (f_at(2.0 * h) - 2.0 * f_at(h) + f0) / (h * h)
        else:
            hessian[i] = (f_at(-2.0 * h) - 2.0 * f_at(-h) + f0) / (h * h)

    return hessian
