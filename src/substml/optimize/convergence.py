"""
Convergence tracking between successive optimisation rounds.
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class ConvergenceTracker:
    """
    Objective value and parameter vector of the previous round.

    The tracker is an immutable value: `check` returns the verdict together
    with a new tracker holding the current round, which the caller threads
    into the next round.

    Examples
    --------
    >>> tracker = ConvergenceTracker.seed(100.0, np.array([1.0]))
    >>> converged, tracker = tracker.check(99.0, np.array([1.2]), 1e-4, 1e-4)
    >>> converged
    False
    """

    previous_value: float
    previous_params: tuple

    @classmethod
    def seed(cls, value: float, params: np.ndarray) -> "ConvergenceTracker":
        """Tracker for the starting point (nothing to compare with yet)."""
        return cls(float(value), tuple(float(p) for p in params))

    def check(
        self, value: float, params: np.ndarray, tolfx: float, tolx: float
    ) -> tuple[bool, "ConvergenceTracker"]:
        """
        Compare the current round with the previous one.

        Returns
        -------
        tuple
            (converged, next_tracker) where converged requires both
            ``|value - previous_value| <= tolfx`` and
            ``|params[i] - previous_params[i]| <= tolx`` for every i
        """
        params = np.asarray(params, dtype=np.float64)
        value_converged = abs(value - self.previous_value) <= tolfx
        params_converged = bool(
            np.all(np.abs(params - np.asarray(self.previous_params)) <= tolx)
        )
        return value_converged and params_converged, ConvergenceTracker.seed(value, params)
