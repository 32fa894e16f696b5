"""
Bounded minimisers behind a common Optimizer interface.

`OrthogonalSearch` minimises one coordinate at a time with a bounded Brent
search and is used for one-parameter problems; `MultivariateSearch` wraps
scipy's L-BFGS-B for everything else.
"""

from abc import ABC, abstractmethod

import numpy as np
from scipy.optimize import minimize, minimize_scalar

from .convergence import ConvergenceTracker


class MultivariateFunction(ABC):
    """Objective to minimise over a box-constrained parameter space."""

    @abstractmethod
    def evaluate(self, params: np.ndarray) -> float:
        ...

    @property
    @abstractmethod
    def n_arguments(self) -> int:
        ...

    @abstractmethod
    def lower_bound(self, i: int) -> float:
        ...

    @abstractmethod
    def upper_bound(self, i: int) -> float:
        ...

    def bounds(self) -> list[tuple[float, float]]:
        return [(self.lower_bound(i), self.upper_bound(i)) for i in range(self.n_arguments)]


class Optimizer(ABC):
    """
    Local minimiser refining a parameter vector in place.

    Parameters
    ----------
    maxiter : int
        Iteration cap handed to the underlying scipy routine
    """

    def __init__(self, maxiter: int = 500):
        self.maxiter = maxiter

    @abstractmethod
    def optimize(
        self, function: MultivariateFunction, x: np.ndarray, tolfx: float, tolx: float
    ) -> None:
        """Minimise `function` starting from `x`; the result is written into `x`."""

    def stop_condition(
        self,
        tracker: ConvergenceTracker,
        value: float,
        x: np.ndarray,
        tolfx: float,
        tolx: float,
    ) -> tuple[bool, ConvergenceTracker]:
        return tracker.check(value, x, tolfx, tolx)

    @staticmethod
    def _clip(function: MultivariateFunction, x: np.ndarray) -> None:
        lower, upper = np.array(function.bounds()).T
        np.clip(x, lower, upper, out=x)


class OrthogonalSearch(Optimizer):
    """
    Coordinate-wise bounded Brent search.

    Each sweep minimises every coordinate in turn with the others fixed;
    sweeps repeat until the objective improves by no more than `tolfx`.
    A single sweep is exact for one-parameter problems.
    """

    def __init__(self, maxiter: int = 500, max_sweeps: int = 50):
        super().__init__(maxiter)
        self.max_sweeps = max_sweeps

    def optimize(self, function, x, tolfx, tolx):
        self._clip(function, x)
        fx = function.evaluate(x)

        for _ in range(self.max_sweeps):
            previous = fx
            for i in range(function.n_arguments):
                trial = x.copy()

                def along_axis(value: float) -> float:
                    trial[i] = value
                    return function.evaluate(trial)

                result = minimize_scalar(
                    along_axis,
                    bounds=(function.lower_bound(i), function.upper_bound(i)),
                    method='bounded',
                    options={'xatol': tolx * 0.1, 'maxiter': self.maxiter},
                )
                if result.fun <= fx:
                    x[i] = result.x
                    fx = result.fun

            if function.n_arguments == 1 or previous - fx <= tolfx:
                break


class MultivariateSearch(Optimizer):
    """Box-constrained quasi-Newton search (scipy L-BFGS-B)."""

    def optimize(self, function, x, tolfx, tolx):
        self._clip(function, x)
        f0 = function.evaluate(x)

        result = minimize(
            function.evaluate,
            x.copy(),
            method='L-BFGS-B',
            bounds=function.bounds(),
            options={
                'maxiter': self.maxiter,
                # L-BFGS-B's ftol is relative to the objective's magnitude
                'ftol': tolfx * 1e-2 / max(abs(f0), 1.0),
                'gtol': tolx * 1e-2,
            },
        )
        if result.fun <= f0:
            x[:] = result.x
        self._clip(function, x)


def select_optimizer(n_params: int, maxiter: int = 500) -> Optimizer:
    """One-dimensional search for one parameter, multivariate search otherwise."""
    if n_params == 1:
        return OrthogonalSearch(maxiter=maxiter)
    return MultivariateSearch(maxiter=maxiter)
