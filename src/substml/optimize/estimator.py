"""
Maximum-likelihood estimation of substitution-model parameters.

The estimator alternates between rebuilding a neighbor-joining tree from
model-corrected pairwise distances and optimising the model parameters on
that tree, until both the negative log-likelihood and the parameter vector
are stable between rounds. Standard errors come from the curvature of the
negative log-likelihood at the estimate.
"""

import warnings
from typing import Callable, Optional, Union

import numpy as np

from ..core.distance import AlignmentDistanceMatrix
from ..core.likelihood import LikelihoodValue
from ..core.nj import neighbor_joining
from ..core.parameterized_tree import ParameterizedTree, UnconstrainedTree
from ..io.patterns import SitePattern
from ..io.trees import Tree
from .convergence import ConvergenceTracker
from .derivative import diagonal_hessian
from .search import MultivariateFunction, Optimizer, select_optimizer

# Parameters are reported (and rounded) to this many fractional digits
FRAC_DIGITS = 3


class EstimationError(RuntimeError):
    """The outer estimation loop did not converge."""


def tolerance(frac_digits: int = FRAC_DIGITS) -> float:
    """Convergence tolerance one digit finer than the reported precision."""
    return 10.0 ** (-1 - frac_digits)


def round_parameters(
    params: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray,
    frac_digits: int = FRAC_DIGITS,
) -> np.ndarray:
    """
    Round to `frac_digits` decimals (half to even), staying inside bounds.

    A value that would round outside its bounds is moved to the nearest
    representable value inside them.

    Examples
    --------
    >>> round_parameters(np.array([2.34567, 0.0001]), np.array([0.0, 0.0001]),
    ...                  np.array([10.0, 1.0]))
    array([2.346, 0.001])
    """
    m = 10.0 ** frac_digits
    rounded = np.round(np.asarray(params, dtype=np.float64) * m) / m
    return np.clip(rounded, np.ceil(lower * m) / m, np.floor(upper * m) / m)


class ParameterEstimator(MultivariateFunction):
    """
    Estimate the free parameters of a substitution model from data.

    The estimator is also the objective function handed to the optimizer:
    `evaluate` returns the negative log-likelihood of the bound tree for a
    parameter vector.

    Parameters
    ----------
    site_pattern : SitePattern
        Compressed alignment
    model : SubstitutionModel
        Model whose parameters are estimated; it is updated in place and the
        standard errors are attached to it
    max_iterations : int, default=100
        Cap on outer rounds before `EstimationError` is raised
    verbose : bool, default=False
        Print progress after every round
    optimizer : Optimizer, optional
        Inner minimiser (default chosen from the number of parameters)

    Attributes
    ----------
    log_likelihood : float
        Log-likelihood at the returned (rounded) parameters
    standard_errors : np.ndarray
        Standard error of each parameter
    n_iterations : int
        Outer rounds used by the last estimation
    tree : ParameterizedTree
        Tree used in the final round

    Examples
    --------
    >>> estimator = ParameterEstimator(SitePattern.from_alignment(aln), HKY())
    >>> kappa, = estimator.estimate()
    >>> se = estimator.model.get_parameter_se(0)
    """

    def __init__(
        self,
        site_pattern: SitePattern,
        model,
        max_iterations: int = 100,
        verbose: bool = False,
        optimizer: Optional[Optimizer] = None,
    ):
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")

        self.site_pattern = site_pattern
        self.model = model
        self.n_params = model.n_parameters
        self.max_iterations = max_iterations
        self.verbose = verbose

        self.likelihood = LikelihoodValue(site_pattern)
        self.likelihood.set_model(model)

        self.optimizer = optimizer if optimizer is not None else select_optimizer(self.n_params)

        self.log_likelihood = None
        self.standard_errors = None
        self.n_iterations = 0
        self.tree = None

    # -- objective function -------------------------------------------

    @property
    def n_arguments(self) -> int:
        return self.n_params

    def lower_bound(self, i: int) -> float:
        return self.model.get_lower_limit(i)

    def upper_bound(self, i: int) -> float:
        return self.model.get_upper_limit(i)

    def apply_parameters(self, params: np.ndarray) -> None:
        """Write the parameter vector into the model, in model order."""
        for i in range(self.n_params):
            self.model.set_parameter(params[i], i)

    def evaluate(self, params: np.ndarray) -> float:
        """Negative log-likelihood of `params` on the currently bound tree."""
        self.apply_parameters(params)
        return -self.likelihood.compute()

    # -- estimation ----------------------------------------------------

    def estimate(self) -> np.ndarray:
        """
        Estimate parameters, rebuilding a neighbor-joining tree every round.

        Returns
        -------
        np.ndarray
            Parameter estimates rounded to FRAC_DIGITS decimals. Standard
            errors are attached to the model (`model.get_parameter_se(i)`).
        """
        distances = None

        def next_tree() -> ParameterizedTree:
            nonlocal distances
            if distances is None:
                distances = AlignmentDistanceMatrix(self.site_pattern, self.model)
            else:
                distances.recompute(self.site_pattern, self.model)
            return UnconstrainedTree(neighbor_joining(distances.distances, distances.names))

        return self._run(next_tree)

    def estimate_from_tree(self, tree: Union[Tree, ParameterizedTree]) -> np.ndarray:
        """
        Estimate parameters on a fixed, caller-supplied tree.

        Parameters
        ----------
        tree : Tree or ParameterizedTree
            Topology and branch lengths (lengths outside the branch-length
            limits are clamped in place)

        Returns
        -------
        np.ndarray
            Rounded parameter estimates (standard errors attached to the model)
        """
        self.likelihood.set_tree(tree)
        return self._run(None)

    def _run(self, next_tree: Optional[Callable[[], ParameterizedTree]]) -> np.ndarray:
        p = np.array([self.model.get_default_value(i) for i in range(self.n_params)])
        tolfp = tolerance()
        tolp = tolerance()

        tracker = None
        converged = False
        iteration = 0

        while not converged:
            iteration += 1
            if iteration > self.max_iterations:
                raise EstimationError(
                    f"Parameter estimation did not converge in {self.max_iterations} "
                    f"iterations (last lnL = {-fp:.6f})"
                )

            if next_tree is not None:
                self.apply_parameters(p)
                self.likelihood.set_tree(next_tree())

            if tracker is None:
                fp = self.evaluate(p)
                tracker = ConvergenceTracker.seed(fp, p)

            if self.n_params > 0:
                self.optimizer.optimize(self, p, tolfp, tolp)

            fp = self.evaluate(p)
            if self.verbose:
                self._report(iteration, fp, p)

            converged, tracker = self.optimizer.stop_condition(tracker, fp, p, tolfp, tolp)

        self.n_iterations = iteration

        lower = np.array([self.lower_bound(i) for i in range(self.n_params)])
        upper = np.array([self.upper_bound(i) for i in range(self.n_params)])
        p = round_parameters(p, lower, upper)

        fp = self.evaluate(p)
        self.log_likelihood = -fp
        self.tree = self.likelihood.tree

        self.standard_errors = self._compute_standard_errors(p, lower, upper)
        # the Hessian evaluations leave the model at a perturbed point
        self.apply_parameters(p)

        if self.verbose:
            print(f"\nEstimation complete after {iteration} iteration(s):")
            print(f"  Log-likelihood: {self.log_likelihood:.6f}")
            for name, value, se in zip(self.model.parameter_names, p, self.standard_errors):
                print(f"  {name}: {value:.{FRAC_DIGITS}f} (SE {se:.{FRAC_DIGITS + 1}f})")

        return p

    def _compute_standard_errors(
        self, p: np.ndarray, lower: np.ndarray, upper: np.ndarray
    ) -> np.ndarray:
        """sqrt(1 / d2(-lnL)/dp_i2), attached to the model parameter by parameter."""
        hessian = diagonal_hessian(self.evaluate, p, lower, upper)
        with np.errstate(divide='ignore', invalid='ignore'):
            se = np.sqrt(1.0 / hessian)

        if not np.all(np.isfinite(se)):
            names = [
                name for name, value in zip(self.model.parameter_names, se)
                if not np.isfinite(value)
            ]
            warnings.warn(
                f"Non-positive curvature of the likelihood for {names}; "
                "their standard errors are not finite",
                RuntimeWarning,
            )

        for i in range(self.n_params):
            self.model.set_parameter_se(se[i], i)
        return se

    def _report(self, iteration: int, fp: float, p: np.ndarray) -> None:
        values = ", ".join(
            f"{name}={value:.6f}" for name, value in zip(self.model.parameter_names, p)
        )
        print(f"Iteration {iteration}: lnL = {-fp:.6f}  {values}")
