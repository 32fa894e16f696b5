"""
Optimization routines for maximum likelihood parameter estimation.

This module provides:

- **ParameterEstimator**: alternating tree reconstruction and parameter
  optimisation, with standard errors from the likelihood curvature
- **Optimizers**: coordinate-wise Brent search for one parameter,
  L-BFGS-B for several (both via scipy.optimize)
- **Helpers**: convergence tracking and numerical second derivatives
"""

from substml.optimize.convergence import ConvergenceTracker
from substml.optimize.derivative import diagonal_hessian
from substml.optimize.search import (
    MultivariateFunction,
    MultivariateSearch,
    Optimizer,
    OrthogonalSearch,
    select_optimizer,
)
from substml.optimize.estimator import (
    FRAC_DIGITS,
    EstimationError,
    ParameterEstimator,
    round_parameters,
    tolerance,
)

__all__ = [
    "ParameterEstimator",
    "EstimationError",
    "FRAC_DIGITS",
    "round_parameters",
    "tolerance",
    "ConvergenceTracker",
    "diagonal_hessian",
    "MultivariateFunction",
    "Optimizer",
    "OrthogonalSearch",
    "MultivariateSearch",
    "select_optimizer",
]
