"""
Rate heterogeneity across sites.

A rate distribution splits sites into a fixed number of categories, each with
a relative rate and a prior probability. Substitution models scale their
distances by the category rate.
"""

from abc import ABC, abstractmethod

import numpy as np
from scipy.stats import gamma

from .parameters import ModelParameter


class RateDistribution(ABC):
    """Discrete distribution of relative rates over sites."""

    name = "rates"

    def __init__(self, n_categories: int, parameters: list[ModelParameter]):
        if n_categories < 1:
            raise ValueError(f"n_categories must be >= 1, got {n_categories}")
        self._n_categories = n_categories
        self.parameters = parameters

    @property
    def n_categories(self) -> int:
        return self._n_categories

    @abstractmethod
    def rates(self) -> np.ndarray:
        """Relative rate of each category (mean rate over categories is 1)."""

    @abstractmethod
    def probabilities(self) -> np.ndarray:
        """Probability of each category (sums to 1)."""


class UniformRate(RateDistribution):
    """All sites evolve at the same rate (one category, no parameters)."""

    name = "uniform"

    def __init__(self):
        super().__init__(1, [])

    def rates(self) -> np.ndarray:
        return np.ones(1)

    def probabilities(self) -> np.ndarray:
        return np.ones(1)


class GammaRates(RateDistribution):
    """
    Discrete gamma rate heterogeneity (Yang 1994).

    The gamma distribution with shape alpha and mean 1 is cut into
    `n_categories` equal-probability classes, each represented by its median;
    medians are rescaled so the mean rate is exactly 1. With a single
    category every site has rate 1 whatever the shape, so alpha is then
    fixed and not a free parameter.

    Parameters
    ----------
    n_categories : int, default=4
        Number of rate classes
    alpha : float, default=0.5
        Initial shape parameter (small alpha = strong heterogeneity)
    """

    name = "gamma"

    def __init__(self, n_categories: int = 4, alpha: float = 0.5):
        self._fixed_alpha = alpha
        parameters = []
        if n_categories > 1:
            parameters.append(ModelParameter("alpha", default=alpha, lower=0.01, upper=100.0))
        super().__init__(n_categories, parameters)

    @property
    def alpha(self) -> float:
        if not self.parameters:
            return self._fixed_alpha
        return self.parameters[0].value

    def rates(self) -> np.ndarray:
        K = self.n_categories
        if K == 1:
            return np.ones(1)
        quantiles = (2.0 * np.arange(K) + 1.0) / (2.0 * K)
        medians = gamma.ppf(quantiles, a=self.alpha, scale=1.0 / self.alpha)
        return medians * K / medians.sum()

    def probabilities(self) -> np.ndarray:
        return np.full(self.n_categories, 1.0 / self.n_categories)


class InvariantSites(RateDistribution):
    """
    A proportion of invariable sites.

    Two categories: rate 0 with probability p_inv, and rate 1 / (1 - p_inv)
    with probability 1 - p_inv, so that the mean rate stays 1.
    """

    name = "invariant"

    def __init__(self, p_inv: float = 0.2):
        super().__init__(
            2,
            [ModelParameter("p_inv", default=p_inv, lower=0.0001, upper=0.99)],
        )

    @property
    def p_inv(self) -> float:
        return self.parameters[0].value

    def rates(self) -> np.ndarray:
        return np.array([0.0, 1.0 / (1.0 - self.p_inv)])

    def probabilities(self) -> np.ndarray:
        return np.array([self.p_inv, 1.0 - self.p_inv])
