"""
Parametric substitution-model contract.

Every model exposes an ordered list of free parameters (its own, then those
of its rate-heterogeneity distribution), an equilibrium distribution and an
operation filling a transition-probability tensor
``store[category][from_state][to_state]`` for a given distance.
"""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from ..core.matrix import (
    check_detailed_balance,
    create_reversible_Q,
    eigen_decompose_rev,
    transition_matrices,
)
from .parameters import ModelParameter
from .rates import RateDistribution, UniformRate


class SubstitutionModel(ABC):
    """
    Abstract reversible substitution model with rate categories.

    Subclasses declare their parameters in `_declare_parameters` and build an
    exchangeability matrix from the current values in `exchangeabilities`.

    Parameters
    ----------
    frequencies : np.ndarray, shape (n_states,)
        Equilibrium state frequencies (normalised on input)
    rate_distribution : RateDistribution, optional
        Rate heterogeneity across sites (default: a single rate category)
    """

    name = "model"

    def __init__(
        self,
        frequencies: np.ndarray,
        rate_distribution: Optional[RateDistribution] = None
    ):
        frequencies = np.asarray(frequencies, dtype=np.float64)
        if frequencies.ndim != 1 or len(frequencies) != self.n_states:
            raise ValueError(
                f"frequencies must have length {self.n_states}, got {frequencies.shape}"
            )
        if np.any(frequencies <= 0):
            raise ValueError("frequencies must all be positive")
        self._frequencies = frequencies / frequencies.sum()

        self.rate_distribution = rate_distribution if rate_distribution is not None else UniformRate()

        self._own_parameters = self._declare_parameters()
        self._parameters = self._own_parameters + self.rate_distribution.parameters
        self._decomposition = None

    @property
    @abstractmethod
    def n_states(self) -> int:
        """Size of the state alphabet."""

    @abstractmethod
    def _declare_parameters(self) -> list[ModelParameter]:
        """Parameters of the substitution process itself, in order."""

    @abstractmethod
    def exchangeabilities(self) -> np.ndarray:
        """Symmetric (n_states, n_states) exchangeability matrix for current values."""

    # -- parameters -------------------------------------------------------

    @property
    def n_parameters(self) -> int:
        return len(self._parameters)

    @property
    def parameter_names(self) -> list[str]:
        return [p.name for p in self._parameters]

    @property
    def parameters(self) -> np.ndarray:
        """Current parameter values (a copy)."""
        return np.array([p.value for p in self._parameters], dtype=np.float64)

    @property
    def standard_errors(self) -> np.ndarray:
        """Standard errors attached by estimation (nan where unset)."""
        return np.array(
            [np.nan if p.se is None else p.se for p in self._parameters], dtype=np.float64
        )

    def get_parameter(self, i: int) -> float:
        return self._parameters[i].value

    def set_parameter(self, value: float, i: int) -> None:
        value = float(value)
        if not np.isfinite(value):
            raise ValueError(f"Parameter '{self._parameters[i].name}' must be finite, got {value}")
        self._parameters[i].value = value
        if i < len(self._own_parameters):
            self._decomposition = None

    def get_default_value(self, i: int) -> float:
        return self._parameters[i].default

    def get_lower_limit(self, i: int) -> float:
        return self._parameters[i].lower

    def get_upper_limit(self, i: int) -> float:
        return self._parameters[i].upper

    def set_parameter_se(self, se: float, i: int) -> None:
        self._parameters[i].se = float(se)

    def get_parameter_se(self, i: int) -> Optional[float]:
        return self._parameters[i].se

    # -- rate categories ----------------------------------------------------

    @property
    def n_categories(self) -> int:
        return self.rate_distribution.n_categories

    @property
    def category_probabilities(self) -> np.ndarray:
        return self.rate_distribution.probabilities()

    @property
    def category_rates(self) -> np.ndarray:
        return self.rate_distribution.rates()

    # -- transition probabilities -----------------------------------------

    @property
    def frequencies(self) -> np.ndarray:
        """Equilibrium state frequencies (a copy)."""
        return self._frequencies.copy()

    def rate_matrix(self) -> np.ndarray:
        """Normalised rate matrix Q for the current parameter values."""
        Q = create_reversible_Q(self.exchangeabilities(), self._frequencies)
        if not check_detailed_balance(Q, self._frequencies):
            raise ValueError(
                f"{type(self).__name__} rate matrix is not reversible; "
                f"exchangeabilities must be symmetric"
            )
        return Q

    def create_transition_store(self) -> np.ndarray:
        """New buffer shaped (n_categories, n_states, n_states)."""
        return np.zeros((self.n_categories, self.n_states, self.n_states))

    def transition_probabilities(
        self, distance: float, store: Optional[np.ndarray] = None
    ) -> np.ndarray:
        """
        Fill ``store[c]`` with P(distance * rate_c) for every category c.

        Parameters
        ----------
        distance : float
            Evolutionary distance (expected substitutions per site)
        store : np.ndarray, optional
            Buffer from `create_transition_store`, overwritten in place

        Returns
        -------
        np.ndarray, shape (n_categories, n_states, n_states)
            The filled store
        """
        if not np.isfinite(distance) or distance < 0:
            raise ValueError(f"distance must be finite and non-negative, got {distance}")
        if store is None:
            store = self.create_transition_store()
        elif store.shape != (self.n_categories, self.n_states, self.n_states):
            raise ValueError(
                f"store has shape {store.shape}, expected "
                f"{(self.n_categories, self.n_states, self.n_states)}"
            )

        if self._decomposition is None:
            self._decomposition = eigen_decompose_rev(self.rate_matrix(), self._frequencies)
        eigenvalues, U, V = self._decomposition

        return transition_matrices(eigenvalues, U, V, self.category_rates * distance, out=store)

    def __repr__(self) -> str:
        params = ", ".join(f"{p.name}={p.value:.4g}" for p in self._parameters)
        return f"{type(self).__name__}({params})"
