"""
Time-reversible nucleotide substitution models.

States are ordered A, C, G, T. Purines are A and G, pyrimidines C and T.
Every rate matrix is normalised to one expected substitution per unit
distance, so branch lengths are in substitutions per site.
"""

from enum import IntEnum
from typing import Optional

import numpy as np

from .base import SubstitutionModel
from .parameters import ModelParameter
from .rates import RateDistribution

# Index pairs (i, j) with i < j in A, C, G, T order
_AC, _AG, _AT, _CG, _CT, _GT = (0, 1), (0, 2), (0, 3), (1, 2), (1, 3), (2, 3)
_PAIRS = (_AC, _AG, _AT, _CG, _CT, _GT)

KAPPA_LIMITS = (0.0001, 100.0)
GTR_RATE_LIMITS = (0.0001, 100.0)


class NucleotideModelID(IntEnum):
    """Identifiers of the parametric nucleotide models."""

    GTR = 0
    TN = 1
    HKY = 2
    F84 = 3
    F81 = 4


MODEL_COUNT = len(NucleotideModelID)


def _symmetric(values: dict) -> np.ndarray:
    """Exchangeability matrix from {(i, j): rate} for the six pairs."""
    S = np.zeros((4, 4))
    for (i, j), value in values.items():
        S[i, j] = S[j, i] = value
    return S


def _uniform() -> np.ndarray:
    return np.ones(4) / 4


class NucleotideModel(SubstitutionModel):
    """Base class for the four-state models."""

    n_states = 4

    def __init__(
        self,
        frequencies: Optional[np.ndarray] = None,
        rate_distribution: Optional[RateDistribution] = None
    ):
        super().__init__(
            _uniform() if frequencies is None else frequencies,
            rate_distribution,
        )

    def _declare_parameters(self) -> list[ModelParameter]:
        return []


class F81(NucleotideModel):
    """
    Felsenstein 1981: equal exchangeabilities, arbitrary base frequencies.

    No free substitution parameters.
    """

    name = "F81"

    def exchangeabilities(self) -> np.ndarray:
        return _symmetric({pair: 1.0 for pair in _PAIRS})


class JC69(F81):
    """Jukes-Cantor 1969: F81 with uniform base frequencies."""

    name = "JC69"

    def __init__(self, rate_distribution: Optional[RateDistribution] = None):
        super().__init__(_uniform(), rate_distribution)


class HKY(NucleotideModel):
    """
    Hasegawa-Kishino-Yano 1985: transitions scaled by kappa.

    Parameters
    ----------
    kappa : float, default=2.0
        Initial transition/transversion rate ratio
    frequencies : np.ndarray, shape (4,), optional
        Base frequencies (uniform when omitted)
    rate_distribution : RateDistribution, optional
        Rate heterogeneity across sites

    Examples
    --------
    >>> model = HKY(kappa=4.0, frequencies=np.array([0.3, 0.2, 0.2, 0.3]))
    >>> P = model.transition_probabilities(0.1)
    >>> P.shape
    (1, 4, 4)
    """

    name = "HKY"

    def __init__(
        self,
        kappa: float = 2.0,
        frequencies: Optional[np.ndarray] = None,
        rate_distribution: Optional[RateDistribution] = None
    ):
        self._initial_kappa = kappa
        super().__init__(frequencies, rate_distribution)

    def _declare_parameters(self) -> list[ModelParameter]:
        return [ModelParameter("kappa", self._initial_kappa, *KAPPA_LIMITS)]

    @property
    def kappa(self) -> float:
        return self._own_parameters[0].value

    def exchangeabilities(self) -> np.ndarray:
        k = self.kappa
        return _symmetric({_AC: 1.0, _AG: k, _AT: 1.0, _CG: 1.0, _CT: k, _GT: 1.0})


class F84(HKY):
    """
    Felsenstein 1984 (as used by DNAML and PHYLIP).

    Transitions within purines get exchangeability 1 + kappa / piR and within
    pyrimidines 1 + kappa / piY, where piR and piY are the purine and
    pyrimidine frequencies.
    """

    name = "F84"

    def exchangeabilities(self) -> np.ndarray:
        pi = self._frequencies
        pi_r = pi[0] + pi[2]
        pi_y = pi[1] + pi[3]
        k = self.kappa
        return _symmetric({
            _AC: 1.0, _AG: 1.0 + k / pi_r, _AT: 1.0,
            _CG: 1.0, _CT: 1.0 + k / pi_y, _GT: 1.0,
        })


class TN(NucleotideModel):
    """
    Tamura-Nei 1993: separate purine (kappa1) and pyrimidine (kappa2)
    transition rates.
    """

    name = "TN"

    def __init__(
        self,
        kappa1: float = 2.0,
        kappa2: float = 2.0,
        frequencies: Optional[np.ndarray] = None,
        rate_distribution: Optional[RateDistribution] = None
    ):
        self._initial_kappas = (kappa1, kappa2)
        super().__init__(frequencies, rate_distribution)

    def _declare_parameters(self) -> list[ModelParameter]:
        return [
            ModelParameter("kappa1", self._initial_kappas[0], *KAPPA_LIMITS),
            ModelParameter("kappa2", self._initial_kappas[1], *KAPPA_LIMITS),
        ]

    def exchangeabilities(self) -> np.ndarray:
        k1 = self._own_parameters[0].value
        k2 = self._own_parameters[1].value
        return _symmetric({_AC: 1.0, _AG: k1, _AT: 1.0, _CG: 1.0, _CT: k2, _GT: 1.0})


class GTR(NucleotideModel):
    """
    General time-reversible model.

    Free exchangeabilities a (A-C), b (A-G), c (A-T), d (C-G) and e (C-T);
    G-T is fixed to 1.
    """

    name = "GTR"
    RATE_NAMES = ("a", "b", "c", "d", "e")

    def __init__(
        self,
        rates: Optional[list[float]] = None,
        frequencies: Optional[np.ndarray] = None,
        rate_distribution: Optional[RateDistribution] = None
    ):
        if rates is None:
            rates = [1.0] * 5
        if len(rates) != 5:
            raise ValueError(f"GTR needs 5 relative rates, got {len(rates)}")
        self._initial_rates = list(rates)
        super().__init__(frequencies, rate_distribution)

    def _declare_parameters(self) -> list[ModelParameter]:
        return [
            ModelParameter(name, value, *GTR_RATE_LIMITS)
            for name, value in zip(self.RATE_NAMES, self._initial_rates)
        ]

    def exchangeabilities(self) -> np.ndarray:
        a, b, c, d, e = (p.value for p in self._own_parameters)
        return _symmetric({_AC: a, _AG: b, _AT: c, _CG: d, _CT: e, _GT: 1.0})


def create_nucleotide_model(
    model_id: NucleotideModelID,
    frequencies: Optional[np.ndarray] = None,
    rate_distribution: Optional[RateDistribution] = None,
) -> NucleotideModel:
    """
    Build a nucleotide model by identifier with default parameter values.

    Examples
    --------
    >>> model = create_nucleotide_model(NucleotideModelID.HKY)
    >>> model.parameter_names
    ['kappa']
    """
    model_id = NucleotideModelID(model_id)
    if model_id == NucleotideModelID.GTR:
        return GTR(frequencies=frequencies, rate_distribution=rate_distribution)
    if model_id == NucleotideModelID.TN:
        return TN(frequencies=frequencies, rate_distribution=rate_distribution)
    if model_id == NucleotideModelID.HKY:
        return HKY(frequencies=frequencies, rate_distribution=rate_distribution)
    if model_id == NucleotideModelID.F84:
        return F84(frequencies=frequencies, rate_distribution=rate_distribution)
    return F81(frequencies=frequencies, rate_distribution=rate_distribution)
