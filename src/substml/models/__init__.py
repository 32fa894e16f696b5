"""
Substitution models for nucleotide sequence evolution.

This module provides:

- **Model contract**: ordered free parameters with bounds, defaults and
  attachable standard errors; equilibrium frequencies; per-category
  transition probabilities
- **Nucleotide models**: JC69, F81, F84, HKY, TN and GTR
- **Rate heterogeneity**: uniform rates, discrete gamma, invariable sites
"""

from substml.models.base import SubstitutionModel
from substml.models.parameters import ModelParameter
from substml.models.rates import GammaRates, InvariantSites, RateDistribution, UniformRate
from substml.models.nucleotide import (
    F81,
    F84,
    GTR,
    HKY,
    JC69,
    MODEL_COUNT,
    TN,
    NucleotideModel,
    NucleotideModelID,
    create_nucleotide_model,
)

__all__ = [
    "SubstitutionModel",
    "ModelParameter",
    "RateDistribution",
    "UniformRate",
    "GammaRates",
    "InvariantSites",
    "NucleotideModel",
    "NucleotideModelID",
    "MODEL_COUNT",
    "JC69",
    "F81",
    "F84",
    "HKY",
    "TN",
    "GTR",
    "create_nucleotide_model",
]
