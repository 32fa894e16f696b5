"""
substml: maximum-likelihood estimation and simulation under nucleotide
substitution models.

Parameters of a substitution model (transition/transversion ratios, GTR
exchangeabilities, gamma shape, proportion of invariable sites) are
estimated by alternating neighbor-joining tree reconstruction with
likelihood optimisation, and sequences can be simulated under the same
models for validation and parametric bootstrap.

Quick Start
-----------
Estimate kappa under HKY with gamma rate variation:

>>> from substml import HKY, GammaRates, estimate_parameters
>>> result = estimate_parameters(HKY(rate_distribution=GammaRates()), "alignment.fasta")
>>> print(result.summary())

Simulate an alignment:

>>> from substml import simulate_alignment
>>> aln = simulate_alignment(HKY(kappa=4.0), "((a:0.1,b:0.2):0.05,c:0.3,d:0.1);", 1000, seed=1)

Examples
--------
>>> # Fit on a fixed tree and bootstrap the estimates
>>> model = HKY()
>>> result = estimate_parameters(model, aln, tree="tree.nwk")
>>> replicates = parametric_bootstrap(model, result.tree, 1000, n_replicates=100, seed=7)
>>> replicates.std(axis=0)
"""

__version__ = "0.1.0"

# High-level API (simple interface)
from .api import (
    EstimationResult,
    estimate_parameters,
    parametric_bootstrap,
    simulate_alignment,
)

# Models
from .models import (
    F81,
    F84,
    GTR,
    HKY,
    JC69,
    TN,
    GammaRates,
    InvariantSites,
    NucleotideModelID,
    SubstitutionModel,
    UniformRate,
    create_nucleotide_model,
)

# Estimation and simulation engines (advanced use)
from .optimize import EstimationError, FRAC_DIGITS, ParameterEstimator
from .simulate import SequenceSimulator, TreeSimulator

# I/O classes
from .io.sequences import Alignment
from .io.patterns import SitePattern, empirical_frequencies
from .io.trees import Tree

# Core likelihood calculator (expert use)
from .core.likelihood import LikelihoodValue

__all__ = [
    # Simple API - Start here!
    "estimate_parameters",
    "simulate_alignment",
    "parametric_bootstrap",
    "EstimationResult",

    # Models
    "SubstitutionModel",
    "JC69",
    "F81",
    "F84",
    "HKY",
    "TN",
    "GTR",
    "NucleotideModelID",
    "create_nucleotide_model",
    "UniformRate",
    "GammaRates",
    "InvariantSites",

    # Engines
    "ParameterEstimator",
    "EstimationError",
    "FRAC_DIGITS",
    "SequenceSimulator",
    "TreeSimulator",

    # I/O
    "Alignment",
    "SitePattern",
    "Tree",
    "empirical_frequencies",

    # Core (expert)
    "LikelihoodValue",

    # Version
    "__version__",
]
