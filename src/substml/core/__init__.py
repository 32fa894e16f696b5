"""
Core algorithms for phylogenetic likelihood and tree reconstruction.

This module provides low-level computational routines:

- **Rate matrices**: reversible Q construction and eigen decomposition
- **Likelihood**: Felsenstein pruning over site patterns and rate categories
- **Distances**: pairwise maximum-likelihood distances under a model
- **Trees**: neighbor joining and parameterised (unconstrained) trees
"""

from substml.core.matrix import (
    create_reversible_Q,
    eigen_decompose_rev,
    matrix_exponential,
    transition_matrices,
)
from substml.core.likelihood import LikelihoodValue
from substml.core.distance import AlignmentDistanceMatrix
from substml.core.nj import neighbor_joining
from substml.core.parameterized_tree import ParameterizedTree, UnconstrainedTree

__all__ = [
    "LikelihoodValue",
    "AlignmentDistanceMatrix",
    "neighbor_joining",
    "ParameterizedTree",
    "UnconstrainedTree",
    "create_reversible_Q",
    "eigen_decompose_rev",
    "matrix_exponential",
    "transition_matrices",
]
