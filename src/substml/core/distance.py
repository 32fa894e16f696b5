"""
Pairwise maximum-likelihood distances between aligned sequences.
"""

import numpy as np
from scipy.optimize import minimize_scalar

from ..io.patterns import SitePattern

MIN_DISTANCE = 1e-6
MAX_DISTANCE = 10.0


def pair_counts(site_pattern: SitePattern, i: int, j: int) -> np.ndarray:
    """
    Weighted counts of state pairs between sequences i and j.

    Sites unknown in either sequence are skipped.

    Returns
    -------
    np.ndarray, shape (n_states, n_states)
        counts[a, b] = number of sites with state a in i and b in j
    """
    n_states = site_pattern.n_states
    row_i = site_pattern.patterns[i]
    row_j = site_pattern.patterns[j]
    both_known = (row_i >= 0) & (row_j >= 0)

    counts = np.zeros((n_states, n_states))
    np.add.at(counts, (row_i[both_known], row_j[both_known]), site_pattern.weights[both_known])
    return counts


def ml_distance(counts: np.ndarray, model, store: np.ndarray = None) -> float:
    """
    Distance maximising the pairwise likelihood of `counts` under `model`.

    The pair likelihood of states (a, b) at distance d is
    ``pi[a] * sum_c prob[c] * P_c(d)[a, b]``; the search is a bounded Brent
    search on [MIN_DISTANCE, MAX_DISTANCE].
    """
    if counts.sum() == 0:
        return MAX_DISTANCE
    if store is None:
        store = model.create_transition_store()

    pi = model.frequencies
    probs = model.category_probabilities
    observed = counts > 0

    def neg_log_likelihood(d: float) -> float:
        P = model.transition_probabilities(d, store)
        joint = pi[:, np.newaxis] * np.einsum('c,cab->ab', probs, P)
        return -float(np.sum(counts[observed] * np.log(np.maximum(joint[observed], 1e-300))))

    result = minimize_scalar(
        neg_log_likelihood,
        bounds=(MIN_DISTANCE, MAX_DISTANCE),
        method='bounded',
        options={'xatol': 1e-8},
    )
    return float(result.x)


class AlignmentDistanceMatrix:
    """
    Symmetric matrix of pairwise ML distances under a substitution model.

    Parameters
    ----------
    site_pattern : SitePattern
        Compressed alignment
    model : SubstitutionModel
        Model (current parameter values are used)

    Attributes
    ----------
    names : list[str]
        Taxon names (row/column order)
    distances : np.ndarray, shape (n_species, n_species)
        Distances with zero diagonal
    """

    def __init__(self, site_pattern: SitePattern, model):
        self.names = list(site_pattern.names)
        self.distances = np.zeros((len(self.names), len(self.names)))
        self._site_pattern = None
        self._counts = {}
        self.recompute(site_pattern, model)

    def recompute(self, site_pattern: SitePattern, model) -> None:
        """Refresh all distances in place for new data and/or parameters."""
        if list(site_pattern.names) != self.names:
            raise ValueError(
                f"Site pattern taxa {site_pattern.names} differ from matrix taxa {self.names}"
            )

        n = len(self.names)
        if site_pattern is not self._site_pattern:
            self._counts = {
                (i, j): pair_counts(site_pattern, i, j)
                for i in range(n) for j in range(i + 1, n)
            }
            self._site_pattern = site_pattern

        store = model.create_transition_store()
        for (i, j), counts in self._counts.items():
            d = ml_distance(counts, model, store)
            self.distances[i, j] = d
            self.distances[j, i] = d

    @property
    def n_taxa(self) -> int:
        return len(self.names)

    def __repr__(self) -> str:
        return f"AlignmentDistanceMatrix(n_taxa={self.n_taxa})"
