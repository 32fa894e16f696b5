"""
Site-pattern compression of alignments.

Likelihoods only depend on the distinct alignment columns and how often each
occurs, so the likelihood and distance code work on a SitePattern rather than
on the raw alignment.
"""

from dataclasses import dataclass

import numpy as np

from .sequences import Alignment, NUCLEOTIDES


@dataclass
class SitePattern:
    """
    Distinct alignment columns with their occurrence counts.

    Attributes
    ----------
    names : list[str]
        Sequence names, in row order of `patterns`
    patterns : ndarray, shape (n_species, n_patterns)
        Encoded states of each distinct column (-1 for unknown)
    weights : ndarray, shape (n_patterns,)
        Number of alignment columns showing each pattern
    n_states : int
        Size of the state alphabet
    """

    names: list[str]
    patterns: np.ndarray
    weights: np.ndarray
    n_states: int = len(NUCLEOTIDES)

    @classmethod
    def from_alignment(cls, alignment: Alignment) -> "SitePattern":
        """
        Compress an alignment into its distinct columns.

        Examples
        --------
        >>> aln = Alignment.from_sequences({"a": "AAC", "b": "AAG"})
        >>> sp = SitePattern.from_alignment(aln)
        >>> sp.n_patterns, sp.n_sites
        (2, 3)
        """
        if alignment.n_sites == 0:
            raise ValueError("Alignment has no sites")

        columns, counts = np.unique(alignment.sequences.T, axis=0, return_counts=True)

        return cls(
            names=list(alignment.names),
            patterns=np.ascontiguousarray(columns.T.astype(np.int8)),
            weights=counts.astype(np.float64),
        )

    @property
    def n_species(self) -> int:
        return self.patterns.shape[0]

    @property
    def n_patterns(self) -> int:
        return self.patterns.shape[1]

    @property
    def n_sites(self) -> int:
        return int(round(self.weights.sum()))

    def __repr__(self) -> str:
        return (
            f"SitePattern(n_species={self.n_species}, n_patterns={self.n_patterns}, "
            f"n_sites={self.n_sites})"
        )


def empirical_frequencies(site_pattern: SitePattern) -> np.ndarray:
    """
    Weighted state frequencies observed in the data.

    Unknown states are ignored. If no state is observed at all the uniform
    distribution is returned.

    Returns
    -------
    np.ndarray, shape (n_states,)
        Frequencies summing to one
    """
    counts = np.zeros(site_pattern.n_states)
    for row in site_pattern.patterns:
        known = row >= 0
        np.add.at(counts, row[known], site_pattern.weights[known])

    total = counts.sum()
    if total == 0:
        return np.ones(site_pattern.n_states) / site_pattern.n_states
    return counts / total
