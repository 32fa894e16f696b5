"""
Cumulative selection of discrete outcomes from probability vectors.
"""

import numpy as np


def cumulative_select(distribution: np.ndarray, r: float) -> int:
    """
    First index whose running probability sum exceeds `r`.

    If rounding leaves the total short of `r` the last index is returned.

    Parameters
    ----------
    distribution : np.ndarray, shape (n,)
        Probabilities, expected to sum to one
    r : float
        Uniform draw in [0, 1)

    Examples
    --------
    >>> cumulative_select(np.array([0.2, 0.3, 0.5]), 0.25)
    1
    >>> cumulative_select(np.array([0.2, 0.3, 0.4999]), 0.99999)
    2
    """
    total = 0.0
    for i, p in enumerate(distribution):
        total += p
        if r < total:
            return i
    return len(distribution) - 1


def cumulative_select_rows(rows: np.ndarray, r: np.ndarray) -> np.ndarray:
    """
    Vectorised `cumulative_select`: one draw per row.

    Parameters
    ----------
    rows : np.ndarray, shape (n_draws, n)
        One probability vector per draw
    r : np.ndarray, shape (n_draws,)
        Uniform draws in [0, 1)

    Returns
    -------
    np.ndarray, shape (n_draws,)
        Selected indices, always in [0, n)
    """
    rows = np.atleast_2d(rows)
    n = rows.shape[1]
    cumulative = np.cumsum(rows, axis=1)
    # number of running sums <= r is the first index whose sum exceeds r
    selected = np.sum(cumulative <= np.asarray(r)[:, np.newaxis], axis=1)
    return np.minimum(selected, n - 1)
