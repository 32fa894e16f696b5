"""
Rate-matrix operations for reversible substitution models.

A reversible model is fully described by a symmetric exchangeability matrix
and its stationary frequencies. Transition probabilities for many distances
(and many rate categories) are computed from a single eigen decomposition.
"""

from typing import Optional

import numpy as np
from scipy.linalg import expm


def create_reversible_Q(
    rates: np.ndarray, pi: np.ndarray, normalize: bool = True
) -> np.ndarray:
    """
    Build a reversible rate matrix from exchangeabilities and frequencies.

    Parameters
    ----------
    rates : ndarray, shape (n, n)
        Symmetric exchangeability matrix (diagonal is ignored)
    pi : ndarray, shape (n,)
        Stationary distribution
    normalize : bool, default=True
        Scale Q so the expected rate is one substitution per unit distance

    Returns
    -------
    Q : ndarray, shape (n, n)
        Rate matrix with Q[i, j] = rates[i, j] * pi[j] and rows summing to 0

    Examples
    --------
    >>> rates = np.ones((4, 4))
    >>> Q = create_reversible_Q(rates, np.ones(4) / 4)
    >>> float(Q[0, 1])
    0.3333333333333333
    """
    Q = rates * pi[np.newaxis, :]
    np.fill_diagonal(Q, 0.0)
    np.fill_diagonal(Q, -Q.sum(axis=1))

    if normalize:
        expected_rate = -np.dot(pi, Q.diagonal())
        if expected_rate <= 0:
            raise ValueError("Rate matrix has no substitutions (expected rate is 0)")
        Q /= expected_rate

    return Q


def eigen_decompose_rev(Q: np.ndarray, pi: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Eigen decomposition Q = U @ diag(eigenvalues) @ V of a reversible Q.

    Q is symmetrised as sqrt(D) Q sqrt(D)^-1 with D = diag(pi), decomposed
    with `numpy.linalg.eigh` and transformed back.

    Returns
    -------
    eigenvalues : ndarray, shape (n,)
        Eigenvalues in ascending order (the largest is 0)
    U : ndarray, shape (n, n)
        Right eigenvectors (columns)
    V : ndarray, shape (n, n)
        Inverse of U
    """
    sqrt_pi = np.sqrt(pi)
    Q_sym = Q * sqrt_pi[:, np.newaxis] / sqrt_pi[np.newaxis, :]
    # Remove asymmetry introduced by rounding before eigh
    Q_sym = 0.5 * (Q_sym + Q_sym.T)

    eigenvalues, eigenvectors = np.linalg.eigh(Q_sym)

    U = eigenvectors / sqrt_pi[:, np.newaxis]
    V = eigenvectors.T * sqrt_pi[np.newaxis, :]

    return eigenvalues, U, V


def transition_matrices(
    eigenvalues: np.ndarray,
    U: np.ndarray,
    V: np.ndarray,
    times: np.ndarray,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    P(t) = U @ diag(exp(eigenvalues * t)) @ V for several times at once.

    Parameters
    ----------
    eigenvalues, U, V : ndarray
        Output of `eigen_decompose_rev`
    times : ndarray, shape (k,)
        Distances (already multiplied by any category rate)
    out : ndarray, shape (k, n, n), optional
        Buffer to write into; allocated when omitted

    Returns
    -------
    ndarray, shape (k, n, n)
        Row-stochastic transition matrices. Tiny negative entries from
        floating point error are clipped and rows renormalised.
    """
    times = np.asarray(times, dtype=np.float64)
    exp_eigvals = np.exp(np.outer(times, eigenvalues))

    P = np.einsum('ik,ck,kj->cij', U, exp_eigvals, V)
    np.maximum(P, 0.0, out=P)
    P /= P.sum(axis=2, keepdims=True)

    if out is None:
        return P
    out[...] = P
    return out


def matrix_exponential(Q: np.ndarray, t: float) -> np.ndarray:
    """
    Transition probability matrix P(t) = expm(Q * t) via scipy.

    Slower than `transition_matrices` but independent of the eigen
    decomposition; used as a reference.
    """
    return expm(Q * t)


def check_detailed_balance(Q: np.ndarray, pi: np.ndarray, rtol: float = 1e-10) -> bool:
    """True if pi[i] * Q[i, j] == pi[j] * Q[j, i] for all i, j."""
    flux = pi[:, np.newaxis] * Q
    return bool(np.allclose(flux, flux.T, rtol=rtol, atol=0.0))
