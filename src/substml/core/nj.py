"""
Neighbor-joining tree reconstruction (Saitou & Nei 1987).
"""

import numpy as np

from ..io.trees import Tree, TreeNode


def neighbor_joining(distances: np.ndarray, names: list[str]) -> Tree:
    """
    Build an unrooted tree from a distance matrix.

    Parameters
    ----------
    distances : np.ndarray, shape (n, n)
        Symmetric distance matrix
    names : list[str]
        Taxon names in matrix order

    Returns
    -------
    Tree
        Unrooted tree with a trifurcating root (bifurcating for 2 taxa).
        Negative branch-length estimates are set to 0.

    Examples
    --------
    >>> D = np.array([[0, 5, 9, 9, 8],
    ...               [5, 0, 10, 10, 9],
    ...               [9, 10, 0, 8, 7],
    ...               [9, 10, 8, 0, 3],
    ...               [8, 9, 7, 3, 0]], dtype=float)
    >>> tree = neighbor_joining(D, ["a", "b", "c", "d", "e"])
    >>> tree.n_leaves
    5
    """
    D = np.array(distances, dtype=np.float64)
    n = len(names)
    if D.shape != (n, n):
        raise ValueError(f"Distance matrix has shape {D.shape}, expected {(n, n)}")
    if n < 2:
        raise ValueError(f"Neighbor joining needs at least 2 taxa, got {n}")
    if not np.allclose(D, D.T):
        raise ValueError("Distance matrix must be symmetric")

    next_id = [0]

    def new_node(name=None) -> TreeNode:
        node = TreeNode(id=next_id[0], name=name)
        next_id[0] += 1
        return node

    active = [new_node(name) for name in names]

    if n == 2:
        root = new_node()
        half = max(D[0, 1], 0.0) / 2.0
        root.add_child(active[0], half)
        root.add_child(active[1], half)
        return Tree.from_root(root)

    while len(active) > 3:
        m = len(active)
        r = D.sum(axis=1)
        Q = (m - 2) * D - r[:, np.newaxis] - r[np.newaxis, :]
        np.fill_diagonal(Q, np.inf)
        i, j = np.unravel_index(np.argmin(Q), Q.shape)
        if i > j:
            i, j = j, i

        d_ij = D[i, j]
        d_i = 0.5 * d_ij + (r[i] - r[j]) / (2.0 * (m - 2))
        d_j = d_ij - d_i

        parent = new_node()
        parent.add_child(active[i], max(d_i, 0.0))
        parent.add_child(active[j], max(d_j, 0.0))

        d_new = 0.5 * (D[i] + D[j] - d_ij)

        keep = [k for k in range(m) if k not in (i, j)]
        D = np.vstack([
            np.hstack([D[np.ix_(keep, keep)], d_new[keep, np.newaxis]]),
            np.append(d_new[keep], 0.0)[np.newaxis, :],
        ])
        active = [active[k] for k in keep] + [parent]

    a, b, c = 0, 1, 2
    root = new_node()
    root.add_child(active[a], max(0.5 * (D[a, b] + D[a, c] - D[b, c]), 0.0))
    root.add_child(active[b], max(0.5 * (D[a, b] + D[b, c] - D[a, c]), 0.0))
    root.add_child(active[c], max(0.5 * (D[a, c] + D[b, c] - D[a, b]), 0.0))

    return Tree.from_root(root)
