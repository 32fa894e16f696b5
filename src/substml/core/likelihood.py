"""
Phylogenetic log-likelihood of site patterns under a substitution model.

Felsenstein's pruning algorithm, vectorised over site patterns and rate
categories. Partial likelihoods are rescaled at every internal node (one
factor per pattern, shared by all categories) to avoid underflow on large
trees.
"""

from typing import Optional, Union

import numpy as np

from ..io.patterns import SitePattern
from ..io.trees import Tree
from .parameterized_tree import ParameterizedTree, UnconstrainedTree


class LikelihoodValue:
    """
    Log-likelihood of a fixed dataset for a changing model and tree.

    The dataset is bound at construction; the model and the tree are bound
    with `set_model` / `set_tree` and may be replaced at any time. Nothing is
    cached between calls to `compute`, so parameter or branch-length changes
    made directly on the model or tree are always picked up.

    Parameters
    ----------
    site_pattern : SitePattern
        Compressed alignment

    Examples
    --------
    >>> lv = LikelihoodValue(SitePattern.from_alignment(aln))
    >>> lv.set_model(HKY(kappa=2.0))
    >>> lv.set_tree(Tree.from_newick("(a:0.1,b:0.1,c:0.2);"))
    >>> lnL = lv.compute()
    """

    def __init__(self, site_pattern: SitePattern):
        self.site_pattern = site_pattern
        self.model = None
        self.tree: Optional[ParameterizedTree] = None
        self._leaf_partials: dict[int, np.ndarray] = {}

    def set_model(self, model) -> None:
        if model.n_states != self.site_pattern.n_states:
            raise ValueError(
                f"Model has {model.n_states} states but data has "
                f"{self.site_pattern.n_states}"
            )
        self.model = model

    def set_tree(self, tree: Union[Tree, ParameterizedTree]) -> None:
        """
        Bind a tree; plain trees are wrapped in an UnconstrainedTree.

        Raises
        ------
        ValueError
            If the leaf names differ from the sequence names
        """
        if isinstance(tree, Tree):
            tree = UnconstrainedTree(tree)

        leaves = [node for node in tree.postorder() if node.is_leaf]
        if len(leaves) < 2:
            raise ValueError("Tree must have at least 2 leaves")

        leaf_names = [node.name for node in leaves]
        data_names = set(self.site_pattern.names)
        if len(set(leaf_names)) != len(leaf_names) or set(leaf_names) != data_names:
            raise ValueError(
                "Data and tree have different taxa. "
                f"In data but not tree: {data_names - set(leaf_names)}. "
                f"In tree but not data: {set(leaf_names) - data_names}"
            )

        row_of = {name: i for i, name in enumerate(self.site_pattern.names)}
        n_states = self.site_pattern.n_states
        identity = np.eye(n_states)

        self._leaf_partials = {}
        for node in leaves:
            states = self.site_pattern.patterns[row_of[node.name]]
            partial = np.ones((len(states), n_states))
            known = states >= 0
            partial[known] = identity[states[known]]
            self._leaf_partials[id(node)] = partial

        self.tree = tree

    def site_log_likelihoods(self) -> np.ndarray:
        """
        Log-likelihood of each distinct site pattern.

        Returns
        -------
        np.ndarray, shape (n_patterns,)
        """
        if self.model is None:
            raise ValueError("No model bound to the likelihood (call set_model)")
        if self.tree is None:
            raise ValueError("No tree bound to the likelihood (call set_tree)")

        model = self.model
        tree = self.tree
        n_categories = model.n_categories
        n_patterns = self.site_pattern.n_patterns
        store = model.create_transition_store()

        partials = {}
        log_scale = np.zeros(n_patterns)

        for node in tree.postorder():
            if node.is_leaf:
                partials[id(node)] = self._leaf_partials[id(node)]
                continue

            partial = np.ones((n_categories, n_patterns, model.n_states))
            for child in node.children:
                P = model.transition_probabilities(tree.branch_length(child), store)
                # child partial (..., pattern, j) @ P[c]^T -> sum_j P[c, i, j] * L[c, p, j]
                partial *= partials.pop(id(child)) @ P.transpose(0, 2, 1)

            scale = partial.max(axis=(0, 2))
            scale[scale == 0.0] = 1.0
            partial /= scale[np.newaxis, :, np.newaxis]
            log_scale += np.log(scale)
            partials[id(node)] = partial

        root_partial = partials[id(tree.root)]
        site_likelihoods = np.einsum(
            'c,cpi,i->p', model.category_probabilities, root_partial, model.frequencies
        )
        with np.errstate(divide='ignore'):
            return np.log(site_likelihoods) + log_scale

    def compute(self) -> float:
        """Total log-likelihood (pattern log-likelihoods weighted by counts)."""
        return float(np.dot(self.site_pattern.weights, self.site_log_likelihoods()))
