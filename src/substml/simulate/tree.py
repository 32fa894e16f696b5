"""
Simulation of sequences on a phylogenetic tree.
"""

from typing import Dict

import numpy as np

from ..io.sequences import Alignment
from ..io.trees import Tree
from .sequence import SequenceSimulator


class TreeSimulator:
    """
    Simulate tip sequences by evolving a root sequence down a tree.

    Parameters
    ----------
    tree : Tree
        Tree with branch lengths (the root's branch length is ignored)
    simulator : SequenceSimulator
        Simulator providing the root sequence and per-branch evolution
    """

    def __init__(self, tree: Tree, simulator: SequenceSimulator):
        self.tree = tree
        self.simulator = simulator
        self._validate_tree()

    def _validate_tree(self):
        """Ensure tree is suitable for simulation."""
        if self.tree.root is None:
            raise ValueError("Tree must be rooted for simulation")

        for node in self.tree.postorder():
            if node.parent is None:
                continue
            if node.branch_length is None or node.branch_length < 0:
                raise ValueError(
                    f"Node {node.name if node.name else node.id} has invalid "
                    f"branch length {node.branch_length}"
                )

    def simulate(self) -> Dict[str, np.ndarray]:
        """
        Simulate sequences on the tree.

        The root sequence is drawn from the equilibrium frequencies; each
        child is evolved from its parent along the connecting branch, in
        pre-order.

        Returns
        -------
        dict
            Mapping from tip name to state-index array (tips without a name
            are called ``seq_<id>``)
        """
        sequences = {id(self.tree.root): self.simulator.generate_root()}

        for parent, child in self.tree.get_branches():
            sequences[id(child)] = self.simulator.get_simulated(
                sequences[id(parent)], child.branch_length
            )

        tip_sequences = {}
        for node in self.tree.leaves():
            name = node.name if node.name else f"seq_{node.id}"
            tip_sequences[name] = sequences[id(node)]
        return tip_sequences

    def simulate_alignment(self) -> Alignment:
        """Simulate tip sequences and wrap them as an Alignment."""
        tips = self.simulate()
        names = list(tips)
        return Alignment.from_states(names, np.vstack([tips[name] for name in names]))

    def get_parameters(self) -> Dict:
        """Simulation metadata, including the tree in Newick format."""
        params = self.simulator.get_parameters()
        params['tree'] = self.tree.to_newick()
        params['n_taxa'] = self.tree.n_leaves
        params['tree_length'] = self.tree.total_length()
        return params
