"""
Trees whose branch lengths are exposed as bounded parameters.
"""

from abc import ABC, abstractmethod

import numpy as np

from ..io.trees import Tree, TreeNode

MIN_BRANCH_LENGTH = 1e-6
MAX_BRANCH_LENGTH = 10.0


class ParameterizedTree(ABC):
    """
    A tree together with a parameterisation of its branch lengths.

    The likelihood reads branch lengths through `branch_length(node)` so
    that alternative parameterisations (e.g. clock trees) can share it.
    """

    def __init__(self, tree: Tree):
        self.tree = tree

    @property
    def root(self) -> TreeNode:
        return self.tree.root

    @property
    def leaf_names(self) -> list[str]:
        return self.tree.leaf_names

    def postorder(self) -> list[TreeNode]:
        return self.tree.postorder()

    @property
    @abstractmethod
    def n_parameters(self) -> int:
        ...

    @abstractmethod
    def get_parameter(self, i: int) -> float:
        ...

    @abstractmethod
    def set_parameter(self, value: float, i: int) -> None:
        ...

    @abstractmethod
    def branch_length(self, node: TreeNode) -> float:
        """Length of the branch above `node` (0 for the root)."""

    def get_lower_limit(self, i: int) -> float:
        return MIN_BRANCH_LENGTH

    def get_upper_limit(self, i: int) -> float:
        return MAX_BRANCH_LENGTH

    def get_default_value(self, i: int) -> float:
        return 0.1


class UnconstrainedTree(ParameterizedTree):
    """
    Every branch length is an independent parameter.

    Branches are numbered in post-order (root excluded). Lengths of the
    wrapped tree are clamped into [MIN_BRANCH_LENGTH, MAX_BRANCH_LENGTH].

    Examples
    --------
    >>> pt = UnconstrainedTree(Tree.from_newick("(A:0.1,B:0.0,C:0.3);"))
    >>> pt.n_parameters
    3
    >>> pt.get_parameter(1)
    1e-06
    """

    def __init__(self, tree: Tree):
        super().__init__(tree)
        self.branch_nodes = [node for node in tree.postorder() if node.parent is not None]
        self._index = {id(node): i for i, node in enumerate(self.branch_nodes)}
        for node in self.branch_nodes:
            node.branch_length = float(
                np.clip(node.branch_length, MIN_BRANCH_LENGTH, MAX_BRANCH_LENGTH)
            )

    @property
    def n_parameters(self) -> int:
        return len(self.branch_nodes)

    def get_parameter(self, i: int) -> float:
        return self.branch_nodes[i].branch_length

    def set_parameter(self, value: float, i: int) -> None:
        self.branch_nodes[i].branch_length = float(value)

    def branch_length(self, node: TreeNode) -> float:
        if node.parent is None:
            return 0.0
        return self.branch_nodes[self._index[id(node)]].branch_length
