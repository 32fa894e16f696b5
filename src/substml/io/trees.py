"""
Phylogenetic tree parsing, writing and traversal.
"""

import copy
import re
from dataclasses import dataclass, field
from typing import Optional


@dataclass(eq=False)
class TreeNode:
    """
    Phylogenetic tree node.

    Attributes
    ----------
    id : int
        Node identifier
    name : Optional[str]
        Node name (for leaves)
    parent : Optional[TreeNode]
        Parent node
    children : list[TreeNode]
        Child nodes
    branch_length : float
        Branch length to parent
    """

    id: int
    name: Optional[str] = None
    parent: Optional["TreeNode"] = None
    children: list["TreeNode"] = field(default_factory=list)
    branch_length: float = 0.0

    @property
    def is_leaf(self) -> bool:
        """Check if node is a leaf."""
        return len(self.children) == 0

    def add_child(self, child: "TreeNode", branch_length: float) -> "TreeNode":
        child.parent = self
        child.branch_length = branch_length
        self.children.append(child)
        return child

    def __repr__(self) -> str:
        return f"TreeNode(id={self.id}, name={self.name!r}, n_children={len(self.children)})"


@dataclass
class Tree:
    """
    Phylogenetic tree.

    Trees built by neighbor joining are unrooted and represented with a
    trifurcating root node; the likelihood treats both cases alike.

    Attributes
    ----------
    root : TreeNode
        Root node of the tree
    n_nodes : int
        Total number of nodes
    n_leaves : int
        Number of leaf nodes
    leaf_names : list[str]
        Names of leaf nodes
    """

    root: TreeNode
    n_nodes: int
    n_leaves: int
    leaf_names: list[str]

    @classmethod
    def from_root(cls, root: TreeNode) -> "Tree":
        """Build a Tree around an already linked node structure."""
        root.parent = None

        def count_nodes(node: TreeNode) -> tuple[int, int, list[str]]:
            """Count total nodes, leaves, and collect leaf names."""
            if node.is_leaf:
                leaf_name = node.name if node.name else str(node.id)
                return 1, 1, [leaf_name]
            total_nodes = 1
            total_leaves = 0
            leaf_names = []
            for child in node.children:
                n, l, names = count_nodes(child)
                total_nodes += n
                total_leaves += l
                leaf_names.extend(names)
            return total_nodes, total_leaves, leaf_names

        n_nodes, n_leaves, leaf_names = count_nodes(root)
        return cls(root=root, n_nodes=n_nodes, n_leaves=n_leaves, leaf_names=leaf_names)

    @classmethod
    def from_newick(cls, newick_string: str) -> "Tree":
        """
        Parse Newick format tree string.

        Parameters
        ----------
        newick_string : str
            Newick format tree (comments in square brackets are ignored)

        Returns
        -------
        Tree
            Parsed tree

        Examples
        --------
        >>> tree = Tree.from_newick("((A:0.1,B:0.2):0.05,C:0.3);")
        >>> tree.n_leaves
        3
        """
        newick = re.sub(r'\[.*?\]', '', newick_string).strip()

        if ';' not in newick:
            raise ValueError("Invalid Newick format: missing semicolon")

        tree_line = newick[:newick.index(';')]
        tree_line = tree_line.replace('\n', '').replace('\t', '').replace('\r', '')
        if not tree_line.strip():
            raise ValueError("Invalid Newick format: no tree found")

        node_id_counter = [0]

        def skip_whitespace(s: str, pos: int) -> int:
            while pos < len(s) and s[pos] in ' \t\n\r':
                pos += 1
            return pos

        def parse_node(s: str, start: int, parent: Optional[TreeNode] = None) -> tuple[TreeNode, int]:
            """Parse a node from position start in string s."""
            node = TreeNode(id=node_id_counter[0], parent=parent)
            node_id_counter[0] += 1
            pos = skip_whitespace(s, start)

            if pos < len(s) and s[pos] == '(':
                pos = skip_whitespace(s, pos + 1)
                while True:
                    child, pos = parse_node(s, pos, node)
                    node.children.append(child)
                    pos = skip_whitespace(s, pos)

                    if pos < len(s) and s[pos] == ',':
                        pos = skip_whitespace(s, pos + 1)
                        continue
                    elif pos < len(s) and s[pos] == ')':
                        pos = skip_whitespace(s, pos + 1)
                        break
                    else:
                        raise ValueError(f"Expected ',' or ')' at position {pos}")

            name_start = pos
            while pos < len(s) and s[pos] not in ',:(); \t\n\r':
                pos += 1
            if pos > name_start:
                node.name = s[name_start:pos].strip("'")

            pos = skip_whitespace(s, pos)

            if pos < len(s) and s[pos] == ':':
                pos = skip_whitespace(s, pos + 1)
                length_start = pos
                while pos < len(s) and s[pos] not in ',(); \t\n\r':
                    pos += 1
                try:
                    node.branch_length = float(s[length_start:pos])
                except ValueError:
                    raise ValueError(f"Invalid branch length: {s[length_start:pos]}")

            return node, pos

        root, pos = parse_node(tree_line, 0, None)
        if skip_whitespace(tree_line, pos) != len(tree_line):
            raise ValueError(f"Unexpected characters after tree at position {pos}")

        return cls.from_root(root)

    def to_newick(self, precision: int = 6) -> str:
        """
        Write the tree in Newick format.

        Examples
        --------
        >>> Tree.from_newick("(A:0.1,B:0.2);").to_newick()
        '(A:0.100000,B:0.200000);'
        """
        def write(node: TreeNode) -> str:
            text = node.name or ""
            if node.children:
                text = "(" + ",".join(write(child) for child in node.children) + ")" + text
            if node.parent is not None:
                text += f":{node.branch_length:.{precision}f}"
            return text

        return write(self.root) + ";"

    def postorder(self) -> list[TreeNode]:
        """
        Return nodes in post-order traversal (leaves to root).

        Returns
        -------
        list[TreeNode]
            Nodes in post-order
        """
        result = []

        def traverse(node: TreeNode) -> None:
            for child in node.children:
                traverse(child)
            result.append(node)

        traverse(self.root)
        return result

    def leaves(self) -> list[TreeNode]:
        """Leaf nodes in post-order."""
        return [node for node in self.postorder() if node.is_leaf]

    def get_branches(self) -> list[tuple[TreeNode, TreeNode]]:
        """
        Get all branches as (parent, child) pairs, in pre-order.

        Returns
        -------
        list[tuple[TreeNode, TreeNode]]
            List of (parent, child) tuples for each branch
        """
        branches = []

        def traverse(node: TreeNode) -> None:
            for child in node.children:
                branches.append((node, child))
                traverse(child)

        traverse(self.root)
        return branches

    def total_length(self) -> float:
        """Sum of all branch lengths."""
        return sum(child.branch_length for _, child in self.get_branches())

    def copy(self) -> "Tree":
        """Deep copy of the tree (nodes included)."""
        return copy.deepcopy(self)
