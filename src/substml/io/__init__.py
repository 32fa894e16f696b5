"""
Input/Output modules for nucleotide alignments and phylogenetic trees.

This module provides classes for reading and working with:

- **Sequence alignments**: FASTA and PHYLIP formats, or in-memory strings
- **Site patterns**: distinct alignment columns with occurrence counts
- **Phylogenetic trees**: Newick format
"""

from substml.io.sequences import Alignment
from substml.io.patterns import SitePattern, empirical_frequencies
from substml.io.trees import Tree, TreeNode

__all__ = ["Alignment", "SitePattern", "Tree", "TreeNode", "empirical_frequencies"]
