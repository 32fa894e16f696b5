"""
Pytest configuration and shared fixtures.
"""

import numpy as np
import pytest

from substml.io.sequences import Alignment
from substml.io.patterns import SitePattern
from substml.io.trees import Tree
from substml.models import HKY
from substml.simulate import SequenceSimulator, TreeSimulator


FOUR_TAXON_NEWICK = "((A:0.1,B:0.2):0.05,C:0.15,D:0.25);"


@pytest.fixture
def four_taxon_tree():
    """Unrooted four-taxon tree with distinct branch lengths."""
    return Tree.from_newick(FOUR_TAXON_NEWICK)


@pytest.fixture
def small_alignment():
    """Hand-written alignment with a few variable columns and one gap."""
    return Alignment.from_sequences({
        "A": "ACGTACGTAAGGCCTT",
        "B": "ACGTACGAAAGGCCTT",
        "C": "ACGAACGTAGGGCTTT",
        "D": "ACTAAC-TAGGACTTC",
    })


@pytest.fixture
def hky_site_pattern():
    """2000 sites simulated under HKY (kappa = 4) on the four-taxon tree."""
    model = HKY(kappa=4.0, frequencies=np.array([0.3, 0.2, 0.2, 0.3]))
    simulator = SequenceSimulator(model, 2000, seed=20240611)
    aln = TreeSimulator(Tree.from_newick(FOUR_TAXON_NEWICK), simulator).simulate_alignment()
    return SitePattern.from_alignment(aln)


@pytest.fixture
def fasta_file(tmp_path):
    """Create a temporary FASTA file."""
    path = tmp_path / "small.fasta"
    path.write_text(
        ">A\nACGTACGTAA\nGGCCTT\n"
        ">B\nACGTACGAAAGGCCTT\n"
        ">C\nACGAACGTAG\nGGCTTT\n"
        ">D\nACTAACNTAGGACTTC\n"
    )
    return path


@pytest.fixture
def tree_file(tmp_path):
    """Create a temporary tree file for the four-taxon tree."""
    path = tmp_path / "four.nwk"
    path.write_text(FOUR_TAXON_NEWICK + "\n")
    return path
