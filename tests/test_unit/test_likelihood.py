"""
Unit tests for likelihood calculation.
"""

import numpy as np
import pytest

from substml.core.likelihood import LikelihoodValue
from substml.core.parameterized_tree import (
    MAX_BRANCH_LENGTH,
    MIN_BRANCH_LENGTH,
    UnconstrainedTree,
)
from substml.io.patterns import SitePattern
from substml.io.sequences import Alignment
from substml.io.trees import Tree
from substml.models import HKY, JC69, GammaRates


def _site_pattern(sequences):
    return SitePattern.from_alignment(Alignment.from_sequences(sequences))


class TestLikelihoodValue:
    """Test pruning-based likelihood computation."""

    def test_two_taxa_analytical(self):
        """Two sequences: L = pi_a * P_ab(t1 + t2) per site."""
        sp = _site_pattern({"x": "AAC", "y": "AGC"})
        lv = LikelihoodValue(sp)
        lv.set_model(JC69())
        lv.set_tree(Tree.from_newick("(x:0.1,y:0.2);"))

        e_term = np.exp(-4.0 * 0.3 / 3.0)
        p_same = 0.25 + 0.75 * e_term
        p_diff = 0.25 - 0.25 * e_term
        expected = 2 * np.log(0.25 * p_same) + np.log(0.25 * p_diff)

        assert lv.compute() == pytest.approx(expected, rel=1e-10)

    def test_identical_sequences_higher_likelihood(self):
        tree = Tree.from_newick("(x:0.1,y:0.1);")

        same = LikelihoodValue(_site_pattern({"x": "ACGT", "y": "ACGT"}))
        same.set_model(JC69())
        same.set_tree(tree)

        different = LikelihoodValue(_site_pattern({"x": "ACGT", "y": "CATG"}))
        different.set_model(JC69())
        different.set_tree(Tree.from_newick("(x:0.1,y:0.1);"))

        assert same.compute() > different.compute()

    def test_root_placement_invariance(self, small_alignment):
        """Reversible models give the same likelihood wherever the root is."""
        sp = SitePattern.from_alignment(small_alignment)
        model = HKY(kappa=3.0, frequencies=np.array([0.3, 0.2, 0.2, 0.3]))

        values = []
        for newick in [
            "((A:0.1,B:0.2):0.05,C:0.15,D:0.25);",
            "((C:0.15,D:0.25):0.05,A:0.1,B:0.2);",
            "(((A:0.1,B:0.2):0.05,C:0.15):0.1,D:0.15);",
        ]:
            lv = LikelihoodValue(sp)
            lv.set_model(model)
            lv.set_tree(Tree.from_newick(newick))
            values.append(lv.compute())

        np.testing.assert_allclose(values, values[0], rtol=1e-10)

    def test_unknown_states_sum_out(self):
        """A column of gaps has likelihood one."""
        lv = LikelihoodValue(_site_pattern({"x": "-", "y": "-", "z": "-"}))
        lv.set_model(HKY(rate_distribution=GammaRates()))
        lv.set_tree(Tree.from_newick("(x:0.1,y:0.2,z:0.3);"))

        assert lv.compute() == pytest.approx(0.0, abs=1e-12)

    def test_weights_multiply_site_terms(self):
        lv = LikelihoodValue(_site_pattern({"x": "AAAC", "y": "AAAC"}))
        lv.set_model(JC69())
        lv.set_tree(Tree.from_newick("(x:0.1,y:0.1);"))

        site_lnl = lv.site_log_likelihoods()
        assert lv.compute() == pytest.approx(np.dot(lv.site_pattern.weights, site_lnl))

    def test_scaling_on_large_tree(self):
        """Rescaling keeps long, deep trees finite."""
        names = [f"t{i}" for i in range(40)]
        rng = np.random.default_rng(3)
        seqs = {name: "".join(rng.choice(list("ACGT"), 200)) for name in names}
        newick = names[0]
        for name in names[1:]:
            newick = f"({newick}:2.0,{name}:2.0)"
        lv = LikelihoodValue(_site_pattern(seqs))
        lv.set_model(JC69())
        lv.set_tree(Tree.from_newick(newick + ";"))

        lnl = lv.compute()
        assert np.isfinite(lnl)
        assert lnl < 0

    def test_taxa_mismatch(self):
        lv = LikelihoodValue(_site_pattern({"x": "A", "y": "C"}))
        with pytest.raises(ValueError, match="different taxa"):
            lv.set_tree(Tree.from_newick("(x:0.1,z:0.1);"))

    def test_unbound_model_or_tree(self):
        lv = LikelihoodValue(_site_pattern({"x": "A", "y": "C"}))
        with pytest.raises(ValueError, match="No model"):
            lv.compute()

        lv.set_model(JC69())
        with pytest.raises(ValueError, match="No tree"):
            lv.compute()


class TestUnconstrainedTree:
    """Test branch lengths exposed as parameters."""

    def test_parameters_in_postorder(self, four_taxon_tree):
        pt = UnconstrainedTree(four_taxon_tree)

        assert pt.n_parameters == 5
        np.testing.assert_allclose(
            [pt.get_parameter(i) for i in range(5)], [0.1, 0.2, 0.05, 0.15, 0.25]
        )

    def test_set_parameter_changes_likelihood(self, four_taxon_tree, small_alignment):
        lv = LikelihoodValue(SitePattern.from_alignment(small_alignment))
        lv.set_model(JC69())
        pt = UnconstrainedTree(four_taxon_tree)
        lv.set_tree(pt)
        before = lv.compute()

        pt.set_parameter(1.5, 0)

        assert pt.branch_length(pt.branch_nodes[0]) == 1.5
        assert lv.compute() != before

    def test_lengths_are_clamped(self):
        pt = UnconstrainedTree(Tree.from_newick("(A:0.0,B:50.0,C:-1.0);"))

        assert pt.get_parameter(0) == MIN_BRANCH_LENGTH
        assert pt.get_parameter(1) == MAX_BRANCH_LENGTH
        assert pt.get_parameter(2) == MIN_BRANCH_LENGTH
        assert pt.branch_length(pt.root) == 0.0
