"""
Unit tests for substitution models and rate heterogeneity.
"""

import numpy as np
import pytest

from substml.core.matrix import check_detailed_balance, matrix_exponential
from substml.models import (
    F81,
    F84,
    GTR,
    HKY,
    JC69,
    MODEL_COUNT,
    TN,
    GammaRates,
    InvariantSites,
    ModelParameter,
    NucleotideModelID,
    UniformRate,
    create_nucleotide_model,
)


class TestModelParameter:
    """Test the free-parameter record."""

    def test_value_starts_at_default(self):
        p = ModelParameter("kappa", 2.0, 0.0001, 100.0)
        assert p.value == 2.0
        assert p.se is None

    def test_default_outside_bounds(self):
        with pytest.raises(ValueError, match="outside"):
            ModelParameter("kappa", 200.0, 0.0001, 100.0)


class TestParameterAPI:
    """Test the ordered parameter interface shared by all models."""

    def test_hky_with_gamma_order(self):
        """Substitution parameters come before rate-distribution parameters."""
        model = HKY(kappa=3.0, rate_distribution=GammaRates(alpha=0.8))

        assert model.n_parameters == 2
        assert model.parameter_names == ["kappa", "alpha"]
        np.testing.assert_allclose(model.parameters, [3.0, 0.8])
        assert model.get_default_value(0) == 3.0
        assert model.get_lower_limit(1) == 0.01
        assert model.get_upper_limit(1) == 100.0

    def test_set_parameter(self):
        model = HKY()
        model.set_parameter(5.0, 0)

        assert model.kappa == 5.0
        assert model.get_parameter(0) == 5.0

    def test_set_parameter_rejects_nan(self):
        with pytest.raises(ValueError, match="finite"):
            HKY().set_parameter(np.nan, 0)

    def test_standard_errors(self):
        model = TN()
        np.testing.assert_array_equal(np.isnan(model.standard_errors), [True, True])

        model.set_parameter_se(0.25, 1)
        assert model.get_parameter_se(1) == 0.25
        assert model.get_parameter_se(0) is None

    def test_parameter_change_updates_probabilities(self):
        """Changing kappa must invalidate the cached decomposition."""
        model = HKY(kappa=1.0)
        before = model.transition_probabilities(0.2).copy()

        model.set_parameter(10.0, 0)
        after = model.transition_probabilities(0.2)

        # A->G is a transition and becomes more likely
        assert after[0, 0, 2] > before[0, 0, 2]

    def test_frequencies_validation(self):
        with pytest.raises(ValueError, match="length 4"):
            HKY(frequencies=np.ones(3))
        with pytest.raises(ValueError, match="positive"):
            HKY(frequencies=np.array([0.5, 0.5, 0.0, 0.0]))

    def test_frequencies_normalised(self):
        model = F81(frequencies=np.array([2.0, 1.0, 1.0, 0.0001]))
        assert model.frequencies.sum() == pytest.approx(1.0)


class TestNucleotideModels:
    """Test rate matrices of the nucleotide models."""

    @pytest.mark.parametrize("model", [
        JC69(),
        F81(frequencies=np.array([0.1, 0.2, 0.3, 0.4])),
        HKY(kappa=3.0, frequencies=np.array([0.1, 0.2, 0.3, 0.4])),
        F84(kappa=3.0, frequencies=np.array([0.1, 0.2, 0.3, 0.4])),
        TN(kappa1=2.0, kappa2=5.0, frequencies=np.array([0.1, 0.2, 0.3, 0.4])),
        GTR(rates=[1.0, 2.0, 0.5, 0.8, 3.0], frequencies=np.array([0.1, 0.2, 0.3, 0.4])),
    ])
    def test_reversible_and_normalised(self, model):
        Q = model.rate_matrix()
        pi = model.frequencies

        assert check_detailed_balance(Q, pi)
        np.testing.assert_allclose(Q.sum(axis=1), 0.0, atol=1e-14)
        assert -np.dot(pi, np.diag(Q)) == pytest.approx(1.0)

    def test_asymmetric_exchangeabilities_rejected(self):
        class Skewed(F81):
            def exchangeabilities(self):
                S = np.ones((4, 4))
                S[0, 1] = 3.0
                return S

        with pytest.raises(ValueError, match="not reversible"):
            Skewed(frequencies=np.array([0.1, 0.2, 0.3, 0.4])).rate_matrix()

    def test_hky_kappa_one_is_f81(self):
        pi = np.array([0.1, 0.2, 0.3, 0.4])
        np.testing.assert_allclose(
            HKY(kappa=1.0, frequencies=pi).rate_matrix(),
            F81(frequencies=pi).rate_matrix(),
        )

    def test_tn_equal_kappas_is_hky(self):
        pi = np.array([0.1, 0.2, 0.3, 0.4])
        np.testing.assert_allclose(
            TN(kappa1=3.0, kappa2=3.0, frequencies=pi).rate_matrix(),
            HKY(kappa=3.0, frequencies=pi).rate_matrix(),
        )

    def test_f84_transition_exchangeabilities(self):
        pi = np.array([0.1, 0.2, 0.3, 0.4])
        S = F84(kappa=2.0, frequencies=pi).exchangeabilities()

        assert S[0, 2] == pytest.approx(1.0 + 2.0 / 0.4)
        assert S[1, 3] == pytest.approx(1.0 + 2.0 / 0.6)
        assert S[0, 1] == 1.0

    def test_gtr_needs_five_rates(self):
        with pytest.raises(ValueError, match="5 relative rates"):
            GTR(rates=[1.0, 2.0])

    def test_factory(self):
        assert MODEL_COUNT == 5
        assert isinstance(create_nucleotide_model(NucleotideModelID.GTR), GTR)
        assert isinstance(create_nucleotide_model(NucleotideModelID.TN), TN)
        assert isinstance(create_nucleotide_model(NucleotideModelID.F84), F84)
        assert type(create_nucleotide_model(NucleotideModelID.HKY)) is HKY
        assert type(create_nucleotide_model(4)) is F81
        with pytest.raises(ValueError):
            create_nucleotide_model(7)


class TestTransitionProbabilities:
    """Test filling the per-category transition store."""

    def test_matches_expm(self):
        model = HKY(kappa=4.0, frequencies=np.array([0.3, 0.2, 0.2, 0.3]))
        P = model.transition_probabilities(0.3)

        np.testing.assert_allclose(P[0], matrix_exponential(model.rate_matrix(), 0.3), atol=1e-10)

    def test_store_is_filled_in_place(self):
        model = JC69(rate_distribution=GammaRates(n_categories=4))
        store = model.create_transition_store()

        assert store.shape == (4, 4, 4)
        result = model.transition_probabilities(0.5, store)

        assert result is store
        np.testing.assert_allclose(store.sum(axis=2), 1.0)

    def test_categories_scale_distance(self):
        """Slow categories stay closer to the identity."""
        model = JC69(rate_distribution=GammaRates(n_categories=4, alpha=0.5))
        P = model.transition_probabilities(0.5)

        diagonals = P[:, 0, 0]
        assert np.all(np.diff(diagonals) < 0)

    def test_invariant_category_is_identity(self):
        model = HKY(rate_distribution=InvariantSites(p_inv=0.3))
        P = model.transition_probabilities(1.0)

        np.testing.assert_allclose(P[0], np.eye(4), atol=1e-12)

    def test_bad_store_shape(self):
        with pytest.raises(ValueError, match="store has shape"):
            HKY().transition_probabilities(0.1, np.zeros((2, 4, 4)))

    def test_negative_distance(self):
        with pytest.raises(ValueError, match="non-negative"):
            HKY().transition_probabilities(-0.1)

    @pytest.mark.parametrize("distance", [np.nan, np.inf])
    def test_non_finite_distance(self, distance):
        with pytest.raises(ValueError, match="finite"):
            HKY().transition_probabilities(distance)


class TestRateDistributions:
    """Test rate heterogeneity across sites."""

    def test_uniform(self):
        rates = UniformRate()
        assert rates.n_categories == 1
        assert rates.parameters == []
        np.testing.assert_array_equal(rates.rates(), [1.0])

    @pytest.mark.parametrize("alpha", [0.1, 0.5, 2.0, 50.0])
    def test_gamma_mean_one(self, alpha):
        gamma = GammaRates(n_categories=4, alpha=alpha)

        assert gamma.rates().mean() == pytest.approx(1.0)
        np.testing.assert_allclose(gamma.probabilities(), 0.25)
        assert np.all(np.diff(gamma.rates()) > 0)

    def test_single_category_gamma_has_no_free_alpha(self):
        """One category makes every rate 1, so the shape cannot be estimated."""
        gamma = GammaRates(n_categories=1, alpha=0.7)
        model = HKY(rate_distribution=gamma)

        assert gamma.parameters == []
        assert gamma.alpha == 0.7
        np.testing.assert_array_equal(gamma.rates(), [1.0])
        assert model.parameter_names == ["kappa"]

    def test_gamma_large_alpha_is_homogeneous(self):
        rates = GammaRates(alpha=100.0).rates()
        np.testing.assert_allclose(rates, 1.0, atol=0.15)

    def test_invariant_sites(self):
        inv = InvariantSites(p_inv=0.25)

        np.testing.assert_allclose(inv.probabilities(), [0.25, 0.75])
        np.testing.assert_allclose(inv.rates(), [0.0, 4.0 / 3.0])
        assert np.dot(inv.probabilities(), inv.rates()) == pytest.approx(1.0)

    def test_invalid_category_count(self):
        with pytest.raises(ValueError, match="n_categories"):
            GammaRates(n_categories=0)
