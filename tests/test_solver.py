"""
Tests for clique tree calibration and the inference pipeline.
"""

import numpy as np
import pytest

from chaincrf.api.marginals import clique_marginal, variable_marginal, variable_marginals
from chaincrf.crf import compute_log_partition, compute_marginals
from chaincrf.errors import NumericInstability
from chaincrf.features import Feature
from chaincrf.runtime.calibration import calibrate
from chaincrf.solver import run_inference


class TestSimpleChain:
    """n_var = 2, K = 2, one node feature with theta = [1, 0]."""

    @pytest.fixture
    def chain_model(self):
        return [Feature((1,), (1,), 0)], np.array([1.0, 0.0])

    def test_partition_function(self, chain_model):
        features, theta = chain_model
        log_z = compute_log_partition(features, theta, 2, 2)
        assert log_z == pytest.approx(np.log(2 * np.exp(1.0) + 2 * np.exp(0.0)), abs=1e-12)

    def test_marginals(self, chain_model):
        features, theta = chain_model
        marginals = compute_marginals(features, theta, 2, 2)
        p1 = np.e / (np.e + 1.0)
        assert np.allclose(marginals[0], [p1, 1.0 - p1])
        assert np.allclose(marginals[1], [0.5, 0.5])

    def test_max_product_semiring_rejected(self, chain_model):
        features, theta = chain_model
        with pytest.raises(ValueError):
            compute_log_partition(features, theta, 2, 2, semiring="maxsum")
        with pytest.raises(ValueError):
            compute_marginals(features, theta, 2, 2, semiring="maxsum")


@pytest.mark.parametrize("n_var,K", [(2, 2), (3, 2), (3, 3), (4, 2), (4, 3)])
class TestAgainstBruteForce:
    def test_log_z(self, instance, brute_force, n_var, K):
        features, theta = instance(n_var, K, seed=n_var * 10 + K)
        bf = brute_force(features, theta, n_var, K)
        assert compute_log_partition(features, theta, n_var, K) == pytest.approx(bf.log_z, abs=1e-10)

    def test_variable_marginals(self, instance, brute_force, n_var, K):
        features, theta = instance(n_var, K, seed=n_var * 10 + K)
        bf = brute_force(features, theta, n_var, K)
        marginals = compute_marginals(features, theta, n_var, K)
        assert marginals.shape == (n_var, K)
        assert np.allclose(marginals, bf.marginals(), atol=1e-10)

    def test_pairwise_marginals(self, instance, brute_force, n_var, K):
        features, theta = instance(n_var, K, seed=n_var * 10 + K)
        bf = brute_force(features, theta, n_var, K)
        result = run_inference(features, theta, n_var, K)
        for i in range(1, n_var):
            cid = result.tree.clique_for_pair((i, i + 1))
            joint = clique_marginal(result.calibration, cid)
            assert joint.scope == (i, i + 1)
            assert np.allclose(joint.table, bf.pair_marginal(i), atol=1e-10)

    def test_logprob_matches_prob(self, instance, n_var, K):
        features, theta = instance(n_var, K, seed=n_var * 10 + K)
        prob = run_inference(features, theta, n_var, K, semiring="prob")
        logprob = run_inference(features, theta, n_var, K, semiring="logprob")
        assert logprob.log_z == pytest.approx(prob.log_z, abs=1e-10)
        assert np.allclose(
            variable_marginals(logprob.calibration),
            variable_marginals(prob.calibration),
            atol=1e-10,
        )


class TestCalibration:
    def test_adjacent_cliques_agree(self, instance):
        features, theta = instance(5, 3, seed=3)
        result = run_inference(features, theta, 5, 3).calibration
        tree = result.tree
        for a, b in tree.graph.edges():
            sep = tree.sepset(a, b)
            ma = result.beliefs[a].restrict_to(sep).values
            mb = result.beliefs[b].restrict_to(sep).values
            assert np.allclose(ma, mb)

    def test_sepset_marginal_is_product_of_messages(self, instance):
        features, theta = instance(4, 3, seed=9)
        result = run_inference(features, theta, 4, 3).calibration
        tree = result.tree
        for a, b in tree.graph.edges():
            sep = tree.sepset(a, b)
            incoming = result.messages[(a, b)].product(result.messages[(b, a)])
            assert incoming.scope == sep
            assert np.allclose(result.beliefs[a].restrict_to(sep).values, incoming.values)

    def test_every_clique_has_same_mass(self, instance):
        features, theta = instance(5, 2, seed=4)
        result = run_inference(features, theta, 5, 2).calibration
        totals = [np.log(b.total()) for b in result.beliefs]
        assert np.allclose(totals, result.log_z)

    def test_any_containing_clique_gives_same_marginal(self, instance):
        features, theta = instance(4, 3, seed=5)
        result = run_inference(features, theta, 4, 3).calibration
        for var in (2, 3):
            left = result.beliefs[var - 2].restrict_to((var,)).normalize().values
            right = result.beliefs[var - 1].restrict_to((var,)).normalize().values
            assert np.allclose(left, right)
            assert np.allclose(variable_marginal(result, var), left)

    def test_root_choice_does_not_change_log_z(self, instance):
        features, theta = instance(4, 2, seed=6)
        tree = run_inference(features, theta, 4, 2).tree
        log_zs = [calibrate(tree, root=r).log_z for r in range(tree.num_cliques)]
        assert np.allclose(log_zs, log_zs[0])

    def test_initial_potentials_untouched(self, instance):
        features, theta = instance(3, 2, seed=7)
        result = run_inference(features, theta, 3, 2)
        before = [c.values.copy() for c in result.tree.cliques]
        calibrate(result.tree)
        for c, v in zip(result.tree.cliques, before):
            assert np.array_equal(c.values, v)

    def test_single_variable(self, brute_force):
        features = [Feature((1,), (2,), 0), Feature((1,), (3,), 1)]
        theta = np.array([0.5, -1.0])
        bf = brute_force(features, theta, 1, 3)
        result = run_inference(features, theta, 1, 3)
        assert result.log_z == pytest.approx(bf.log_z)
        assert np.allclose(variable_marginals(result.calibration), bf.marginals())


class TestNumericInstability:
    @pytest.fixture
    def huge(self):
        features = [Feature((i,), (1,), 0) for i in (1, 2, 3)]
        return features, np.array([800.0])

    def test_prob_overflow_is_reported(self, huge):
        features, theta = huge
        with np.errstate(over="ignore", invalid="ignore"):
            with pytest.raises(NumericInstability):
                run_inference(features, theta, 3, 2, semiring="prob")

    def test_logprob_survives(self, huge):
        features, theta = huge
        result = run_inference(features, theta, 3, 2, semiring="logprob")
        assert result.log_z == pytest.approx(2400.0, abs=1e-6)
        marginals = variable_marginals(result.calibration)
        assert np.allclose(marginals[:, 0], 1.0)
