"""
Tests for feature accumulation into node and edge potentials.
"""

import numpy as np
import pytest

from chaincrf.errors import FeatureContractError, UnsupportedFeatureScope
from chaincrf.features import Feature
from chaincrf.potentials import accumulate_log_potentials, to_semiring
from chaincrf.topology.clique_tree import chain_pair_index


class TestAccumulate:
    def test_zero_without_features(self):
        pots = accumulate_log_potentials([], np.zeros(0), 3, 2)
        assert sorted(pots.node) == [1, 2, 3]
        assert sorted(pots.edge) == [(1, 2), (2, 3)]
        for f in list(pots.node.values()) + list(pots.edge.values()):
            assert np.all(f.values == 0.0)

    def test_node_feature(self):
        theta = np.array([0.7, -1.0])
        pots = accumulate_log_potentials([Feature((2,), (3,), 0)], theta, 2, 3)
        assert np.allclose(pots.node[2].values, [0.0, 0.0, 0.7])
        assert np.allclose(pots.node[1].values, 0.0)

    def test_edge_feature_index(self):
        theta = np.array([1.5])
        pots = accumulate_log_potentials([Feature((1, 2), (2, 3), 0)], theta, 2, 3)
        edge = pots.edge[(1, 2)]
        # labels (2, 3) -> 0-based (1, 2) -> 1 + 3*2
        assert edge.values[7] == pytest.approx(1.5)
        assert edge.table[1, 2] == pytest.approx(1.5)
        assert np.count_nonzero(edge.values) == 1

    def test_descending_scope_is_canonicalized(self):
        theta = np.array([2.0])
        pots = accumulate_log_potentials([Feature((2, 1), (1, 2), 0)], theta, 2, 2)
        # variable 1 takes label 2, variable 2 takes label 1
        assert pots.edge[(1, 2)].table[1, 0] == pytest.approx(2.0)

    def test_tied_and_repeated_features_add(self):
        theta = np.array([0.5, 0.25])
        features = [
            Feature((1,), (1,), 0),
            Feature((2,), (1,), 0),
            Feature((1,), (1,), 1),
        ]
        pots = accumulate_log_potentials(features, theta, 2, 2)
        assert pots.node[1].values[0] == pytest.approx(0.75)
        assert pots.node[2].values[0] == pytest.approx(0.5)

    def test_theta_untouched(self):
        theta = np.array([1.0, 2.0])
        accumulate_log_potentials([Feature((1,), (1,), 1)], theta, 2, 2)
        assert theta.tolist() == [1.0, 2.0]

    def test_shared_pair_index(self):
        pair_index = chain_pair_index(4)
        pots = accumulate_log_potentials([], np.zeros(0), 4, 2, pair_index)
        assert set(pots.edge) == set(pair_index)


class TestContract:
    def test_non_adjacent_pair(self):
        with pytest.raises(UnsupportedFeatureScope):
            accumulate_log_potentials([Feature((1, 3), (1, 1), 0)], np.zeros(1), 3, 2)

    def test_variable_out_of_range(self):
        with pytest.raises(UnsupportedFeatureScope):
            accumulate_log_potentials([Feature((4,), (1,), 0)], np.zeros(1), 3, 2)
        with pytest.raises(UnsupportedFeatureScope):
            accumulate_log_potentials([Feature((0,), (1,), 0)], np.zeros(1), 3, 2)

    def test_label_out_of_range(self):
        with pytest.raises(FeatureContractError):
            accumulate_log_potentials([Feature((1,), (3,), 0)], np.zeros(1), 3, 2)

    def test_param_out_of_range(self):
        with pytest.raises(FeatureContractError):
            accumulate_log_potentials([Feature((1,), (1,), 2)], np.zeros(2), 3, 2)

    def test_bad_feature_shape(self):
        with pytest.raises(ValueError):
            Feature((1, 2, 3), (1, 1, 1), 0)
        with pytest.raises(ValueError):
            Feature((1, 2), (1,), 0)


class TestToSemiring:
    def test_prob_exponentiates(self):
        theta = np.array([1.0])
        log_pots = accumulate_log_potentials([Feature((1,), (1,), 0)], theta, 2, 2)
        pots = to_semiring(log_pots, "prob")
        assert pots.semiring.name == "prob"
        assert np.allclose(pots.node[1].values, [np.e, 1.0])
        assert np.allclose(pots.edge[(1, 2)].values, 1.0)
        # log tables are left as they were
        assert np.allclose(log_pots.node[1].values, [1.0, 0.0])

    def test_logprob_keeps_values(self):
        theta = np.array([1.0])
        log_pots = accumulate_log_potentials([Feature((1,), (1,), 0)], theta, 2, 2)
        pots = to_semiring(log_pots, "logprob")
        assert np.allclose(pots.node[1].values, [1.0, 0.0])
