"""
Tests for chain clique tree construction.
"""

import networkx as nx
import numpy as np
import pytest

from chaincrf.algebra.factor import product_all
from chaincrf.features import Feature
from chaincrf.potentials import accumulate_log_potentials, to_semiring
from chaincrf.topology.clique_tree import build_clique_tree, chain_pair_index


def potentials_for(features, theta, n_var, K):
    return to_semiring(accumulate_log_potentials(features, theta, n_var, K), "prob")


class TestPairIndex:
    def test_chain(self):
        assert chain_pair_index(4) == {(1, 2): 0, (2, 3): 1, (3, 4): 2}

    def test_single_variable(self):
        assert chain_pair_index(1) == {}

    def test_empty_chain(self):
        with pytest.raises(ValueError):
            chain_pair_index(0)


class TestCliqueTree:
    def test_structure(self, instance):
        features, theta = instance(5, 2)
        tree = build_clique_tree(potentials_for(features, theta, 5, 2))

        assert tree.num_cliques == 4
        assert [tree.scope(k) for k in range(4)] == [(1, 2), (2, 3), (3, 4), (4, 5)]
        assert nx.is_tree(tree.graph)
        assert sorted(tree.graph.edges()) == [(0, 1), (1, 2), (2, 3)]
        assert tree.sepset(1, 2) == (3,)
        assert tree.sepset(0, 2) == ()

    def test_lookup(self, instance):
        features, theta = instance(4, 2)
        tree = build_clique_tree(potentials_for(features, theta, 4, 2))
        assert tree.clique_containing(1) == 0
        assert tree.clique_containing(3) == 1
        assert tree.clique_for_pair((3, 2)) == 1
        with pytest.raises(ValueError):
            tree.clique_containing(9)

    def test_node_potentials_used_once(self, instance):
        n_var, K = 4, 3
        features, theta = instance(n_var, K)
        pots = potentials_for(features, theta, n_var, K)
        tree = build_clique_tree(pots)

        joint_cliques = product_all(tree.cliques)
        joint_direct = product_all(list(pots.edge.values()) + list(pots.node.values()))
        joint_direct = joint_direct.reorder(joint_cliques.scope)
        assert np.allclose(joint_cliques.values, joint_direct.values)

    def test_first_clique_absorbs_both_nodes(self):
        features = [Feature((1,), (1,), 0), Feature((2,), (2,), 1), Feature((3,), (1,), 2)]
        theta = np.array([1.0, 2.0, 3.0])
        tree = build_clique_tree(potentials_for(features, theta, 3, 2))

        first, second = tree.cliques
        assert first.table[0, 1] == pytest.approx(np.exp(1.0 + 2.0))
        assert first.table[1, 0] == pytest.approx(1.0)
        # second clique carries only variable 3's node potential
        assert second.table[0, 0] == pytest.approx(np.exp(3.0))
        assert second.table[1, 1] == pytest.approx(1.0)

    def test_single_variable_chain(self):
        tree = build_clique_tree(potentials_for([], np.zeros(0), 1, 3))
        assert tree.num_cliques == 1
        assert tree.scope(0) == (1,)
        assert tree.graph.number_of_edges() == 0
