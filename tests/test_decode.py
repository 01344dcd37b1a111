"""
Tests for max-product calibration and MAP decoding.
"""

import numpy as np
import pytest

from chaincrf.api.marginals import map_assignment
from chaincrf.crf import map_decode
from chaincrf.features import Feature
from chaincrf.solver import run_inference


class TestMapDecode:
    @pytest.mark.parametrize("n_var,K,seed", [(2, 2, 0), (3, 3, 1), (4, 2, 2), (4, 3, 3), (5, 2, 4)])
    def test_matches_brute_force(self, instance, brute_force, n_var, K, seed):
        features, theta = instance(n_var, K, seed=seed)
        bf = brute_force(features, theta, n_var, K)
        assert map_decode(features, theta, n_var, K).tolist() == bf.map()

    def test_best_score_is_log_z_of_maxsum(self, instance, brute_force):
        features, theta = instance(4, 3, seed=7)
        bf = brute_force(features, theta, 4, 3)
        result = run_inference(features, theta, 4, 3, semiring="maxsum")
        assert result.log_z == pytest.approx(np.max(bf.scores))

    def test_any_root(self, instance, brute_force):
        features, theta = instance(4, 2, seed=8)
        bf = brute_force(features, theta, 4, 2)
        result = run_inference(features, theta, 4, 2, semiring="maxsum")
        for root in range(result.tree.num_cliques):
            assert map_assignment(result.calibration, root=root).tolist() == bf.map()

    def test_single_variable(self):
        features = [Feature((1,), (3,), 0)]
        assert map_decode(features, np.array([2.0]), 1, 3).tolist() == [3]

    def test_requires_maxsum(self, instance):
        features, theta = instance(3, 2)
        result = run_inference(features, theta, 3, 2, semiring="prob")
        with pytest.raises(ValueError):
            map_assignment(result.calibration)
