"""
Shared fixtures: random tied chain instances and brute-force enumeration.
"""

import itertools

import numpy as np
import pytest

from chaincrf.features import Feature


class BruteForce:
    """Exhaustive enumeration over all K^n_var labellings."""

    def __init__(self, features, theta, n_var, K):
        self.features = list(features)
        self.theta = np.asarray(theta, dtype=np.float64)
        self.n_var = n_var
        self.K = K
        self.labellings = list(itertools.product(range(1, K + 1), repeat=n_var))
        self.scores = np.array([self.score(y) for y in self.labellings])

    def score(self, y):
        return sum(self.theta[f.param_index] for f in self.features if f.matches(y))

    @property
    def log_z(self):
        m = np.max(self.scores)
        return float(m + np.log(np.sum(np.exp(self.scores - m))))

    @property
    def probs(self):
        return np.exp(self.scores - self.log_z)

    def marginals(self):
        out = np.zeros((self.n_var, self.K))
        for y, p in zip(self.labellings, self.probs):
            for i, a in enumerate(y):
                out[i, a - 1] += p
        return out

    def pair_marginal(self, i):
        """Joint of (i, i+1) as a K x K table indexed [y_i - 1, y_{i+1} - 1]."""
        out = np.zeros((self.K, self.K))
        for y, p in zip(self.labellings, self.probs):
            out[y[i - 1] - 1, y[i] - 1] += p
        return out

    def map(self):
        return list(self.labellings[int(np.argmax(self.scores))])


def make_instance(n_var, K, seed=0):
    """
    Tied chain features with a few irregular ones.

    - node features tied across positions: param a-1 for label a
    - transition features tied across positions: param K + (a-1) + K*(b-1)
    - one untied label-1 feature per position
    - one pairwise feature given with a descending scope
    """
    rng = np.random.default_rng(seed)
    features = []
    for i in range(1, n_var + 1):
        for a in range(1, K + 1):
            features.append(Feature((i,), (a,), a - 1))
    for i in range(1, n_var):
        for a in range(1, K + 1):
            for b in range(1, K + 1):
                features.append(Feature((i, i + 1), (a, b), K + (a - 1) + K * (b - 1)))
    base = K + K * K
    for i in range(1, n_var + 1):
        features.append(Feature((i,), (1,), base + i - 1))
    n_params = base + n_var
    if n_var >= 2:
        features.append(Feature((2, 1), (K, 1), n_params))
        n_params += 1
    theta = rng.normal(size=n_params)
    return features, theta


@pytest.fixture
def instance():
    """Factory: instance(n_var, K, seed) -> (features, theta)."""
    return make_instance


@pytest.fixture
def brute_force():
    """Factory: brute_force(features, theta, n_var, K) -> BruteForce."""
    return BruteForce
