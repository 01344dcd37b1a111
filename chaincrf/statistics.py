"""
chaincrf/statistics.py

Sufficient statistics of the log-linear model: empirical feature counts
under the observed labels and expected feature counts under the model.

All accumulators are freshly allocated arrays of length len(theta); tied
features (shared param_index) are summed into the same slot.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

import numpy as np

from chaincrf.algebra.factor import Factor
from chaincrf.api.marginals import clique_marginal, variable_marginals
from chaincrf.features import Feature
from chaincrf.runtime.calibration import CalibrationResult


@dataclass(frozen=True)
class SufficientStatistics:
    """Empirical and expected counts per parameter, plus the observed score."""
    empirical_counts: np.ndarray
    expected_counts: np.ndarray
    weighted_empirical_score: float


def empirical_statistics(
    features: Sequence[Feature],
    y: Sequence[int],
    theta: np.ndarray,
) -> Tuple[np.ndarray, float]:
    """
    Counts of active features under labels y, and their summed weight.

    Returns:
        (counts, weighted_score): counts[p] is the number of active features
        with param_index p; weighted_score is sum of theta[p] over them
    """
    theta = np.asarray(theta, dtype=np.float64).reshape(-1)
    active = [f.param_index for f in features if f.matches(y)]
    counts = np.bincount(np.asarray(active, dtype=np.intp), minlength=theta.size).astype(np.float64)
    score = float(np.sum(theta[np.asarray(active, dtype=np.intp)]))
    return counts, score


def expected_counts(
    features: Sequence[Feature],
    result: CalibrationResult,
    n_params: int,
) -> np.ndarray:
    """
    Model expectation of every feature, summed per parameter.

    Scope-1 features read the normalized variable marginal; scope-2 features
    read the normalized clique marginal at the feature's labels.
    """
    tree = result.tree
    node = variable_marginals(result)
    pair_marginals: Dict[int, Factor] = {}

    params = np.empty(len(features), dtype=np.intp)
    values = np.empty(len(features), dtype=np.float64)
    for k, feature in enumerate(features):
        f = feature.canonical()
        params[k] = f.param_index
        if f.is_pairwise:
            cid = tree.clique_for_pair(f.scope)
            if cid not in pair_marginals:
                pair_marginals[cid] = clique_marginal(result, cid)
            labels = {v: a - 1 for v, a in zip(f.scope, f.assignment)}
            values[k] = pair_marginals[cid].value(labels)
        else:
            values[k] = node[f.scope[0] - 1, f.assignment[0] - 1]

    counts = np.zeros(n_params, dtype=np.float64)
    np.add.at(counts, params, values)
    return counts


def sufficient_statistics(
    features: Sequence[Feature],
    y: Sequence[int],
    theta: np.ndarray,
    result: CalibrationResult,
) -> SufficientStatistics:
    theta = np.asarray(theta, dtype=np.float64).reshape(-1)
    empirical, score = empirical_statistics(features, y, theta)
    expected = expected_counts(features, result, theta.size)
    return SufficientStatistics(
        empirical_counts=empirical,
        expected_counts=expected,
        weighted_empirical_score=score,
    )
