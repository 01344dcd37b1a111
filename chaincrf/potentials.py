"""
chaincrf/potentials.py

Feature accumulation: fold indicator features and a parameter vector into
per-variable (node) and per-adjacent-pair (edge) potentials.

Two construction phases, both returning fresh objects:
1. accumulate_log_potentials: additive log-potential tables
2. to_semiring: conversion of those tables into a semiring's representation
   (exponentiation for the prob semiring)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

import numpy as np

from chaincrf.algebra.factor import Factor
from chaincrf.algebra.indexing import assignment_to_index
from chaincrf.algebra.semiring import LogProbSemiring, get_semiring
from chaincrf.errors import FeatureContractError, UnsupportedFeatureScope
from chaincrf.features import Feature
from chaincrf.topology.clique_tree import Pair, chain_pair_index

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PotentialSet:
    """
    Node and edge potentials of a chain.

    Attributes:
        n_var: Number of hidden variables
        num_states: Label cardinality K
        node: Variable id -> factor over (var,)
        edge: Pair (i, i+1) -> factor over (i, i+1)
    """
    n_var: int
    num_states: int
    node: Dict[int, Factor]
    edge: Dict[Pair, Factor]

    @property
    def semiring(self) -> Any:
        return self.node[1].semiring


def _check_feature(
    feature: Feature,
    n_var: int,
    num_states: int,
    n_params: int,
    pair_index: Dict[Pair, int],
) -> None:
    for v in feature.scope:
        if v < 1 or v > n_var:
            raise UnsupportedFeatureScope(
                f"Feature {feature} references variable {v} outside 1..{n_var}"
            )
    if feature.is_pairwise and tuple(sorted(feature.scope)) not in pair_index:
        raise UnsupportedFeatureScope(
            f"Feature {feature} references non-adjacent pair {feature.scope}"
        )
    for a in feature.assignment:
        if a < 1 or a > num_states:
            raise FeatureContractError(
                f"Feature {feature} assigns label {a} outside 1..{num_states}"
            )
    if feature.param_index < 0 or feature.param_index >= n_params:
        raise FeatureContractError(
            f"Feature {feature} has param_index outside theta (length {n_params})"
        )


def accumulate_log_potentials(
    features: Iterable[Feature],
    theta: np.ndarray,
    n_var: int,
    num_states: int,
    pair_index: Optional[Dict[Pair, int]] = None,
) -> PotentialSet:
    """
    Sum feature weights into additive log-potential tables.

    Every scope-1 feature adds theta[param_index] to its variable's node
    table at the feature's label; every scope-2 feature adds it to the edge
    table of its (ascending) pair at the mixed-radix index of its labels.

    Args:
        features: Indicator features
        theta: Parameter vector
        n_var: Number of hidden variables
        num_states: Label cardinality K
        pair_index: Adjacent pair -> clique id map (default: chain_pair_index)

    Returns:
        PotentialSet of log-space factors (LogProbSemiring)

    Raises:
        UnsupportedFeatureScope: out-of-range variable or non-adjacent pair
        FeatureContractError: label or param_index out of range
    """
    theta = np.asarray(theta, dtype=np.float64).reshape(-1)
    if pair_index is None:
        pair_index = chain_pair_index(n_var)
    K = num_states

    node_rows, node_cols, node_params = [], [], []
    edge_rows, edge_cols, edge_params = [], [], []
    count = 0
    for feature in features:
        _check_feature(feature, n_var, K, theta.size, pair_index)
        f = feature.canonical()
        labels = [a - 1 for a in f.assignment]
        if f.is_pairwise:
            edge_rows.append(pair_index[f.scope])
            edge_cols.append(int(assignment_to_index(labels, (K, K))))
            edge_params.append(f.param_index)
        else:
            node_rows.append(f.scope[0] - 1)
            node_cols.append(labels[0])
            node_params.append(f.param_index)
        count += 1

    def idx(xs):
        return np.asarray(xs, dtype=np.intp)

    node_log = np.zeros((n_var, K))
    edge_log = np.zeros((len(pair_index), K * K))
    np.add.at(node_log, (idx(node_rows), idx(node_cols)), theta[idx(node_params)])
    np.add.at(edge_log, (idx(edge_rows), idx(edge_cols)), theta[idx(edge_params)])

    logger.debug(
        "Accumulated %d features (%d node, %d edge) over %d variables",
        count, len(node_rows), len(edge_rows), n_var,
    )

    sr = LogProbSemiring()
    node = {i: Factor((i,), (K,), node_log[i - 1], sr) for i in range(1, n_var + 1)}
    edge = {pair: Factor(pair, (K, K), edge_log[cid], sr) for pair, cid in pair_index.items()}
    return PotentialSet(n_var=n_var, num_states=K, node=node, edge=edge)


def to_semiring(log_potentials: PotentialSet, semiring: Any = "prob") -> PotentialSet:
    """
    Convert log-potentials into the representation of `semiring`.

    For the prob semiring this exponentiates every entry; log-space
    semirings keep the values as they are.
    """
    sr = get_semiring(semiring)

    def convert(f: Factor) -> Factor:
        return Factor(f.scope, f.card, sr.from_log(f.values), sr)

    return PotentialSet(
        n_var=log_potentials.n_var,
        num_states=log_potentials.num_states,
        node={v: convert(f) for v, f in log_potentials.node.items()},
        edge={p: convert(f) for p, f in log_potentials.edge.items()},
    )
