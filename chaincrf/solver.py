"""
chaincrf/solver.py

Inference pipeline: features + theta -> potentials -> clique tree ->
calibrated beliefs and log Z.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence, Union

import numpy as np

from chaincrf.algebra.semiring import get_semiring
from chaincrf.features import Feature
from chaincrf.potentials import PotentialSet, accumulate_log_potentials, to_semiring
from chaincrf.runtime.calibration import CalibrationResult, calibrate
from chaincrf.topology.clique_tree import CliqueTree, build_clique_tree, chain_pair_index

logger = logging.getLogger(__name__)


@dataclass
class InferenceResult:
    """Result from running inference on one sequence."""
    log_z: float
    calibration: CalibrationResult
    potentials: PotentialSet
    tree: CliqueTree


def run_inference(
    features: Sequence[Feature],
    theta: np.ndarray,
    n_var: int,
    num_states: int,
    semiring: Union[str, Any] = "prob",
) -> InferenceResult:
    """
    Run exact inference for one sequence.

    Args:
        features: Indicator features from the feature generator
        theta: Parameter vector (read only)
        n_var: Number of hidden variables
        num_states: Label cardinality K
        semiring: "prob", "logprob" or "maxsum"

    Returns:
        InferenceResult with log Z, calibrated beliefs, potentials and tree
    """
    sr = get_semiring(semiring)
    pair_index = chain_pair_index(n_var)

    log_potentials = accumulate_log_potentials(features, theta, n_var, num_states, pair_index)
    potentials = to_semiring(log_potentials, sr)
    tree = build_clique_tree(potentials, pair_index)
    logger.debug("Built clique tree with %d cliques for %d variables", tree.num_cliques, n_var)

    calibration = calibrate(tree)
    return InferenceResult(
        log_z=calibration.log_z,
        calibration=calibration,
        potentials=potentials,
        tree=tree,
    )
