"""
chaincrf/crf.py

High-level entry points: partition function, marginals and MAP decoding
for a linear-chain CRF given its features and parameters.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from chaincrf.algebra.semiring import get_sum_product_semiring
from chaincrf.api.marginals import map_assignment, variable_marginals
from chaincrf.features import Feature
from chaincrf.solver import run_inference


def compute_log_partition(
    features: Sequence[Feature],
    theta: np.ndarray,
    n_var: int,
    num_states: int,
    **kwargs
) -> float:
    """
    Compute log Z of the chain.

    Args:
        features: Indicator features
        theta: Parameter vector
        n_var: Number of hidden variables
        num_states: Label cardinality K
        **kwargs: Additional arguments passed to run_inference

    Returns:
        Log partition function
    """
    semiring = get_sum_product_semiring(kwargs.pop("semiring", "prob"))
    return run_inference(features, theta, n_var, num_states, semiring=semiring, **kwargs).log_z


def compute_marginals(
    features: Sequence[Feature],
    theta: np.ndarray,
    n_var: int,
    num_states: int,
    **kwargs
) -> np.ndarray:
    """
    Compute single-variable marginals.

    Returns:
        Array of shape (n_var, K); row i-1 is the distribution of variable i
    """
    semiring = get_sum_product_semiring(kwargs.pop("semiring", "prob"))
    result = run_inference(features, theta, n_var, num_states, semiring=semiring, **kwargs)
    return variable_marginals(result.calibration)


def map_decode(
    features: Sequence[Feature],
    theta: np.ndarray,
    n_var: int,
    num_states: int,
) -> np.ndarray:
    """
    Most likely label sequence (1-based labels) by max-product calibration.
    """
    result = run_inference(features, theta, n_var, num_states, semiring="maxsum")
    return map_assignment(result.calibration)
