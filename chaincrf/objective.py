"""
chaincrf/objective.py

Regularized negative log-likelihood of one labelled sequence and its
gradient with respect to theta.

    nll  = log Z - sum(active theta) + 0.5 * lambda * ||theta||^2
    grad = E_model[counts] - counts(y) + lambda * theta
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np
from scipy.optimize import approx_fprime

from chaincrf.algebra.semiring import get_sum_product_semiring
from chaincrf.features import Feature, ModelParams, check_labels
from chaincrf.solver import run_inference
from chaincrf.statistics import sufficient_statistics

logger = logging.getLogger(__name__)


def instance_neg_log_likelihood(
    X: Any,
    y: Sequence[int],
    theta: np.ndarray,
    model_params: ModelParams,
    features: Sequence[Feature],
    *,
    semiring: Union[str, Any] = "prob",
) -> Tuple[float, np.ndarray]:
    """
    Negative log-likelihood and gradient for one sequence.

    Args:
        X: Observations; only len(X) (the number of positions) is used
        y: Observed labels, one per position, in 1..K
        theta: Parameter vector (not modified)
        model_params: K and the regularization strength
        features: Features generated for this sequence
        semiring: "prob" (reference) or "logprob" (overflow-safe)

    Returns:
        (nll, grad) with grad the same length as theta

    Raises:
        ValueError: semiring is not a sum-product semiring, or y is invalid
    """
    semiring = get_sum_product_semiring(semiring)
    theta = np.asarray(theta, dtype=np.float64).reshape(-1)
    features = list(features)
    n_var = int(np.shape(X)[0])
    K = model_params.num_hidden_states
    y = check_labels(y, n_var, K)
    lam = model_params.reg_lambda

    inference = run_inference(features, theta, n_var, K, semiring=semiring)
    stats = sufficient_statistics(features, y, theta, inference.calibration)

    nll = inference.log_z - stats.weighted_empirical_score + 0.5 * lam * float(np.dot(theta, theta))
    grad = stats.expected_counts - stats.empirical_counts + lam * theta

    logger.debug(
        "n_var=%d log Z=%.6f score=%.6f nll=%.6f",
        n_var, inference.log_z, stats.weighted_empirical_score, nll,
    )
    return float(nll), grad


def numerical_gradient(
    X: Any,
    y: Sequence[int],
    theta: np.ndarray,
    model_params: ModelParams,
    features: Sequence[Feature],
    *,
    epsilon: float = 1e-6,
    semiring: Union[str, Any] = "prob",
) -> np.ndarray:
    """Forward-difference gradient of the negative log-likelihood."""
    features = list(features)

    def f(t: np.ndarray) -> float:
        return instance_neg_log_likelihood(X, y, t, model_params, features, semiring=semiring)[0]

    return approx_fprime(np.asarray(theta, dtype=np.float64), f, epsilon)


def check_gradient(
    X: Any,
    y: Sequence[int],
    theta: np.ndarray,
    model_params: ModelParams,
    features: Sequence[Feature],
    *,
    epsilon: float = 1e-6,
    semiring: Union[str, Any] = "prob",
    rng: Optional[np.random.Generator] = None,
) -> float:
    """
    Max absolute difference between analytic and finite-difference gradients.

    When rng is given the check runs at a randomly perturbed copy of theta.
    """
    theta = np.asarray(theta, dtype=np.float64).reshape(-1)
    if rng is not None:
        theta = theta + rng.normal(scale=0.1, size=theta.shape)
    features = list(features)
    _, grad = instance_neg_log_likelihood(X, y, theta, model_params, features, semiring=semiring)
    approx = numerical_gradient(
        X, y, theta, model_params, features, epsilon=epsilon, semiring=semiring
    )
    err = float(np.max(np.abs(grad - approx))) if theta.size else 0.0
    logger.debug("Gradient check: max abs error %.3e over %d parameters", err, theta.size)
    return err
