"""
chaincrf: Exact inference and training objective for linear-chain CRFs

Clique tree calibration over a chain of discrete hidden labels, giving the
log partition function, exact marginals, MAP decodes and the regularized
negative log-likelihood with its gradient.

Key components:
- algebra: Semirings, the mixed-radix codec and factors
- potentials: Feature accumulation into node and edge potentials
- topology: Chain clique tree construction
- runtime: Two-pass calibration
- api: Marginal and MAP extraction
- statistics: Empirical and expected feature counts
- objective: Negative log-likelihood, gradient and gradient check
"""

__version__ = "1.0.0"
__author__ = "chaincrf developers"

from chaincrf.algebra.semiring import (
    ProbSemiring,
    LogProbSemiring,
    MaxSumSemiring,
    get_semiring,
    get_sum_product_semiring,
)
from chaincrf.algebra.factor import Factor, product_all
from chaincrf.algebra.indexing import assignment_to_index, index_to_assignment
from chaincrf.errors import (
    CRFError,
    FeatureContractError,
    NumericInstability,
    ScopeCardinalityMismatch,
    UnsupportedFeatureScope,
)
from chaincrf.features import Feature, ModelParams, check_labels, num_params
from chaincrf.potentials import PotentialSet, accumulate_log_potentials, to_semiring
from chaincrf.topology.clique_tree import CliqueTree, build_clique_tree, chain_pair_index
from chaincrf.runtime.calibration import CalibrationResult, calibrate
from chaincrf.api.marginals import (
    clique_marginal,
    map_assignment,
    variable_marginal,
    variable_marginals,
)
from chaincrf.statistics import SufficientStatistics, sufficient_statistics
from chaincrf.objective import check_gradient, instance_neg_log_likelihood, numerical_gradient
from chaincrf.solver import InferenceResult, run_inference
from chaincrf.crf import compute_log_partition, compute_marginals, map_decode

__all__ = [
    # Semirings
    "ProbSemiring",
    "LogProbSemiring",
    "MaxSumSemiring",
    "get_semiring",
    "get_sum_product_semiring",
    # Factors
    "Factor",
    "product_all",
    "assignment_to_index",
    "index_to_assignment",
    # Errors
    "CRFError",
    "FeatureContractError",
    "NumericInstability",
    "ScopeCardinalityMismatch",
    "UnsupportedFeatureScope",
    # Model
    "Feature",
    "ModelParams",
    "check_labels",
    "num_params",
    "PotentialSet",
    "accumulate_log_potentials",
    "to_semiring",
    # Topology and calibration
    "CliqueTree",
    "build_clique_tree",
    "chain_pair_index",
    "CalibrationResult",
    "calibrate",
    # Marginals
    "clique_marginal",
    "map_assignment",
    "variable_marginal",
    "variable_marginals",
    # Objective
    "SufficientStatistics",
    "sufficient_statistics",
    "check_gradient",
    "instance_neg_log_likelihood",
    "numerical_gradient",
    # Solver
    "InferenceResult",
    "run_inference",
    "compute_log_partition",
    "compute_marginals",
    "map_decode",
]
