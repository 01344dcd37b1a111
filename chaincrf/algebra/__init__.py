"""
Algebra module: Semirings, the mixed-radix codec and factors.
"""

from chaincrf.algebra.semiring import (
    ProbSemiring,
    LogProbSemiring,
    MaxSumSemiring,
    get_semiring,
    get_sum_product_semiring,
    same_semiring,
)
from chaincrf.algebra.indexing import assignment_to_index, index_to_assignment, strides
from chaincrf.algebra.factor import Factor, product_all

__all__ = [
    "ProbSemiring",
    "LogProbSemiring",
    "MaxSumSemiring",
    "get_semiring",
    "get_sum_product_semiring",
    "same_semiring",
    "assignment_to_index",
    "index_to_assignment",
    "strides",
    "Factor",
    "product_all",
]
