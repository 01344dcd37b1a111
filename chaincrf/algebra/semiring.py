"""
chaincrf/algebra/semiring.py

Semirings for sum-product and max-product inference.

A commutative semiring (S, ⊕, ⊗, 0, 1) provides:
- mul (⊗): pointwise combination of potentials
- add_reduce (⊕): marginalization over axes
- zero / one: identities
- normalize: rescale a table into a canonical (normalized) form

On top of the algebra each semiring knows how to move between its own
representation and log/linear space:
- from_log(x):  log-potentials -> semiring values
- to_linear(x): semiring values -> probability-space values
- log_total(x): log of the total mass of a table
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

import numpy as np
from scipy.special import logsumexp

Axis = Optional[Union[int, Tuple[int, ...]]]


@dataclass(frozen=True)
class ProbSemiring:
    """Nonnegative reals: add=+, mul=*."""
    name: str = "prob"
    zero: float = 0.0
    one: float = 1.0

    def mul(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return np.multiply(a, b)

    def add_reduce(self, x: np.ndarray, axis: Axis = None) -> np.ndarray:
        return np.sum(x, axis=axis)

    def normalize(self, x: np.ndarray, axis: Axis = None) -> np.ndarray:
        s = np.sum(x, axis=axis, keepdims=True)
        s = np.where(s == 0.0, 1.0, s)
        return x / s

    def from_log(self, x: np.ndarray) -> np.ndarray:
        return np.exp(x)

    def to_linear(self, x: np.ndarray) -> np.ndarray:
        return np.asarray(x, dtype=np.float64)

    def log_total(self, x: np.ndarray) -> float:
        with np.errstate(divide="ignore"):
            return float(np.log(np.sum(x)))


@dataclass(frozen=True)
class LogProbSemiring:
    """Log-space probabilities: add=logsumexp, mul=+."""
    name: str = "logprob"
    zero: float = -np.inf
    one: float = 0.0

    def mul(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return np.add(a, b)

    def add_reduce(self, x: np.ndarray, axis: Axis = None) -> np.ndarray:
        return logsumexp(x, axis=axis)

    def normalize(self, x: np.ndarray, axis: Axis = None) -> np.ndarray:
        z = logsumexp(x, axis=axis, keepdims=True)
        z = np.where(np.isneginf(z), 0.0, z)
        return x - z

    def from_log(self, x: np.ndarray) -> np.ndarray:
        return np.asarray(x, dtype=np.float64)

    def to_linear(self, x: np.ndarray) -> np.ndarray:
        return np.exp(x)

    def log_total(self, x: np.ndarray) -> float:
        return float(logsumexp(x))


@dataclass(frozen=True)
class MaxSumSemiring:
    """Log-space max-product (Viterbi): add=max, mul=+."""
    name: str = "maxsum"
    zero: float = -np.inf
    one: float = 0.0

    def mul(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return np.add(a, b)

    def add_reduce(self, x: np.ndarray, axis: Axis = None) -> np.ndarray:
        return np.max(x, axis=axis)

    def normalize(self, x: np.ndarray, axis: Axis = None) -> np.ndarray:
        m = np.max(x, axis=axis, keepdims=True)
        m = np.where(np.isneginf(m), 0.0, m)
        return x - m

    def from_log(self, x: np.ndarray) -> np.ndarray:
        return np.asarray(x, dtype=np.float64)

    def to_linear(self, x: np.ndarray) -> np.ndarray:
        return np.exp(x)

    def log_total(self, x: np.ndarray) -> float:
        return float(np.max(x))


_SEMIRINGS = {
    "prob": ProbSemiring,
    "logprob": LogProbSemiring,
    "maxsum": MaxSumSemiring,
}


def get_semiring(name: Union[str, Any]) -> Any:
    """
    Resolve a semiring by name.

    Semiring instances are passed through unchanged.
    """
    if not isinstance(name, str):
        return name
    try:
        return _SEMIRINGS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown semiring {name!r}; expected one of {sorted(_SEMIRINGS)}"
        ) from None


def same_semiring(a: Any, b: Any) -> bool:
    """Two semirings are interchangeable when type and name agree."""
    return (type(a), getattr(a, "name", None)) == (type(b), getattr(b, "name", None))


SUM_PRODUCT = ("prob", "logprob")


def get_sum_product_semiring(name: Union[str, Any]) -> Any:
    """
    Resolve a semiring whose totals are partition functions.

    Max-product semirings are rejected: their log_total is the best path
    score and their normalized beliefs are max-marginals.
    """
    sr = get_semiring(name)
    if getattr(sr, "name", None) not in SUM_PRODUCT:
        raise ValueError(
            f"Semiring {getattr(sr, 'name', sr)!r} does not compute log Z; "
            f"expected one of {list(SUM_PRODUCT)}"
        )
    return sr
