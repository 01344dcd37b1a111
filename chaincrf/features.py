"""
chaincrf/features.py

Indicator features and model parameters handed over by the (external)
feature generator.

Variable ids are 1-based sequence positions and labels are 1..K at this
boundary; parameter indices are 0-based indices into theta.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class Feature:
    """
    An indicator feature: fires when the labels on `scope` equal `assignment`.

    Attributes:
        scope: One or two variable ids
        assignment: Labels (1..K), one per scope entry
        param_index: Index of the (possibly shared) weight in theta
    """
    scope: Tuple[int, ...]
    assignment: Tuple[int, ...]
    param_index: int

    def __post_init__(self):
        scope = tuple(int(v) for v in self.scope)
        assignment = tuple(int(a) for a in self.assignment)
        if len(scope) not in (1, 2):
            raise ValueError(f"Feature scope must hold 1 or 2 variables, got {scope}")
        if len(assignment) != len(scope):
            raise ValueError(
                f"Feature assignment {assignment} does not match scope {scope}"
            )
        object.__setattr__(self, "scope", scope)
        object.__setattr__(self, "assignment", assignment)
        object.__setattr__(self, "param_index", int(self.param_index))

    @property
    def is_pairwise(self) -> bool:
        return len(self.scope) == 2

    def canonical(self) -> "Feature":
        """Same feature with the scope sorted ascending."""
        if self.scope == tuple(sorted(self.scope)):
            return self
        order = sorted(range(len(self.scope)), key=lambda i: self.scope[i])
        return Feature(
            tuple(self.scope[i] for i in order),
            tuple(self.assignment[i] for i in order),
            self.param_index,
        )

    def matches(self, y: Sequence[int]) -> bool:
        """True when the labelling y (1-based labels, y[0] is variable 1) activates this feature."""
        return all(int(y[v - 1]) == a for v, a in zip(self.scope, self.assignment))

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "Feature":
        return Feature(
            scope=tuple(data["scope"]),
            assignment=tuple(data["assignment"]),
            param_index=data["param_index"],
        )


@dataclass(frozen=True)
class ModelParams:
    """
    Model hyper-parameters.

    Attributes:
        num_hidden_states: K, the label cardinality
        num_observed_states: Observation alphabet size (feature generator only)
        reg_lambda: L2 regularization strength
    """
    num_hidden_states: int
    num_observed_states: int = 0
    reg_lambda: float = 0.0

    def __post_init__(self):
        if self.num_hidden_states < 1:
            raise ValueError(f"num_hidden_states must be >= 1, got {self.num_hidden_states}")
        if self.reg_lambda < 0:
            raise ValueError(f"reg_lambda must be >= 0, got {self.reg_lambda}")

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "ModelParams":
        return ModelParams(
            num_hidden_states=int(data["num_hidden_states"]),
            num_observed_states=int(data.get("num_observed_states", 0)),
            reg_lambda=float(data.get("lambda", data.get("reg_lambda", 0.0))),
        )


def num_params(features: Iterable[Feature]) -> int:
    """Smallest theta length that covers every param_index."""
    return max((f.param_index for f in features), default=-1) + 1


def check_labels(y: Sequence[int], n_var: int, num_states: int) -> np.ndarray:
    """Validate an observed label sequence and return it as an int array."""
    raw = np.asarray(y).reshape(-1)
    if raw.size != n_var:
        raise ValueError(f"Label sequence has length {raw.size}, expected {n_var}")
    if not np.issubdtype(raw.dtype, np.number) or np.any(raw != np.round(raw)):
        raise ValueError(f"Labels must be integers, got {raw.tolist()}")
    y = raw.astype(np.int64)
    if np.any(y < 1) or np.any(y > num_states):
        raise ValueError(f"Labels must lie in 1..{num_states}, got {y.tolist()}")
    return y
