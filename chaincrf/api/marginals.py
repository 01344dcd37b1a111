"""
chaincrf/api/marginals.py

Marginal and MAP extraction from calibrated beliefs.
"""

from __future__ import annotations

from typing import Dict, Optional

import numpy as np

from chaincrf.algebra.factor import Factor
from chaincrf.errors import NumericInstability
from chaincrf.runtime.calibration import CalibrationResult, root_tree


def _as_probabilities(belief: Factor, what: str) -> Factor:
    """Normalize a belief and convert it to probability space."""
    sr = belief.semiring
    p = sr.to_linear(belief.normalize().values)
    if not np.all(np.isfinite(p)) or not np.sum(p) > 0:
        raise NumericInstability(f"Marginal of {what} is not a finite distribution: {p}")
    # Renormalize in linear space to absorb log-space rounding
    p = p / np.sum(p)
    return Factor(belief.scope, belief.card, p)


def variable_marginal(result: CalibrationResult, var: int) -> np.ndarray:
    """
    Marginal distribution of a single variable.

    Read from the first clique containing the variable; on a calibrated tree
    every clique containing it gives the same answer.

    Args:
        result: Calibrated clique tree
        var: Variable id

    Returns:
        Probability vector of length K (max-marginal under maxsum)
    """
    cid = result.tree.clique_containing(var)
    belief = result.beliefs[cid].restrict_to((var,))
    return _as_probabilities(belief, f"variable {var}").values.copy()


def variable_marginals(result: CalibrationResult) -> np.ndarray:
    """Stack every variable's marginal into an (n_var, K) array."""
    return np.stack([variable_marginal(result, v) for v in result.tree.variables()])


def clique_marginal(result: CalibrationResult, clique_id: int) -> Factor:
    """Normalized joint distribution over a clique's scope (prob-space factor)."""
    return _as_probabilities(result.beliefs[clique_id], f"clique {clique_id}")


def map_assignment(result: CalibrationResult, root: Optional[int] = None) -> np.ndarray:
    """
    Highest-scoring joint assignment from a max-product calibration.

    Takes the argmax of the root belief, then walks the tree assigning each
    clique's remaining variables by the argmax of its belief conditioned on
    what is already fixed.

    Args:
        result: Tree calibrated with the maxsum semiring
        root: Clique to start from (default: the calibration root)

    Returns:
        Labels (1-based) ordered by variable id
    """
    if getattr(result.semiring, "name", None) != "maxsum":
        raise ValueError("map_assignment requires a maxsum calibration")
    if root is None:
        root = result.root

    _, order = root_tree(result.tree, root)
    assignment: Dict[int, int] = {}
    for c in order:
        belief = result.beliefs[c]
        index = tuple(assignment.get(v, slice(None)) for v in belief.scope)
        sub = belief.table[index]
        free = [v for v in belief.scope if v not in assignment]
        if not free:
            continue
        best = np.unravel_index(int(np.argmax(sub)), sub.shape)
        for v, a in zip(free, best):
            assignment[v] = int(a)

    return np.array([assignment[v] + 1 for v in sorted(assignment)], dtype=np.int64)
