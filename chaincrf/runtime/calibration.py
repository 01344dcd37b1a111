"""
chaincrf/runtime/calibration.py

Exact two-pass message passing over a clique tree.

Upward pass (leaves -> root) followed by a downward pass (root -> leaves).
On the chain, rooted at the last clique, the upward pass is the
left-to-right sweep and the downward pass is the right-to-left sweep.
After both passes every clique belief is the (unnormalized) marginal of the
full model over that clique's scope, and all beliefs share the same total
mass Z.

The semiring decides the flavour: prob/logprob give sum-product
(marginals, log Z), maxsum gives max-product (max-marginals, best score).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from chaincrf.algebra.factor import Factor
from chaincrf.errors import NumericInstability
from chaincrf.topology.clique_tree import CliqueTree

logger = logging.getLogger(__name__)

Edge = Tuple[int, int]


@dataclass
class CalibrationResult:
    """
    Calibrated clique tree.

    Attributes:
        tree: The clique tree that was calibrated
        beliefs: Unnormalized calibrated belief per clique id
        messages: Final message per directed edge (src, dst)
        log_z: Log of the total mass (best log score under maxsum)
        root: Clique the upward pass converged on
    """
    tree: CliqueTree
    beliefs: List[Factor]
    messages: Dict[Edge, Factor]
    log_z: float
    root: int

    @property
    def semiring(self) -> Any:
        return self.tree.semiring


def root_tree(tree: CliqueTree, root: int) -> Tuple[Dict[int, Optional[int]], List[int]]:
    """
    Root the clique tree.

    Returns:
        (parent, order) where parent[root] is None and order lists clique ids
        so that every parent precedes its children
    """
    parent: Dict[int, Optional[int]] = {root: None}
    order: List[int] = []

    stack = [root]
    while stack:
        u = stack.pop()
        order.append(u)
        for v in tree.neighbors(u):
            if v in parent:
                continue
            parent[v] = u
            stack.append(v)

    if len(order) != tree.num_cliques:
        raise RuntimeError("Clique tree is not connected")
    return parent, order


def _send(tree: CliqueTree, src: int, dst: int, messages: Dict[Edge, Factor]) -> Factor:
    """Absorb every message into src except the one from dst, then sum onto the sepset."""
    f = tree.cliques[src]
    for nb in tree.neighbors(src):
        if nb != dst:
            f = f.product(messages[(nb, src)])
    return f.restrict_to(tree.sepset(src, dst))


def calibrate(tree: CliqueTree, root: Optional[int] = None) -> CalibrationResult:
    """
    Calibrate a clique tree.

    Args:
        tree: Clique tree with initial potentials
        root: Root clique (default: the last clique)

    Returns:
        CalibrationResult with beliefs and log_z

    Raises:
        NumericInstability: log_z is not finite
    """
    if root is None:
        root = tree.num_cliques - 1

    parent, order = root_tree(tree, root)
    messages: Dict[Edge, Factor] = {}

    # Upward: children before parents
    for u in reversed(order):
        p = parent[u]
        if p is not None:
            messages[(u, p)] = _send(tree, u, p, messages)

    # Downward: parents before children
    for u in order:
        for v in tree.neighbors(u):
            if parent.get(v) == u:
                messages[(u, v)] = _send(tree, u, v, messages)

    beliefs: List[Factor] = []
    for c in range(tree.num_cliques):
        b = tree.cliques[c]
        for nb in tree.neighbors(c):
            b = b.product(messages[(nb, c)])
        beliefs.append(b)

    sr = tree.semiring
    log_z = sr.log_total(beliefs[root].values)
    if not np.isfinite(log_z):
        hint = " (try the logprob semiring)" if getattr(sr, "name", "") == "prob" else ""
        raise NumericInstability(f"log Z is not finite: {log_z}{hint}")

    logger.debug(
        "Calibrated %d cliques (%s semiring), log Z = %.6f",
        tree.num_cliques, getattr(sr, "name", type(sr).__name__), log_z,
    )
    return CalibrationResult(
        tree=tree, beliefs=beliefs, messages=messages, log_z=log_z, root=root
    )
