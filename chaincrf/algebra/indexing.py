"""
chaincrf/algebra/indexing.py

Mixed-radix codec between joint assignments and flat table indices.

Convention (used by every factor table in the package):
  index = a_0 + c_0 * a_1 + c_0 * c_1 * a_2 + ...
i.e. the FIRST scope variable is the least significant digit. This is the
same layout as numpy Fortran order, so a flat table reshaped with
order="F" is indexed as table[a_0, a_1, ...].

Assignments here are 0-based.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np


def strides(card: Sequence[int]) -> np.ndarray:
    """Place value of each digit: (1, c0, c0*c1, ...)."""
    card = np.asarray(card, dtype=np.int64)
    if card.size == 0:
        return np.zeros(0, dtype=np.int64)
    return np.concatenate(([1], np.cumprod(card[:-1]))).astype(np.int64)


def assignment_to_index(assignments, card: Sequence[int]) -> np.ndarray:
    """
    Encode assignments into flat indices.

    Args:
        assignments: Array of shape (len(card),) or (n, len(card))
        card: Cardinality of each scope variable

    Returns:
        Scalar index array or array of n indices
    """
    a = np.asarray(assignments, dtype=np.int64)
    card_arr = np.asarray(card, dtype=np.int64)
    if a.shape[-1:] != card_arr.shape:
        raise ValueError(
            f"Assignment width {a.shape[-1:]} does not match scope size {len(card_arr)}"
        )
    if np.any(a < 0) or np.any(a >= card_arr):
        raise ValueError(f"Assignment out of range for cardinalities {tuple(card)}")
    return a @ strides(card)


def index_to_assignment(indices, card: Sequence[int]) -> np.ndarray:
    """
    Decode flat indices into assignments.

    Args:
        indices: Scalar index or 1-D array of indices
        card: Cardinality of each scope variable

    Returns:
        Array of shape (len(card),) or (n, len(card))
    """
    idx = np.asarray(indices, dtype=np.int64)
    card_arr = np.asarray(card, dtype=np.int64)
    total = int(np.prod(card_arr))
    if np.any(idx < 0) or np.any(idx >= total):
        raise ValueError(f"Index out of range for table of size {total}")
    return (idx[..., None] // strides(card_arr)) % card_arr
