"""
chaincrf/algebra/factor.py

A Factor is a dense semiring-valued table over an ordered scope of discrete
variables.

Key operations:
  - product:     (f ⊗ g) on scope(f) followed by the new variables of g
  - marginalize: semiring-sum of the given variables out of the scope
  - normalize:   semiring-specific normalization
  - value:       lookup of a single joint assignment

Design constraints:
  - Scope ordering is semantic: values are laid out in mixed-radix order
    with the first scope variable least significant (see indexing.py).
  - Factors are immutable: every operation returns a new Factor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence, Tuple, Union

import numpy as np

from chaincrf.algebra.indexing import assignment_to_index
from chaincrf.algebra.semiring import ProbSemiring, same_semiring
from chaincrf.errors import ScopeCardinalityMismatch


@dataclass(frozen=True, eq=False)
class Factor:
    """
    A semiring table over an ordered scope.

    Attributes:
        scope: Ordered variable ids (unique).
        card: Cardinality of each scope variable, same order as scope.
        values: Flat table of length prod(card), mixed-radix layout.
        semiring: Semiring giving meaning to product and marginalization.
    """
    scope: Tuple[int, ...]
    card: Tuple[int, ...]
    values: np.ndarray
    semiring: Any = field(default_factory=ProbSemiring)

    def __post_init__(self):
        scope = tuple(int(v) for v in self.scope)
        card = tuple(int(c) for c in self.card)
        if len(scope) != len(card):
            raise ValueError(
                f"Factor scope/card mismatch: |scope|={len(scope)} but |card|={len(card)}"
            )
        if len(set(scope)) != len(scope):
            raise ValueError(f"Factor scope has duplicates: {scope}")
        if any(c < 1 for c in card):
            raise ValueError(f"Factor cardinalities must be positive: {card}")

        values = np.array(self.values, dtype=np.float64).reshape(-1)
        expected = int(np.prod(card, dtype=np.int64))
        if values.size != expected:
            raise ValueError(
                f"Factor table has {values.size} entries, expected prod{card}={expected}"
            )
        values.setflags(write=False)

        object.__setattr__(self, "scope", scope)
        object.__setattr__(self, "card", card)
        object.__setattr__(self, "values", values)

    @staticmethod
    def identity(semiring: Any = None) -> "Factor":
        """0-scope factor holding the semiring one; the product identity."""
        if semiring is None:
            semiring = ProbSemiring()
        return Factor((), (), np.array([semiring.one]), semiring)

    @staticmethod
    def from_table(scope: Sequence[int], table: np.ndarray, semiring: Any = None) -> "Factor":
        """Build a factor from an n-d table indexed as table[a_0, a_1, ...]."""
        if semiring is None:
            semiring = ProbSemiring()
        table = np.asarray(table, dtype=np.float64)
        if table.ndim != len(scope):
            raise ValueError(
                f"Table rank {table.ndim} does not match scope size {len(scope)}"
            )
        return Factor(tuple(scope), table.shape, table.ravel(order="F"), semiring)

    @property
    def table(self) -> np.ndarray:
        """n-d read-only view indexed as table[a_0, a_1, ...]."""
        return self.values.reshape(self.card, order="F")

    def index_of(self, assignment: Union[Mapping[int, int], Sequence[int]]) -> int:
        """Flat index of a 0-based assignment (mapping by var, or scope-aligned)."""
        if isinstance(assignment, Mapping):
            assignment = [assignment[v] for v in self.scope]
        return int(assignment_to_index(list(assignment), self.card))

    def value(self, assignment: Union[Mapping[int, int], Sequence[int]]) -> float:
        return float(self.values[self.index_of(assignment)])

    def _aligned_view(self, target_scope: Tuple[int, ...], target_shape: Tuple[int, ...]) -> np.ndarray:
        """
        Broadcast this factor's table to target_scope.

        Existing axes are permuted into target order, missing axes become
        singleton dimensions, then the result is broadcast to target_shape.
        """
        src_pos = {v: i for i, v in enumerate(self.scope)}
        perm = [src_pos[v] for v in target_scope if v in src_pos]

        data = self.table
        if perm and perm != list(range(len(perm))):
            data = np.transpose(data, axes=perm)

        shape = [t if v in src_pos else 1 for v, t in zip(target_scope, target_shape)]
        return np.broadcast_to(data.reshape(shape), target_shape)

    def product(self, other: "Factor") -> "Factor":
        """
        Factor product on the union scope.

        (f ⊗ g)(x) = f(x restricted to scope f) ⊗ g(x restricted to scope g)

        Result scope is self.scope followed by other's variables not in self.
        """
        if not same_semiring(self.semiring, other.semiring):
            raise ValueError("Cannot multiply factors from different semirings")

        mine = dict(zip(self.scope, self.card))
        for v, c in zip(other.scope, other.card):
            if v in mine and mine[v] != c:
                raise ScopeCardinalityMismatch(
                    f"Variable {v} has cardinality {mine[v]} in one factor and {c} in the other"
                )

        extra = [(v, c) for v, c in zip(other.scope, other.card) if v not in mine]
        scope = self.scope + tuple(v for v, _ in extra)
        card = self.card + tuple(c for _, c in extra)

        a = self._aligned_view(scope, card)
        b = other._aligned_view(scope, card)
        out = self.semiring.mul(a, b)
        return Factor(scope, card, np.asarray(out).ravel(order="F"), self.semiring)

    def marginalize(self, variables: Iterable[int]) -> "Factor":
        """
        Sum (semiring ⊕) the given variables out of the factor.

        Variables outside the scope are ignored. Removing every variable
        yields a 0-scope factor holding the total of the table.
        """
        elim = set(variables)
        axes = tuple(i for i, v in enumerate(self.scope) if v in elim)
        if not axes:
            return self

        reduced = self.semiring.add_reduce(self.table, axis=axes)
        keep = [i for i in range(len(self.scope)) if i not in axes]
        scope = tuple(self.scope[i] for i in keep)
        card = tuple(self.card[i] for i in keep)
        return Factor(scope, card, np.asarray(reduced).ravel(order="F"), self.semiring)

    def restrict_to(self, variables: Iterable[int]) -> "Factor":
        """Marginalize onto the given variables (scope order is preserved)."""
        keep = set(variables)
        return self.marginalize(v for v in self.scope if v not in keep)

    def reorder(self, scope: Sequence[int]) -> "Factor":
        """Same function, laid out over a permutation of the scope."""
        scope = tuple(scope)
        if sorted(scope) != sorted(self.scope):
            raise ValueError(f"{scope} is not a permutation of {self.scope}")
        if scope == self.scope:
            return self
        pos = {v: i for i, v in enumerate(self.scope)}
        table = np.transpose(self.table, axes=[pos[v] for v in scope])
        return Factor.from_table(scope, table, self.semiring)

    def normalize(self) -> "Factor":
        """Semiring normalization over the whole table."""
        values = self.semiring.normalize(self.values, axis=None)
        return Factor(self.scope, self.card, values, self.semiring)

    def total(self) -> float:
        """Semiring sum of every entry."""
        return float(self.marginalize(self.scope).values[0])

    def __repr__(self) -> str:
        return (
            f"Factor(scope={self.scope}, card={self.card}, "
            f"semiring={getattr(self.semiring, 'name', type(self.semiring).__name__)})"
        )


def product_all(factors: Iterable[Factor], semiring: Any = None) -> Factor:
    """Fold product over an iterable of factors; empty input gives the identity."""
    acc = None
    for f in factors:
        acc = f if acc is None else acc.product(f)
    if acc is None:
        return Factor.identity(semiring)
    return acc
