"""
chaincrf/errors.py

Exception taxonomy for the inference engine.

Every error is a contract violation reported immediately; nothing is
retried or recovered internally. Each class also derives from the builtin
that best describes it so callers can catch either.
"""

from __future__ import annotations


class CRFError(Exception):
    """Base class for all chaincrf errors."""


class ScopeCardinalityMismatch(CRFError, ValueError):
    """Two factors disagree on the cardinality of a shared variable."""


class FeatureContractError(CRFError, ValueError):
    """A feature violates the upstream feature-generator contract."""


class UnsupportedFeatureScope(FeatureContractError):
    """A feature references an out-of-range variable or a non-adjacent pair."""


class NumericInstability(CRFError, ArithmeticError):
    """A non-finite log partition function or marginal was produced."""
