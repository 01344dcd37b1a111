"""
API module: Marginal and MAP extraction from calibrated beliefs.
"""

from chaincrf.api.marginals import (
    clique_marginal,
    map_assignment,
    variable_marginal,
    variable_marginals,
)

__all__ = ["clique_marginal", "map_assignment", "variable_marginal", "variable_marginals"]
